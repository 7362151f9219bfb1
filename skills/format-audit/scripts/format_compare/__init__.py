"""
Comparison engine: format rules, content and styles against a template.
"""

from .common import MatchStrategy
from .comparator import FormatComparator

__all__ = ['FormatComparator', 'MatchStrategy']
