"""
Comment annotation of .docx packages.
"""

from .comment_records import CommentRecord, build_comment_records
from .injector import DocxAnnotator
from .package_rewriter import SKIP_PART, rewrite_package

__all__ = [
    'CommentRecord',
    'DocxAnnotator',
    'SKIP_PART',
    'build_comment_records',
    'rewrite_package',
]
