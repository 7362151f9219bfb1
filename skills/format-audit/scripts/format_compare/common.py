"""
Shared constants and helpers for the format comparator mixins.
"""

from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from format_model import (
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    PRIORITY_URGENT,
    SEVERITY_CRITICAL,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
)
from utils import format_value

T = TypeVar('T')

# Numbers closer than this (in points) are treated as equal
NUMERIC_TOLERANCE = 0.01

DOCUMENT_LOCATION = 'document'

SEVERITY_PRIORITY = {
    SEVERITY_CRITICAL: PRIORITY_URGENT,
    SEVERITY_HIGH: PRIORITY_HIGH,
    SEVERITY_MEDIUM: PRIORITY_MEDIUM,
    SEVERITY_LOW: PRIORITY_LOW,
}

ALIGNMENT_LABELS = {
    'left': '左对齐',
    'center': '居中',
    'right': '右对齐',
    'justify': '两端对齐',
    'distribute': '分散对齐',
    '': '未设置',
}

FIELD_LABELS = {
    'name': '名称',
    'font_name': '字体',
    'size': '字号',
    'color': '颜色',
    'bold': '加粗',
    'italic': '倾斜',
    'alignment': '对齐方式',
    'before': '段前间距',
    'after': '段后间距',
    'width': '宽度',
    'page_width': '页面宽度',
    'page_height': '页面高度',
}

RULE_KIND_LABELS = {
    'font': '字体',
    'paragraph': '段落',
    'table': '表格',
    'page': '页面',
}


class MatchStrategy(Enum):
    """How template entities are paired with document entities."""
    IDENTITY = 'identity'        # same rule id
    POSITIONAL = 'positional'    # same list index, up to the shorter list


def pair_by_identity(template_items: Sequence[T], document_items: Sequence[T],
                     key: Callable[[T], Any]) -> Iterator[Tuple[T, Optional[T]]]:
    """
    Yield (template_item, document_item or None) for every template item.

    The first document item sharing the template item's key wins.
    """
    index = {}
    for item in document_items:
        index.setdefault(key(item), item)
    for template_item in template_items:
        yield template_item, index.get(key(template_item))


def pair_by_position(document_items: Sequence[T],
                     template_items: Sequence[T]) -> Iterator[Tuple[int, T, T]]:
    """
    Yield (index, document_item, template_item) up to the shorter list's length.

    Entities beyond the shorter length are not paired.
    """
    for idx in range(min(len(document_items), len(template_items))):
        yield idx, document_items[idx], template_items[idx]


def values_equal(current: Any, expected: Any) -> bool:
    """Compare two attribute values; numbers within NUMERIC_TOLERANCE are equal."""
    numeric = (int, float)
    if (isinstance(current, numeric) and isinstance(expected, numeric)
            and not isinstance(current, bool) and not isinstance(expected, bool)):
        return abs(float(current) - float(expected)) < NUMERIC_TOLERANCE
    if isinstance(current, str) and isinstance(expected, str):
        return current.strip().lower() == expected.strip().lower()
    return current == expected


def share_score(passed: int, total: int) -> float:
    """Every check contributes an equal share of 100; no checks is fully compliant."""
    if total <= 0:
        return 100.0
    return 100.0 * passed / total


def mean_score(scores: List[float]) -> float:
    """Average of scores; an empty list is vacuously compliant."""
    if not scores:
        return 100.0
    return sum(scores) / len(scores)


def paragraph_location(paragraph_index: int) -> str:
    return f"第{paragraph_index + 1}段"


def run_location(paragraph_index: int, run_index: int) -> str:
    return f"第{paragraph_index + 1}段第{run_index + 1}个文本"


def table_location(table_index: int) -> str:
    return f"第{table_index + 1}个表格"


def describe_value(field_name: str, value: Any) -> str:
    """Human readable attribute value for suggestions."""
    if field_name == 'alignment':
        return ALIGNMENT_LABELS.get(value or '', str(value))
    text = format_value(value)
    return text if text != '' else '未设置'


def describe_change(field_name: str, current: Any, expected: Any) -> str:
    """e.g. 字号: 11 → 12"""
    label = FIELD_LABELS.get(field_name, field_name)
    return f"{label}: {describe_value(field_name, current)} → {describe_value(field_name, expected)}"
