#!/usr/bin/env python3
"""
ABOUTME: Expands format issues into rendered comment records
ABOUTME: One builder per IssueKind, plus a generic single-record fallback
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from format_compare.common import FIELD_LABELS, describe_value
from format_model import FormatIssue, IssueKind
from utils import format_value

# Labels of the comment body lines, in output order
LABEL_LOCATION = '位置'
LABEL_PROBLEM = '问题'
LABEL_CURRENT = '当前格式'
LABEL_EXPECTED = '期望格式'
LABEL_SUGGESTION = '建议'


@dataclass
class CommentRecord:
    """One comment to inject; every text field is already rendered."""
    id: int
    paragraph_index: int         # 0-based body paragraph; out of range falls back to the first
    location: str = ''
    problem: str = ''
    current_format: str = ''
    expected_format: str = ''
    suggestion: str = ''
    table_index: Optional[int] = None   # anchor on a whole table when set and valid

    def lines(self) -> List[str]:
        """Comment body lines; empty current/expected/suggestion are omitted."""
        lines = [
            f"{LABEL_LOCATION}: {self.location}",
            f"{LABEL_PROBLEM}: {self.problem}",
        ]
        if self.current_format:
            lines.append(f"{LABEL_CURRENT}: {self.current_format}")
        if self.expected_format:
            lines.append(f"{LABEL_EXPECTED}: {self.expected_format}")
        if self.suggestion:
            lines.append(f"{LABEL_SUGGESTION}: {self.suggestion}")
        return lines


def describe_snapshot(value: Any) -> str:
    """
    Render a current/expected snapshot for a comment line.

    Attribute dicts use display labels, e.g. {'alignment': 'left'} -> 对齐方式: 左对齐
    """
    if isinstance(value, dict):
        parts = [f"{FIELD_LABELS.get(k, k)}: {describe_value(k, v)}" for k, v in value.items()]
        return '; '.join(parts)
    return format_value(value)


def _join_suggestions(issue: FormatIssue) -> str:
    return '; '.join(s for s in issue.suggestions if s)


def _anchor_index(issue: FormatIssue) -> int:
    return issue.paragraph_index if issue.paragraph_index is not None else 0


def _single(issue: FormatIssue, next_id: int, **overrides) -> List[CommentRecord]:
    record = CommentRecord(
        id=next_id,
        paragraph_index=_anchor_index(issue),
        location=issue.location,
        problem=issue.description,
        current_format=describe_snapshot(issue.current),
        expected_format=describe_snapshot(issue.expected),
        suggestion=_join_suggestions(issue),
        table_index=issue.table_index,
    )
    for name, value in overrides.items():
        setattr(record, name, value)
    return [record]


# ------------------------------------------------------------------
# Builders keyed by IssueKind
# ------------------------------------------------------------------

def _rule_missing_records(issue: FormatIssue, next_id: int) -> List[CommentRecord]:
    return _single(issue, next_id, current_format='')


def _attribute_records(issue: FormatIssue, next_id: int) -> List[CommentRecord]:
    return _single(issue, next_id)


def _paragraph_count_records(issue: FormatIssue, next_id: int) -> List[CommentRecord]:
    """One record per missing paragraph, on successive indices from the last good one."""
    start = _anchor_index(issue)
    expected_total = issue.expected if isinstance(issue.expected, int) else None
    records = []
    for k in range(max(issue.missing_count, 1)):
        records.append(CommentRecord(
            id=next_id + k,
            paragraph_index=start + k,
            location=issue.location,
            problem=f"{issue.description}（第{k + 1}处缺失）",
            current_format=f"段落数: {issue.current}" if issue.current is not None else '',
            expected_format=f"段落数: {expected_total}" if expected_total is not None else '',
            suggestion=_join_suggestions(issue),
        ))
    return records


def _table_count_records(issue: FormatIssue, next_id: int) -> List[CommentRecord]:
    """One record per missing table, on successive table indices from the last good one."""
    start = issue.table_index if issue.table_index is not None else 0
    expected_total = issue.expected if isinstance(issue.expected, int) else None
    records = []
    for k in range(max(issue.missing_count, 1)):
        records.append(CommentRecord(
            id=next_id + k,
            paragraph_index=_anchor_index(issue),
            table_index=start + k,
            location=issue.location,
            problem=f"{issue.description}（第{k + 1}处缺失）",
            current_format=f"表格数: {issue.current}" if issue.current is not None else '',
            expected_format=f"表格数: {expected_total}" if expected_total is not None else '',
            suggestion=_join_suggestions(issue),
        ))
    return records


def _style_set_records(issue: FormatIssue, next_id: int) -> List[CommentRecord]:
    return _single(issue, next_id, suggestion='; '.join(issue.suggestions[:10]))


def _generic_records(issue: FormatIssue, next_id: int) -> List[CommentRecord]:
    """Fallback: the issue's own description and joined suggestions."""
    return [CommentRecord(
        id=next_id,
        paragraph_index=_anchor_index(issue),
        location=issue.location,
        problem=issue.description,
        suggestion=_join_suggestions(issue),
        table_index=issue.table_index,
    )]


RecordBuilder = Callable[[FormatIssue, int], List[CommentRecord]]

RECORD_BUILDERS: Dict[IssueKind, RecordBuilder] = {
    IssueKind.RULE_MISSING: _rule_missing_records,
    IssueKind.RULE_MISMATCH: _attribute_records,
    IssueKind.PARAGRAPH_ALIGNMENT: _attribute_records,
    IssueKind.PARAGRAPH_SPACING: _attribute_records,
    IssueKind.RUN_FONT: _attribute_records,
    IssueKind.TABLE_FORMAT: _attribute_records,
    IssueKind.PARAGRAPH_COUNT: _paragraph_count_records,
    IssueKind.TABLE_COUNT: _table_count_records,
    IssueKind.MISSING_STYLES: _style_set_records,
    IssueKind.EXTRA_STYLES: _style_set_records,
}


def expand_issue(issue: FormatIssue, next_id: int) -> List[CommentRecord]:
    """Comment records for one issue, numbered from next_id."""
    builder = RECORD_BUILDERS.get(issue.kind, _generic_records)
    return builder(issue, next_id)


def build_comment_records(issues: Iterable[FormatIssue], start_id: int = 0) -> List[CommentRecord]:
    """
    Expand issues in order into comment records.

    Ids form one running counter from start_id, advanced by the number of
    records each issue expands to, so they are unique within the pass.
    """
    records: List[CommentRecord] = []
    next_id = start_id
    for issue in issues:
        expanded = expand_issue(issue, next_id)
        records.extend(expanded)
        next_id += len(expanded)
    return records
