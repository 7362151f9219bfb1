#!/usr/bin/env python3
"""
ABOUTME: Data model for template format comparison and annotation
ABOUTME: Parsed-document input types, format rules, issues, comparisons and the report
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# ============================================================
# Constants
# ============================================================

SEVERITY_LOW = 'low'
SEVERITY_MEDIUM = 'medium'
SEVERITY_HIGH = 'high'
SEVERITY_CRITICAL = 'critical'

ISSUE_FONT = 'font'
ISSUE_PARAGRAPH = 'paragraph'
ISSUE_TABLE = 'table'
ISSUE_PAGE = 'page'
ISSUE_STYLE = 'style'
ISSUE_CONTENT = 'content'
ISSUE_STRUCTURE = 'structure'

PRIORITY_LOW = 'low'
PRIORITY_MEDIUM = 'medium'
PRIORITY_HIGH = 'high'
PRIORITY_URGENT = 'urgent'

# Field metadata keys understood by to_jsonable()
_JSON_NAME = 'json_name'
_SERIALIZE = 'serialize'
_OMIT_EMPTY = 'omit_empty'


def to_jsonable(value: Any) -> Any:
    """
    Convert model objects into JSON-compatible structures.

    Dataclass fields honour metadata:
        json_name: key to emit instead of the attribute name
        serialize: False to drop the field entirely
        omit_empty: drop the field when its value is falsy
    """
    if is_dataclass(value) and not isinstance(value, type):
        result = {}
        for f in fields(value):
            if not f.metadata.get(_SERIALIZE, True):
                continue
            item = getattr(value, f.name)
            if f.metadata.get(_OMIT_EMPTY) and not item:
                continue
            result[f.metadata.get(_JSON_NAME, f.name)] = to_jsonable(item)
        return result
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


# ============================================================
# Parsed document (input boundary)
# ============================================================

@dataclass(frozen=True)
class Spacing:
    """Paragraph spacing in points"""
    before: float = 0.0
    after: float = 0.0
    line: float = 0.0


@dataclass(frozen=True)
class PageSize:
    width: float = 0.0           # points
    height: float = 0.0          # points


@dataclass(frozen=True)
class PageMargins:
    top: float = 0.0
    bottom: float = 0.0
    left: float = 0.0
    right: float = 0.0
    header: float = 0.0
    footer: float = 0.0


@dataclass
class FontSpec:
    """Effective character formatting of a run"""
    name: str = ''
    size: float = 0.0            # points
    color: str = ''              # RRGGBB, empty when automatic
    bold: bool = False
    italic: bool = False


@dataclass
class TextRun:
    id: str
    text: str = ''
    font: FontSpec = field(default_factory=FontSpec)


@dataclass
class Paragraph:
    id: str
    text: str = ''
    style_name: str = ''
    alignment: str = ''          # left | center | right | justify | ''
    spacing: Spacing = field(default_factory=Spacing)
    runs: List[TextRun] = field(default_factory=list)


@dataclass
class Table:
    id: str
    width: float = 0.0           # points
    alignment: str = ''
    style_name: str = ''
    rows: int = 0
    columns: int = 0


@dataclass
class Section:
    id: str
    page_size: PageSize = field(default_factory=PageSize)
    page_margins: PageMargins = field(default_factory=PageMargins)
    header_distance: float = 0.0
    footer_distance: float = 0.0
    columns: int = 1
    page_number_start: Optional[int] = None


@dataclass
class DocumentContent:
    paragraphs: List[Paragraph] = field(default_factory=list)
    tables: List[Table] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)


@dataclass
class StyleInfo:
    id: str
    name: str


@dataclass
class DocumentStyles:
    paragraph_styles: List[StyleInfo] = field(default_factory=list)
    character_styles: List[StyleInfo] = field(default_factory=list)
    table_styles: List[StyleInfo] = field(default_factory=list)


@dataclass
class DocumentMetadata:
    title: str = ''
    author: str = ''
    created: Optional[datetime] = None
    modified: Optional[datetime] = None


# ============================================================
# Format rules (immutable once extracted)
# ============================================================

@dataclass(frozen=True)
class FontRule:
    id: str
    name: str
    size: float
    color: str = ''
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class ParagraphRule:
    id: str
    name: str
    alignment: str = ''
    spacing: Spacing = field(default_factory=Spacing)


@dataclass(frozen=True)
class TableRule:
    id: str
    name: str
    width: float
    alignment: str = ''


@dataclass(frozen=True)
class PageRule:
    id: str
    name: str
    page_size: PageSize = field(default_factory=PageSize)
    page_margins: PageMargins = field(default_factory=PageMargins)
    header_distance: float = 0.0
    footer_distance: float = 0.0
    columns: int = 1


@dataclass(frozen=True)
class FormatRules:
    font_rules: Tuple[FontRule, ...] = ()
    paragraph_rules: Tuple[ParagraphRule, ...] = ()
    table_rules: Tuple[TableRule, ...] = ()
    page_rules: Tuple[PageRule, ...] = ()

    def __post_init__(self):
        # Accept lists from callers but store tuples
        for name in ('font_rules', 'paragraph_rules', 'table_rules', 'page_rules'):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))


@dataclass
class ParsedDocument:
    """Typed output of the document parser consumed by the comparator"""
    path: str = ''
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    content: DocumentContent = field(default_factory=DocumentContent)
    styles: DocumentStyles = field(default_factory=DocumentStyles)
    format_rules: FormatRules = field(default_factory=FormatRules)


# ============================================================
# Issues
# ============================================================

class IssueKind(Enum):
    """Closed set of issue kinds; each kind has its own comment renderer."""
    RULE_MISSING = 'rule_missing'
    RULE_MISMATCH = 'rule_mismatch'
    PARAGRAPH_ALIGNMENT = 'paragraph_alignment'
    PARAGRAPH_SPACING = 'paragraph_spacing'
    RUN_FONT = 'run_font'
    TABLE_FORMAT = 'table_format'
    PARAGRAPH_COUNT = 'paragraph_count'
    TABLE_COUNT = 'table_count'
    MISSING_STYLES = 'missing_styles'
    EXTRA_STYLES = 'extra_styles'


@dataclass
class FormatIssue:
    """Single detected deviation; created during comparison, never mutated afterwards"""
    id: str
    type: str                    # font|paragraph|table|page|style|content|structure
    severity: str                # low|medium|high|critical
    location: str                # human-readable position, e.g. 第1段
    description: str
    current: Any = None
    expected: Any = None
    rule: str = ''               # machine tag of the comparison that produced it
    suggestions: List[str] = field(default_factory=list)
    # Positional data for regenerating comments (not part of the report)
    kind: Optional[IssueKind] = field(default=None, metadata={_SERIALIZE: False})
    paragraph_index: Optional[int] = field(default=None, metadata={_SERIALIZE: False})
    run_index: Optional[int] = field(default=None, metadata={_SERIALIZE: False})
    table_index: Optional[int] = field(default=None, metadata={_SERIALIZE: False})
    missing_count: int = field(default=0, metadata={_SERIALIZE: False})

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass
class Difference:
    field_name: str = field(metadata={_JSON_NAME: 'field'})
    current: Any = None
    expected: Any = None
    description: str = ''
    impact: str = SEVERITY_MEDIUM


# ============================================================
# Comparisons
# ============================================================

@dataclass
class RuleComparison:
    rule_id: str
    rule_name: str
    rule_type: str
    compliant: bool = False
    score: float = 0.0
    differences: List[Difference] = field(default_factory=list)
    issues: List[FormatIssue] = field(default_factory=list)


@dataclass
class ElementComparison:
    element_id: str
    element_type: str
    compliant: bool = False
    score: float = 0.0
    differences: List[Difference] = field(default_factory=list)
    issues: List[FormatIssue] = field(default_factory=list)


@dataclass
class StyleElementComparison:
    style_id: str
    style_name: str
    style_type: str
    compliant: bool = False
    score: float = 0.0
    differences: List[Difference] = field(default_factory=list)
    issues: List[FormatIssue] = field(default_factory=list)


@dataclass
class FormatComparison:
    font_rules: List[RuleComparison] = field(default_factory=list)
    paragraph_rules: List[RuleComparison] = field(default_factory=list)
    table_rules: List[RuleComparison] = field(default_factory=list)
    page_rules: List[RuleComparison] = field(default_factory=list)
    score: float = 100.0
    issues: List[FormatIssue] = field(default_factory=list)

    def all_rules(self) -> List[RuleComparison]:
        return self.font_rules + self.paragraph_rules + self.table_rules + self.page_rules


@dataclass
class ContentComparison:
    paragraphs: List[ElementComparison] = field(default_factory=list)
    tables: List[ElementComparison] = field(default_factory=list)
    score: float = 100.0
    issues: List[FormatIssue] = field(default_factory=list)


@dataclass
class StyleComparison:
    paragraph_styles: List[StyleElementComparison] = field(default_factory=list)
    character_styles: List[StyleElementComparison] = field(default_factory=list)
    table_styles: List[StyleElementComparison] = field(default_factory=list)
    score: float = 100.0
    issues: List[FormatIssue] = field(default_factory=list)


# ============================================================
# Report
# ============================================================

@dataclass
class Step:
    order: int
    description: str
    details: str = ''


@dataclass
class Action:
    type: str
    description: str
    steps: List[Step] = field(default_factory=list)


@dataclass
class Recommendation:
    id: str
    type: str
    priority: str
    description: str
    actions: List[Action] = field(default_factory=list)
    impact: str = ''


@dataclass
class ComparisonSummary:
    total_issues: int = 0
    critical_issues: int = 0
    high_issues: int = 0
    medium_issues: int = 0
    low_issues: int = 0
    compliant_rules: int = 0
    non_compliant_rules: int = 0
    overall_score: float = 100.0
    recommendations: int = 0


@dataclass
class ComparisonReport:
    document_path: str
    template_path: str
    overall_score: float
    compliance_rate: float
    issues: List[FormatIssue]
    format_comparison: FormatComparison
    content_comparison: ContentComparison
    style_comparison: StyleComparison
    recommendations: List[Recommendation] = field(default_factory=list)
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)
    annotated_document_path: Optional[str] = field(default=None, metadata={_OMIT_EMPTY: True})
    warnings: List[str] = field(default_factory=list, metadata={_OMIT_EMPTY: True})

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)
