"""
Identity matching of format rule sets (font / paragraph / table / page).

Every template rule is looked up in the document's rule list by id. A matched
rule is scored field by field; a missing rule scores 0 and raises one
high-severity issue.
"""

from typing import Any, Callable, List, Optional, Sequence, Tuple

from format_errors import RuleValidationError
from format_model import (
    ISSUE_FONT,
    ISSUE_PAGE,
    ISSUE_PARAGRAPH,
    ISSUE_TABLE,
    SEVERITY_HIGH,
    SEVERITY_MEDIUM,
    Difference,
    FontRule,
    FormatComparison,
    FormatIssue,
    FormatRules,
    IssueKind,
    PageRule,
    ParagraphRule,
    RuleComparison,
    TableRule,
)

from .common import (
    DOCUMENT_LOCATION,
    FIELD_LABELS,
    RULE_KIND_LABELS,
    MatchStrategy,
    describe_change,
    mean_score,
    pair_by_identity,
    share_score,
    values_equal,
)

# (field name, getter) pairs; each checked field is an equal share of the rule score
RuleCheck = Tuple[str, Callable[[Any], Any]]

FONT_CHECKS: List[RuleCheck] = [
    ('name', lambda r: r.name),
    ('size', lambda r: r.size),
]
PARAGRAPH_CHECKS: List[RuleCheck] = [
    ('name', lambda r: r.name),
    ('alignment', lambda r: r.alignment),
]
TABLE_CHECKS: List[RuleCheck] = [
    ('name', lambda r: r.name),
    ('width', lambda r: r.width),
]
PAGE_CHECKS: List[RuleCheck] = [
    ('name', lambda r: r.name),
    ('page_width', lambda r: r.page_size.width),
    ('page_height', lambda r: r.page_size.height),
]


class RuleMatchingMixin:
    """Identity-based comparison of FormatRules."""

    rule_strategy = MatchStrategy.IDENTITY

    def compare_format_rules(self, document_rules: Optional[FormatRules],
                             template_rules: Optional[FormatRules]) -> FormatComparison:
        """
        Compare the document's rule set against the template's.

        Raises:
            RuleValidationError: when either rule set is missing
        """
        if document_rules is None:
            raise RuleValidationError("document format rules are required", stage='compare')
        if template_rules is None:
            raise RuleValidationError("template format rules are required", stage='compare')

        comparison = FormatComparison(
            font_rules=self.compare_font_rules(document_rules.font_rules, template_rules.font_rules),
            paragraph_rules=self.compare_paragraph_rules(
                document_rules.paragraph_rules, template_rules.paragraph_rules),
            table_rules=self.compare_table_rules(document_rules.table_rules, template_rules.table_rules),
            page_rules=self.compare_page_rules(document_rules.page_rules, template_rules.page_rules),
        )
        all_rules = comparison.all_rules()
        comparison.score = mean_score([r.score for r in all_rules])
        comparison.issues = [issue for r in all_rules for issue in r.issues]

        if self.verbose:
            compliant = sum(1 for r in all_rules if r.compliant)
            print(f"[Compare] Format rules: {compliant}/{len(all_rules)} compliant, "
                  f"score {comparison.score:.1f}")
        return comparison

    def compare_font_rules(self, document_fonts: Sequence[FontRule],
                           template_fonts: Sequence[FontRule]) -> List[RuleComparison]:
        return self._compare_rule_list(ISSUE_FONT, document_fonts, template_fonts, FONT_CHECKS)

    def compare_paragraph_rules(self, document_paragraphs: Sequence[ParagraphRule],
                                template_paragraphs: Sequence[ParagraphRule]) -> List[RuleComparison]:
        return self._compare_rule_list(ISSUE_PARAGRAPH, document_paragraphs, template_paragraphs,
                                       PARAGRAPH_CHECKS)

    def compare_table_rules(self, document_tables: Sequence[TableRule],
                            template_tables: Sequence[TableRule]) -> List[RuleComparison]:
        return self._compare_rule_list(ISSUE_TABLE, document_tables, template_tables, TABLE_CHECKS)

    def compare_page_rules(self, document_pages: Sequence[PageRule],
                           template_pages: Sequence[PageRule]) -> List[RuleComparison]:
        return self._compare_rule_list(ISSUE_PAGE, document_pages, template_pages, PAGE_CHECKS)

    def _compare_rule_list(self, kind: str, document_rules: Sequence[Any],
                           template_rules: Sequence[Any],
                           checks: List[RuleCheck]) -> List[RuleComparison]:
        comparisons = []
        for template_rule, document_rule in pair_by_identity(
                template_rules, document_rules, key=lambda r: r.id):
            comparison = RuleComparison(
                rule_id=template_rule.id,
                rule_name=template_rule.name,
                rule_type=kind,
            )
            if document_rule is None:
                comparison.compliant = False
                comparison.score = 0.0
                comparison.issues = [self._missing_rule_issue(kind, template_rule)]
            else:
                differences = self._rule_differences(document_rule, template_rule, checks)
                comparison.differences = differences
                comparison.score = share_score(len(checks) - len(differences), len(checks))
                comparison.compliant = not differences
                if differences:
                    comparison.issues = [self._mismatched_rule_issue(kind, template_rule, differences)]
            comparisons.append(comparison)
        return comparisons

    @staticmethod
    def _rule_differences(document_rule: Any, template_rule: Any,
                          checks: List[RuleCheck]) -> List[Difference]:
        differences = []
        for field_name, getter in checks:
            current = getter(document_rule)
            expected = getter(template_rule)
            if not values_equal(current, expected):
                label = FIELD_LABELS.get(field_name, field_name)
                differences.append(Difference(
                    field_name=field_name,
                    current=current,
                    expected=expected,
                    description=f"{label}不一致",
                ))
        return differences

    @staticmethod
    def _missing_rule_issue(kind: str, template_rule: Any) -> FormatIssue:
        label = RULE_KIND_LABELS[kind]
        return FormatIssue(
            id=f"{kind}_missing_{template_rule.id}",
            type=kind,
            severity=SEVERITY_HIGH,
            location=DOCUMENT_LOCATION,
            description=f"缺少模板要求的{label}规则: {template_rule.name}",
            current=None,
            expected=template_rule,
            rule=f"{kind}_missing",
            suggestions=[f"按模板设置{label}规则「{template_rule.name}」"],
            kind=IssueKind.RULE_MISSING,
        )

    @staticmethod
    def _mismatched_rule_issue(kind: str, template_rule: Any,
                               differences: List[Difference]) -> FormatIssue:
        label = RULE_KIND_LABELS[kind]
        return FormatIssue(
            id=f"{kind}_mismatch_{template_rule.id}",
            type=kind,
            severity=SEVERITY_MEDIUM,
            location=DOCUMENT_LOCATION,
            description=f"{label}规则「{template_rule.name}」与模板不一致",
            current={d.field_name: d.current for d in differences},
            expected={d.field_name: d.expected for d in differences},
            rule=f"{kind}_mismatch",
            suggestions=[describe_change(d.field_name, d.current, d.expected) for d in differences],
            kind=IssueKind.RULE_MISMATCH,
        )
