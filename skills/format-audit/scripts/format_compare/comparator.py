"""Format comparator composed from focused mixins."""

from typing import Optional, Tuple

from format_errors import FormatAuditError, RuleValidationError
from format_model import (
    ComparisonReport,
    ContentComparison,
    DocumentContent,
    DocumentStyles,
    FormatComparison,
    FormatRules,
    ParsedDocument,
    StyleComparison,
)

from .content_matching import ContentMatchingMixin
from .report_mixin import ReportAggregationMixin
from .rule_matching import RuleMatchingMixin
from .style_matching import StyleMatchingMixin


class FormatComparator(RuleMatchingMixin, ContentMatchingMixin,
                       StyleMatchingMixin, ReportAggregationMixin):
    """
    Compare a document against a template.

    Rule sets are matched by rule id; paragraphs, runs and tables by position.
    Each call builds fresh comparison objects; nothing is cached between calls.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def compare(self, document_rules: Optional[FormatRules],
                template_rules: Optional[FormatRules],
                document_content: Optional[DocumentContent] = None,
                template_content: Optional[DocumentContent] = None,
                document_styles: Optional[DocumentStyles] = None,
                template_styles: Optional[DocumentStyles] = None,
                ) -> Tuple[FormatComparison, ContentComparison, StyleComparison]:
        """
        Run the three sub-comparisons.

        Missing content or styles compare as empty (score 100).

        Raises:
            RuleValidationError: when either rule set is None
        """
        format_comparison = self.compare_format_rules(document_rules, template_rules)
        content_comparison = self.compare_content(document_content, template_content)
        style_comparison = self.compare_styles(document_styles, template_styles)
        return format_comparison, content_comparison, style_comparison

    def compare_documents(self, document: ParsedDocument, template: ParsedDocument,
                          document_path: Optional[str] = None,
                          template_path: Optional[str] = None) -> ComparisonReport:
        """Compare two parsed documents and build the full report."""
        if document is None or template is None:
            raise FormatAuditError("both document and template are required", stage='compare')

        try:
            format_comparison, content_comparison, style_comparison = self.compare(
                document.format_rules, template.format_rules,
                document.content, template.content,
                document.styles, template.styles,
            )
        except RuleValidationError:
            raise
        except Exception as e:
            raise FormatAuditError(f"comparison failed: {e}", stage='compare') from e

        return self.build_report(
            document_path if document_path is not None else document.path,
            template_path if template_path is not None else template.path,
            format_comparison, content_comparison, style_comparison,
        )
