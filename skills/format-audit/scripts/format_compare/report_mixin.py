"""
Report aggregation: recommendations, summary, compliance rate, overall score.
"""

from typing import List

from format_model import (
    PRIORITY_MEDIUM,
    SEVERITY_CRITICAL,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    Action,
    ComparisonReport,
    ComparisonSummary,
    ContentComparison,
    FormatComparison,
    FormatIssue,
    Recommendation,
    Step,
    StyleComparison,
)

from .common import SEVERITY_PRIORITY

# (recommendation id prefix, impact) per sub-comparison
_SOURCES = (
    ('format', 'Format compliance'),
    ('content', 'Content compliance'),
    ('style', 'Style compliance'),
)


class ReportAggregationMixin:
    """Builds the ComparisonReport from the three sub-comparisons."""

    def build_report(self, document_path: str, template_path: str,
                     format_comparison: FormatComparison,
                     content_comparison: ContentComparison,
                     style_comparison: StyleComparison) -> ComparisonReport:
        issues = (list(format_comparison.issues) + list(content_comparison.issues)
                  + list(style_comparison.issues))
        recommendations = self.generate_recommendations(
            format_comparison, content_comparison, style_comparison)

        report = ComparisonReport(
            document_path=str(document_path),
            template_path=str(template_path),
            overall_score=self.overall_score(format_comparison, content_comparison, style_comparison),
            compliance_rate=self.compliance_rate(format_comparison),
            issues=issues,
            format_comparison=format_comparison,
            content_comparison=content_comparison,
            style_comparison=style_comparison,
            recommendations=recommendations,
        )
        report.summary = self.generate_summary(report)

        if self.verbose:
            print(f"[Compare] Overall score {report.overall_score:.1f}, "
                  f"compliance rate {report.compliance_rate:.1f}%, {len(issues)} issue(s)")
        return report

    @staticmethod
    def overall_score(format_comparison: FormatComparison,
                      content_comparison: ContentComparison,
                      style_comparison: StyleComparison) -> float:
        """Unweighted mean of the three sub-comparison scores."""
        return (format_comparison.score + content_comparison.score + style_comparison.score) / 3.0

    @staticmethod
    def compliance_rate(format_comparison: FormatComparison) -> float:
        """
        Compliant / total rule comparisons x 100.

        Only font, paragraph, table and page rule comparisons count; content and
        style elements do not. No rules at all is 100.
        """
        rules = format_comparison.all_rules()
        if not rules:
            return 100.0
        compliant = sum(1 for r in rules if r.compliant)
        return compliant / len(rules) * 100.0

    def generate_recommendations(self, format_comparison: FormatComparison,
                                 content_comparison: ContentComparison,
                                 style_comparison: StyleComparison) -> List[Recommendation]:
        recommendations = []
        for (prefix, impact), comparison in zip(
                _SOURCES, (format_comparison, content_comparison, style_comparison)):
            for issue in comparison.issues:
                recommendations.append(self._recommendation_for(prefix, impact, issue))
        return recommendations

    @staticmethod
    def _recommendation_for(prefix: str, impact: str, issue: FormatIssue) -> Recommendation:
        details = '; '.join(issue.suggestions) if issue.suggestions else issue.description
        return Recommendation(
            id=f"{prefix}_{issue.id}",
            type=prefix,
            priority=SEVERITY_PRIORITY.get(issue.severity, PRIORITY_MEDIUM),
            description=issue.description,
            actions=[Action(
                type='fix',
                description=f"Fix {prefix} issue",
                steps=[Step(order=1, description='Apply suggested changes', details=details)],
            )],
            impact=impact,
        )

    @staticmethod
    def generate_summary(report: ComparisonReport) -> ComparisonSummary:
        summary = ComparisonSummary(total_issues=len(report.issues))
        for issue in report.issues:
            if issue.severity == SEVERITY_CRITICAL:
                summary.critical_issues += 1
            elif issue.severity == SEVERITY_HIGH:
                summary.high_issues += 1
            elif issue.severity == SEVERITY_MEDIUM:
                summary.medium_issues += 1
            elif issue.severity == SEVERITY_LOW:
                summary.low_issues += 1

        rules = report.format_comparison.all_rules()
        summary.compliant_rules = sum(1 for r in rules if r.compliant)
        summary.non_compliant_rules = len(rules) - summary.compliant_rules
        summary.overall_score = report.overall_score
        summary.recommendations = len(report.recommendations)
        return summary
