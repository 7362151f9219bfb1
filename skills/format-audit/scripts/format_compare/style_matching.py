"""
Style-set comparison: style names per category, not full style structure.
"""

from typing import Dict, List, Optional, Sequence

from format_model import (
    ISSUE_STYLE,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    Difference,
    DocumentStyles,
    FormatIssue,
    IssueKind,
    StyleComparison,
    StyleElementComparison,
    StyleInfo,
)

from .common import DOCUMENT_LOCATION, mean_score

STYLE_CATEGORIES = (
    ('paragraph_styles', 'paragraph'),
    ('character_styles', 'character'),
    ('table_styles', 'table'),
)


class StyleMatchingMixin:
    """Name-set comparison of DocumentStyles."""

    def compare_styles(self, document_styles: Optional[DocumentStyles],
                       template_styles: Optional[DocumentStyles]) -> StyleComparison:
        document_styles = document_styles or DocumentStyles()
        template_styles = template_styles or DocumentStyles()

        comparison = StyleComparison()
        missing: List[str] = []
        extra: List[str] = []

        for attr, style_type in STYLE_CATEGORIES:
            document_list = getattr(document_styles, attr)
            template_list = getattr(template_styles, attr)
            elements = self._compare_style_list(style_type, document_list, template_list)
            setattr(comparison, attr, elements)

            missing.extend(e.style_name for e in elements if not e.compliant)
            template_names = {s.name for s in template_list}
            extra.extend(_unique_names(s.name for s in document_list if s.name not in template_names))

        all_elements = (comparison.paragraph_styles + comparison.character_styles
                        + comparison.table_styles)
        comparison.score = mean_score([e.score for e in all_elements])

        missing = _unique_names(missing)
        extra = _unique_names(extra)
        if missing:
            comparison.issues.append(FormatIssue(
                id='missing_styles',
                type=ISSUE_STYLE,
                severity=SEVERITY_MEDIUM,
                location=DOCUMENT_LOCATION,
                description=f"缺少模板样式: {', '.join(missing)}",
                current=None,
                expected=missing,
                rule='missing_styles',
                suggestions=[f"添加样式「{name}」" for name in missing],
                kind=IssueKind.MISSING_STYLES,
            ))
        if extra:
            comparison.issues.append(FormatIssue(
                id='extra_styles',
                type=ISSUE_STYLE,
                severity=SEVERITY_LOW,
                location=DOCUMENT_LOCATION,
                description=f"存在模板未定义的样式: {', '.join(extra)}",
                current=extra,
                expected=None,
                rule='extra_styles',
                suggestions=["确认是否需要保留模板之外的样式"],
                kind=IssueKind.EXTRA_STYLES,
            ))

        if self.verbose:
            print(f"[Compare] Styles: {len(missing)} missing, {len(extra)} extra, "
                  f"score {comparison.score:.1f}")
        return comparison

    @staticmethod
    def _compare_style_list(style_type: str, document_list: Sequence[StyleInfo],
                            template_list: Sequence[StyleInfo]) -> List[StyleElementComparison]:
        document_names = {s.name for s in document_list}
        elements = []
        for style in template_list:
            present = style.name in document_names
            element = StyleElementComparison(
                style_id=style.id,
                style_name=style.name,
                style_type=style_type,
                compliant=present,
                score=100.0 if present else 0.0,
            )
            if not present:
                element.differences.append(Difference(
                    field_name='name',
                    current=None,
                    expected=style.name,
                    description="文档中缺少该样式",
                ))
            elements.append(element)
        return elements


def _unique_names(names) -> List[str]:
    seen: Dict[str, None] = {}
    for name in names:
        seen.setdefault(name, None)
    return list(seen)
