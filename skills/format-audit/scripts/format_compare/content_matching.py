"""
Positional matching of document content (paragraphs, runs, tables).

Paragraphs, runs and tables are paired by list index up to the shorter list.
Entities past the shorter length are not compared; only a template that is
longer than the document raises a count issue (the document is missing units).
"""

from typing import List, Optional, Sequence

from format_model import (
    ISSUE_FONT,
    ISSUE_PARAGRAPH,
    ISSUE_STRUCTURE,
    ISSUE_TABLE,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    ContentComparison,
    Difference,
    DocumentContent,
    ElementComparison,
    FormatIssue,
    IssueKind,
    Paragraph,
    Table,
    TextRun,
)

from .common import (
    FIELD_LABELS,
    MatchStrategy,
    describe_change,
    mean_score,
    pair_by_position,
    paragraph_location,
    run_location,
    share_score,
    table_location,
    values_equal,
)

# Run attributes compared for every paired run: (difference field, FontSpec attribute)
RUN_FONT_FIELDS = [
    ('font_name', 'name'),
    ('size', 'size'),
    ('color', 'color'),
    ('bold', 'bold'),
    ('italic', 'italic'),
]


class ContentMatchingMixin:
    """Index-based comparison of DocumentContent."""

    content_strategy = MatchStrategy.POSITIONAL

    def compare_content(self, document_content: Optional[DocumentContent],
                        template_content: Optional[DocumentContent]) -> ContentComparison:
        document_content = document_content or DocumentContent()
        template_content = template_content or DocumentContent()

        comparison = ContentComparison(
            paragraphs=self.compare_paragraphs(document_content.paragraphs, template_content.paragraphs),
            tables=self.compare_tables(document_content.tables, template_content.tables),
        )
        elements = comparison.paragraphs + comparison.tables
        comparison.score = mean_score([e.score for e in elements])

        issues = [issue for e in elements for issue in e.issues]
        issues.extend(self._count_issues(document_content, template_content))
        comparison.issues = issues

        if self.verbose:
            print(f"[Compare] Content: {len(comparison.paragraphs)} paragraph pair(s), "
                  f"{len(comparison.tables)} table pair(s), {len(issues)} issue(s)")
        return comparison

    def compare_paragraphs(self, document_paragraphs: Sequence[Paragraph],
                           template_paragraphs: Sequence[Paragraph]) -> List[ElementComparison]:
        return [
            self._compare_paragraph(idx, document_para, template_para)
            for idx, document_para, template_para in pair_by_position(
                document_paragraphs, template_paragraphs)
        ]

    def compare_tables(self, document_tables: Sequence[Table],
                       template_tables: Sequence[Table]) -> List[ElementComparison]:
        return [
            self._compare_table(idx, document_table, template_table)
            for idx, document_table, template_table in pair_by_position(
                document_tables, template_tables)
        ]

    # ------------------------------------------------------------------
    # Paragraphs
    # ------------------------------------------------------------------

    def _compare_paragraph(self, idx: int, document_para: Paragraph,
                           template_para: Paragraph) -> ElementComparison:
        differences: List[Difference] = []
        issues: List[FormatIssue] = []
        checks = 0
        failed = 0

        # Alignment
        checks += 1
        if not values_equal(document_para.alignment, template_para.alignment):
            failed += 1
            differences.append(Difference(
                field_name='alignment',
                current=document_para.alignment,
                expected=template_para.alignment,
                description=f"{FIELD_LABELS['alignment']}不一致",
            ))
            issues.append(FormatIssue(
                id=f"paragraph_alignment_{idx}",
                type=ISSUE_PARAGRAPH,
                severity=SEVERITY_MEDIUM,
                location=paragraph_location(idx),
                description=f"{paragraph_location(idx)}对齐方式与模板不一致",
                current={'alignment': document_para.alignment},
                expected={'alignment': template_para.alignment},
                rule='paragraph_format',
                suggestions=[describe_change('alignment', document_para.alignment,
                                             template_para.alignment)],
                kind=IssueKind.PARAGRAPH_ALIGNMENT,
                paragraph_index=idx,
            ))

        # Spacing before/after as a single check
        checks += 1
        spacing_diffs = []
        for field_name in ('before', 'after'):
            current = getattr(document_para.spacing, field_name)
            expected = getattr(template_para.spacing, field_name)
            if not values_equal(current, expected):
                spacing_diffs.append(Difference(
                    field_name=field_name,
                    current=current,
                    expected=expected,
                    description=f"{FIELD_LABELS[field_name]}不一致",
                    impact=SEVERITY_LOW,
                ))
        if spacing_diffs:
            failed += 1
            differences.extend(spacing_diffs)
            issues.append(FormatIssue(
                id=f"paragraph_spacing_{idx}",
                type=ISSUE_PARAGRAPH,
                severity=SEVERITY_LOW,
                location=paragraph_location(idx),
                description=f"{paragraph_location(idx)}段落间距与模板不一致",
                current={'before': document_para.spacing.before,
                         'after': document_para.spacing.after},
                expected={'before': template_para.spacing.before,
                          'after': template_para.spacing.after},
                rule='paragraph_spacing',
                suggestions=[describe_change(d.field_name, d.current, d.expected)
                             for d in spacing_diffs],
                kind=IssueKind.PARAGRAPH_SPACING,
                paragraph_index=idx,
            ))

        # One check per paired run
        for run_idx, document_run, template_run in pair_by_position(
                document_para.runs, template_para.runs):
            checks += 1
            run_issue = self._compare_run(idx, run_idx, document_run, template_run)
            if run_issue is not None:
                failed += 1
                issues.append(run_issue)

        return ElementComparison(
            element_id=document_para.id,
            element_type='paragraph',
            compliant=failed == 0,
            score=share_score(checks - failed, checks),
            differences=differences,
            issues=issues,
        )

    @staticmethod
    def _compare_run(para_idx: int, run_idx: int, document_run: TextRun,
                     template_run: TextRun) -> Optional[FormatIssue]:
        """All differing font fields of one run merge into a single issue."""
        current = {}
        expected = {}
        changes = []
        for field_name, attr in RUN_FONT_FIELDS:
            current_value = getattr(document_run.font, attr)
            expected_value = getattr(template_run.font, attr)
            if not values_equal(current_value, expected_value):
                current[field_name] = current_value
                expected[field_name] = expected_value
                changes.append(describe_change(field_name, current_value, expected_value))
        if not changes:
            return None

        location = run_location(para_idx, run_idx)
        return FormatIssue(
            id=f"run_font_{para_idx}_{run_idx}",
            type=ISSUE_FONT,
            severity=SEVERITY_MEDIUM,
            location=location,
            description=f"{location}字体格式与模板不一致",
            current=current,
            expected=expected,
            rule='font_format',
            suggestions=['; '.join(changes)],
            kind=IssueKind.RUN_FONT,
            paragraph_index=para_idx,
            run_index=run_idx,
        )

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    @staticmethod
    def _compare_table(idx: int, document_table: Table,
                       template_table: Table) -> ElementComparison:
        differences = []
        for field_name in ('width', 'alignment'):
            current = getattr(document_table, field_name)
            expected = getattr(template_table, field_name)
            if not values_equal(current, expected):
                differences.append(Difference(
                    field_name=field_name,
                    current=current,
                    expected=expected,
                    description=f"{FIELD_LABELS[field_name]}不一致",
                ))

        issues = []
        if differences:
            location = table_location(idx)
            issues.append(FormatIssue(
                id=f"table_format_{idx}",
                type=ISSUE_TABLE,
                severity=SEVERITY_MEDIUM,
                location=location,
                description=f"{location}格式与模板不一致",
                current={d.field_name: d.current for d in differences},
                expected={d.field_name: d.expected for d in differences},
                rule='table_format',
                suggestions=[describe_change(d.field_name, d.current, d.expected)
                             for d in differences],
                kind=IssueKind.TABLE_FORMAT,
                table_index=idx,
            ))

        return ElementComparison(
            element_id=document_table.id,
            element_type='table',
            compliant=not differences,
            score=share_score(2 - len(differences), 2),
            differences=differences,
            issues=issues,
        )

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    @staticmethod
    def _count_issues(document_content: DocumentContent,
                      template_content: DocumentContent) -> List[FormatIssue]:
        """Issues for units the template has and the document lacks."""
        issues = []

        doc_paras = len(document_content.paragraphs)
        missing_paras = len(template_content.paragraphs) - doc_paras
        if missing_paras > 0:
            issues.append(FormatIssue(
                id='paragraph_count',
                type=ISSUE_STRUCTURE,
                severity=SEVERITY_MEDIUM,
                location=paragraph_location(doc_paras),
                description=f"文档比模板少{missing_paras}个段落",
                current=doc_paras,
                expected=len(template_content.paragraphs),
                rule='paragraph_count',
                suggestions=[f"按模板补充缺少的{missing_paras}个段落"],
                kind=IssueKind.PARAGRAPH_COUNT,
                paragraph_index=max(doc_paras - 1, 0),
                missing_count=missing_paras,
            ))

        doc_tables = len(document_content.tables)
        missing_tables = len(template_content.tables) - doc_tables
        if missing_tables > 0:
            issues.append(FormatIssue(
                id='table_count',
                type=ISSUE_STRUCTURE,
                severity=SEVERITY_MEDIUM,
                location=table_location(doc_tables),
                description=f"文档比模板少{missing_tables}个表格",
                current=doc_tables,
                expected=len(template_content.tables),
                rule='table_count',
                suggestions=[f"按模板补充缺少的{missing_tables}个表格"],
                kind=IssueKind.TABLE_COUNT,
                table_index=max(doc_tables - 1, 0),
                missing_count=missing_tables,
            ))

        return issues
