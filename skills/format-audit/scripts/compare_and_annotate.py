#!/usr/bin/env python3
"""
ABOUTME: Compares a Word document with a template and writes review comments into a copy
ABOUTME: Report-only mode skips annotation; annotation failures are recorded as warnings
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Optional

from docx_annotate import DocxAnnotator
from extract_rules import validate_format_rules
from format_compare import FormatComparator
from format_errors import FormatAuditError, PackageIOError, PartialAnnotationFailure
from format_model import ComparisonReport
from generate_report import EXCEL_AVAILABLE, write_reports
from parse_document import parse_docx

DEFAULT_AUTHOR = 'AI'


def default_author() -> str:
    return os.getenv('FORMAT_AUDIT_AUTHOR') or DEFAULT_AUTHOR


def default_initials() -> Optional[str]:
    return os.getenv('FORMAT_AUDIT_INITIALS') or None


def _check_input(path: str, label: str) -> Path:
    if not path:
        raise FormatAuditError(f"{label} path is empty", stage='parse')
    file_path = Path(path)
    if not file_path.is_file():
        raise PackageIOError(f"{label} not found", stage='parse', path=file_path)
    return file_path


def compare_with_template(document_path: str, template_path: str,
                          verbose: bool = False) -> ComparisonReport:
    """
    Parse both files and compare the document against the template.

    Raises:
        FormatAuditError: empty path, missing file, unreadable package or comparison failure
        RuleValidationError: the template's rules are incomplete
    """
    document_file = _check_input(document_path, 'document')
    template_file = _check_input(template_path, 'template')

    document = parse_docx(str(document_file), verbose=verbose)
    template = parse_docx(str(template_file), verbose=verbose)
    validate_format_rules(template.format_rules)
    return FormatComparator(verbose=verbose).compare_documents(
        document, template, str(document_file), str(template_file)
    )


def compare_documents(first_path: str, second_path: str, verbose: bool = False) -> ComparisonReport:
    """Compare two arbitrary documents; the second one plays the template."""
    return compare_with_template(first_path, second_path, verbose=verbose)


def compare_and_annotate(document_path: str, template_path: str,
                         output_path: Optional[str] = None, annotate: bool = True,
                         author: Optional[str] = None, initials: Optional[str] = None,
                         verbose: bool = False) -> ComparisonReport:
    """
    Compare, then write the issues as comments into an annotated copy.

    No annotated copy is written when there are no issues. A failed annotation
    does not fail the call: the report comes back without
    annotated_document_path and with the failure in report.warnings.
    """
    report = compare_with_template(document_path, template_path, verbose=verbose)
    if not annotate or not report.issues:
        if annotate and verbose:
            print("[Annotate] No format issues; annotated copy not written")
        return report

    annotator = DocxAnnotator(
        author=author or default_author(),
        initials=initials or default_initials(),
        verbose=verbose,
    )
    try:
        annotated = annotator.annotate(document_path, report.issues, output_path)
    except Exception as e:
        failure = PartialAnnotationFailure(f"annotation failed: {e}", stage='annotate',
                                           path=document_path)
        report.warnings.append(str(failure))
        print(f"Warning: {failure}", file=sys.stderr)
        return report

    report.annotated_document_path = str(annotated)
    return report


def print_summary(report: ComparisonReport) -> None:
    summary = report.summary
    print("-" * 50)
    print(f"Overall score:   {report.overall_score:.1f}")
    print(f"Compliance rate: {report.compliance_rate:.1f}%")
    print(f"Issues:          {summary.total_issues} "
          f"(critical {summary.critical_issues}, high {summary.high_issues}, "
          f"medium {summary.medium_issues}, low {summary.low_issues})")
    print(f"Rules:           {summary.compliant_rules} compliant, "
          f"{summary.non_compliant_rules} non-compliant")
    for issue in report.issues[:20]:
        print(f"  - [{issue.severity}] {issue.location}: {issue.description}")
    if len(report.issues) > 20:
        print(f"  ... {len(report.issues) - 20} more")
    if report.annotated_document_path:
        print(f"Annotated document: {report.annotated_document_path}")
    print("-" * 50)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Check a Word document against a template and annotate format issues"
    )
    parser.add_argument('document', help='Document to check (.docx)')
    parser.add_argument('template', help='Template document (.docx)')
    parser.add_argument('-o', '--output',
                        help='Annotated output path (default: <document>_annotated.docx)')
    parser.add_argument('--no-annotate', action='store_true',
                        help='Report only, do not write an annotated copy')
    parser.add_argument('--json', metavar='PATH',
                        help='Write the comparison report as JSON')
    parser.add_argument('--html', metavar='PATH',
                        help='Write an HTML report')
    parser.add_argument('--excel', metavar='PATH',
                        help='Write an Excel report (.xlsx)')
    parser.add_argument('--author', default=default_author(),
                        help='Comment author (default: $FORMAT_AUDIT_AUTHOR or AI)')
    parser.add_argument('--initials', default=default_initials(),
                        help='Comment initials (default: $FORMAT_AUDIT_INITIALS or first 2 chars of author)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    try:
        print(f"Document: {args.document}")
        print(f"Template: {args.template}")

        report = compare_and_annotate(
            args.document,
            args.template,
            output_path=args.output,
            annotate=not args.no_annotate,
            author=args.author,
            initials=args.initials,
            verbose=args.verbose,
        )
        print_summary(report)

        if args.json:
            Path(args.json).write_text(
                json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding='utf-8'
            )
            print(f"JSON report saved to: {args.json}")

        excel_path = args.excel
        if excel_path and not EXCEL_AVAILABLE:
            print("Warning: openpyxl not installed. Skipping Excel output.", file=sys.stderr)
            excel_path = None
        for kind, path in write_reports(report, html_path=args.html, excel_path=excel_path).items():
            print(f"{kind.upper()} report saved to: {path}")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
