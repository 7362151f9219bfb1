#!/usr/bin/env python3
"""
ABOUTME: Derives FormatRules (font/paragraph/table/page) from parsed document content
ABOUTME: Validates rule sets and prints template information from the command line
"""

import argparse
import json
import sys
from typing import List

from format_errors import RuleValidationError
from format_model import (
    DocumentContent,
    FontRule,
    FormatRules,
    PageMargins,
    PageRule,
    PageSize,
    ParagraphRule,
    TableRule,
    to_jsonable,
)

# US Letter with 1" margins and 0.5" header/footer, in points
DEFAULT_PAGE_RULE = PageRule(
    id='page_default',
    name='Default Page',
    page_size=PageSize(width=612.0, height=792.0),
    page_margins=PageMargins(top=72.0, bottom=72.0, left=72.0, right=72.0, header=36.0, footer=36.0),
)


def extract_font_rules(content: DocumentContent) -> List[FontRule]:
    """One rule per distinct (font name, size) over all runs, in first-seen order."""
    rules: List[FontRule] = []
    seen = set()
    for paragraph in content.paragraphs:
        for run in paragraph.runs:
            key = (run.font.name, round(run.font.size, 1))
            if key in seen:
                continue
            seen.add(key)
            rules.append(FontRule(
                id=f"font_{len(rules) + 1}",
                name=run.font.name,
                size=run.font.size,
                color=run.font.color,
                bold=run.font.bold,
                italic=run.font.italic,
            ))
    return rules


def extract_paragraph_rules(content: DocumentContent) -> List[ParagraphRule]:
    """One rule per distinct (alignment, spacing) combination."""
    rules: List[ParagraphRule] = []
    seen = set()
    for paragraph in content.paragraphs:
        spacing = paragraph.spacing
        key = (paragraph.alignment, round(spacing.before, 1), round(spacing.after, 1),
               round(spacing.line, 1))
        if key in seen:
            continue
        seen.add(key)
        number = len(rules) + 1
        rules.append(ParagraphRule(
            id=f"paragraph_{number}",
            name=f"Paragraph Style {number}",
            alignment=paragraph.alignment,
            spacing=spacing,
        ))
    return rules


def extract_table_rules(content: DocumentContent) -> List[TableRule]:
    return [
        TableRule(
            id=f"table_{idx + 1}",
            name=f"Table Style {idx + 1}",
            width=table.width,
            alignment=table.alignment,
        )
        for idx, table in enumerate(content.tables)
    ]


def extract_page_rules(content: DocumentContent) -> List[PageRule]:
    """One rule per section; a document without sections gets the default Letter page."""
    rules = [
        PageRule(
            id=f"page_{idx + 1}",
            name=f"Page Style {idx + 1}",
            page_size=section.page_size,
            page_margins=section.page_margins,
            header_distance=section.header_distance,
            footer_distance=section.footer_distance,
            columns=section.columns,
        )
        for idx, section in enumerate(content.sections)
    ]
    if not rules:
        rules.append(DEFAULT_PAGE_RULE)
    return rules


def extract_format_rules(content: DocumentContent) -> FormatRules:
    """Derive the document's format rules from its parsed content."""
    return FormatRules(
        font_rules=extract_font_rules(content),
        paragraph_rules=extract_paragraph_rules(content),
        table_rules=extract_table_rules(content),
        page_rules=extract_page_rules(content),
    )


def validate_format_rules(rules: FormatRules) -> None:
    """
    Structural checks of a rule set.

    Every rule needs an id and a name; font sizes, table widths and page
    dimensions must be positive.

    Raises:
        RuleValidationError: on the first violation
    """
    if rules is None:
        raise RuleValidationError("format rules are required", stage='extract')

    def _require_identity(kind: str, idx: int, rule) -> None:
        if not rule.id:
            raise RuleValidationError(f"{kind} rule {idx}: ID is required", stage='extract')
        if not rule.name:
            raise RuleValidationError(f"{kind} rule {idx}: name is required", stage='extract')

    for idx, rule in enumerate(rules.font_rules):
        _require_identity('font', idx, rule)
        if rule.size <= 0:
            raise RuleValidationError(f"font rule {idx}: size must be positive", stage='extract')

    for idx, rule in enumerate(rules.paragraph_rules):
        _require_identity('paragraph', idx, rule)

    for idx, rule in enumerate(rules.table_rules):
        _require_identity('table', idx, rule)
        if rule.width <= 0:
            raise RuleValidationError(f"table rule {idx}: width must be positive", stage='extract')

    for idx, rule in enumerate(rules.page_rules):
        _require_identity('page', idx, rule)
        if rule.page_size.width <= 0 or rule.page_size.height <= 0:
            raise RuleValidationError(f"page rule {idx}: page size must be positive", stage='extract')


def print_template_info(path: str, rules: FormatRules) -> None:
    print(f"Template: {path}")
    print(f"  Font rules:      {len(rules.font_rules)}")
    for rule in rules.font_rules:
        print(f"    - {rule.id}: {rule.name or '(未设置)'} {rule.size:g}pt")
    print(f"  Paragraph rules: {len(rules.paragraph_rules)}")
    for rule in rules.paragraph_rules:
        print(f"    - {rule.id}: {rule.alignment or '(未设置)'}, "
              f"before {rule.spacing.before:g}pt, after {rule.spacing.after:g}pt")
    print(f"  Table rules:     {len(rules.table_rules)}")
    for rule in rules.table_rules:
        print(f"    - {rule.id}: width {rule.width:g}pt {rule.alignment}")
    print(f"  Page rules:      {len(rules.page_rules)}")
    for rule in rules.page_rules:
        print(f"    - {rule.id}: {rule.page_size.width:g} x {rule.page_size.height:g}pt")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Show the format rules extracted from a DOCX template"
    )
    parser.add_argument("template", help="Path to the DOCX template")
    parser.add_argument("--json", action="store_true", help="Print the rules as JSON")
    parser.add_argument("--no-validate", action="store_true",
                        help="Show the rules even when they do not pass validation")
    args = parser.parse_args()

    from parse_document import parse_docx

    try:
        parsed = parse_docx(args.template)
        if not args.no_validate:
            validate_format_rules(parsed.format_rules)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(to_jsonable(parsed.format_rules), ensure_ascii=False, indent=2))
    else:
        print_template_info(args.template, parsed.format_rules)
    return 0


if __name__ == "__main__":
    sys.exit(main())
