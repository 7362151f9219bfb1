#!/usr/bin/env python3
"""
ABOUTME: Tests for deriving and validating format rules
"""

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(TESTS_DIR))

from _format_audit_helpers import make_content, make_paragraph, make_rules, make_run  # noqa: E402
from extract_rules import (  # noqa: E402
    DEFAULT_PAGE_RULE,
    extract_font_rules,
    extract_format_rules,
    extract_page_rules,
    extract_paragraph_rules,
    extract_table_rules,
    main,
    validate_format_rules,
)
from format_errors import RuleValidationError  # noqa: E402
from format_model import PageSize, Section, Table  # noqa: E402


class TestExtraction:

    def test_font_rules_deduplicated_by_name_and_size(self):
        content = make_content([
            make_paragraph(0, runs=[make_run('a', '宋体', 12.0), make_run('b', '宋体', 12.0)]),
            make_paragraph(1, runs=[make_run('c', '黑体', 16.0), make_run('d', '宋体', 10.5)]),
        ])

        rules = extract_font_rules(content)

        assert [(r.id, r.name, r.size) for r in rules] == [
            ('font_1', '宋体', 12.0),
            ('font_2', '黑体', 16.0),
            ('font_3', '宋体', 10.5),
        ]

    def test_paragraph_rules_deduplicated_by_format(self):
        content = make_content([
            make_paragraph(0, alignment='center'),
            make_paragraph(1, alignment='left'),
            make_paragraph(2, alignment='center'),
            make_paragraph(3, alignment='left', before=6.0),
        ])

        rules = extract_paragraph_rules(content)

        assert [r.alignment for r in rules] == ['center', 'left', 'left']
        assert [r.name for r in rules] == ['Paragraph Style 1', 'Paragraph Style 2',
                                           'Paragraph Style 3']

    def test_one_table_rule_per_table(self):
        content = make_content(tables=[Table(id='t0', width=400.0), Table(id='t1', width=400.0)])

        rules = extract_table_rules(content)

        assert [r.id for r in rules] == ['table_1', 'table_2']
        assert rules[1].name == 'Table Style 2'

    def test_page_rules_from_sections(self):
        content = make_content()
        content.sections = [Section(id='sect0', page_size=PageSize(width=595.0, height=842.0))]

        rules = extract_page_rules(content)

        assert rules[0].id == 'page_1'
        assert rules[0].name == 'Page Style 1'
        assert rules[0].page_size.width == 595.0

    def test_default_page_without_sections(self):
        rules = extract_format_rules(make_content())

        assert list(rules.page_rules) == [DEFAULT_PAGE_RULE]
        assert DEFAULT_PAGE_RULE.page_size.width == 612.0
        assert DEFAULT_PAGE_RULE.page_margins.header == 36.0


class TestValidation:

    def test_valid_rules_pass(self):
        validate_format_rules(make_rules(
            fonts=[('f', '宋体', 12.0)],
            paragraphs=[('p', 'Body', 'left')],
            tables=[('t', 'Grid', 400.0)],
            pages=[('pg', 'A4', 595.0, 842.0)],
        ))

    @pytest.mark.parametrize('rules,message', [
        (make_rules(fonts=[('f', '宋体', 0.0)]), 'font rule 0: size must be positive'),
        (make_rules(fonts=[('', '宋体', 12.0)]), 'font rule 0: ID is required'),
        (make_rules(paragraphs=[('p', '', 'left')]), 'paragraph rule 0: name is required'),
        (make_rules(tables=[('t', 'Grid', -1.0)]), 'table rule 0: width must be positive'),
        (make_rules(pages=[('pg', 'A4', 595.0, 0.0)]), 'page rule 0: page size must be positive'),
    ])
    def test_violations(self, rules, message):
        with pytest.raises(RuleValidationError) as exc_info:
            validate_format_rules(rules)
        assert message in str(exc_info.value)

    def test_none_rules(self):
        with pytest.raises(RuleValidationError):
            validate_format_rules(None)


class TestCli:

    @pytest.fixture
    def unnamed_font_template(self, tmp_path):
        docx = pytest.importorskip('docx')
        from docx.oxml.ns import qn

        document = docx.Document()
        document.add_paragraph('正文')
        defaults = document.styles.element.find(qn('w:docDefaults'))
        for rfonts in list(defaults.iter(qn('w:rFonts'))):
            rfonts.getparent().remove(rfonts)
        path = tmp_path / 'template.docx'
        document.save(str(path))
        return path

    def test_validates_by_default(self, unnamed_font_template, monkeypatch, capsys):
        monkeypatch.setattr(sys, 'argv', ['extract_rules.py', str(unnamed_font_template)])

        assert main() == 1
        assert 'font rule 0: name is required' in capsys.readouterr().err

    def test_validation_can_be_skipped(self, unnamed_font_template, monkeypatch, capsys):
        monkeypatch.setattr(sys, 'argv', ['extract_rules.py', str(unnamed_font_template),
                                          '--no-validate'])

        assert main() == 0
        assert 'font_1' in capsys.readouterr().out
