#!/usr/bin/env python3
"""
ABOUTME: Tests for HTML and Excel report generation
"""

import json
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(TESTS_DIR))

from _format_audit_helpers import make_rules  # noqa: E402
from format_compare import FormatComparator  # noqa: E402
from format_model import ParsedDocument  # noqa: E402
from generate_report import (  # noqa: E402
    EXCEL_AVAILABLE,
    generate_excel_report,
    generate_report_data,
    main,
    render_report,
    report_data_from_json,
    write_reports,
)


@pytest.fixture
def report():
    document = ParsedDocument(path='doc.docx', format_rules=make_rules())
    template = ParsedDocument(path='template.docx',
                              format_rules=make_rules(fonts=[('font1', '<script>黑体', 12.0)]))
    return FormatComparator().compare_documents(document, template)


class TestReportData:

    def test_flattened_issue_fields(self, report):
        data = generate_report_data(report)

        assert data['document_name'] == 'doc.docx'
        assert data['severity_counts'] == {'high': 1}
        issue = data['issues'][0]
        assert issue['severity'] == 'high'
        assert 'name=<script>黑体' in issue['expected']
        assert issue['current'] == ''
        assert data['format_score'] == 0.0

    def test_json_round_trip_matches(self, report):
        from_report = generate_report_data(report)
        from_json = report_data_from_json(json.loads(json.dumps(report.to_dict())))

        assert from_json['issues'] == from_report['issues']


class TestHtml:

    def test_escaped_by_default(self, report):
        html = render_report(generate_report_data(report))

        assert '&lt;script&gt;' in html
        assert '<script>黑体' not in html

    def test_trusted_html_is_raw(self, report):
        html = render_report(generate_report_data(report), trusted_html=True)
        assert '<script>黑体' in html

    def test_custom_template(self, report, tmp_path):
        template = tmp_path / 'custom.html'
        template.write_text('score={{ "%.0f"|format(overall_score) }}', encoding='utf-8')

        html = render_report(generate_report_data(report), str(template))

        assert html.startswith('score=')

    def test_missing_template(self, report, tmp_path):
        with pytest.raises(FileNotFoundError):
            render_report(generate_report_data(report), str(tmp_path / 'none.html'))


@pytest.mark.skipif(not EXCEL_AVAILABLE, reason="openpyxl not installed")
class TestExcel:

    def test_issue_rows_and_summary_sheet(self, report, tmp_path):
        from openpyxl import load_workbook

        path = tmp_path / 'report.xlsx'
        generate_excel_report(generate_report_data(report), str(path))

        wb = load_workbook(str(path))
        assert wb.sheetnames == ['Format Report', 'Summary']
        ws = wb['Format Report']
        assert ws.cell(row=1, column=1).value == '序号'
        assert ws.cell(row=2, column=2).value == '高'
        assert ws.cell(row=2, column=9).value == 'font_missing'

    def test_write_reports(self, report, tmp_path):
        written = write_reports(report, html_path=str(tmp_path / 'r.html'),
                                excel_path=str(tmp_path / 'r.xlsx'))
        assert set(written) == {'html', 'excel'}
        assert (tmp_path / 'r.xlsx').exists()


class TestCli:

    def test_renders_from_json(self, report, tmp_path, monkeypatch):
        report_path = tmp_path / 'report.json'
        report_path.write_text(json.dumps(report.to_dict(), ensure_ascii=False), encoding='utf-8')
        output = tmp_path / 'out.html'
        monkeypatch.setattr(sys, 'argv', ['generate_report.py', str(report_path), '-o', str(output)])

        assert main() == 0
        assert 'doc.docx' in output.read_text(encoding='utf-8')

    def test_missing_report(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, 'argv', ['generate_report.py', str(tmp_path / 'none.json')])
        assert main() == 1
