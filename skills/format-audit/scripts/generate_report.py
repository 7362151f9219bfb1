#!/usr/bin/env python3
"""
ABOUTME: Generates HTML and Excel format-compliance reports from a comparison report
ABOUTME: Includes scores, severity statistics, issue details and recommendations
"""

import argparse
import json
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

try:
    from jinja2 import Environment
except ImportError:
    print("Error: jinja2 not installed. Run: pip install jinja2", file=sys.stderr)
    sys.exit(1)

# Optional Excel support
try:
    from openpyxl import Workbook
    from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
    from openpyxl.utils import get_column_letter
    EXCEL_AVAILABLE = True
except ImportError:
    EXCEL_AVAILABLE = False

from format_model import ComparisonReport
from utils import format_value, sanitize_xml_string

SEVERITY_ORDER = ['critical', 'high', 'medium', 'low']

SEVERITY_LABELS = {
    'critical': '严重',
    'high': '高',
    'medium': '中',
    'low': '低',
}

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html lang="zh-CN">
<head>
<meta charset="utf-8">
<title>格式审查报告 - {{ document_name }}</title>
<style>
body { font-family: sans-serif; margin: 2em; color: #222; }
table { border-collapse: collapse; width: 100%; margin-bottom: 2em; }
th, td { border: 1px solid #ccc; padding: 6px 8px; text-align: left; vertical-align: top; }
th { background: #4472C4; color: #fff; }
.score { font-size: 1.4em; font-weight: bold; }
.sev-critical { color: #a00; } .sev-high { color: #d33; }
.sev-medium { color: #c80; } .sev-low { color: #555; }
</style>
</head>
<body>
<h1>格式审查报告</h1>
<p>文档: {{ document_path }}<br>模板: {{ template_path }}<br>生成时间: {{ generated_at }}</p>
{% if annotated_document_path %}<p>批注文档: {{ annotated_document_path }}</p>{% endif %}
{% for warning in warnings %}<p class="sev-high">警告: {{ warning }}</p>{% endfor %}
<table>
<tr><th>总体得分</th><th>合规率</th><th>格式得分</th><th>内容得分</th><th>样式得分</th></tr>
<tr>
<td class="score">{{ "%.1f"|format(overall_score) }}</td>
<td class="score">{{ "%.1f"|format(compliance_rate) }}%</td>
<td>{{ "%.1f"|format(format_score) }}</td>
<td>{{ "%.1f"|format(content_score) }}</td>
<td>{{ "%.1f"|format(style_score) }}</td>
</tr>
</table>
<h2>问题统计</h2>
<table>
<tr>{% for sev in severity_order %}<th>{{ severity_labels[sev] }}</th>{% endfor %}<th>合计</th></tr>
<tr>{% for sev in severity_order %}<td>{{ severity_counts.get(sev, 0) }}</td>{% endfor %}<td>{{ issues|length }}</td></tr>
</table>
<h2>问题列表</h2>
{% if issues %}
<table>
<tr><th>#</th><th>级别</th><th>类型</th><th>位置</th><th>问题</th><th>当前格式</th><th>期望格式</th><th>建议</th></tr>
{% for issue in issues %}
<tr>
<td>{{ loop.index }}</td>
<td class="sev-{{ issue.severity }}">{{ severity_labels.get(issue.severity, issue.severity) }}</td>
<td>{{ issue.type }}</td>
<td>{{ issue.location }}</td>
<td>{{ issue.description }}</td>
<td>{{ issue.current }}</td>
<td>{{ issue.expected }}</td>
<td>{{ issue.suggestions }}</td>
</tr>
{% endfor %}
</table>
{% else %}
<p>未发现格式问题。</p>
{% endif %}
<h2>改进建议</h2>
<ul>
{% for rec in recommendations %}<li>[{{ rec.priority }}] {{ rec.description }}</li>{% endfor %}
</ul>
</body>
</html>
"""


def sanitize_excel_string(text: str) -> str:
    """Remove control characters that are illegal in Excel/XML."""
    return sanitize_xml_string(text)


def generate_report_data(report: ComparisonReport) -> Dict[str, Any]:
    """
    Flatten a ComparisonReport into template/Excel data.

    current/expected/suggestions are rendered to display strings.
    """
    return report_data_from_json(report.to_dict())


def render_report(data: dict, template_path: Optional[str] = None, trusted_html: bool = False) -> str:
    """
    Render HTML report from data using a Jinja2 template.

    Args:
        data: Report data dictionary
        template_path: Path to a Jinja2 template file; None uses the built-in template
        trusted_html: If True, disable HTML escaping (use only for trusted inputs)

    Returns:
        Rendered HTML string
    """
    if template_path:
        template_file = Path(template_path)
        if not template_file.exists():
            raise FileNotFoundError(f"Template file not found: {template_path}")
        template_str = template_file.read_text(encoding='utf-8')
    else:
        template_str = DEFAULT_TEMPLATE

    env = Environment(autoescape=not trusted_html)
    template = env.from_string(template_str)
    return template.render(**data)


def generate_excel_report(data: dict, output_path: str) -> None:
    """
    Generate Excel report from comparison data.

    Raises:
        ImportError: If openpyxl is not installed
    """
    if not EXCEL_AVAILABLE:
        raise ImportError("openpyxl not installed. Run: pip install openpyxl")

    wb = Workbook()
    ws = wb.active
    ws.title = "Format Report"

    headers = [
        "序号",           # Index
        "级别",           # Severity
        "类型",           # Issue type
        "位置",           # Location
        "问题",           # Description
        "当前格式",       # Current
        "期望格式",       # Expected
        "建议",           # Suggestions
        "规则",           # Rule tag
    ]

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    for col_idx, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border

    content_alignment = Alignment(vertical="top", wrap_text=True)

    for row_idx, issue in enumerate(data['issues'], 2):
        row_data = [
            row_idx - 1,
            SEVERITY_LABELS.get(issue['severity'], issue['severity']),
            issue['type'],
            issue['location'],
            issue['description'],
            issue['current'],
            issue['expected'],
            issue['suggestions'],
            issue['rule'],
        ]
        for col_idx, value in enumerate(row_data, 1):
            safe_value = sanitize_excel_string(value) if isinstance(value, str) else value
            cell = ws.cell(row=row_idx, column=col_idx, value=safe_value)
            cell.alignment = content_alignment
            cell.border = thin_border

    column_widths = [8, 8, 12, 22, 40, 30, 30, 40, 18]
    for col_idx, width in enumerate(column_widths, 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    ws.freeze_panes = "A2"

    # Scores on a second sheet
    summary = wb.create_sheet("Summary")
    rows = [
        ("总体得分", round(data['overall_score'], 1)),
        ("合规率", round(data['compliance_rate'], 1)),
        ("格式得分", round(data['format_score'], 1)),
        ("内容得分", round(data['content_score'], 1)),
        ("样式得分", round(data['style_score'], 1)),
    ]
    rows.extend((f"{SEVERITY_LABELS[s]}级问题", data['severity_counts'].get(s, 0)) for s in SEVERITY_ORDER)
    for row_idx, (label, value) in enumerate(rows, 1):
        summary.cell(row=row_idx, column=1, value=label).font = Font(bold=True)
        summary.cell(row=row_idx, column=2, value=value)
    summary.column_dimensions['A'].width = 16

    wb.save(output_path)


def write_reports(report: ComparisonReport, html_path: Optional[str] = None,
                  excel_path: Optional[str] = None, template_path: Optional[str] = None) -> Dict[str, str]:
    """Write the requested report files; returns kind -> written path."""
    written = {}
    data = generate_report_data(report)
    if html_path:
        Path(html_path).write_text(render_report(data, template_path), encoding='utf-8')
        written['html'] = str(html_path)
    if excel_path:
        generate_excel_report(data, str(excel_path))
        written['excel'] = str(excel_path)
    return written


def load_report(file_path: str) -> Dict[str, Any]:
    """Load a JSON report written by compare_and_annotate.py --json."""
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def report_data_from_json(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Template data from a serialized report (same shape as generate_report_data)."""
    issues = []
    for issue in raw.get('issues', []):
        issues.append({
            'id': issue.get('id', ''),
            'type': issue.get('type', ''),
            'severity': issue.get('severity', ''),
            'location': issue.get('location', ''),
            'description': issue.get('description', ''),
            'current': format_value(issue.get('current')),
            'expected': format_value(issue.get('expected')),
            'rule': issue.get('rule', ''),
            'suggestions': '; '.join(issue.get('suggestions') or []),
        })
    document_path = raw.get('document_path', '')
    return {
        'document_path': document_path,
        'document_name': Path(document_path).name,
        'template_path': raw.get('template_path', ''),
        'annotated_document_path': raw.get('annotated_document_path', ''),
        'warnings': raw.get('warnings', []),
        'generated_at': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'overall_score': raw.get('overall_score', 0.0),
        'compliance_rate': raw.get('compliance_rate', 0.0),
        'format_score': raw.get('format_comparison', {}).get('score', 0.0),
        'content_score': raw.get('content_comparison', {}).get('score', 0.0),
        'style_score': raw.get('style_comparison', {}).get('score', 0.0),
        'issues': issues,
        'severity_order': SEVERITY_ORDER,
        'severity_labels': SEVERITY_LABELS,
        'severity_counts': dict(Counter(i['severity'] for i in issues)),
        'recommendations': [
            {'id': r.get('id', ''), 'priority': r.get('priority', ''),
             'description': r.get('description', '')}
            for r in raw.get('recommendations', [])
        ],
    }


def main():
    parser = argparse.ArgumentParser(
        description="Generate HTML/Excel format report from a JSON comparison report"
    )
    parser.add_argument(
        "report",
        type=str,
        help="Path to the JSON report written by compare_and_annotate.py --json"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default="format_report.html",
        help="Output HTML file path (default: format_report.html)"
    )
    parser.add_argument(
        "--template", "-t",
        type=str,
        help="Path to a Jinja2 HTML template (default: built-in template)"
    )
    parser.add_argument(
        "--trusted-html",
        action="store_true",
        help="Render report without HTML escaping (only for trusted inputs)"
    )
    parser.add_argument(
        "--excel",
        action="store_true",
        help="Also output report as Excel file (.xlsx)"
    )

    args = parser.parse_args()

    report_path = Path(args.report)
    if not report_path.exists():
        print(f"Error: Report file not found: {args.report}", file=sys.stderr)
        return 1

    try:
        data = report_data_from_json(load_report(args.report))
        html = render_report(data, args.template, trusted_html=args.trusted_html)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_path = Path(args.output)
    output_path.write_text(html, encoding='utf-8')
    print(f"HTML report saved to: {output_path}")

    if args.excel:
        if not EXCEL_AVAILABLE:
            print("Warning: openpyxl not installed. Skipping Excel output.", file=sys.stderr)
            print("Install with: pip install openpyxl", file=sys.stderr)
        else:
            excel_path = output_path.with_suffix('.xlsx')
            generate_excel_report(data, str(excel_path))
            print(f"Excel report saved to: {excel_path}")

    print("\n--- Summary ---")
    print(f"Overall score: {data['overall_score']:.1f}")
    print(f"Issues found: {len(data['issues'])}")
    print(f"By severity: {data['severity_counts']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
