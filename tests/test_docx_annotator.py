#!/usr/bin/env python3
"""
ABOUTME: Tests for DocxAnnotator comment injection
ABOUTME: Marker placement, id consistency, existing comments and package bookkeeping
"""

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(TESTS_DIR))

from _format_audit_helpers import (  # noqa: E402
    COMMENTS_REL_TYPE,
    CONTENT_TYPES_XML,
    DOCUMENT_RELS_XML,
    NSMAP,
    W_NS,
    body_paragraphs,
    child_tags,
    comment_ids,
    comment_texts,
    marker_ids,
    paragraph_xml,
    parse_part,
    part_names,
    read_part,
    table_xml,
    write_docx,
)
from docx_annotate import DocxAnnotator  # noqa: E402
from format_errors import PackageError, PackageIOError  # noqa: E402
from format_model import FormatIssue, IssueKind  # noqa: E402

TIMESTAMP = '2024-05-01T08:00:00Z'


def _alignment_issue(paragraph_index=0, issue_id='paragraph_alignment_0'):
    return FormatIssue(
        id=issue_id,
        type='paragraph',
        severity='medium',
        location=f'第{paragraph_index + 1}段',
        description='对齐方式与模板不一致',
        current={'alignment': 'left'},
        expected={'alignment': 'center'},
        rule='paragraph_format',
        suggestions=['对齐方式: 左对齐 → 居中'],
        kind=IssueKind.PARAGRAPH_ALIGNMENT,
        paragraph_index=paragraph_index,
    )


@pytest.fixture
def annotator():
    return DocxAnnotator(author='Checker', timestamp=TIMESTAMP)


@pytest.fixture
def simple_doc(tmp_path):
    return write_docx(tmp_path / 'doc.docx', [
        paragraph_xml('First', ' paragraph'),
        paragraph_xml('Second'),
    ])


def _document_root(path):
    return parse_part(path, 'word/document.xml')


class TestMarkerPlacement:

    def test_range_wraps_all_runs_and_reference_follows(self, annotator, simple_doc, tmp_path):
        out = annotator.annotate(simple_doc, [_alignment_issue(0)], tmp_path / 'out.docx')

        first = body_paragraphs(out)[0]
        assert child_tags(first) == ['commentRangeStart', 'r', 'r', 'commentRangeEnd', 'ref']
        assert child_tags(body_paragraphs(out)[1]) == ['r']

    def test_ids_match_between_parts(self, annotator, simple_doc, tmp_path):
        issues = [_alignment_issue(0), _alignment_issue(1, 'paragraph_alignment_1')]

        out = annotator.annotate(simple_doc, issues, tmp_path / 'out.docx')

        root = _document_root(out)
        ids = comment_ids(out)
        assert ids == [0, 1]
        assert sorted(marker_ids(root, 'commentRangeStart')) == ids
        assert sorted(marker_ids(root, 'commentRangeEnd')) == ids
        assert sorted(marker_ids(root, 'commentReference')) == ids

    def test_out_of_range_index_falls_back_to_first_paragraph(self, annotator, simple_doc, tmp_path):
        out = annotator.annotate(simple_doc, [_alignment_issue(42)], tmp_path / 'out.docx')

        assert 'commentRangeStart' in child_tags(body_paragraphs(out)[0])
        assert comment_ids(out) == [0]

    def test_empty_paragraph_gets_zero_width_range(self, annotator, tmp_path):
        source = write_docx(tmp_path / 'doc.docx', ['<w:p><w:pPr><w:jc w:val="left"/></w:pPr></w:p>'])

        out = annotator.annotate(source, [_alignment_issue(0)], tmp_path / 'out.docx')

        assert child_tags(body_paragraphs(out)[0]) == ['pPr', 'commentRangeStart', 'commentRangeEnd', 'ref']

    def test_document_without_paragraphs_gets_new_paragraph_before_sect_pr(self, annotator, tmp_path):
        source = write_docx(tmp_path / 'doc.docx', [])

        out = annotator.annotate(source, [_alignment_issue(0)], tmp_path / 'out.docx')

        body = _document_root(out).find('w:body', NSMAP)
        tags = [child.tag.split('}')[1] for child in body]
        assert tags == ['p', 'sectPr']
        assert child_tags(body[0]) == ['commentRangeStart', 'commentRangeEnd', 'ref']

    def test_table_issue_spans_table_runs(self, annotator, tmp_path):
        source = write_docx(tmp_path / 'doc.docx', [
            paragraph_xml('Intro'),
            table_xml([['a', 'b'], ['c', 'd']]),
        ])
        issue = FormatIssue(
            id='table_format_0', type='table', severity='medium', location='第1个表格',
            description='第1个表格格式与模板不一致', current={'width': 300.0},
            expected={'width': 400.0}, rule='table_format', kind=IssueKind.TABLE_FORMAT,
            table_index=0,
        )

        out = annotator.annotate(source, [issue], tmp_path / 'out.docx')

        table = _document_root(out).find('w:body/w:tbl', NSMAP)
        cell_paras = table.findall('.//w:p', NSMAP)
        assert child_tags(cell_paras[0])[0] == 'commentRangeStart'
        assert child_tags(cell_paras[-1])[-2:] == ['commentRangeEnd', 'ref']
        assert 'commentRangeStart' not in child_tags(body_paragraphs(out)[0])

    def test_multiple_comments_on_one_paragraph(self, annotator, simple_doc, tmp_path):
        issues = [_alignment_issue(0), _alignment_issue(0, 'paragraph_spacing_0')]

        out = annotator.annotate(simple_doc, issues, tmp_path / 'out.docx')

        first = body_paragraphs(out)[0]
        assert sorted(marker_ids(first, 'commentRangeStart')) == [0, 1]
        assert sorted(marker_ids(first, 'commentReference')) == [0, 1]


class TestCommentsPart:

    def test_comment_body_lines(self, annotator, simple_doc, tmp_path):
        out = annotator.annotate(simple_doc, [_alignment_issue(0)], tmp_path / 'out.docx')

        assert comment_texts(out)[0] == [
            '位置: 第1段',
            '问题: 对齐方式与模板不一致',
            '当前格式: 对齐方式: 左对齐',
            '期望格式: 对齐方式: 居中',
            '建议: 对齐方式: 左对齐 → 居中',
        ]
        comment = parse_part(out, 'word/comments.xml').find('w:comment', NSMAP)
        assert comment.get(f'{{{W_NS}}}author') == 'Checker'
        assert comment.get(f'{{{W_NS}}}initials') == 'Ch'
        assert comment.get(f'{{{W_NS}}}date') == TIMESTAMP

    def test_count_issue_expands_into_several_comments(self, annotator, tmp_path):
        source = write_docx(tmp_path / 'doc.docx', [paragraph_xml(str(i)) for i in range(4)])
        issue = FormatIssue(
            id='paragraph_count', type='structure', severity='medium', location='第2段',
            description='文档比模板少3个段落', current=2, expected=5, rule='paragraph_count',
            kind=IssueKind.PARAGRAPH_COUNT, paragraph_index=1, missing_count=3,
        )

        out = annotator.annotate(source, [issue], tmp_path / 'out.docx')

        assert comment_ids(out) == [0, 1, 2]
        paragraphs = body_paragraphs(out)
        assert [bool(marker_ids(p, 'commentRangeStart')) for p in paragraphs] == [False, True, True, True]

    def test_package_declares_comments_part(self, annotator, simple_doc, tmp_path):
        out = annotator.annotate(simple_doc, [_alignment_issue(0)], tmp_path / 'out.docx')

        assert 'word/comments.xml' in part_names(out)
        rels = read_part(out, 'word/_rels/document.xml.rels').decode('utf-8')
        assert rels.count(COMMENTS_REL_TYPE) == 1
        assert 'styles.xml' in rels
        content_types = read_part(out, '[Content_Types].xml').decode('utf-8')
        assert content_types.count('/word/comments.xml') == 1

    def test_regenerated_parts_come_last(self, annotator, simple_doc, tmp_path):
        out = annotator.annotate(simple_doc, [_alignment_issue(0)], tmp_path / 'out.docx')

        names = part_names(out)
        assert names[-2:] == ['word/comments.xml', 'word/_rels/document.xml.rels']
        assert len(names) == len(set(names))

    def test_missing_document_rels_is_created(self, annotator, tmp_path):
        source = write_docx(tmp_path / 'doc.docx', [paragraph_xml('x')], document_rels=None)

        out = annotator.annotate(source, [_alignment_issue(0)], tmp_path / 'out.docx')

        rels = read_part(out, 'word/_rels/document.xml.rels').decode('utf-8')
        assert COMMENTS_REL_TYPE in rels


class TestExistingComments:

    @pytest.fixture
    def commented_doc(self, tmp_path):
        rels = DOCUMENT_RELS_XML.replace(
            '</Relationships>',
            f'<Relationship Id="rId5" Type="{COMMENTS_REL_TYPE}" Target="comments.xml"/></Relationships>',
        )
        content_types = CONTENT_TYPES_XML.replace(
            '</Types>',
            '<Override PartName="/word/comments.xml" ContentType="application/'
            'vnd.openxmlformats-officedocument.wordprocessingml.comments+xml"/></Types>',
        )
        comments = (
            f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<w:comments xmlns:w="{W_NS}">'
            '<w:comment w:id="0" w:author="Reviewer"><w:p><w:r><w:t>old one</w:t></w:r></w:p></w:comment>'
            '<w:comment w:id="6" w:author="Reviewer"><w:p><w:r><w:t>old two</w:t></w:r></w:p></w:comment>'
            '</w:comments>'
        )
        document = [
            '<w:p><w:commentRangeStart w:id="0"/><w:r><w:t>Old</w:t></w:r>'
            '<w:commentRangeEnd w:id="0"/><w:r><w:rPr><w:rStyle w:val="CommentReference"/></w:rPr>'
            '<w:commentReference w:id="0"/></w:r></w:p>',
            paragraph_xml('Next'),
        ]
        return write_docx(tmp_path / 'doc.docx', document, document_rels=rels,
                          content_types=content_types,
                          extra_parts={'word/comments.xml': comments})

    def test_ids_continue_after_existing(self, annotator, commented_doc, tmp_path):
        out = annotator.annotate(commented_doc, [_alignment_issue(1)], tmp_path / 'out.docx')

        assert comment_ids(out) == [0, 6, 7]
        texts = comment_texts(out)
        assert texts[0] == ['old one']
        assert texts[6] == ['old two']

    def test_relationship_and_content_type_not_duplicated(self, annotator, commented_doc, tmp_path):
        out = annotator.annotate(commented_doc, [_alignment_issue(1)], tmp_path / 'out.docx')

        assert read_part(out, 'word/_rels/document.xml.rels') == \
            read_part(commented_doc, 'word/_rels/document.xml.rels')
        assert read_part(out, '[Content_Types].xml') == read_part(commented_doc, '[Content_Types].xml')
        assert part_names(out).count('word/comments.xml') == 1

    def test_existing_parts_move_to_the_end(self, annotator, commented_doc, tmp_path):
        out = annotator.annotate(commented_doc, [_alignment_issue(1)], tmp_path / 'out.docx')

        names = part_names(out)
        assert names[-2:] == ['word/comments.xml', 'word/_rels/document.xml.rels']
        assert sorted(names) == sorted(part_names(commented_doc))

    def test_undeclared_comments_part_is_kept(self, annotator, tmp_path):
        comments = (
            f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<w:comments xmlns:w="{W_NS}">'
            '<w:comment w:id="0" w:author="Reviewer"><w:p><w:r><w:t>old one</w:t></w:r></w:p></w:comment>'
            '<w:comment w:id="3" w:author="Reviewer"><w:p><w:r><w:t>old two</w:t></w:r></w:p></w:comment>'
            '</w:comments>'
        )
        document = [
            '<w:p><w:commentRangeStart w:id="9"/><w:r><w:t>Old</w:t></w:r>'
            '<w:commentRangeEnd w:id="9"/><w:r><w:rPr><w:rStyle w:val="CommentReference"/></w:rPr>'
            '<w:commentReference w:id="9"/></w:r></w:p>',
            paragraph_xml('Next'),
        ]
        source = write_docx(tmp_path / 'doc.docx', document,
                            extra_parts={'word/comments.xml': comments})

        out = annotator.annotate(source, [_alignment_issue(1)], tmp_path / 'out.docx')

        assert comment_ids(out) == [0, 3, 10]
        texts = comment_texts(out)
        assert texts[0] == ['old one']
        assert texts[3] == ['old two']
        assert marker_ids(body_paragraphs(out)[1], 'commentRangeStart') == [10]
        rels = read_part(out, 'word/_rels/document.xml.rels').decode('utf-8')
        assert rels.count(COMMENTS_REL_TYPE) == 1
        assert part_names(out).count('word/comments.xml') == 1

    def test_existing_reference_run_is_not_content(self, annotator, commented_doc, tmp_path):
        out = annotator.annotate(commented_doc, [_alignment_issue(0)], tmp_path / 'out.docx')

        first = body_paragraphs(out)[0]
        tags = child_tags(first)
        # new range wraps the text run only, the earlier reference run stays outside
        assert tags == ['commentRangeStart', 'commentRangeStart', 'r',
                        'commentRangeEnd', 'ref', 'commentRangeEnd', 'ref']


class TestSourceAndOutput:

    def test_source_is_untouched(self, annotator, simple_doc, tmp_path):
        before = simple_doc.read_bytes()

        annotator.annotate(simple_doc, [_alignment_issue(0)], tmp_path / 'out.docx')

        assert simple_doc.read_bytes() == before

    def test_default_output_name(self, annotator, simple_doc):
        out = annotator.annotate(simple_doc, [_alignment_issue(0)])
        assert out == simple_doc.with_name('doc_annotated.docx')
        assert out.exists()

    def test_no_issues_copies_unchanged(self, annotator, simple_doc, tmp_path):
        out = annotator.annotate(simple_doc, [], tmp_path / 'out.docx')

        assert read_part(out, 'word/document.xml') == read_part(simple_doc, 'word/document.xml')
        assert 'word/comments.xml' not in part_names(out)

    def test_output_must_differ_from_source(self, annotator, simple_doc):
        with pytest.raises(PackageIOError):
            annotator.annotate(simple_doc, [_alignment_issue(0)], simple_doc)

    def test_missing_source(self, annotator, tmp_path):
        with pytest.raises(PackageIOError):
            annotator.annotate(tmp_path / 'missing.docx', [_alignment_issue(0)])

    def test_invalid_package(self, annotator, tmp_path):
        bogus = tmp_path / 'bogus.docx'
        bogus.write_bytes(b'plain text')
        with pytest.raises(PackageError):
            annotator.annotate(bogus, [_alignment_issue(0)], tmp_path / 'out.docx')

    def test_python_docx_opens_output(self, annotator, tmp_path):
        docx = pytest.importorskip('docx')
        source = tmp_path / 'real.docx'
        document = docx.Document()
        document.add_paragraph('Hello world')
        document.add_paragraph('Second paragraph')
        document.save(str(source))

        out = annotator.annotate(source, [_alignment_issue(1)], tmp_path / 'out.docx')

        reopened = docx.Document(str(out))
        assert [p.text for p in reopened.paragraphs] == ['Hello world', 'Second paragraph']
        assert 'word/comments.xml' in part_names(out)

    def test_initials_default_to_author_prefix(self):
        assert DocxAnnotator(author='Reviewer').initials == 'Re'
        assert DocxAnnotator(author='R').initials == 'R'
        assert DocxAnnotator(author='Reviewer', initials='RV').initials == 'RV'
