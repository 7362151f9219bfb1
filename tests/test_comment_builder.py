#!/usr/bin/env python3
"""
ABOUTME: Tests for rendering the comments part
ABOUTME: Escaping of text and attributes, and carrying over existing comments
"""

import sys
from pathlib import Path

from lxml import etree

TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(TESTS_DIR))

from _format_audit_helpers import NSMAP, W_NS  # noqa: E402
from docx_annotate import CommentRecord  # noqa: E402
from docx_annotate.comment_builder import (  # noqa: E402
    build_comment_element,
    build_comments_part,
    existing_comment_elements,
)

TIMESTAMP = '2024-01-01T00:00:00Z'

EXISTING_COMMENTS = f'''<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:comments xmlns:w="{W_NS}">
<w:comment w:id="3" w:author="Reviewer" w:initials="RV"><w:p><w:r><w:t>earlier</w:t></w:r></w:p></w:comment>
</w:comments>'''.encode('utf-8')


def _record(**kwargs):
    defaults = dict(id=0, paragraph_index=0, location='第1段', problem='问题')
    defaults.update(kwargs)
    return CommentRecord(**defaults)


def _attr(elem, name):
    return elem.get(f'{{{W_NS}}}{name}')


class TestCommentElement:

    def test_attributes(self):
        xml = build_comment_element(_record(id=4), 'AI', 'AI', TIMESTAMP)
        elem = etree.fromstring(f'<w:comments xmlns:w="{W_NS}">{xml}</w:comments>')[0]

        assert _attr(elem, 'id') == '4'
        assert _attr(elem, 'author') == 'AI'
        assert _attr(elem, 'initials') == 'AI'
        assert _attr(elem, 'date') == TIMESTAMP

    def test_one_paragraph_per_line_with_annotation_ref_first(self):
        record = _record(current_format='字号: 11', suggestion='改为12')
        xml = build_comment_element(record, 'AI', 'AI', TIMESTAMP)
        elem = etree.fromstring(f'<w:comments xmlns:w="{W_NS}">{xml}</w:comments>')[0]

        paragraphs = elem.findall('w:p', NSMAP)
        assert len(paragraphs) == 4
        assert paragraphs[0].find('.//w:annotationRef', NSMAP) is not None
        assert all(p.find('.//w:annotationRef', NSMAP) is None for p in paragraphs[1:])
        assert all(p.find('w:pPr/w:pStyle', NSMAP).get(f'{{{W_NS}}}val') == 'CommentText'
                   for p in paragraphs)

    def test_metacharacters_are_escaped(self):
        record = _record(problem='a < b & "c"', suggestion="it's <w:t>")
        xml = build_comment_element(record, 'A&B "Co"', '<X>', TIMESTAMP)

        assert '&lt;' in xml
        assert '&amp;' in xml
        assert '&quot;' in xml
        elem = etree.fromstring(f'<w:comments xmlns:w="{W_NS}">{xml}</w:comments>')[0]
        texts = [''.join(t.text or '' for t in p.iter(f'{{{W_NS}}}t'))
                 for p in elem.findall('w:p', NSMAP)]
        assert texts[1] == '问题: a < b & "c"'
        assert texts[2] == "建议: it's <w:t>"
        assert _attr(elem, 'author') == 'A&B "Co"'
        assert _attr(elem, 'initials') == '<X>'

    def test_control_characters_are_dropped(self):
        xml = build_comment_element(_record(problem='bad\x01char'), 'AI', 'AI', TIMESTAMP)
        assert '\x01' not in xml
        assert 'badchar' in xml


class TestCommentsPart:

    def test_new_part_holds_records_in_order(self):
        data = build_comments_part([_record(id=0), _record(id=1)], 'AI', 'AI', TIMESTAMP)

        assert data.startswith(b'<?xml')
        root = etree.fromstring(data)
        ids = [c.get(f'{{{W_NS}}}id') for c in root.findall('w:comment', NSMAP)]
        assert ids == ['0', '1']

    def test_existing_comments_are_kept_first(self):
        data = build_comments_part([_record(id=4)], 'AI', 'AI', TIMESTAMP,
                                   existing_xml=EXISTING_COMMENTS)

        root = etree.fromstring(data)
        comments = root.findall('w:comment', NSMAP)
        assert [c.get(f'{{{W_NS}}}id') for c in comments] == ['3', '4']
        assert comments[0].get(f'{{{W_NS}}}author') == 'Reviewer'

    def test_existing_elements_serialized_individually(self):
        elements = existing_comment_elements(EXISTING_COMMENTS)
        assert len(elements) == 1
        assert 'earlier' in elements[0]
        assert existing_comment_elements(None) == []
