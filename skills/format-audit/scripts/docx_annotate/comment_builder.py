#!/usr/bin/env python3
"""
ABOUTME: Builds the word/comments.xml part from comment records
ABOUTME: All text and attribute values are escaped; existing comments are carried over
"""

from typing import Iterable, List, Optional

from lxml import etree

from format_errors import PackageError
from utils import escape_xml_text

from .comment_records import CommentRecord
from .common import NS, w_tag

_SAFE_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'


def existing_comment_elements(comments_xml: Optional[bytes]) -> List[str]:
    """
    Serialized <w:comment> elements of an existing comments part.

    Each element is serialized on its own and carries the namespace
    declarations it uses.
    """
    if not comments_xml:
        return []
    try:
        root = etree.fromstring(comments_xml, parser=_SAFE_PARSER)
    except etree.XMLSyntaxError as e:
        raise PackageError("malformed comments part", stage='package') from e
    return [
        etree.tostring(elem, encoding='unicode', with_tail=False)
        for elem in root.findall(w_tag('comment'))
    ]


def _comment_paragraph(text: str, with_annotation_ref: bool) -> str:
    ref_run = ''
    if with_annotation_ref:
        ref_run = ('<w:r><w:rPr><w:rStyle w:val="CommentReference"/></w:rPr>'
                   '<w:annotationRef/></w:r>')
    return (
        '<w:p><w:pPr><w:pStyle w:val="CommentText"/></w:pPr>'
        f'{ref_run}'
        f'<w:r><w:t xml:space="preserve">{escape_xml_text(text)}</w:t></w:r>'
        '</w:p>'
    )


def build_comment_element(record: CommentRecord, author: str, initials: str,
                          timestamp: str) -> str:
    """
    One <w:comment>; each body line becomes its own paragraph.

    Line order: 位置, 问题, 当前格式, 期望格式, 建议.
    """
    paragraphs = ''.join(
        _comment_paragraph(line, idx == 0) for idx, line in enumerate(record.lines())
    )
    return (
        f'<w:comment w:id="{int(record.id)}" '
        f'w:author="{escape_xml_text(author)}" '
        f'w:date="{escape_xml_text(timestamp)}" '
        f'w:initials="{escape_xml_text(initials)}">'
        f'{paragraphs}'
        '</w:comment>'
    )


def build_comments_part(records: Iterable[CommentRecord], author: str, initials: str,
                        timestamp: str, existing_xml: Optional[bytes] = None) -> bytes:
    """
    Render the complete comments part.

    Args:
        records: Comment records of this pass
        author: w:author of every new comment
        initials: w:initials of every new comment
        timestamp: w:date shared by every comment of the pass (ISO 8601)
        existing_xml: Previous comments part, whose comments are kept first

    Returns:
        UTF-8 encoded XML document
    """
    body: List[str] = existing_comment_elements(existing_xml)
    body.extend(build_comment_element(r, author, initials, timestamp) for r in records)
    xml = (
        f'{XML_DECLARATION}\n'
        f'<w:comments xmlns:w="{NS["w"]}" xmlns:r="{NS["r"]}">'
        f'{"".join(body)}'
        '</w:comments>'
    )
    return xml.encode('utf-8')
