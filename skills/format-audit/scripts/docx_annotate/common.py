#!/usr/bin/env python3
"""
ABOUTME: Shared constants for annotating .docx packages with review comments
ABOUTME: Namespaces, relationship/content types and part-name helpers
"""

import posixpath
from typing import Optional

# ============================================================
# Constants
# ============================================================

NS = {
    'w': 'http://schemas.openxmlformats.org/wordprocessingml/2006/main',
    'w14': 'http://schemas.microsoft.com/office/word/2010/wordml',
    'r': 'http://schemas.openxmlformats.org/officeDocument/2006/relationships',
    'rel': 'http://schemas.openxmlformats.org/package/2006/relationships',
    'ct': 'http://schemas.openxmlformats.org/package/2006/content-types',
}

COMMENTS_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.comments+xml"
COMMENTS_REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/comments"
OFFICE_DOCUMENT_REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"

CONTENT_TYPES_PART = '[Content_Types].xml'
PACKAGE_RELS_PART = '_rels/.rels'
DEFAULT_MAIN_PART = 'word/document.xml'
DEFAULT_COMMENTS_TARGET = 'comments.xml'

W = f'{{{NS["w"]}}}'


def w_tag(local: str) -> str:
    """Clark notation for a WordprocessingML element, e.g. w_tag('p')."""
    return f'{W}{local}'


def rels_part_name(part_name: str) -> str:
    """
    Relationships part for a source part.

    Example: word/document.xml -> word/_rels/document.xml.rels
    """
    directory, filename = posixpath.split(part_name)
    return posixpath.join(directory, '_rels', f'{filename}.rels')


def resolve_target(source_part: str, target: str) -> str:
    """
    Resolve a relationship target against the part that owns the relationship.

    Absolute targets ('/word/comments.xml') are package-rooted; relative ones
    are resolved from the source part's directory. The result has no leading '/'.
    """
    if target.startswith('/'):
        return posixpath.normpath(target.lstrip('/'))
    base = posixpath.dirname(source_part)
    return posixpath.normpath(posixpath.join(base, target))


def parse_comment_id(value: Optional[str]) -> Optional[int]:
    """Integer comment id or None for missing/non-numeric values."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
