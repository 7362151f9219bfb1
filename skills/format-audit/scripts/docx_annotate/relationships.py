#!/usr/bin/env python3
"""
ABOUTME: Relationship and content-type bookkeeping for the comments part
ABOUTME: Resolves the main document part and declares comments.xml without duplicates
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from defusedxml import ElementTree as ET
from lxml import etree

from format_errors import PackageError

from .common import (
    COMMENTS_CONTENT_TYPE,
    COMMENTS_REL_TYPE,
    DEFAULT_COMMENTS_TARGET,
    DEFAULT_MAIN_PART,
    NS,
    OFFICE_DOCUMENT_REL_TYPE,
    PACKAGE_RELS_PART,
    resolve_target,
)

REL = f'{{{NS["rel"]}}}'
CT = f'{{{NS["ct"]}}}'

_RID_PATTERN = re.compile(r'^rId(\d+)$')

# Parser for parts we rewrite; entity expansion and network access disabled
_SAFE_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)


@dataclass
class RelationshipMerge:
    """Result of declaring the comments part in a relationships part"""
    rels_xml: bytes              # relationships part to write (original bytes when unchanged)
    rel_id: str                  # id of the comments relationship
    target: str                  # relationship target, relative to the owning part
    added: bool                  # False when a comments relationship already existed


def _parse_readonly(data: bytes, part_name: str):
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise PackageError(f"malformed XML part {part_name}", stage='package') from e


def list_relationships(rels_xml: Optional[bytes], part_name: str = '') -> List[Tuple[str, str, str]]:
    """(Id, Type, Target) of every relationship in a relationships part."""
    if not rels_xml:
        return []
    root = _parse_readonly(rels_xml, part_name)
    return [
        (rel.get('Id', ''), rel.get('Type', ''), rel.get('Target', ''))
        for rel in root.findall(f'{REL}Relationship')
    ]


def find_relationship(rels_xml: Optional[bytes], rel_type: str,
                      part_name: str = '') -> Optional[Tuple[str, str]]:
    """(Id, Target) of the first relationship with rel_type, or None."""
    for rel_id, rtype, target in list_relationships(rels_xml, part_name):
        if rtype == rel_type:
            return rel_id, target
    return None


def find_main_document_part(package_rels: Optional[bytes]) -> str:
    """
    Part name of the main document, from the package-level relationships.

    Falls back to word/document.xml when _rels/.rels is missing or declares no
    officeDocument relationship.
    """
    found = find_relationship(package_rels, OFFICE_DOCUMENT_REL_TYPE, PACKAGE_RELS_PART)
    if found is None:
        return DEFAULT_MAIN_PART
    return resolve_target('', found[1])


def next_relationship_id(existing_ids: List[str]) -> str:
    """rId<max+1> over ids of the form rId<N>; rId1 when there are none."""
    numbers = [int(m.group(1)) for m in (_RID_PATTERN.match(i) for i in existing_ids) if m]
    return f"rId{max(numbers) + 1 if numbers else 1}"


def merge_comments_relationship(rels_xml: Optional[bytes], rels_part: str = '',
                                target: str = DEFAULT_COMMENTS_TARGET) -> RelationshipMerge:
    """
    Declare the comments part in the main part's relationships.

    An existing comments relationship is reused and the part is returned
    byte-for-byte. Otherwise one Relationship with a fresh rId is appended;
    every existing relationship is kept. A missing relationships part yields a
    new one holding only the comments relationship.
    """
    relationships = list_relationships(rels_xml, rels_part)
    for rel_id, rtype, existing_target in relationships:
        if rtype == COMMENTS_REL_TYPE:
            return RelationshipMerge(rels_xml=rels_xml, rel_id=rel_id,
                                     target=existing_target, added=False)

    rel_id = next_relationship_id([r[0] for r in relationships])

    if rels_xml:
        try:
            root = etree.fromstring(rels_xml, parser=_SAFE_PARSER)
        except etree.XMLSyntaxError as e:
            raise PackageError(f"malformed XML part {rels_part}", stage='package') from e
    else:
        root = etree.Element(f'{REL}Relationships', nsmap={None: NS['rel']})

    rel = etree.SubElement(root, f'{REL}Relationship')
    rel.set('Id', rel_id)
    rel.set('Type', COMMENTS_REL_TYPE)
    rel.set('Target', target)

    data = etree.tostring(root, xml_declaration=True, encoding='UTF-8', standalone=True)
    return RelationshipMerge(rels_xml=data, rel_id=rel_id, target=target, added=True)


def register_comments_content_type(content_types_xml: Optional[bytes], part_name: str) -> bytes:
    """
    Ensure [Content_Types].xml has an Override for the comments part.

    Returns the original bytes when an Override for part_name already exists.

    Raises:
        PackageError: when the content types part is missing or malformed
    """
    if not content_types_xml:
        raise PackageError("package has no [Content_Types].xml", stage='package')

    part_uri = '/' + part_name.lstrip('/')
    root = _parse_readonly(content_types_xml, '[Content_Types].xml')
    for override in root.findall(f'{CT}Override'):
        if override.get('PartName', '').lower() == part_uri.lower():
            return content_types_xml

    try:
        root = etree.fromstring(content_types_xml, parser=_SAFE_PARSER)
    except etree.XMLSyntaxError as e:
        raise PackageError("malformed XML part [Content_Types].xml", stage='package') from e
    override = etree.SubElement(root, f'{CT}Override')
    override.set('PartName', part_uri)
    override.set('ContentType', COMMENTS_CONTENT_TYPE)
    return etree.tostring(root, xml_declaration=True, encoding='UTF-8', standalone=True)
