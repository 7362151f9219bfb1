#!/usr/bin/env python3
"""
ABOUTME: Injects native Word comments for format issues into a copy of a .docx
ABOUTME: Anchors comments on body paragraphs/tables of the main document part
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from defusedxml import ElementTree as ET
from lxml import etree

from format_errors import AnnotationError, FormatAuditError, PackageError, PackageIOError
from format_model import FormatIssue
from utils import format_text_preview

from .comment_builder import build_comments_part
from .comment_records import CommentRecord, build_comment_records
from .common import (
    CONTENT_TYPES_PART,
    NS,
    PACKAGE_RELS_PART,
    parse_comment_id,
    rels_part_name,
    resolve_target,
    w_tag,
)
from .package_rewriter import SKIP_PART, PartData, package_part_names, read_parts, rewrite_package
from .relationships import (
    find_main_document_part,
    merge_comments_relationship,
    register_comments_content_type,
)

W_P = w_tag('p')
W_R = w_tag('r')
W_TBL = w_tag('tbl')
W_BODY = w_tag('body')
W_SECT_PR = w_tag('sectPr')
W_COMMENT_REFERENCE = w_tag('commentReference')

_SAFE_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


class DocxAnnotator:
    """
    Writes comments for format issues into an annotated copy of a document.

    The source file is never modified. Each comment gets a range-start marker,
    a range-end marker and a reference run in the main document part, plus a
    <w:comment> with the same id in the comments part.
    """

    def __init__(self, author: str = 'AI', initials: Optional[str] = None,
                 timestamp: Optional[str] = None, verbose: bool = False):
        self.author = author or 'AI'
        self.initials = initials if initials else self.author[:2] if len(self.author) >= 2 else self.author
        self.timestamp = timestamp
        self.verbose = verbose

    @staticmethod
    def default_output_path(source_path: Union[str, Path]) -> Path:
        """<stem>_annotated<suffix> next to the source."""
        source = Path(source_path)
        return source.with_name(f"{source.stem}_annotated{source.suffix}")

    def annotate(self, source_path: Union[str, Path], issues: Sequence[FormatIssue],
                 output_path: Union[str, Path, None] = None) -> Path:
        """
        Produce an annotated copy of source_path.

        Args:
            source_path: Original .docx
            issues: Issues to turn into comments, in processing order
            output_path: Destination; defaults to <stem>_annotated<suffix>

        Returns:
            Path of the annotated copy

        Raises:
            PackageIOError: source unreadable or destination not writable
            PackageError: source is not a valid package
            AnnotationError: comment injection failed
        """
        source = Path(source_path)
        destination = Path(output_path) if output_path else self.default_output_path(source)
        if not source.is_file():
            raise PackageIOError("document not found", stage='annotate', path=source)
        if source.resolve() == destination.resolve():
            raise PackageIOError("output path must differ from the source document",
                                 stage='annotate', path=destination)

        issues = list(issues or [])
        if not issues:
            if self.verbose:
                print("[Annotate] No issues; copying package unchanged")
            return rewrite_package(source, None, destination, verbose=self.verbose)

        try:
            return self._annotate(source, destination, issues)
        except FormatAuditError:
            raise
        except Exception as e:
            raise AnnotationError("failed to inject comments", stage='annotate', path=source) from e

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def _annotate(self, source: Path, destination: Path, issues: List[FormatIssue]) -> Path:
        package_rels = read_parts(source, [PACKAGE_RELS_PART])[PACKAGE_RELS_PART]
        main_part = find_main_document_part(package_rels)
        main_rels_part = rels_part_name(main_part)

        parts = read_parts(source, [main_part, main_rels_part, CONTENT_TYPES_PART])
        document_xml = parts[main_part]
        if document_xml is None:
            raise PackageError(f"main document part {main_part} is missing",
                               stage='annotate', path=source)

        # Reuse an already declared comments part
        merge = merge_comments_relationship(parts[main_rels_part], main_rels_part)
        comments_part = resolve_target(main_part, merge.target)
        present = set(package_part_names(source))
        existing_comments = None
        if comments_part in present:
            # Declared or not, its comments are kept and their ids stay taken
            existing_comments = read_parts(source, [comments_part])[comments_part]

        start_id = self._next_comment_id(existing_comments, document_xml)
        records = build_comment_records(issues, start_id)
        if self.verbose:
            print(f"[Annotate] {len(issues)} issue(s) -> {len(records)} comment(s), "
                  f"ids from {start_id}")

        document_xml = self._inject_markers(document_xml, records)
        timestamp = self.timestamp or datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
        comments_xml = build_comments_part(records, self.author, self.initials, timestamp,
                                           existing_xml=existing_comments)
        if self.verbose:
            print(f"[Comments] Saved {len(records)} comment(s) to {comments_part}")

        # Comments and relationships parts are dropped where they were and appended last
        regenerated: Dict[str, bytes] = {
            comments_part: comments_xml,
            main_rels_part: merge.rels_xml,
        }
        replacements: Dict[str, bytes] = {
            main_part: document_xml,
            CONTENT_TYPES_PART: register_comments_content_type(
                parts[CONTENT_TYPES_PART], comments_part),
        }
        extra_parts = dict(regenerated)
        extra_parts.update({name: data for name, data in replacements.items() if name not in present})

        def mutate(name: str, data: bytes) -> PartData:
            if name in regenerated:
                return SKIP_PART
            return replacements.get(name, data)

        result = rewrite_package(source, mutate, destination, extra_parts=extra_parts,
                                 verbose=self.verbose)
        if self.verbose:
            print(f"[Annotate] Annotated document: {result}")
        return result

    @staticmethod
    def _next_comment_id(comments_xml: Optional[bytes], document_xml: Optional[bytes] = None) -> int:
        """
        One past the highest comment id in use, or 0 when there is none.

        Ids are taken from the comments part and from the range-start and
        reference markers of the main document part.
        """
        ids = []
        if comments_xml:
            try:
                root = ET.fromstring(comments_xml)
            except ET.ParseError as e:
                raise PackageError("malformed comments part", stage='annotate') from e
            ids += [parse_comment_id(c.get(w_tag('id'))) for c in root.findall(w_tag('comment'))]
        if document_xml:
            try:
                root = ET.fromstring(document_xml)
            except ET.ParseError as e:
                raise PackageError("malformed main document part", stage='annotate') from e
            for tag in ('commentRangeStart', 'commentReference'):
                ids += [parse_comment_id(m.get(w_tag('id'))) for m in root.iter(w_tag(tag))]
        ids = [i for i in ids if i is not None]
        return max(ids) + 1 if ids else 0

    # ------------------------------------------------------------------
    # Marker insertion on the document tree
    # ------------------------------------------------------------------

    def _inject_markers(self, document_xml: bytes, records: List[CommentRecord]) -> bytes:
        try:
            root = etree.fromstring(document_xml, parser=_SAFE_PARSER)
        except etree.XMLSyntaxError as e:
            raise PackageError("malformed main document part", stage='annotate') from e
        body = root.find(W_BODY)
        if body is None:
            raise PackageError("main document part has no body", stage='annotate')

        # Snapshot before insertion so indices match the parsed document
        paragraphs = body.findall(W_P)
        tables = body.findall(W_TBL)

        for record in records:
            if record.table_index is not None and 0 <= record.table_index < len(tables):
                if self._anchor_table(tables[record.table_index], record.id):
                    continue
            if 0 <= record.paragraph_index < len(paragraphs):
                self._anchor_paragraph(paragraphs[record.paragraph_index], record.id)
            elif paragraphs:
                if self.verbose:
                    print(f"[Annotate] Paragraph index {record.paragraph_index} out of range; "
                          f"comment {record.id} falls back to the first paragraph")
                self._anchor_paragraph(paragraphs[0], record.id)
            else:
                self._anchor_document_end(body, record.id)

            if self.verbose:
                print(f"[Annotate] Comment {record.id} at {record.location}: "
                      f"{format_text_preview(record.problem, 40)}")

        if self.verbose:
            starts = root.findall('.//w:commentRangeStart', NS)
            ends = root.findall('.//w:commentRangeEnd', NS)
            refs = root.findall('.//w:commentReference', NS)
            print(f"[Comments] Markers in document.xml: "
                  f"rangeStart={len(starts)} rangeEnd={len(ends)} reference={len(refs)}")

        return etree.tostring(root, xml_declaration=True, encoding='UTF-8', standalone=True)

    @staticmethod
    def _markers(comment_id: int):
        start = etree.fromstring(f'<w:commentRangeStart xmlns:w="{NS["w"]}" w:id="{comment_id}"/>')
        end = etree.fromstring(f'<w:commentRangeEnd xmlns:w="{NS["w"]}" w:id="{comment_id}"/>')
        ref = etree.fromstring(f'''<w:r xmlns:w="{NS['w']}">
            <w:rPr><w:rStyle w:val="CommentReference"/></w:rPr>
            <w:commentReference w:id="{comment_id}"/>
        </w:r>''', parser=etree.XMLParser(remove_blank_text=True))
        return start, end, ref

    @staticmethod
    def _run_children(para_elem) -> list:
        """
        Direct children of a paragraph that hold text runs.

        Includes runs wrapped in hyperlinks or revision marks; reference runs of
        earlier comments are not content and are skipped.
        """
        children = []
        for child in para_elem:
            if child.tag == W_R:
                if child.find(W_COMMENT_REFERENCE) is not None:
                    continue
                children.append(child)
            elif child.find(f'.//{W_R}') is not None:
                children.append(child)
        return children

    def _anchor_paragraph(self, para_elem, comment_id: int) -> None:
        """Range over all runs of the paragraph, reference run right after the last."""
        start, end, ref = self._markers(comment_id)
        runs = self._run_children(para_elem)
        if not runs:
            # Empty paragraph: zero-width range at its end
            para_elem.append(start)
            para_elem.append(end)
            para_elem.append(ref)
            return
        runs[0].addprevious(start)
        runs[-1].addnext(end)
        end.addnext(ref)

    def _anchor_table(self, table_elem, comment_id: int) -> bool:
        """Range from the first run of the table to its last run."""
        table_paras = [p for p in table_elem.iter(W_P)]
        if not table_paras:
            return False
        with_runs = [p for p in table_paras if self._run_children(p)]
        if not with_runs:
            self._anchor_paragraph(table_paras[0], comment_id)
            return True

        start, end, ref = self._markers(comment_id)
        self._run_children(with_runs[0])[0].addprevious(start)
        last_run = self._run_children(with_runs[-1])[-1]
        last_run.addnext(end)
        end.addnext(ref)
        return True

    def _anchor_document_end(self, body, comment_id: int) -> None:
        """No paragraphs at all: a new paragraph holding a zero-width range."""
        start, end, ref = self._markers(comment_id)
        para = etree.Element(W_P)
        para.append(start)
        para.append(end)
        para.append(ref)
        last = body[-1] if len(body) else None
        if last is not None and last.tag == W_SECT_PR:
            last.addprevious(para)
        else:
            body.append(para)
