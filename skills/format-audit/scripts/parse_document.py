#!/usr/bin/env python3
"""
ABOUTME: Parses DOCX documents into the typed format model using python-docx
ABOUTME: Resolves effective paragraph/run formatting, tables, sections, styles and metadata
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

try:
    from docx import Document
    from docx.enum.style import WD_STYLE_TYPE
    from docx.enum.table import WD_TABLE_ALIGNMENT
    from docx.enum.text import WD_ALIGN_PARAGRAPH
    from docx.opc.constants import RELATIONSHIP_TYPE as RT
    from docx.oxml.ns import qn
    from docx.shared import Length
except ImportError:
    print("Error: python-docx not installed. Run: pip install python-docx", file=sys.stderr)
    sys.exit(1)

from defusedxml import ElementTree as ET

from extract_rules import extract_format_rules
from format_errors import PackageError, PackageIOError
from format_model import (
    DocumentContent,
    DocumentMetadata,
    DocumentStyles,
    FontSpec,
    PageMargins,
    PageSize,
    Paragraph,
    ParsedDocument,
    Section,
    Spacing,
    StyleInfo,
    Table,
    TextRun,
    to_jsonable,
)

W14_PARA_ID = '{http://schemas.microsoft.com/office/word/2010/wordml}paraId'
THEME_NS = {'a': 'http://schemas.openxmlformats.org/drawingml/2006/main'}

PARAGRAPH_ALIGNMENTS = {
    WD_ALIGN_PARAGRAPH.LEFT: 'left',
    WD_ALIGN_PARAGRAPH.CENTER: 'center',
    WD_ALIGN_PARAGRAPH.RIGHT: 'right',
    WD_ALIGN_PARAGRAPH.JUSTIFY: 'justify',
    WD_ALIGN_PARAGRAPH.DISTRIBUTE: 'distribute',
}

TABLE_ALIGNMENTS = {
    WD_TABLE_ALIGNMENT.LEFT: 'left',
    WD_TABLE_ALIGNMENT.CENTER: 'center',
    WD_TABLE_ALIGNMENT.RIGHT: 'right',
}


def _enum_label(value, mapping: Dict) -> str:
    if value is None:
        return ''
    if value in mapping:
        return mapping[value]
    return str(getattr(value, 'name', value)).lower()


def _pt(length) -> float:
    """Length (EMU) -> points; unset is 0."""
    return float(length.pt) if length is not None else 0.0


def _style_chain(style):
    """A style followed by its base styles."""
    seen = set()
    while style is not None and id(style) not in seen:
        seen.add(id(style))
        yield style
        style = style.base_style


def _first_set(candidates: List[Callable[[], Any]]) -> Any:
    """First getter returning something other than None."""
    for getter in candidates:
        value = getter()
        if value is not None:
            return value
    return None


def _has_cjk(text: str) -> bool:
    return any('一' <= ch <= '鿿' for ch in text or '')


def _typeface(elem) -> str:
    return elem.get('typeface', '') if elem is not None else ''


class DocxFormatParser:
    """
    Reads one .docx into a ParsedDocument.

    Paragraphs and tables are the body-level ones (document order), which is
    also how the annotator addresses them.
    """

    def __init__(self, file_path: str, verbose: bool = False):
        self.file_path = Path(file_path)
        self.verbose = verbose
        self.doc = None
        self._theme_fonts: Dict[str, str] = {}
        self._defaults: Dict[str, Any] = {}

    def parse(self) -> ParsedDocument:
        if not self.file_path.is_file():
            raise PackageIOError("document not found", stage='parse', path=self.file_path)
        try:
            self.doc = Document(str(self.file_path))
        except Exception as e:
            raise PackageError("cannot open document", stage='parse', path=self.file_path) from e

        self._theme_fonts = self._read_theme_fonts()
        self._defaults = self._read_doc_defaults()
        content = DocumentContent(
            paragraphs=[self._parse_paragraph(idx, p) for idx, p in enumerate(self.doc.paragraphs)],
            tables=[self._parse_table(idx, t) for idx, t in enumerate(self.doc.tables)],
            sections=[self._parse_section(idx, s) for idx, s in enumerate(self.doc.sections)],
        )
        parsed = ParsedDocument(
            path=str(self.file_path),
            metadata=self._parse_metadata(),
            content=content,
            styles=self._parse_styles(),
            format_rules=extract_format_rules(content),
        )
        if self.verbose:
            print(f"[Parse] {self.file_path.name}: {len(content.paragraphs)} paragraph(s), "
                  f"{len(content.tables)} table(s), {len(content.sections)} section(s)")
        return parsed

    # ------------------------------------------------------------------
    # Document defaults and theme fonts
    # ------------------------------------------------------------------

    def _read_theme_fonts(self) -> Dict[str, str]:
        """
        Typefaces of the theme font scheme, keyed by the rFonts theme values
        (minorHAnsi, majorEastAsia, ...).

        An empty East Asian slot falls back to the scheme's Simplified Chinese
        script font.
        """
        try:
            theme = self.doc.part.part_related_by(RT.THEME)
        except (KeyError, ValueError):
            return {}
        try:
            root = ET.fromstring(theme.blob)
        except ET.ParseError as e:
            raise PackageError("malformed theme part", stage='parse', path=self.file_path) from e

        fonts: Dict[str, str] = {}
        for slot in ('major', 'minor'):
            scheme = root.find(f'a:themeElements/a:fontScheme/a:{slot}Font', THEME_NS)
            if scheme is None:
                continue
            latin = _typeface(scheme.find('a:latin', THEME_NS))
            east_asia = _typeface(scheme.find('a:ea', THEME_NS)) or \
                _typeface(scheme.find("a:font[@script='Hans']", THEME_NS))
            fonts[f'{slot}Ascii'] = fonts[f'{slot}HAnsi'] = latin
            fonts[f'{slot}EastAsia'] = east_asia
            fonts[f'{slot}Bidi'] = _typeface(scheme.find('a:cs', THEME_NS))
        return {key: name for key, name in fonts.items() if name}

    def _rfonts_name(self, rfonts, east_asia: bool) -> Optional[str]:
        """Typeface declared by a w:rFonts element; a theme reference wins over the plain name."""
        if rfonts is None:
            return None
        attr = 'eastAsia' if east_asia else 'ascii'
        theme_ref = rfonts.get(qn(f'w:{attr}Theme'))
        if theme_ref and self._theme_fonts.get(theme_ref):
            return self._theme_fonts[theme_ref]
        return rfonts.get(qn(f'w:{attr}')) or None

    def _read_doc_defaults(self) -> Dict[str, Any]:
        """Font name/size from w:docDefaults (used when nothing else sets them)."""
        defaults = {'name': None, 'east_asia': None, 'size': None}
        rpr = self.doc.styles.element.find(
            f"{qn('w:docDefaults')}/{qn('w:rPrDefault')}/{qn('w:rPr')}"
        )
        if rpr is None:
            return defaults
        fonts = rpr.find(qn('w:rFonts'))
        defaults['name'] = self._rfonts_name(fonts, east_asia=False)
        defaults['east_asia'] = self._rfonts_name(fonts, east_asia=True)
        sz = rpr.find(qn('w:sz'))
        if sz is not None and sz.get(qn('w:val')):
            try:
                defaults['size'] = int(sz.get(qn('w:val'))) / 2.0
            except ValueError:
                pass
        return defaults

    # ------------------------------------------------------------------
    # Paragraphs and runs
    # ------------------------------------------------------------------

    def _parse_paragraph(self, idx: int, para) -> Paragraph:
        para_id = para._element.get(W14_PARA_ID) or f"p{idx}"
        styles = list(_style_chain(para.style))
        fmt = para.paragraph_format

        alignment = _first_set(
            [lambda: fmt.alignment] + [lambda s=s: s.paragraph_format.alignment for s in styles]
        )
        before = _first_set(
            [lambda: fmt.space_before] + [lambda s=s: s.paragraph_format.space_before for s in styles]
        )
        after = _first_set(
            [lambda: fmt.space_after] + [lambda s=s: s.paragraph_format.space_after for s in styles]
        )
        line = _first_set(
            [lambda: fmt.line_spacing] + [lambda s=s: s.paragraph_format.line_spacing for s in styles]
        )
        if isinstance(line, Length):
            line = line.pt

        return Paragraph(
            id=para_id,
            text=para.text,
            style_name=para.style.name if para.style is not None else '',
            alignment=_enum_label(alignment, PARAGRAPH_ALIGNMENTS),
            spacing=Spacing(before=_pt(before), after=_pt(after), line=float(line or 0.0)),
            runs=[self._parse_run(para_id, j, run, styles) for j, run in enumerate(para.runs)],
        )

    def _parse_run(self, para_id: str, idx: int, run, para_styles: list) -> TextRun:
        run_styles = list(_style_chain(run.style)) if run.style is not None else []
        fonts = [run.font] + [s.font for s in run_styles] + [s.font for s in para_styles]

        name = _first_set([lambda f=f: self._font_name(f, run.text) for f in fonts])
        if name is None:
            name = self._defaults['east_asia'] if _has_cjk(run.text) and self._defaults['east_asia'] \
                else self._defaults['name']
        size = _first_set([lambda f=f: f.size for f in fonts])
        size = _pt(size) if size is not None else (self._defaults['size'] or 0.0)
        bold = _first_set([lambda f=f: f.bold for f in fonts])
        italic = _first_set([lambda f=f: f.italic for f in fonts])
        color = _first_set([lambda f=f: f.color.rgb if f.color is not None else None for f in fonts])

        return TextRun(
            id=f"{para_id}_r{idx}",
            text=run.text,
            font=FontSpec(
                name=name or '',
                size=size,
                color=str(color) if color is not None else '',
                bold=bool(bold),
                italic=bool(italic),
            ),
        )

    def _font_name(self, font, text: str) -> Optional[str]:
        """East Asian font for CJK text when declared, else the ASCII font."""
        rpr = font.element.rPr if hasattr(font.element, 'rPr') else None
        rfonts = rpr.find(qn('w:rFonts')) if rpr is not None else None
        if _has_cjk(text):
            name = self._rfonts_name(rfonts, east_asia=True)
            if name:
                return name
        return self._rfonts_name(rfonts, east_asia=False)

    # ------------------------------------------------------------------
    # Tables and sections
    # ------------------------------------------------------------------

    @staticmethod
    def _table_width(table) -> float:
        """tblW in twips when absolute, otherwise the sum of grid column widths."""
        tbl = table._tbl
        tbl_pr = tbl.tblPr
        if tbl_pr is not None:
            tbl_w = tbl_pr.find(qn('w:tblW'))
            if tbl_w is not None and tbl_w.get(qn('w:type')) == 'dxa' and tbl_w.get(qn('w:w')):
                try:
                    return int(tbl_w.get(qn('w:w'))) / 20.0
                except ValueError:
                    pass
        grid = tbl.tblGrid
        if grid is None:
            return 0.0
        return sum(_pt(col.w) for col in grid.gridCol_lst)

    def _parse_table(self, idx: int, table) -> Table:
        style = table.style
        return Table(
            id=f"tbl{idx}",
            width=self._table_width(table),
            alignment=_enum_label(table.alignment, TABLE_ALIGNMENTS),
            style_name=style.name if style is not None else '',
            rows=len(table.rows),
            columns=len(table.columns),
        )

    @staticmethod
    def _parse_section(idx: int, section) -> Section:
        sect_pr = section._sectPr
        columns = 1
        cols = sect_pr.find(qn('w:cols'))
        if cols is not None and cols.get(qn('w:num')):
            try:
                columns = int(cols.get(qn('w:num')))
            except ValueError:
                columns = 1
        page_number_start = None
        pg_num = sect_pr.find(qn('w:pgNumType'))
        if pg_num is not None and pg_num.get(qn('w:start')):
            try:
                page_number_start = int(pg_num.get(qn('w:start')))
            except ValueError:
                page_number_start = None

        return Section(
            id=f"sect{idx}",
            page_size=PageSize(width=_pt(section.page_width), height=_pt(section.page_height)),
            page_margins=PageMargins(
                top=_pt(section.top_margin),
                bottom=_pt(section.bottom_margin),
                left=_pt(section.left_margin),
                right=_pt(section.right_margin),
                header=_pt(section.header_distance),
                footer=_pt(section.footer_distance),
            ),
            header_distance=_pt(section.header_distance),
            footer_distance=_pt(section.footer_distance),
            columns=columns,
            page_number_start=page_number_start,
        )

    # ------------------------------------------------------------------
    # Styles and metadata
    # ------------------------------------------------------------------

    def _parse_styles(self) -> DocumentStyles:
        styles = DocumentStyles()
        buckets = {
            WD_STYLE_TYPE.PARAGRAPH: styles.paragraph_styles,
            WD_STYLE_TYPE.CHARACTER: styles.character_styles,
            WD_STYLE_TYPE.TABLE: styles.table_styles,
        }
        for style in self.doc.styles:
            bucket = buckets.get(style.type)
            if bucket is None or not style.name:
                continue
            bucket.append(StyleInfo(id=style.style_id or '', name=style.name))
        return styles

    def _parse_metadata(self) -> DocumentMetadata:
        props = self.doc.core_properties
        return DocumentMetadata(
            title=props.title or '',
            author=props.author or '',
            created=props.created,
            modified=props.modified,
        )


def parse_docx(file_path: str, verbose: bool = False) -> ParsedDocument:
    """
    Parse a .docx file into a ParsedDocument.

    Raises:
        PackageIOError: file does not exist
        PackageError: file is not a readable .docx
    """
    return DocxFormatParser(file_path, verbose=verbose).parse()


def main():
    parser = argparse.ArgumentParser(
        description="Parse a DOCX document into its format model (JSON)"
    )
    parser.add_argument(
        "document",
        type=str,
        help="Path to the DOCX file to parse"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output file path (default: print to stdout)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print parsing progress"
    )

    args = parser.parse_args()

    doc_path = Path(args.document)
    if doc_path.suffix.lower() != '.docx':
        print(f"Warning: File does not have .docx extension: {args.document}", file=sys.stderr)

    try:
        parsed = parse_docx(args.document, verbose=args.verbose)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    data = json.dumps(to_jsonable(parsed), ensure_ascii=False, indent=2)
    if args.output:
        Path(args.output).write_text(data, encoding='utf-8')
        print(f"Saved to: {args.output}")
    else:
        print(data)
    return 0


if __name__ == "__main__":
    sys.exit(main())
