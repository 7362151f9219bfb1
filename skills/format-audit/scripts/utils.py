#!/usr/bin/env python3
"""
ABOUTME: XML text helpers shared by the comparison and annotation modules
ABOUTME: Sanitization, metacharacter escaping and value formatting for comment bodies
"""

from dataclasses import asdict, is_dataclass
from typing import Any

# Order matters: '&' first so later entities are not double-escaped
XML_ESCAPES = (
    ('&', '&amp;'),
    ('<', '&lt;'),
    ('>', '&gt;'),
    ('"', '&quot;'),
    ("'", '&apos;'),
)


def sanitize_xml_string(text: str) -> str:
    """
    Remove control characters that are illegal in XML 1.0.

    XML 1.0 allows: #x9 (tab), #xA (LF), #xD (CR), and #x20-#xD7FF, #xE000-#xFFFD, #x10000-#x10FFFF
    This function removes all other control characters (0x00-0x08, 0x0B, 0x0C, 0x0E-0x1F).

    Args:
        text: Text that may contain control characters

    Returns:
        Sanitized text safe for XML. Returns input unchanged if not a non-empty string.
    """
    if not text or not isinstance(text, str):
        return text
    # Keep: \t (0x09), \n (0x0A), \r (0x0D)
    illegal_chars = ''.join(
        chr(c) for c in range(0x20)
        if c not in (0x09, 0x0A, 0x0D)
    )
    return text.translate(str.maketrans('', '', illegal_chars))


def escape_xml_text(text: str) -> str:
    """
    Escape the five XML metacharacters (& < > " ') for direct inclusion in markup.

    Control characters are stripped first so the result is always well-formed.

    Args:
        text: Raw text

    Returns:
        Escaped text; empty string for None
    """
    if text is None:
        return ''
    escaped = sanitize_xml_string(str(text))
    for char, entity in XML_ESCAPES:
        escaped = escaped.replace(char, entity)
    return escaped


def format_text_preview(text: str, max_len: int = 30) -> str:
    """
    Format text for log output: remove newlines and truncate.

    Args:
        text: Text to format
        max_len: Maximum length before truncation

    Returns:
        Clean, truncated text with "..." suffix if truncated
    """
    clean = (text or '').replace('\n', ' ').replace('\r', '').replace('\t', ' ')
    while '  ' in clean:
        clean = clean.replace('  ', ' ')
    clean = clean.strip()
    if len(clean) > max_len:
        return clean[:max_len] + "..."
    return clean


def format_value(value: Any) -> str:
    """
    Render a loosely-typed current/expected snapshot as a single comment line.

    Examples:
        None -> ""
        {"alignment": "left"} -> "alignment=left"
        12.0 -> "12"
        True -> "是"
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return '是' if value else '否'
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, dict):
        # Unset attributes (None / '') are left out
        parts = [(k, format_value(v)) for k, v in value.items()]
        return ', '.join(f"{k}={text}" for k, text in parts if text != '')
    if isinstance(value, (list, tuple, set)):
        return ', '.join(format_value(v) for v in value)
    if is_dataclass(value) and not isinstance(value, type):
        return format_value(asdict(value))
    if hasattr(value, 'to_dict'):
        return format_value(value.to_dict())
    return str(value)
