"""
Email body extraction and normalization.

This module turns a raw RFC 5322 message into the normalized plaintext that
keyword checks run against. It deliberately works on the raw text instead of
a full MIME parser so that malformed messages still produce a best-effort
body:

1. Split headers from body at the first blank line
2. Walk multipart boundaries and pick the first text/plain part
   (falling back to the first text/html part)
3. Strip HTML tags from HTML parts
4. Decode quoted-printable escapes and soft line breaks
5. Normalize line endings, decode basic HTML entities, lowercase
"""

import logging
import re
from typing import List, Optional, Tuple

from domain.models import ExtractedBody

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'text/plain'

# Nested multipart deeper than this is treated as opaque
MAX_MULTIPART_DEPTH = 8

_BLANK_LINE_RE = re.compile(r'\r?\n\r?\n')
_BOUNDARY_RE = re.compile(r'boundary\s*=\s*(?:"([^"\r\n]+)"|([^\s;"]+))', re.IGNORECASE)
_CONTENT_TYPE_RE = re.compile(r'^Content-Type:[ \t]*([^;\s]+)', re.IGNORECASE | re.MULTILINE)
_TAG_RE = re.compile(r'<[^>]*>')
_SOFT_BREAK_RE = re.compile(r'=\r?\n')
_QP_ESCAPES_RE = re.compile(r'(?:=[0-9A-Fa-f]{2})+')
_HSPACE_RE = re.compile(r'[ \t\xa0]+')

# &amp; must stay last so "&amp;lt;" decodes to "&lt;" and not "<"
_ENTITIES = (
    ('&nbsp;', ' '),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&amp;', '&'),
)


def split_headers_and_body(raw: str) -> Tuple[str, str, bool]:
    """
    Split a raw message at the first blank line.

    Args:
        raw: Raw message (or MIME part) text

    Returns:
        Tuple of (headers, body, separator_found). When no blank line is
        present the headers are empty and the whole text is the body.
    """
    leading = re.match(r'\r?\n', raw)
    if leading:
        # Blank first line: no headers at all
        return '', raw[leading.end():], True

    match = _BLANK_LINE_RE.search(raw)
    if not match:
        return '', raw, False
    return raw[:match.start()], raw[match.end():], True


def find_boundary(headers: str) -> Optional[str]:
    """Return the multipart boundary declared in a header block, if any."""
    match = _BOUNDARY_RE.search(headers)
    if not match:
        return None
    return match.group(1) or match.group(2)


def find_content_type(headers: str) -> Optional[str]:
    """Return the lowercase media type of a header block (e.g. 'text/html')."""
    match = _CONTENT_TYPE_RE.search(headers)
    return match.group(1).lower() if match else None


def split_multipart(body: str, boundary: str) -> List[str]:
    """
    Split a multipart body into its raw parts.

    The preamble before the first delimiter and anything after the closing
    delimiter are dropped.
    """
    delimiter = '--' + boundary
    chunks = body.split(delimiter)
    parts = []
    for chunk in chunks[1:]:
        if chunk.startswith('--'):
            break
        # Drop the remainder of the delimiter line and the CRLF before the next one
        chunk = re.sub(r'^[ \t]*\r?\n', '', chunk, count=1)
        chunk = re.sub(r'\r?\n$', '', chunk, count=1)
        parts.append(chunk)
    return parts


def _leaf_parts(headers: str, body: str, depth: int = 0) -> List[Tuple[str, str]]:
    """Flatten a (possibly nested) multipart entity into (content_type, body) leaves."""
    boundary = find_boundary(headers)
    if boundary is None and depth == 0:
        # Single-part message: the whole body is plain text unless declared HTML
        content_type = find_content_type(headers)
        return [(content_type if content_type == 'text/html' else DEFAULT_CONTENT_TYPE, body)]
    if boundary is None or depth >= MAX_MULTIPART_DEPTH:
        return [(find_content_type(headers) or DEFAULT_CONTENT_TYPE, body)]

    leaves = []
    for part in split_multipart(body, boundary):
        part_headers, part_body, found = split_headers_and_body(part)
        if not found:
            # Part with no header block at all: implicit text/plain
            part_headers, part_body = '', part
        leaves.extend(_leaf_parts(part_headers, part_body, depth + 1))
    return leaves


def select_text_part(parts: List[Tuple[str, str]]) -> Optional[Tuple[str, str]]:
    """Pick the first text/plain part, else the first text/html part."""
    for content_type, body in parts:
        if content_type == 'text/plain':
            return content_type, body
    for content_type, body in parts:
        if content_type == 'text/html':
            return content_type, body
    return None


def strip_html_tags(text: str) -> str:
    """Replace every <...> span with a single space. Unbalanced markup is left alone."""
    return _TAG_RE.sub(' ', text)


def _decode_escape_run(match: re.Match) -> str:
    encoded = match.group(0).replace('=', '')
    return bytes.fromhex(encoded).decode('utf-8', errors='replace')


def decode_quoted_printable(text: str) -> str:
    """
    Decode quoted-printable content.

    Soft line breaks ('=' at end of line) are removed, runs of =XY escapes are
    turned into bytes and decoded as UTF-8 so multi-byte characters survive.
    Malformed escapes such as '=ZZ' are left untouched.

    Args:
        text: Quoted-printable encoded text

    Returns:
        str: Decoded text

    Example:
        >>> decode_quoted_printable("caf=C3=A9 is=\\nopen =3D yes")
        'café isopen = yes'
    """
    text = _SOFT_BREAK_RE.sub('', text)
    return _QP_ESCAPES_RE.sub(_decode_escape_run, text)


def normalize_text(text: str) -> str:
    """Normalize line endings, decode basic entities, collapse spacing and lowercase."""
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    for entity, literal in _ENTITIES:
        text = text.replace(entity, literal)
    lines = [_HSPACE_RE.sub(' ', line).rstrip() for line in text.split('\n')]
    return '\n'.join(lines).strip().lower()


def extract_body(raw: str) -> ExtractedBody:
    """
    Extract the normalized human-readable body of a raw email.

    Args:
        raw: Full raw email text

    Returns:
        ExtractedBody with the normalized text and extraction diagnostics.
        A multipart message without any text part yields empty text.

    Example:
        >>> extract_body("From: a@b.com\\n\\nHello =\\nWorld").text
        'hello world'
    """
    raw = raw or ''
    headers, body, separator_found = split_headers_and_body(raw)
    if not separator_found:
        logger.warning("No header/body separator found, treating whole message as body")

    parts = _leaf_parts(headers, body)
    selected = select_text_part(parts)
    if selected is None:
        logger.warning(f"No text/plain or text/html part among {len(parts)} MIME part(s)")
        return ExtractedBody(
            text='',
            content_type=None,
            header_separator_found=separator_found,
            part_count=len(parts)
        )

    content_type, text = selected
    if content_type == 'text/html':
        text = strip_html_tags(text)
    text = decode_quoted_printable(text)
    text = normalize_text(text)

    logger.info(
        f"Extracted body: content_type={content_type}, parts={len(parts)}, "
        f"length={len(text)}"
    )
    return ExtractedBody(
        text=text,
        content_type=content_type,
        header_separator_found=separator_found,
        part_count=len(parts)
    )


def extract_normalized_body(raw: str) -> str:
    """Return only the normalized body text of a raw email."""
    return extract_body(raw).text
