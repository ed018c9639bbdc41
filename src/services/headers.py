"""
Sending-domain extraction from raw email headers.

Heuristics are tried in priority order and the first one that yields a
domain wins:
1. From: Display Name <local@domain>
2. From: local@domain
3. DKIM-Signature: ...; d=domain; ...

Header names are matched case-insensitively and only at line starts. The
extracted domain is trimmed and lowercased. A message with no usable header
yields empty ParsedHeaders; nothing here raises.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple

from domain.models import ParsedHeaders
from services.email import split_headers_and_body

logger = logging.getLogger(__name__)

_FROM_ANGLE_RE = re.compile(r'^From:[^\r\n]*<[^>\r\n]*@([^>@\r\n]+)>', re.IGNORECASE | re.MULTILINE)
_FROM_BARE_RE = re.compile(r'^From:[ \t]*[^\s<>@]+@([^\s<>@;,]+)', re.IGNORECASE | re.MULTILINE)
_DKIM_HEADER_RE = re.compile(
    r'^DKIM-Signature:([^\r\n]*(?:\r?\n[ \t][^\r\n]*)*)',
    re.IGNORECASE | re.MULTILINE
)
_DKIM_DOMAIN_TAG_RE = re.compile(r'(?:^|[;\s])d=([^;\s]+)', re.IGNORECASE)
# RFC 5322 continuation: line break followed by whitespace
_FOLDED_LINE_RE = re.compile(r'\r?\n(?=[ \t])')


def _header_section(raw: str) -> str:
    """Return the unfolded text before the first blank line (the whole text if none)."""
    headers, _, found = split_headers_and_body(raw)
    return _FOLDED_LINE_RE.sub(' ', headers if found else raw)


def _normalize_domain(value: str) -> Optional[str]:
    domain = value.strip().lower()
    return domain or None


def from_angle_domain(headers: str) -> Optional[str]:
    """From: Display Name <local@domain>"""
    match = _FROM_ANGLE_RE.search(headers)
    return _normalize_domain(match.group(1)) if match else None


def from_bare_domain(headers: str) -> Optional[str]:
    """From: local@domain (no angle brackets)"""
    match = _FROM_BARE_RE.search(headers)
    return _normalize_domain(match.group(1)) if match else None


def dkim_domain(headers: str) -> Optional[str]:
    """d= tag of the first DKIM-Signature header that carries one."""
    for header in _DKIM_HEADER_RE.finditer(headers):
        match = _DKIM_DOMAIN_TAG_RE.search(header.group(1))
        if match:
            return _normalize_domain(match.group(1))
    return None


# (name, strategy, is_from_header) in priority order
DOMAIN_STRATEGIES: List[Tuple[str, Callable[[str], Optional[str]], bool]] = [
    ('from-angle', from_angle_domain, True),
    ('from-bare', from_bare_domain, True),
    ('dkim-d-tag', dkim_domain, False),
]


def scan_headers(raw: str) -> ParsedHeaders:
    """
    Extract the sending domain from a raw message.

    Args:
        raw: Full raw email text (RFC 5322 format, headers first)

    Returns:
        ParsedHeaders with from_domain or dkim_domain set by the first
        matching strategy, or both None if no strategy matched

    Example:
        >>> scan_headers("From: Alice <alice@Example.COM>\\n\\nHi").from_domain
        'example.com'
    """
    headers = _header_section(raw or '')

    for name, strategy, is_from_header in DOMAIN_STRATEGIES:
        domain = strategy(headers)
        if domain:
            logger.info(f"Sending domain found via {name}: {domain}")
            if is_from_header:
                return ParsedHeaders(from_domain=domain)
            return ParsedHeaders(dkim_domain=domain)

    logger.warning("No sending domain found in message headers")
    return ParsedHeaders()


def extract_domain(raw: str) -> Optional[str]:
    """Shortcut for scan_headers(raw).domain."""
    return scan_headers(raw).domain
