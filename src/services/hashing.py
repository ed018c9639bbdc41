"""
Keccak-256 commitments for on-chain comparison.

The bounty factory stores keyword commitments as bytes32 keccak256 digests
of the lowercased, trimmed keyword; the same function is used here so the
escrow can compare them directly.
"""

from typing import Iterable, List

from web3 import Web3


def keccak_text(text: str) -> bytes:
    """32-byte keccak256 digest of the UTF-8 encoding of text."""
    return bytes(Web3.keccak(text.encode('utf-8')))


def keccak_int(text: str) -> int:
    """keccak256 of text as a big-endian uint256 (for public signals)."""
    return int.from_bytes(keccak_text(text), 'big')


def hash_keyword(keyword: str) -> bytes:
    """
    Canonical commitment for a keyword.

    Args:
        keyword: Keyword in any case, surrounding whitespace allowed

    Returns:
        bytes: 32-byte keccak256 digest of keyword.strip().lower()
    """
    return keccak_text(keyword.strip().lower())


def hash_keywords(keywords: Iterable[str]) -> List[bytes]:
    """Hash keywords preserving their order."""
    return [hash_keyword(keyword) for keyword in keywords]
