"""
Keyword matching against a normalized email body.

Matching is case-insensitive substring containment, not whole-word: a
required "secret" is also satisfied by "secretary".
"""

import logging
from typing import Iterable, List

from domain.models import MatchResult

logger = logging.getLogger(__name__)


def normalize_keyword(keyword: str) -> str:
    """Canonical form used for matching and hashing."""
    return keyword.strip().lower()


def normalize_requirement(keywords: Iterable[str]) -> List[str]:
    """
    Drop case-insensitive duplicates, keeping the first occurrence.

    Args:
        keywords: Required keywords in bounty order

    Returns:
        Keywords exactly as given, unique after normalization, original order
    """
    seen = set()
    unique = []
    for keyword in keywords:
        normalized = normalize_keyword(keyword)
        if normalized in seen:
            logger.info(f"Dropping duplicate keyword: {keyword!r}")
            continue
        seen.add(normalized)
        unique.append(keyword)
    return unique


def match_keywords(body: str, keywords: Iterable[str]) -> MatchResult:
    """
    Classify each required keyword as found or missing in the body.

    Args:
        body: Normalized (lowercase) email body
        keywords: Required keywords

    Returns:
        MatchResult with every keyword in exactly one list, input order kept

    Example:
        >>> match_keywords("this contains secret data", ["Secret", "fraud"])
        MatchResult(found=['Secret'], missing=['fraud'])
    """
    haystack = (body or '').lower()
    result = MatchResult.empty()

    for keyword in normalize_requirement(keywords):
        if normalize_keyword(keyword) in haystack:
            result.found.append(keyword)
        else:
            result.missing.append(keyword)

    logger.info(f"Keyword match: found={len(result.found)}, missing={len(result.missing)}")
    return result
