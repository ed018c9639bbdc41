"""
Pre-submission email verification.

Runs the header scanner, the body extractor and the keyword matcher against
one bounty's requirements and folds the outcome into a VerificationVerdict.
This is the gate in front of proof generation and on-chain submission: it
never raises for malformed input, every failure cause is reported in the
verdict instead.
"""

import logging
import os
from typing import Iterable, Optional, Union

from .models import MatchResult, VerificationIssue, VerificationVerdict
from services import email as email_service
from services import headers as header_service
from services import keywords as keyword_service

logger = logging.getLogger(__name__)

# Normalized bodies shorter than this are flagged as MalformedEmail
MIN_BODY_LENGTH = int(os.environ.get('MIN_BODY_LENGTH', '10'))


def decode_raw_email(raw: Union[str, bytes, None]) -> str:
    """Decode uploaded bytes as UTF-8, replacing invalid sequences."""
    if raw is None:
        return ''
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode('utf-8', errors='replace')
    return raw


class EmailVerifier:
    """
    Verifies a raw email against a required domain and keyword set.

    Each call re-derives everything from the raw message; no state is kept
    between attempts.
    """

    def __init__(self, min_body_length: Optional[int] = None):
        self.min_body_length = MIN_BODY_LENGTH if min_body_length is None else min_body_length

    def verify(
        self,
        raw: Union[str, bytes, None],
        required_domain: str,
        keywords: Optional[Iterable[str]] = None
    ) -> VerificationVerdict:
        """
        Verify one email against one bounty's requirements.

        Args:
            raw: Raw email text or bytes
            required_domain: Domain the email must come from
            keywords: Required keywords (None or empty for no keyword check)

        Returns:
            VerificationVerdict; verdict.success is the overall pass/fail
        """
        text = decode_raw_email(raw)
        required = (required_domain or '').strip().lower()
        issues = []

        parsed = header_service.scan_headers(text)
        extracted_domain = parsed.domain

        if extracted_domain is None:
            issues.append(VerificationIssue.DOMAIN_NOT_FOUND)
            domain_matches = False
        else:
            domain_matches = bool(required) and extracted_domain == required
            if not domain_matches:
                issues.append(VerificationIssue.DOMAIN_MISMATCH)

        body = email_service.extract_body(text)
        if not body.header_separator_found or len(body.text) < self.min_body_length:
            issues.append(VerificationIssue.MALFORMED_EMAIL)

        keyword_list = list(keywords or [])
        if keyword_list:
            match_result = keyword_service.match_keywords(body.text, keyword_list)
            if match_result.missing:
                issues.append(VerificationIssue.KEYWORDS_MISSING)
        else:
            match_result = MatchResult.empty()

        verdict = VerificationVerdict(
            domain_matches=domain_matches,
            extracted_domain=extracted_domain,
            required_domain=required,
            match_result=match_result,
            issues=issues
        )

        if verdict.success:
            logger.info(f"Verification passed: domain={extracted_domain}, keywords={len(match_result.found)}")
        else:
            logger.warning(
                f"Verification failed: domain={extracted_domain}, required={required}, "
                f"missing={match_result.missing}, issues={[i.value for i in issues]}"
            )
        return verdict


def verify(
    raw: Union[str, bytes, None],
    required_domain: str,
    keywords: Optional[Iterable[str]] = None
) -> VerificationVerdict:
    """Verify with default settings. See EmailVerifier.verify."""
    return EmailVerifier().verify(raw, required_domain, keywords)
