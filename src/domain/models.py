"""
Data models for the claim verification domain.

These type-safe data structures define clear contracts between the email
verifier, the proof payload builder and the submission layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

UINT256_MAX = 2 ** 256 - 1


class VerificationIssue(str, Enum):
    """Reasons a verification attempt did not fully pass."""
    DOMAIN_NOT_FOUND = 'DomainNotFound'
    DOMAIN_MISMATCH = 'DomainMismatch'
    KEYWORDS_MISSING = 'KeywordsMissing'
    MALFORMED_EMAIL = 'MalformedEmail'


@dataclass(frozen=True)
class ParsedHeaders:
    """
    Sending domain candidates found in the raw message headers.

    Attributes:
        from_domain: Domain taken from the From header (lowercase) or None
        dkim_domain: Domain taken from the DKIM-Signature d= tag (lowercase) or None
    """
    from_domain: Optional[str] = None
    dkim_domain: Optional[str] = None

    @property
    def domain(self) -> Optional[str]:
        """From header wins over the DKIM d= tag."""
        return self.from_domain or self.dkim_domain


@dataclass(frozen=True)
class ExtractedBody:
    """
    Normalized body text together with how it was found.

    Attributes:
        text: Lowercase, whitespace-normalized plaintext (the NormalizedBody)
        content_type: Content type of the part the text was taken from
        header_separator_found: False when no blank line separated headers from body
        part_count: Number of MIME leaf parts seen (1 for non-multipart messages)
    """
    text: str
    content_type: Optional[str] = None
    header_separator_found: bool = True
    part_count: int = 1


@dataclass
class MatchResult:
    """
    Outcome of matching required keywords against a body.

    Both lists keep the order of the keyword requirement.
    """
    found: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> 'MatchResult':
        return cls(found=[], missing=[])

    @property
    def all_found(self) -> bool:
        return not self.missing

    def to_dict(self) -> Dict[str, Any]:
        return {'found': list(self.found), 'missing': list(self.missing)}


@dataclass
class VerificationVerdict:
    """
    Result of verifying one email against one bounty's requirements.

    The verdict never represents failure by raising; every failure cause is
    reported through domain_matches, match_result and issues.

    Attributes:
        domain_matches: True if the extracted domain equals the required domain
        extracted_domain: Domain found in the headers, or None
        required_domain: Domain the bounty requires
        match_result: Keyword classification (empty when no keywords required)
        issues: Failure causes and advisory flags, in detection order
    """
    domain_matches: bool
    extracted_domain: Optional[str]
    required_domain: str
    match_result: MatchResult = field(default_factory=MatchResult.empty)
    issues: List[VerificationIssue] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Overall pass: domain matches and no keyword is missing."""
        return self.domain_matches and not self.match_result.missing

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'domainMatches': self.domain_matches,
            'extractedDomain': self.extracted_domain,
            'requiredDomain': self.required_domain,
            'matchResult': self.match_result.to_dict(),
            'issues': [issue.value for issue in self.issues],
        }

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        return (
            f"VerificationVerdict(success={self.success}, "
            f"domain={self.extracted_domain}, required={self.required_domain}, "
            f"missing={self.match_result.missing})"
        )


def _check_uint256(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must contain ints, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} value out of uint256 range: {value}")


@dataclass(frozen=True)
class ProofPayload:
    """
    Groth16 proof in the exact shape the escrow's submitProof call expects.

    Attributes:
        pi_a: Two field elements
        pi_b: Two-by-two field elements
        pi_c: Two field elements
        public_signals: Public outputs of the circuit, in circuit order
    """
    pi_a: Tuple[int, int]
    pi_b: Tuple[Tuple[int, int], Tuple[int, int]]
    pi_c: Tuple[int, int]
    public_signals: Tuple[int, ...]

    def __post_init__(self):
        if len(self.pi_a) != 2:
            raise ValueError(f"pi_a must have 2 elements, got {len(self.pi_a)}")
        if len(self.pi_b) != 2 or any(len(row) != 2 for row in self.pi_b):
            raise ValueError("pi_b must be a 2x2 matrix")
        if len(self.pi_c) != 2:
            raise ValueError(f"pi_c must have 2 elements, got {len(self.pi_c)}")

        for value in self.pi_a:
            _check_uint256('pi_a', value)
        for row in self.pi_b:
            for value in row:
                _check_uint256('pi_b', value)
        for value in self.pi_c:
            _check_uint256('pi_c', value)
        for value in self.public_signals:
            _check_uint256('public_signals', value)

    def to_contract_tuple(self) -> Tuple[list, list, list, list]:
        """Positional tuple matching (pi_a, pi_b, pi_c, publicSignals)."""
        return (
            list(self.pi_a),
            [list(row) for row in self.pi_b],
            list(self.pi_c),
            list(self.public_signals),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form; uint256 values are rendered as decimal strings."""
        return {
            'pi_a': [str(v) for v in self.pi_a],
            'pi_b': [[str(v) for v in row] for row in self.pi_b],
            'pi_c': [str(v) for v in self.pi_c],
            'publicSignals': [str(v) for v in self.public_signals],
        }


@dataclass(frozen=True)
class TestProof:
    """
    Placeholder proof for exercising the submission flow.

    Attributes:
        bounty_id: Bounty identifier mixed into the nullifier seed
        timestamp_ms: Milliseconds since epoch for the nullifier (None = now)
    """
    __test__ = False  # not a pytest test class

    bounty_id: str = ''
    timestamp_ms: Optional[int] = None


@dataclass(frozen=True)
class RealProof:
    """
    Proof generated by the external prover.

    Attributes:
        blueprint_id: Expected blueprint; must equal the one mapped to the
            email's domain. None just uses the mapping
    """
    blueprint_id: Optional[str] = None


ProofMode = Union[TestProof, RealProof]


@dataclass
class BountyRequirement:
    """
    Requirements a claim must satisfy, as stored by the bounty factory.

    Attributes:
        bounty_id: Bounty identifier
        required_domain: Domain the email must come from
        required_keywords: Keywords the body must contain (may be empty)
    """
    bounty_id: str
    required_domain: str
    required_keywords: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionRequest:
    """
    Everything the escrow proof-submission call needs.

    Attributes:
        payload: Proof tuple
        extracted_domain: Sending domain found in the email
        keyword_hashes: 32-byte keccak digests of the matched keywords
    """
    payload: ProofPayload
    extracted_domain: str
    keyword_hashes: Tuple[bytes, ...] = ()

    def to_contract_args(self) -> Tuple[Any, str, List[bytes]]:
        return (
            self.payload.to_contract_tuple(),
            self.extracted_domain,
            list(self.keyword_hashes),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'proof': self.payload.to_dict(),
            'extractedDomain': self.extracted_domain,
            'keywordHashes': ['0x' + h.hex() for h in self.keyword_hashes],
        }


@dataclass
class ClaimResult:
    """
    Result of a claim processing attempt.

    This explicit result type makes success/failure handling clear
    and prevents exceptions from being used for control flow.

    Attributes:
        success: Whether verification and proof building both succeeded
        bounty_id: Bounty the claim targets
        verdict: Verification verdict (None if the email could not be loaded)
        submission: Data for the submission call (only on success)
        error_message: Error description (if processing failed)
    """
    success: bool
    bounty_id: str
    verdict: Optional[VerificationVerdict] = None
    submission: Optional[SubmissionRequest] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'success': self.success,
            'bountyId': self.bounty_id,
        }
        if self.verdict is not None:
            result['verdict'] = self.verdict.to_dict()
        if self.submission is not None:
            result['submission'] = self.submission.to_dict()
        if self.error_message:
            result['error'] = self.error_message
        return result

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            return f"ClaimResult(success=True, bounty_id={self.bounty_id})"
        else:
            return f"ClaimResult(success=False, bounty_id={self.bounty_id}, error={self.error_message})"


KeywordRequirement = Sequence[str]
