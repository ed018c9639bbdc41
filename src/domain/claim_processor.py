"""
Claim processing pipeline - core business logic.

This module handles one bounty claim attempt end to end:
1. Verify the raw email against the bounty's domain and keywords
2. Build the proof payload (test or real mode) - only if verification passed
3. Hash the matched keywords - only if the proof was built
4. Return a ClaimResult carrying the submission request

All errors are caught and returned as ClaimResult with success=False.
No exceptions propagate out of the public methods, except cancellation.
"""

import asyncio
import logging
from typing import Optional, Union

from .models import BountyRequirement, ClaimResult, ProofMode, SubmissionRequest, TestProof
from .proof_builder import ProofError, ProofPayloadBuilder, ProofSession
from .verifier import EmailVerifier, decode_raw_email
from services import hashing

logger = logging.getLogger(__name__)


class ClaimProcessor:
    """
    Runs the verification gate and, on success, proof construction.

    Args:
        builder: Proof payload builder (holds the blueprint mapping and prover client)
        verifier: Email verifier (default settings if omitted)
    """

    def __init__(self, builder: ProofPayloadBuilder, verifier: Optional[EmailVerifier] = None):
        self.verifier = verifier or EmailVerifier()
        self.session = ProofSession(builder)

    async def process(
        self,
        raw_email: Union[str, bytes],
        requirement: BountyRequirement,
        mode: Optional[ProofMode] = None,
        verify_only: bool = False
    ) -> ClaimResult:
        """
        Process a single claim attempt.

        Args:
            raw_email: Raw .eml content
            requirement: Bounty domain and keyword requirement
            mode: TestProof or RealProof (default: TestProof for this bounty)
            verify_only: Stop after the verdict, without building a proof

        Returns:
            ClaimResult with success=True and a submission, or success=False
            with the verdict and/or error message
        """
        bounty_id = requirement.bounty_id
        logger.info(f"Processing claim for bounty {bounty_id}: required_domain={requirement.required_domain}")

        text = decode_raw_email(raw_email)
        verdict = self.verifier.verify(text, requirement.required_domain, requirement.required_keywords)

        if not verdict.success:
            return ClaimResult(
                success=False,
                bounty_id=bounty_id,
                verdict=verdict,
                error_message=self._describe_failure(verdict)
            )

        if verify_only:
            logger.info(f"Verify-only claim for bounty {bounty_id} passed")
            return ClaimResult(success=True, bounty_id=bounty_id, verdict=verdict)

        if mode is None:
            mode = TestProof(bounty_id=bounty_id)

        try:
            payload = await self.session.build(text, verdict.extracted_domain, mode)
        except asyncio.CancelledError:
            raise
        except ProofError as e:
            logger.error(f"Proof construction failed for bounty {bounty_id}: {e}")
            return ClaimResult(success=False, bounty_id=bounty_id, verdict=verdict, error_message=str(e))
        except Exception as e:
            logger.error(f"Prover failure for bounty {bounty_id}: {e}", exc_info=True)
            return ClaimResult(
                success=False,
                bounty_id=bounty_id,
                verdict=verdict,
                error_message=f"Proof generation failed: {e}"
            )

        submission = SubmissionRequest(
            payload=payload,
            extracted_domain=verdict.extracted_domain,
            keyword_hashes=tuple(hashing.hash_keywords(verdict.match_result.found))
        )

        self._log_processing_success(bounty_id, submission)
        return ClaimResult(success=True, bounty_id=bounty_id, verdict=verdict, submission=submission)

    def _describe_failure(self, verdict) -> str:
        """User-facing explanation of a failed verdict."""
        if verdict.extracted_domain is None:
            return "No sending domain could be found in the email headers"
        if not verdict.domain_matches:
            return (
                f"Email domain '{verdict.extracted_domain}' does not match "
                f"required domain '{verdict.required_domain}'"
            )
        return f"Required keywords missing: {', '.join(verdict.match_result.missing)}"

    def _log_processing_success(self, bounty_id: str, submission: SubmissionRequest) -> None:
        """Log successful processing summary."""
        logger.info("=" * 50)
        logger.info("CLAIM READY FOR SUBMISSION")
        logger.info(f"Bounty: {bounty_id}")
        logger.info(f"Domain: {submission.extracted_domain}")
        logger.info(f"Keyword hashes: {len(submission.keyword_hashes)}")
        logger.info(f"Public signals: {len(submission.payload.public_signals)}")
        logger.info("=" * 50)
