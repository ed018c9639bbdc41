"""
Proof payload construction.

Two modes, chosen by the caller through the ProofMode variant:

- TestProof: a structurally valid placeholder proof with fixed pi values and
  public signals derived from the domain and a per-attempt nullifier seed.
  It only exercises the submission plumbing and proves nothing.
- RealProof: delegates to the external ZK Email prover and reshapes its proof
  into the fixed ProofPayload tuple.

The domain-to-blueprint mapping is passed in by the caller; it is static
configuration, not state held here.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Mapping, Optional

from .models import ProofMode, ProofPayload, RealProof, TestProof, UINT256_MAX
from services import hashing

logger = logging.getLogger(__name__)

# Characters of the raw email mixed into the test-mode nullifier seed
NULLIFIER_FRAGMENT_LENGTH = 1024

PLACEHOLDER_PI_A = (1, 2)
PLACEHOLDER_PI_B = ((3, 4), (5, 6))
PLACEHOLDER_PI_C = (7, 8)


class ProofError(Exception):
    """Base class for proof construction failures."""
    pass


class BlueprintUnavailableError(ProofError):
    """Raised when no blueprint is configured for the email's domain."""
    pass


class ProofInvalidError(ProofError):
    """Raised when the prover's own verification rejects the generated proof."""
    pass


class MalformedProofError(ProofError):
    """Raised when the prover's proof object cannot be reshaped into a ProofPayload."""
    pass


class ProofInProgressError(ProofError):
    """Raised when a second proof is requested while one is still running."""
    pass


def to_uint256(value: Any, field_name: str = 'value') -> int:
    """
    Convert a prover field element to an int.

    Accepts ints, decimal strings and 0x-prefixed hex strings.

    Raises:
        MalformedProofError: If the value is not a valid uint256
    """
    if isinstance(value, bool):
        raise MalformedProofError(f"{field_name}: boolean is not a field element")

    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith('0x'):
                number = int(text[2:], 16)
            else:
                number = int(text, 10)
        except ValueError:
            raise MalformedProofError(f"{field_name}: not an integer: {value[:80]!r}")
    else:
        raise MalformedProofError(f"{field_name}: unsupported type {type(value).__name__}")

    if number < 0 or number > UINT256_MAX:
        raise MalformedProofError(f"{field_name}: out of uint256 range")
    return number


def _pair(values: Any, field_name: str) -> tuple:
    # snarkjs emits projective coordinates; only the first two are used
    if not isinstance(values, (list, tuple)) or len(values) < 2:
        raise MalformedProofError(f"{field_name}: expected at least 2 elements")
    return (
        to_uint256(values[0], f"{field_name}[0]"),
        to_uint256(values[1], f"{field_name}[1]"),
    )


def payload_from_prover_proof(proof: Dict[str, Any]) -> ProofPayload:
    """
    Reshape a prover proof object into a ProofPayload.

    Args:
        proof: Proof object with "proofData" {pi_a, pi_b, pi_c} and "publicOutputs"

    Returns:
        ProofPayload with every field converted to uint256 ints

    Raises:
        MalformedProofError: If required fields are missing or not numeric
    """
    if not isinstance(proof, dict):
        raise MalformedProofError(f"proof must be an object, got {type(proof).__name__}")

    proof_data = proof.get('proofData')
    if not isinstance(proof_data, dict):
        raise MalformedProofError("proof is missing proofData")

    pi_b = proof_data.get('pi_b')
    if not isinstance(pi_b, (list, tuple)) or len(pi_b) < 2:
        raise MalformedProofError("pi_b: expected at least 2 rows")

    outputs = proof.get('publicOutputs')
    if not isinstance(outputs, (list, tuple)):
        raise MalformedProofError("proof is missing publicOutputs")

    return ProofPayload(
        pi_a=_pair(proof_data.get('pi_a'), 'pi_a'),
        pi_b=(_pair(pi_b[0], 'pi_b[0]'), _pair(pi_b[1], 'pi_b[1]')),
        pi_c=_pair(proof_data.get('pi_c'), 'pi_c'),
        public_signals=tuple(
            to_uint256(value, f"publicOutputs[{index}]") for index, value in enumerate(outputs)
        )
    )


async def _run_blocking(func, *args):
    """
    Run a blocking prover call in a worker thread.

    A cancelled caller still waits for the worker to return before the
    CancelledError propagates, so no prover request outlives its session.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        logger.info(f"Cancellation requested, waiting for {getattr(func, '__name__', 'prover call')} to return")
        await asyncio.gather(future, return_exceptions=True)
        raise


def build_test_payload(raw_email: str, domain: str, mode: TestProof) -> ProofPayload:
    """
    Build the placeholder proof used in test mode.

    publicSignals = [keccak(domain), keccak(email fragment + bounty id + timestamp)]
    so each attempt gets a distinct nullifier.
    """
    timestamp_ms = mode.timestamp_ms if mode.timestamp_ms is not None else int(time.time() * 1000)
    nullifier_seed = f"{(raw_email or '')[:NULLIFIER_FRAGMENT_LENGTH]}{mode.bounty_id}{timestamp_ms}"

    return ProofPayload(
        pi_a=PLACEHOLDER_PI_A,
        pi_b=PLACEHOLDER_PI_B,
        pi_c=PLACEHOLDER_PI_C,
        public_signals=(hashing.keccak_int(domain), hashing.keccak_int(nullifier_seed))
    )


class ProofPayloadBuilder:
    """
    Builds ProofPayloads in test or real mode.

    Args:
        blueprints: Mapping of lowercase domain -> blueprint id
        prover_client: Object exposing load_blueprint(id) (see
            integrations.zkemail_prover.ProverClient); only needed for real mode
    """

    def __init__(self, blueprints: Optional[Mapping[str, str]] = None, prover_client: Any = None):
        self.blueprints = {k.strip().lower(): v for k, v in (blueprints or {}).items()}
        self.prover_client = prover_client

    def resolve_blueprint(self, domain: str, mode: RealProof) -> str:
        """
        Return the blueprint id for a real-mode proof.

        The domain must have a configured blueprint. An explicit
        mode.blueprint_id is only accepted when it is that blueprint.

        Raises:
            BlueprintUnavailableError: If the domain has no blueprint, or the
                explicit id is not the one configured for the domain
        """
        blueprint_id = self.blueprints.get((domain or '').strip().lower())
        if not blueprint_id:
            raise BlueprintUnavailableError(f"No blueprint configured for domain: {domain}")

        if mode.blueprint_id and mode.blueprint_id != blueprint_id:
            raise BlueprintUnavailableError(
                f"Blueprint {mode.blueprint_id} is not configured for domain: {domain}"
            )
        return blueprint_id

    async def build(self, raw_email: str, domain: str, mode: ProofMode) -> ProofPayload:
        """
        Build a proof payload for a verified email.

        Args:
            raw_email: Raw email text (already verified)
            domain: Extracted sending domain
            mode: TestProof or RealProof

        Returns:
            ProofPayload

        Raises:
            BlueprintUnavailableError: Real mode with no blueprint for the domain
            ProofInvalidError: The prover rejected its own proof
            MalformedProofError: The proof could not be reshaped
        """
        if isinstance(mode, TestProof):
            logger.info(f"Building test-mode proof payload for domain={domain}")
            return build_test_payload(raw_email, domain, mode)

        if isinstance(mode, RealProof):
            return await self._build_real(raw_email, domain, mode)

        raise TypeError(f"Unsupported proof mode: {type(mode).__name__}")

    async def _build_real(self, raw_email: str, domain: str, mode: RealProof) -> ProofPayload:
        blueprint_id = self.resolve_blueprint(domain, mode)
        if self.prover_client is None:
            raise BlueprintUnavailableError("No prover client configured for real-mode proofs")

        logger.info(f"Generating real proof: domain={domain}, blueprint={blueprint_id}")
        start_time = time.time()

        blueprint = await _run_blocking(self.prover_client.load_blueprint, blueprint_id)
        prover = blueprint.create_prover()
        proof = await _run_blocking(prover.generate_proof, raw_email)

        is_valid = await _run_blocking(blueprint.verify_proof, proof)
        if not is_valid:
            logger.error(f"Prover rejected generated proof: blueprint={blueprint_id}")
            raise ProofInvalidError(f"Generated proof failed verification for blueprint {blueprint_id}")

        payload = payload_from_prover_proof(proof)
        logger.info(
            f"Real proof ready: blueprint={blueprint_id}, public_signals={len(payload.public_signals)}, "
            f"elapsed={time.time() - start_time:.2f}s"
        )
        return payload


class ProofSession:
    """
    Allows at most one in-flight proof per user session.

    Cancelling the awaiting task (navigation away, explicit abort) stops the
    proof after the prover call currently running returns. The session stays
    in flight until then, after which a new attempt can start.
    """

    def __init__(self, builder: ProofPayloadBuilder):
        self.builder = builder
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def build(self, raw_email: str, domain: str, mode: ProofMode) -> ProofPayload:
        if self._in_flight:
            raise ProofInProgressError("A proof is already being generated for this session")

        self._in_flight = True
        try:
            return await self.builder.build(raw_email, domain, mode)
        except asyncio.CancelledError:
            logger.warning(f"Proof generation cancelled for domain={domain}")
            raise
        finally:
            self._in_flight = False
