"""
ZK Email Prover Invocation Module

This module exposes the hosted ZK Email proving service through the same
object model as the ZK Email SDK (blueprint -> prover -> proof). The SDK
itself runs inside a separate proving Lambda function; each operation here
is one synchronous invocation of that function via boto3.

Usage:
    from integrations import zkemail_prover

    client = zkemail_prover.ProverClient()
    blueprint = client.load_blueprint("Bisht13/SuccinctZKResidencyInvite@v3")
    prover = blueprint.create_prover()
    proof = prover.generate_proof(raw_email)
    assert blueprint.verify_proof(proof)

Proof generation takes 10-60 seconds. Calls are not retried; failures are
raised to the caller for a manual retry decision.
"""

import json
import logging
import os
import time
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

# Configure logging
logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exception Classes
# ============================================================================

class ConfigurationError(Exception):
    """Raised when module configuration is invalid or missing."""
    pass


class BlueprintNotFoundError(Exception):
    """Raised when the proving service does not know the requested blueprint."""
    pass


class ProverInvocationError(Exception):
    """Raised when the proving service fails or returns an unusable response."""
    pass


# ============================================================================
# Module-Level Configuration and Initialization
# ============================================================================

PROVER_FUNCTION_NAME = os.environ.get('PROVER_FUNCTION_NAME')
PROVER_READ_TIMEOUT = int(os.environ.get('PROVER_READ_TIMEOUT', '120'))


def _initialize_lambda_client():
    """
    Initialize boto3 Lambda client with timeout configuration.

    Returns:
        boto3.client: Configured Lambda client
    """
    # No retries: a proof attempt is expensive and the caller decides whether to retry
    client_config = Config(
        retries={
            'max_attempts': 0,  # 0 attempts = 1 total call, NO retries
            'mode': 'standard'
        },
        connect_timeout=10,
        read_timeout=PROVER_READ_TIMEOUT
    )

    region = os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-west-2'))

    client = boto3.client(
        'lambda',
        region_name=region,
        config=client_config
    )

    logger.info(
        f"Prover Lambda client initialized: region={region}, "
        f"connect_timeout=10s, read_timeout={PROVER_READ_TIMEOUT}s, max_attempts=0 (no retries)"
    )
    return client


# Initialize at module import time (reused across invocations)
lambda_client = _initialize_lambda_client()


def _require_function_name() -> str:
    """
    Return the configured proving function name.

    Raises:
        ConfigurationError: If PROVER_FUNCTION_NAME is not set
    """
    if not PROVER_FUNCTION_NAME:
        raise ConfigurationError(
            "PROVER_FUNCTION_NAME environment variable is required for real proofs "
            "but not set. Please configure this in your SAM template or Lambda environment."
        )
    return PROVER_FUNCTION_NAME


# ============================================================================
# Core Invocation
# ============================================================================

def invoke_prover(action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Invoke one action on the proving function.

    Args:
        action: One of "loadBlueprint", "generateProof", "verifyProof"
        payload: Action arguments (JSON serializable)

    Returns:
        dict: The "result" object of the function response

    Raises:
        ConfigurationError: If the proving function is not configured
        BlueprintNotFoundError: If the service reports an unknown blueprint
        ProverInvocationError: If the invocation fails or the response is unusable
    """
    function_name = _require_function_name()
    start_time = time.time()
    request = json.dumps({'action': action, **payload})

    logger.info(f"Invoking prover: action={action}, function={function_name}, request_size={len(request)}")

    try:
        response = lambda_client.invoke(
            FunctionName=function_name,
            InvocationType='RequestResponse',
            Payload=request
        )
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))
        logger.error(f"Prover invocation failed: action={action}, error_code={error_code}, error_message={error_message}")
        raise ProverInvocationError(f"Prover invocation failed ({error_code}): {error_message}")

    raw_body = response['Payload'].read()
    try:
        body = json.loads(raw_body) if raw_body else {}
    except json.JSONDecodeError as json_err:
        logger.error(f"Failed to parse prover response: {json_err}, body: {raw_body[:200]}")
        raise ProverInvocationError(f"Prover returned invalid JSON for {action}")

    if response.get('FunctionError'):
        message = body.get('errorMessage', str(body)) if isinstance(body, dict) else str(body)
        logger.error(f"Prover function error: action={action}, error={message}")
        raise ProverInvocationError(f"Prover function error during {action}: {message}")

    if not isinstance(body, dict):
        raise ProverInvocationError(f"Prover returned unexpected response for {action}: {type(body).__name__}")

    if body.get('error'):
        error = body['error']
        if body.get('errorCode') == 'BlueprintNotFound':
            raise BlueprintNotFoundError(error)
        raise ProverInvocationError(f"Prover reported error during {action}: {error}")

    execution_time = time.time() - start_time
    logger.info(f"Prover action {action} succeeded: execution_time={execution_time:.2f}s")
    return body.get('result', {})


# ============================================================================
# SDK-shaped Object Model
# ============================================================================

class Prover:
    """Generates proofs for one blueprint."""

    def __init__(self, blueprint: 'Blueprint'):
        self.blueprint = blueprint

    def generate_proof(self, raw_email: str) -> Dict[str, Any]:
        """
        Generate a proof for a raw email.

        Returns:
            dict: Proof object with "proofData" (pi_a, pi_b, pi_c),
                "publicOutputs" and "publicData"
        """
        if not raw_email:
            raise ValueError("raw_email must be a non-empty string")

        logger.info(f"Generating proof: blueprint={self.blueprint.blueprint_id}, email_length={len(raw_email)}")
        return invoke_prover('generateProof', {
            'blueprintId': self.blueprint.blueprint_id,
            'email': raw_email,
        })


class Blueprint:
    """A circuit specification loaded from the blueprint registry."""

    def __init__(self, blueprint_id: str, props: Optional[Dict[str, Any]] = None):
        self.blueprint_id = blueprint_id
        self.props = props or {}

    def create_prover(self) -> Prover:
        return Prover(self)

    def verify_proof(self, proof: Dict[str, Any]) -> bool:
        """Verify a proof off-chain with the blueprint's verification key."""
        result = invoke_prover('verifyProof', {
            'blueprintId': self.blueprint_id,
            'proof': proof,
        })
        return bool(result.get('valid', False))


class ProverClient:
    """Entry point mirroring the SDK's blueprint registry."""

    def load_blueprint(self, blueprint_id: str) -> Blueprint:
        """
        Load a blueprint by its registry slug (e.g. "owner/Name@v3").

        Raises:
            BlueprintNotFoundError: If the registry has no such blueprint
        """
        if not blueprint_id:
            raise ValueError("blueprint_id must be a non-empty string")

        props = invoke_prover('loadBlueprint', {'blueprintId': blueprint_id})
        logger.info(f"Blueprint loaded: {blueprint_id}")
        return Blueprint(blueprint_id, props)
