"""
AWS Lambda handler for bounty claim verification and proof preparation.

Thin orchestration layer that loads the email and the bounty requirement,
then delegates to ClaimProcessor.

Expected event format:
{
    "bountyId": "3",
    "email": "<raw .eml text>",             # or "emailS3": {"bucket": ..., "key": ...}
    "requiredDomain": "bigbank.com",         # optional, read from chain if absent
    "requiredKeywords": ["fraud"],           # optional, read from chain with the domain
    "mode": "test",                          # "test" (default) or "real"
    "blueprintId": "owner/Blueprint@v1",     # optional, real mode; must match the domain mapping
    "verifyOnly": false
}
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict

from domain.claim_processor import ClaimProcessor
from domain.models import BountyRequirement, RealProof, TestProof
from domain.proof_builder import ProofPayloadBuilder
from integrations import bounty_registry, zkemail_prover
from services import blueprints as blueprint_service
from services import s3 as s3_service

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

ENVIRONMENT = os.environ.get('ENVIRONMENT', 'dev')

JSON_HEADERS = {
    'Content-Type': 'application/json',
    'Access-Control-Allow-Origin': '*'
}


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': JSON_HEADERS,
        'body': json.dumps(body)
    }


def _load_email(event: Dict[str, Any]) -> bytes:
    """
    Return the raw email from the event, inline or from S3.

    Raises:
        ValueError: If neither source is given or the S3 fetch fails
    """
    inline = event.get('email')
    if inline:
        return inline.encode('utf-8') if isinstance(inline, str) else inline

    location = event.get('emailS3') or {}
    if location:
        return s3_service.fetch_email_from_s3(location.get('bucket'), location.get('key'))

    raise ValueError("email or emailS3 is required")


def _load_requirement(event: Dict[str, Any]) -> BountyRequirement:
    """
    Build the bounty requirement from the event, reading the chain if needed.

    Raises:
        ValueError: If bountyId is missing or the bounty cannot be found
    """
    bounty_id = event.get('bountyId')
    if bounty_id is None or str(bounty_id).strip() == '':
        raise ValueError("bountyId is required")
    bounty_id = str(bounty_id).strip()

    required_domain = event.get('requiredDomain')
    if required_domain:
        keywords = event.get('requiredKeywords') or []
        if not isinstance(keywords, list):
            raise ValueError("requiredKeywords must be a list of strings")
        return BountyRequirement(
            bounty_id=bounty_id,
            required_domain=required_domain,
            required_keywords=[str(k) for k in keywords]
        )

    return bounty_registry.BountyReader().get_requirement(bounty_id)


def _build_processor(mode_name: str) -> ClaimProcessor:
    if mode_name == 'real':
        builder = ProofPayloadBuilder(
            blueprints=blueprint_service.load_blueprint_map(),
            prover_client=zkemail_prover.ProverClient()
        )
    else:
        builder = ProofPayloadBuilder()
    return ClaimProcessor(builder)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Verify a claim email and prepare the proof submission.

    Returns:
        API-style response: 200 success, 400 bad input, 422 verification
        failed, 502 proof generation failed, 500 unexpected error
    """
    logger.info(f"Environment: {ENVIRONMENT}")
    logger.info(f"Received claim request: bountyId={event.get('bountyId')}, mode={event.get('mode', 'test')}")

    try:
        mode_name = str(event.get('mode', 'test')).lower()
        if mode_name not in ('test', 'real'):
            raise ValueError(f"mode must be 'test' or 'real', got: {mode_name}")

        requirement = _load_requirement(event)
        raw_email = _load_email(event)

        if mode_name == 'real':
            mode = RealProof(blueprint_id=event.get('blueprintId'))
        else:
            mode = TestProof(bounty_id=requirement.bounty_id, timestamp_ms=event.get('timestampMs'))

        processor = _build_processor(mode_name)
        result = asyncio.run(processor.process(
            raw_email,
            requirement,
            mode=mode,
            verify_only=bool(event.get('verifyOnly', False))
        ))

        if result.success:
            logger.info(f"✓ Claim prepared for bounty {result.bounty_id}")
            return _response(200, result.to_dict())

        logger.warning(f"⚠ Claim rejected for bounty {result.bounty_id}: {result.error_message}")
        if result.verdict is not None and not result.verdict.success:
            return _response(422, result.to_dict())
        return _response(502, result.to_dict())

    except ValueError as ve:
        logger.error(f"Validation error: {str(ve)}")
        return _response(400, {'error': str(ve)})

    except Exception as e:
        logger.error(f"Error processing claim: {str(e)}", exc_info=True)
        return _response(500, {
            'error': 'Internal server error',
            'message': str(e)
        })


def health_check(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Simple health check endpoint for monitoring.
    """
    return _response(200, {
        'status': 'healthy',
        'environment': ENVIRONMENT,
        'proverConfigured': bool(zkemail_prover.PROVER_FUNCTION_NAME)
    })
