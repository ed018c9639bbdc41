"""
Domain-to-blueprint configuration.

Each email provider signs DKIM differently, so each required domain needs its
own ZK Email blueprint. The mapping is loaded with the following priority:
1. S3 override (optional, for adding providers without a redeploy)
2. Local file (blueprints.json packaged next to this module)

The mapping is cached in memory for warm Lambda invocations with TTL and is
handed to the proof builder as a plain dict.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Dict, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# After this many seconds the mapping is reloaded on next request (default: 5 minutes)
CACHE_TTL_SECONDS = int(os.environ.get('BLUEPRINT_CACHE_TTL', '300'))

# Module-level cache: (mapping, timestamp)
_blueprint_cache: Optional[Tuple[Dict[str, str], float]] = None

s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

s3_client = boto3.client('s3', config=s3_config)

BLUEPRINT_BUCKET = os.environ.get('BLUEPRINT_BUCKET')
BLUEPRINT_KEY = os.environ.get('BLUEPRINT_KEY', 'config/blueprints.json')

BLUEPRINTS_FILE = Path(__file__).parent / 'blueprints.json'


def parse_blueprint_map(content: str) -> Dict[str, str]:
    """
    Parse and validate a blueprint mapping document.

    Args:
        content: JSON object of {domain: blueprint_id}

    Returns:
        dict: Mapping with lowercase, trimmed domains

    Raises:
        ValueError: If the document is not a JSON object of non-empty strings
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Blueprint mapping is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ValueError("Blueprint mapping must be a JSON object of domain -> blueprint id")

    mapping = {}
    for domain, blueprint_id in data.items():
        if not isinstance(blueprint_id, str) or not blueprint_id.strip() or not domain.strip():
            raise ValueError(f"Invalid blueprint entry for domain {domain!r}")
        mapping[domain.strip().lower()] = blueprint_id.strip()
    return mapping


def _load_from_filesystem() -> Dict[str, str]:
    """
    Load the packaged mapping.

    Raises:
        FileNotFoundError: If blueprints.json is missing
    """
    logger.info(f"Loading blueprint mapping from filesystem: {BLUEPRINTS_FILE}")
    with open(BLUEPRINTS_FILE, 'r', encoding='utf-8') as f:
        return parse_blueprint_map(f.read())


def _load_from_s3() -> Dict[str, str]:
    """
    Load the mapping override from S3.

    Raises:
        ValueError: If BLUEPRINT_BUCKET not set or the document is invalid
    """
    if not BLUEPRINT_BUCKET:
        raise ValueError("BLUEPRINT_BUCKET environment variable not set")

    logger.info(f"Loading blueprint mapping from S3: s3://{BLUEPRINT_BUCKET}/{BLUEPRINT_KEY}")
    response = s3_client.get_object(Bucket=BLUEPRINT_BUCKET, Key=BLUEPRINT_KEY)
    return parse_blueprint_map(response['Body'].read().decode('utf-8'))


def load_blueprint_map(use_cache: bool = True) -> Dict[str, str]:
    """
    Load the domain -> blueprint id mapping with caching and fallback.

    Priority: Cache -> S3 override -> Local file

    Args:
        use_cache: Use cached version if available (default: True)

    Returns:
        dict: Copy of the mapping

    Raises:
        ValueError: If no mapping can be loaded
    """
    global _blueprint_cache
    current_time = time.time()

    if use_cache and _blueprint_cache is not None:
        cached_mapping, cached_time = _blueprint_cache
        age_seconds = current_time - cached_time
        if age_seconds < CACHE_TTL_SECONDS:
            logger.info(f"Using cached blueprint mapping (age: {int(age_seconds)}s, TTL: {CACHE_TTL_SECONDS}s)")
            return dict(cached_mapping)
        logger.info(f"Blueprint mapping cache expired (age: {int(age_seconds)}s), reloading...")

    mapping = None

    if BLUEPRINT_BUCKET:
        try:
            mapping = _load_from_s3()
            logger.info("Using S3 override for blueprint mapping")
        except (ClientError, ValueError) as e:
            logger.info(
                f"S3 blueprint override not available ({e.__class__.__name__}), "
                f"falling back to local file"
            )

    if mapping is None:
        try:
            mapping = _load_from_filesystem()
        except FileNotFoundError:
            logger.error(f"Blueprint mapping not found. Expected location: {BLUEPRINTS_FILE}")
            raise ValueError("Blueprint mapping not found in S3 or local filesystem")

    logger.info(f"Loaded blueprint mapping for {len(mapping)} domain(s)")
    _blueprint_cache = (mapping, current_time)
    return dict(mapping)


def clear_cache() -> None:
    """Forget the cached mapping so the next load reads it again."""
    global _blueprint_cache
    _blueprint_cache = None
    logger.info("Blueprint mapping cache cleared")
