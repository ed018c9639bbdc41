"""
S3 access for uploaded claim emails.

Claimants upload their .eml file to S3; the claim handler receives the
bucket/key and loads the raw message through this module.
"""

import logging
import os

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Uploaded emails are small text blobs; refuse anything larger (default: 5 MB)
DEFAULT_MAX_EMAIL_SIZE_MB = 5
MAX_EMAIL_SIZE_BYTES = int(os.environ.get('MAX_EMAIL_SIZE_MB', DEFAULT_MAX_EMAIL_SIZE_MB)) * 1024 * 1024

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,  # 10 seconds to establish connection
    read_timeout=60      # 60 seconds max for reading response
)

# Initialize S3 client at module level (reused across invocations)
s3_client = boto3.client('s3', config=s3_config)
logger.info("S3 client initialized with timeouts: connect=10s, read=60s, max_attempts=1")


def fetch_email_from_s3(bucket: str, key: str) -> bytes:
    """
    Fetch a raw uploaded email from S3.

    Args:
        bucket: S3 bucket name
        key: S3 object key (path to the .eml file)

    Returns:
        bytes: The raw email content

    Raises:
        ValueError: If bucket/key is missing, the object does not exist or is
            larger than MAX_EMAIL_SIZE_BYTES
        ClientError: For other S3 errors

    Example:
        >>> email_bytes = fetch_email_from_s3(
        ...     bucket="claim-uploads",
        ...     key="claims/42/message.eml"
        ... )
    """
    if not bucket or not key:
        raise ValueError("Both S3 bucket and key are required to load an email")

    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code == 'NoSuchKey':
            logger.error(f"S3 object not found: s3://{bucket}/{key}")
            raise ValueError(f"Email file not found in S3: {key}")
        elif error_code == 'NoSuchBucket':
            logger.error(f"S3 bucket not found: {bucket}")
            raise ValueError(f"S3 bucket not found: {bucket}")
        else:
            logger.error(f"Failed to fetch from S3 s3://{bucket}/{key}: {e}")
            raise

    content_length = response.get('ContentLength')
    if content_length is not None and content_length > MAX_EMAIL_SIZE_BYTES:
        logger.warning(f"Email too large: s3://{bucket}/{key} ({content_length:,} bytes)")
        raise ValueError(
            f"Email file too large: {content_length:,} bytes > {MAX_EMAIL_SIZE_BYTES:,} limit"
        )

    content = response['Body'].read()
    logger.info(f"Fetched {len(content):,} bytes from s3://{bucket}/{key}")
    return content
