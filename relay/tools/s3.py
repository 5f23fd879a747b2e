"""
S3 Tools

Fetches raw inbound emails that SES stored in S3 instead of
embedding them in the SNS notification.
"""

import boto3
import structlog
from botocore.exceptions import ClientError

from relay.config import get_settings

log = structlog.get_logger()


def _get_client():
    """Get S3 client with optional endpoint override for local dev."""
    settings = get_settings()
    return boto3.client("s3", **settings.s3_config)


def fetch_email_from_s3(bucket: str, key: str) -> bytes:
    """
    Fetch raw email content from S3.

    Args:
        bucket: S3 bucket name
        key: S3 object key

    Returns:
        Raw email content as bytes

    Raises:
        ClientError: If S3 get fails
    """
    log.info("fetching_email_from_s3", bucket=bucket, key=key)

    client = _get_client()

    try:
        response = client.get_object(Bucket=bucket, Key=key)
        content = response["Body"].read()
    except ClientError as e:
        log.error(
            "s3_fetch_failed",
            bucket=bucket,
            key=key,
            error=str(e),
        )
        raise

    log.debug(
        "email_fetched_from_s3",
        bucket=bucket,
        key=key,
        size_bytes=len(content),
    )

    return content
