"""
SES Tools

Sends pre-built MIME messages (auto-replies) through SES.
"""

from email.message import EmailMessage

import boto3
import structlog
from botocore.exceptions import ClientError

from relay.config import get_settings
from relay.exceptions import SESError

log = structlog.get_logger()


def _get_client():
    """Get SES client."""
    settings = get_settings()
    return boto3.client("ses", **settings.ses_config)


def send_raw_email(message: EmailMessage, source: str, recipient: str) -> str:
    """
    Send a complete MIME message via SES.

    Args:
        message: Message with headers and body already set
        source: Envelope sender (must be a verified identity)
        recipient: Envelope recipient

    Returns:
        SES message ID

    Raises:
        SESError: If SES rejects the message
    """
    client = _get_client()

    log.info(
        "sending_raw_email",
        to=recipient,
        subject=str(message.get("Subject", ""))[:50],
    )

    try:
        response = client.send_raw_email(
            Source=source,
            Destinations=[recipient],
            RawMessage={"Data": message.as_bytes()},
        )
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        error_message = e.response["Error"]["Message"]

        log.error(
            "ses_send_failed",
            to=recipient,
            error_code=error_code,
            error_message=error_message,
        )

        raise SESError(
            operation="send_raw",
            recipient=recipient,
            error_message=f"{error_code}: {error_message}",
        ) from e

    message_id = response["MessageId"]
    log.info("raw_email_sent", message_id=message_id, to=recipient)

    return message_id
