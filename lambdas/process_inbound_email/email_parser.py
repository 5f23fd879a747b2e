"""
Email Parser Module

Parses raw MIME messages and SES/SNS notifications into ParsedEmail.
MIME handling is delegated to the standard library email package.
"""

import base64
import binascii
import email
from email.message import EmailMessage
from email.policy import default as default_policy
from email.utils import parsedate_to_datetime
from typing import Any

import structlog

from relay.exceptions import ParseFailure
from relay.models.email import Address, Attachment, ParsedEmail

log = structlog.get_logger()


def _header_addresses(msg: EmailMessage, name: str) -> list[Address]:
    """Addresses from an address header; unparsable headers yield none."""
    header = msg.get(name)
    if header is None:
        return []

    addresses = []
    for addr in getattr(header, "addresses", ()):
        if addr.addr_spec and addr.addr_spec != "<>":
            addresses.append(Address(address=addr.addr_spec, name=addr.display_name or None))
    return addresses


def _decode_part(part: EmailMessage) -> str | None:
    """Text content of a part, tolerating bad charsets."""
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError, KeyError):
        payload = part.get_payload(decode=True)
        if not payload:
            return None
        return payload.decode("utf-8", errors="replace")


def _extract_body(msg: EmailMessage, subtype: str) -> str | None:
    part = msg.get_body(preferencelist=(subtype,))
    if part is None:
        return None
    return _decode_part(part)


def _extract_attachments(msg: EmailMessage) -> list[Attachment]:
    """Attachment parts in message order. Unnamed parts get attachment.<subtype>."""
    attachments = []

    for part in msg.iter_attachments():
        payload = part.get_payload(decode=True)
        if payload is None:
            continue

        content_type = part.get_content_type()
        filename = part.get_filename() or f"attachment.{part.get_content_subtype()}"

        attachments.append(
            Attachment(filename=filename, content_type=content_type, content=payload)
        )
        log.debug(
            "extracted_attachment",
            filename=filename,
            content_type=content_type,
            size_bytes=len(payload),
        )

    return attachments


def _extract_date(msg: EmailMessage):
    raw = msg.get("Date")
    if not raw:
        return None
    try:
        return parsedate_to_datetime(str(raw))
    except (TypeError, ValueError):
        log.warning("unparsable_date_header", date=str(raw))
        return None


def parse_email(
    raw_email: str | bytes,
    *,
    envelope_from: str | None = None,
    envelope_to: list[str] | None = None,
) -> ParsedEmail:
    """
    Parse raw email content (MIME format) into a ParsedEmail.

    Envelope addresses fill in a missing From or To header.

    Args:
        raw_email: Raw email content as string or bytes
        envelope_from: SMTP envelope sender
        envelope_to: SMTP envelope recipients

    Returns:
        ParsedEmail

    Raises:
        ParseFailure: If the content is empty or cannot be parsed
    """
    raw_bytes = raw_email.encode("utf-8") if isinstance(raw_email, str) else raw_email

    if not raw_bytes or not raw_bytes.strip():
        raise ParseFailure("empty email content")

    try:
        msg = email.message_from_bytes(raw_bytes, policy=default_policy)
        senders = _header_addresses(msg, "From")
        recipients = _header_addresses(msg, "To")
        text = _extract_body(msg, "plain")
        html = _extract_body(msg, "html")
        attachments = _extract_attachments(msg)
    except ParseFailure:
        raise
    except Exception as e:
        log.error("email_parse_failed", error=str(e), error_type=type(e).__name__)
        raise ParseFailure(str(e)) from e

    if not senders and envelope_from:
        senders = [Address(address=envelope_from)]
    if not recipients and envelope_to:
        recipients = [Address(address=addr) for addr in envelope_to]

    parsed = ParsedEmail(
        subject=str(msg["Subject"]) if msg["Subject"] else None,
        text=text,
        html=html,
        sender=senders[0] if senders else None,
        to=tuple(recipients),
        date=_extract_date(msg),
        message_id=str(msg["Message-ID"]).strip() if msg["Message-ID"] else None,
        attachments=tuple(attachments),
    )

    log.info(
        "email_parsed",
        subject=parsed.subject,
        from_address=parsed.sender.address if parsed.sender else None,
        recipients=[addr.address for addr in parsed.to],
        has_text=bool(text),
        has_html=bool(html),
        attachment_count=len(attachments),
    )

    return parsed


def decode_notification_content(content: str) -> bytes:
    """
    Raw MIME bytes from an SES notification 'content' field.

    SES embeds either the raw message or its base64 encoding.
    """
    stripped = content.lstrip()
    if ":" in stripped.split("\n", 1)[0]:
        # Starts with a header line; already raw MIME
        return content.encode("utf-8")
    try:
        return base64.b64decode(content, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ParseFailure(f"content is neither MIME nor base64: {e}") from e


def extract_s3_reference(notification: dict[str, Any]) -> tuple[str, str] | None:
    """
    Extract S3 bucket/key from the SES receipt action if the email is stored in S3.

    Returns:
        Tuple of (bucket, key) or None if embedded
    """
    action = notification.get("receipt", {}).get("action", {})

    if action.get("type") == "S3":
        return action.get("bucketName"), action.get(
            "objectKey", action.get("objectKeyPrefix", "")
        )

    return None
