"""
Auto-Reply

Confirms delivery to the original sender, or tells them what went wrong.
Never raises: the outcome is returned for the caller to inspect.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.headerregistry import Address as HeaderAddress
from email.message import EmailMessage
from html import escape

from botocore.exceptions import BotoCoreError

from relay.exceptions import RelayError
from relay.log_buffer import InvocationLog
from relay.models.email import ParsedEmail
from relay.tools.ses import send_raw_email


@dataclass(frozen=True)
class AutoReplyOutcome:
    """Result of an auto-reply attempt."""

    sent: bool
    message_id: str | None = None
    skipped_reason: str | None = None
    error: str | None = None


def _confirmation_body(subject: str, recipient: str, timestamp: str) -> tuple[str, str]:
    text = (
        "Dear Sender,\n\n"
        "Thank you for your email. This is an automated reply to confirm that your email "
        f'with the subject "{subject}" has been successfully delivered to the recipient: '
        f"{recipient}.\n\n"
        "If you have any further inquiries, please feel free to reach out.\n\n"
        f"Timestamp: {timestamp}\n"
    )
    html = (
        "<p>Dear Sender,</p>"
        "<p>Thank you for your email. This is an automated reply to confirm that your email "
        f'with the subject "<strong>{escape(subject)}</strong>" has been successfully '
        f"delivered to the recipient: <strong>{escape(recipient)}</strong>.</p>"
        "<p>If you have any further inquiries, please feel free to reach out.</p>"
        f'<hr /><p style="font-size: 0.9em; color: #888;">Timestamp: {timestamp}</p>'
    )
    return text, html


def _error_body(error_message: str, timestamp: str) -> tuple[str, str]:
    text = (
        "Dear Sender,\n\n"
        "An error occurred while processing your email. Please review the error details below:\n\n"
        f"Error Details: {error_message}\n\n"
        "If you need further assistance, feel free to contact support.\n\n"
        f"Timestamp: {timestamp}\n"
    )
    html = (
        "<p>Dear Sender,</p>"
        "<p>An error occurred while processing your email. "
        "Please review the error details below:</p>"
        '<blockquote style="border-left: 2px solid #ccc; padding-left: 10px; color: #555;">'
        f"<p><strong>Error Details:</strong> {escape(error_message)}</p></blockquote>"
        "<p>If you need further assistance, feel free to contact support.</p>"
        f'<hr /><p style="font-size: 0.9em; color: #888;">Timestamp: {timestamp}</p>'
    )
    return text, html


def build_reply(
    email: ParsedEmail,
    from_address: str,
    from_name: str,
    error_message: str | None = None,
) -> EmailMessage:
    """MIME reply to the original sender (plain text with an HTML alternative)."""
    timestamp = datetime.now(timezone.utc).isoformat()
    subject = email.subject or "No Subject"

    if error_message:
        text, html = _error_body(error_message, timestamp)
    else:
        text, html = _confirmation_body(subject, email.recipient_username, timestamp)

    message = EmailMessage()
    message["From"] = HeaderAddress(display_name=from_name, addr_spec=from_address)
    message["To"] = email.sender.address
    message["Subject"] = f"Re: {subject}"
    if email.message_id:
        message["In-Reply-To"] = email.message_id
        message["References"] = email.message_id
    message.set_content(text)
    message.add_alternative(html, subtype="html")
    return message


def send_auto_reply(
    email: ParsedEmail,
    from_name: str,
    log: InvocationLog,
    error_message: str | None = None,
) -> AutoReplyOutcome:
    """
    Reply to the sender from the address the email was sent to.

    Args:
        email: Parsed inbound email
        from_name: Display name of the reply
        log: Invocation log
        error_message: When set, an error notice is sent instead of a confirmation

    Returns:
        AutoReplyOutcome; failures are reported, never raised
    """
    if not email.sender or not email.sender.address:
        log.warning("auto_reply_skipped", reason="missing_from_address")
        return AutoReplyOutcome(sent=False, skipped_reason="Original email has no 'from' address")

    if not email.to or not email.to[0].address:
        log.warning("auto_reply_skipped", reason="missing_to_address")
        return AutoReplyOutcome(sent=False, skipped_reason="Original email has no 'to' address")

    from_address = email.to[0].address

    try:
        message = build_reply(email, from_address, from_name, error_message)
        message_id = send_raw_email(message, source=from_address, recipient=email.sender.address)
    except (RelayError, BotoCoreError, ValueError) as e:
        log.error("auto_reply_failed", to=email.sender.address, error=str(e))
        return AutoReplyOutcome(sent=False, error=str(e))

    log.info(
        "auto_reply_sent",
        to=email.sender.address,
        message_id=message_id,
        kind="error" if error_message else "confirmation",
    )
    return AutoReplyOutcome(sent=True, message_id=message_id)
