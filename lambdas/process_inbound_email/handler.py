"""
ProcessInboundEmail Lambda Handler

Main entry point for relaying inbound emails to Discord.

Trigger: SNS topic subscribed to an SES inbound email rule
Output: Discord messages in the recipient's channel or DM

Flow:
1. Parse SNS notification
2. Extract email content (embedded or from S3)
3. Upload attachments to the attachments channel
4. Resolve the delivery channel from the recipient's local part
5. Deliver embeds in size-bounded batches
6. Auto-reply to the sender (confirmation or error)
7. Flush the invocation log to the log channel
"""

import json
from typing import Any

import httpx
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from relay.config import Settings, get_settings
from relay.exceptions import RelayError
from relay.log_buffer import InvocationLog
from relay.models.email import Address, ParsedEmail
from relay.tools.discord import DiscordClient
from relay.tools.s3 import fetch_email_from_s3

from lambdas.process_inbound_email.attachment_handler import upload_attachments
from lambdas.process_inbound_email.auto_reply import send_auto_reply
from lambdas.process_inbound_email.batcher import AttachmentBatcher, BlockBatcher
from lambdas.process_inbound_email.delivery import DeliveryOrchestrator
from lambdas.process_inbound_email.email_parser import (
    decode_notification_content,
    extract_s3_reference,
    parse_email,
)
from lambdas.process_inbound_email.log_flush import flush_log
from lambdas.process_inbound_email.target_resolver import resolve_target

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

log = structlog.get_logger()


def _get_discord_client(settings: Settings) -> DiscordClient:
    """Get Discord client."""
    return DiscordClient(settings)


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {"statusCode": status_code, "body": json.dumps(body)}


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda handler for relaying inbound emails.

    Args:
        event: SNS event containing SES notification
        context: Lambda context

    Returns:
        Response dict with processing status
    """
    request_id = getattr(context, "aws_request_id", "local")

    log.info(
        "processing_inbound_email",
        request_id=request_id,
        event_keys=list(event.keys()),
    )

    try:
        # Handle SNS Records format (Lambda trigger)
        if "Records" in event:
            response = _response(200, {"status": "skipped", "reason": "no records"})
            for record in event["Records"]:
                response = _process_sns_record(record, request_id)
            return response

        # Handle direct SNS message (for testing)
        if "Message" in event:
            return _process_notification(json.loads(event["Message"]), request_id)

        # Handle raw SES notification (for testing)
        if "mail" in event or "content" in event:
            return _process_notification(event, request_id)

        log.error("unknown_event_format", event_keys=list(event.keys()))
        return _response(400, {"error": "Unknown event format"})

    except Exception as e:
        log.error("lambda_handler_failed", error=str(e), exc_info=True)
        return _response(500, {"error": str(e)})


def _process_sns_record(record: dict[str, Any], request_id: str) -> dict[str, Any]:
    """Process a single SNS record from Lambda event."""
    message = record.get("Sns", {}).get("Message", "{}")

    try:
        notification = json.loads(message)
    except json.JSONDecodeError as e:
        log.error("sns_message_parse_failed", error=str(e))
        return _response(400, {"error": "Invalid SNS message JSON"})

    return _process_notification(notification, request_id)


def _envelope_email(mail: dict[str, Any]) -> ParsedEmail:
    """Addresses from the SES envelope, for replying when the message cannot be parsed."""
    source = mail.get("source")
    return ParsedEmail(
        sender=Address(address=source) if source else None,
        to=tuple(Address(address=addr) for addr in mail.get("destination") or []),
    )


def _load_raw_email(notification: dict[str, Any], invocation_log: InvocationLog) -> bytes:
    """Raw MIME bytes from S3 or from the embedded content."""
    s3_ref = extract_s3_reference(notification)

    if s3_ref:
        bucket, key = s3_ref
        invocation_log.info("email_stored_in_s3", bucket=bucket, key=key)
        return fetch_email_from_s3(bucket, key)

    return decode_notification_content(notification.get("content") or "")


def _process_notification(notification: dict[str, Any], request_id: str) -> dict[str, Any]:
    """
    Process one SES notification end to end.

    Fatal errors trigger an error auto-reply, addressed from the SES
    envelope when the message itself could not be parsed. The
    invocation log is flushed exactly once whatever happens.
    """
    notification_type = notification.get("notificationType")

    if notification_type in ("Bounce", "Complaint"):
        log.info(
            "received_delivery_notification",
            type=notification_type,
            message_id=notification.get("mail", {}).get("messageId"),
        )
        return _response(
            200,
            {"status": "skipped", "reason": f"{notification_type} notification"},
        )

    settings = get_settings()
    limits = settings.delivery_limits
    invocation_log = InvocationLog(request_id=request_id)
    mail = notification.get("mail", {})

    invocation_log.info(
        "email_event_received",
        source=mail.get("source"),
        destination=mail.get("destination"),
    )

    parsed: ParsedEmail | None = None
    client: DiscordClient | None = None
    result: dict[str, Any] = {"status": "failed"}
    status_code = 500

    try:
        settings.require_discord()
        client = _get_discord_client(settings)

        raw_email = _load_raw_email(notification, invocation_log)
        parsed = parse_email(
            raw_email,
            envelope_from=mail.get("source"),
            envelope_to=mail.get("destination"),
        )
        username = parsed.recipient_username
        invocation_log.info("email_details", username=username, **parsed.summary())

        attachment_links: list[str] = []
        if parsed.attachments:
            upload = upload_attachments(
                client,
                settings.attachments_channel_id,
                list(parsed.attachments),
                AttachmentBatcher(limits.attachment_batch_size),
                invocation_log,
            )
            attachment_links = upload.links

        target = resolve_target(username, client, settings, invocation_log)

        thumbnail_url = None
        try:
            thumbnail_url = client.guild_icon_url(client.get_guild())
        except (RelayError, httpx.HTTPError) as e:
            invocation_log.warning("guild_fetch_failed", error=str(e))

        orchestrator = DeliveryOrchestrator(
            client,
            limits,
            invocation_log,
            footer_text=settings.footer_text,
        )
        report = orchestrator.deliver(target, parsed, attachment_links, thumbnail_url)

        auto_reply = None
        if settings.auto_reply_enabled:
            auto_reply = send_auto_reply(parsed, settings.auto_reply_from_name, invocation_log)

        invocation_log.info("email_processing_completed", channel_id=target)
        status_code = 200
        result = {
            "status": "delivered",
            "channel_id": target,
            "batches": report.batch_count,
            "attachment_links": len(attachment_links),
            "auto_reply_sent": bool(auto_reply and auto_reply.sent),
        }

    except (RelayError, ClientError, BotoCoreError, httpx.HTTPError) as e:
        invocation_log.error("email_processing_failed", error=str(e), error_type=type(e).__name__)
        result = {"status": "failed", "error": str(e)}

        if settings.auto_reply_enabled:
            send_auto_reply(
                parsed if parsed is not None else _envelope_email(mail),
                settings.auto_reply_from_name,
                invocation_log,
                error_message=str(e),
            )

    finally:
        if client is not None:
            flush_log(
                invocation_log,
                client,
                settings.log_channel_id,
                BlockBatcher(limits.max_units_per_batch, limits.max_batch_bytes),
                limits.max_block_length,
                detail={
                    "parsed_email": parsed.summary() if parsed else {},
                    "event": {
                        "source": mail.get("source"),
                        "destination": mail.get("destination"),
                        "message_id": mail.get("messageId"),
                    },
                    "request_id": request_id,
                },
            )
            client.close()

    return _response(status_code, result)
