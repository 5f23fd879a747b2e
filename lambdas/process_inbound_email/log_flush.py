"""
Log Flush

Posts the invocation's buffered log entries to the log channel once,
at the end of the invocation, with a full text copy attached.
"""

import json
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from relay.exceptions import RelayError
from relay.log_buffer import InvocationLog, LogEntry
from relay.models.display import DisplayUnit
from relay.models.email import Attachment
from relay.tools.discord import DiscordClient

from lambdas.process_inbound_email.batcher import BlockBatcher
from lambdas.process_inbound_email.delivery import shrink_to_fit, truncate_text

log = structlog.get_logger()

LEVEL_COLORS = {
    "ERROR": 0xFF0000,
    "WARNING": 0xFFA500,
}
DEFAULT_COLOR = 0x00FF00


def entry_unit(entry: LogEntry, max_length: int, max_bytes: int) -> DisplayUnit:
    """One embed per entry, coloured by level and shortened to fit a batch."""
    description = f"**[{entry.level}] {entry.timestamp}**\n{entry.message}"
    color = LEVEL_COLORS.get(entry.level, DEFAULT_COLOR)
    return shrink_to_fit(
        lambda text: DisplayUnit(description=text, color=color),
        truncate_text(description, max_length),
        max_bytes,
    )


def build_log_file(entries: list[LogEntry], detail: dict[str, Any]) -> Attachment:
    """Plain-text copy of every entry followed by the detail block."""
    lines = "\n".join(f"[{e.level}] {e.timestamp} - {e.message}" for e in entries)
    content = f"{lines}\n\nDetailed Data:\n{json.dumps(detail, indent=2, default=str)}"
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    return Attachment(
        filename=f"log_{stamp}.txt",
        content_type="text/plain",
        content=content.encode("utf-8"),
    )


def flush_log(
    invocation_log: InvocationLog,
    client: DiscordClient,
    channel_id: str | None,
    batcher: BlockBatcher,
    max_length: int,
    detail: dict[str, Any] | None = None,
) -> int:
    """
    Send and clear the buffered entries.

    The log file rides on the first batch. Failures are logged and
    swallowed; the buffer is cleared either way.

    Returns:
        Number of batches sent
    """
    entries = invocation_log.drain()

    if not channel_id or not entries:
        return 0

    sent = 0
    try:
        units = [entry_unit(entry, max_length, batcher.max_batch_bytes) for entry in entries]
        batches = batcher.batch(units)
        log_file = build_log_file(entries, detail or {})

        for index, batch in enumerate(batches):
            client.send_batch(channel_id, batch, files=[log_file] if index == 0 else None)
            sent += 1
    except (RelayError, httpx.HTTPError, ValueError) as e:
        log.error("log_flush_failed", channel_id=channel_id, batches_sent=sent, error=str(e))

    return sent
