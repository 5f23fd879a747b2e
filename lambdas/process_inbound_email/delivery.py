"""
Delivery Orchestrator

Turns a parsed email into embeds and posts them, batch by batch and in
order, to the delivery target. The unabridged text always travels with
the last batch as full_message.txt.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from relay.config import DeliveryLimits
from relay.exceptions import DeliveryFailed, OversizedUnitError, RelayError
from relay.log_buffer import InvocationLog
from relay.models.display import Batch, DisplayUnit, EmbedFooter, EmbedThumbnail
from relay.models.email import Attachment, ParsedEmail
from relay.tools.discord import DiscordClient

from lambdas.process_inbound_email.batcher import BlockBatcher
from lambdas.process_inbound_email.chunker import ContentChunker
from lambdas.process_inbound_email.text_normalizer import TextNormalizer

FULL_TEXT_FILENAME = "full_message.txt"
ATTACHMENTS_HEADING = "**📎 Attachments:**\n"
DEFAULT_FOOTER = "📬 Sent via Mail Relay"


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to max_length, ending with '...' when shortened."""
    if len(text) <= max_length:
        return text
    return f"{text[: max(max_length - 3, 0)]}..."


def shrink_to_fit(
    make_unit: Callable[[str], DisplayUnit],
    text: str,
    max_bytes: int,
) -> DisplayUnit:
    """
    Unit built from text, halving the text (with '...') until the
    serialized unit is at most max_bytes.
    """
    unit = make_unit(text)
    limit = len(text)
    while unit.size > max_bytes and limit > 0:
        limit //= 2
        unit = make_unit(truncate_text(text, limit))
    return unit


def build_full_text(text: str, attachment_links: list[str]) -> str:
    """Normalized body followed by a numbered list of attachment links."""
    if not attachment_links:
        return text
    listing = "\n".join(f"Attachment {i}: {link}" for i, link in enumerate(attachment_links, 1))
    return f"{text}\n\nAttachments:\n{listing}"


@dataclass
class DeliveryReport:
    """What a delivery posted."""

    target: str
    unit_count: int
    batch_sizes: list[int] = field(default_factory=list)
    message_ids: list[str | None] = field(default_factory=list)

    @property
    def batch_count(self) -> int:
        return len(self.batch_sizes)


class DeliveryOrchestrator:
    """
    Sequences normalization, chunking, batching and sending.

    Batches are sent strictly one after another; the destination shows
    messages in receipt order.
    """

    def __init__(
        self,
        client: DiscordClient,
        limits: DeliveryLimits,
        log: InvocationLog,
        *,
        footer_text: str = DEFAULT_FOOTER,
    ) -> None:
        self._client = client
        self._limits = limits
        self._log = log
        self._footer_text = footer_text
        self.normalizer = TextNormalizer()
        self.chunker = ContentChunker(
            limits.max_block_length,
            merge_threshold=limits.merge_threshold,
            boundary_ratio=limits.boundary_ratio,
        )
        self.batcher = BlockBatcher(limits.max_units_per_batch, limits.max_batch_bytes)

    def build_metadata_unit(
        self,
        email: ParsedEmail,
        attachment_count: int,
        thumbnail_url: str | None = None,
    ) -> DisplayUnit:
        """
        First embed: subject title plus sender/recipient/date/attachment fields.

        A long recipient list is shortened until the embed fits a batch.
        """
        timestamp = datetime.now(timezone.utc).isoformat()
        sender = email.sender.address if email.sender else "Unknown"
        recipients = ", ".join(addr.address for addr in email.to) or "Unknown"
        date = email.date.isoformat() if email.date else timestamp

        def make_unit(to_field: str) -> DisplayUnit:
            description = (
                f"**👤 From:** {sender}\n"
                f"**📩 To:** {to_field}\n"
                f"**📅 Date:** {date}\n"
                f"**📎 Attachments:** {attachment_count}"
            )
            return DisplayUnit(
                title=truncate_text(f"📧 {email.subject or 'New Email Received'}", 256),
                description=truncate_text(description, self._limits.max_block_length),
                footer=EmbedFooter(text=self._footer_text),
                timestamp=timestamp,
                thumbnail=EmbedThumbnail(url=thumbnail_url) if thumbnail_url else None,
            )

        return shrink_to_fit(make_unit, recipients, self._limits.max_batch_bytes)

    def build_link_units(self, attachment_links: list[str]) -> list[DisplayUnit]:
        """Attachment links packed under a heading, each unit within the block limit."""
        budget = self._limits.max_block_length - len(ATTACHMENTS_HEADING)
        chunks: list[str] = []
        current = ""

        for index, link in enumerate(attachment_links, 1):
            line = f"[Attachment {index}]({link})\n"
            if current and len(current) + len(line) > budget:
                chunks.append(current)
                current = ""
            current += truncate_text(line, budget)

        if current:
            chunks.append(current)

        return [DisplayUnit(description=f"{ATTACHMENTS_HEADING}{chunk}") for chunk in chunks]

    def _fit_text(self, text: str) -> list[DisplayUnit]:
        """
        Units for one block, halving the chunk length until each unit
        fits a batch on its own (multi-byte or escape-heavy text).
        """
        unit = DisplayUnit(description=text)
        if unit.size <= self._limits.max_batch_bytes or len(text) <= 1:
            return [unit]

        smaller = ContentChunker(
            max(len(text) // 2, 1),
            merge_threshold=0,
            boundary_ratio=self._limits.boundary_ratio,
        )
        units: list[DisplayUnit] = []
        for block in smaller.chunk(text):
            units.extend(self._fit_text(block.text))
        return units

    def build_units(
        self,
        email: ParsedEmail,
        text: str,
        attachment_links: list[str],
        thumbnail_url: str | None = None,
    ) -> list[DisplayUnit]:
        """Metadata unit, then body units, then attachment-link units."""
        units = [self.build_metadata_unit(email, len(attachment_links), thumbnail_url)]

        for block in self.chunker.chunk(text):
            units.extend(self._fit_text(block.text))

        units.extend(self.build_link_units(attachment_links))
        return units

    def deliver(
        self,
        target: str,
        email: ParsedEmail,
        attachment_links: list[str],
        thumbnail_url: str | None = None,
    ) -> DeliveryReport:
        """
        Post the email to a channel.

        Args:
            target: Channel or DM channel ID
            email: Parsed email
            attachment_links: Hosted attachment URLs, in order
            thumbnail_url: Optional thumbnail for the metadata embed

        Returns:
            DeliveryReport of what was posted

        Raises:
            DeliveryFailed: Wrapping an unbatchable unit or the first send error
        """
        text = self.normalizer.normalize(email.text, email.html)
        try:
            units = self.build_units(email, text, attachment_links, thumbnail_url)
            batches: list[Batch] = self.batcher.batch(units)
        except OversizedUnitError as e:
            self._log.error("batching_failed", channel_id=target, error=str(e))
            raise DeliveryFailed(target=target, stage="batching", cause=e) from e

        full_text = Attachment(
            filename=FULL_TEXT_FILENAME,
            content_type="text/plain",
            content=build_full_text(text, attachment_links).encode("utf-8"),
        )

        report = DeliveryReport(target=target, unit_count=len(units))
        last_index = len(batches) - 1

        for index, batch in enumerate(batches):
            files = [full_text] if index == last_index else None
            try:
                message = self._client.send_batch(target, batch, files=files)
            except (RelayError, httpx.HTTPError) as e:
                self._log.error(
                    "batch_send_failed",
                    channel_id=target,
                    batch_index=index,
                    batch_count=len(batches),
                    error=str(e),
                )
                raise DeliveryFailed(target=target, stage=f"batch {index + 1}/{len(batches)}", cause=e) from e

            report.batch_sizes.append(len(batch))
            report.message_ids.append(message.get("id"))

        self._log.info(
            "email_delivered",
            channel_id=target,
            units=len(units),
            batches=len(batches),
            text_length=len(text),
        )

        return report
