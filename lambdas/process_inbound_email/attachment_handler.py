"""
Attachment Handler Module

Uploads email attachments to the attachments channel in windows of
the destination's per-message file limit and collects the hosted URLs.
"""

from dataclasses import dataclass, field

import httpx

from relay.exceptions import RelayError
from relay.log_buffer import InvocationLog
from relay.models.email import Attachment
from relay.tools.discord import DiscordClient

from lambdas.process_inbound_email.batcher import AttachmentBatcher


@dataclass(frozen=True)
class AttachmentUploadFailure:
    """One upload window that failed; delivery continues without its links."""

    batch_index: int
    filenames: tuple[str, ...]
    error: str


@dataclass
class AttachmentUploadResult:
    """URLs in submission order plus the windows that failed."""

    links: list[str] = field(default_factory=list)
    failures: list[AttachmentUploadFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def upload_attachments(
    client: DiscordClient,
    channel_id: str,
    attachments: list[Attachment],
    batcher: AttachmentBatcher,
    log: InvocationLog,
) -> AttachmentUploadResult:
    """
    Upload all attachments, one window per message, in order.

    A failing window is recorded as an AttachmentUploadFailure and the
    remaining windows still run.

    Args:
        client: Discord client
        channel_id: Attachments channel
        attachments: Attachments from the parsed email
        batcher: Window size policy
        log: Invocation log

    Returns:
        AttachmentUploadResult with concatenated links and any failures
    """
    result = AttachmentUploadResult()

    for index, window in enumerate(batcher.batch(attachments)):
        filenames = tuple(att.filename for att in window)
        try:
            urls = client.upload_files(channel_id, window)
        except (RelayError, httpx.HTTPError, ValueError) as e:
            log.error(
                "attachment_upload_failed",
                batch_index=index,
                filenames=list(filenames),
                error=str(e),
            )
            result.failures.append(
                AttachmentUploadFailure(batch_index=index, filenames=filenames, error=str(e))
            )
            continue

        result.links.extend(urls)
        log.info(
            "attachments_uploaded",
            batch_index=index,
            count=len(window),
            urls=len(urls),
        )

    log.info(
        "attachments_processed",
        attachment_count=len(attachments),
        link_count=len(result.links),
        failed_batches=len(result.failures),
    )

    return result
