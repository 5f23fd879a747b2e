"""
Discord Tools

Thin REST client for the Discord endpoints the relay uses. Every call
goes through RateLimitedSender; this module only builds requests.
"""

import json
import time
from typing import Any, Callable, Sequence

import httpx
import structlog

from relay.config import Settings
from relay.models.display import Batch
from relay.models.email import Attachment
from relay.tools.rate_limit import RateLimitedSender

log = structlog.get_logger()


def _multipart_files(attachments: Sequence[Attachment]) -> list[tuple[str, tuple[str, bytes, str]]]:
    return [
        (f"files[{index}]", (att.filename, att.content, att.content_type))
        for index, att in enumerate(attachments)
    ]


class DiscordClient:
    """
    Discord REST client bound to one bot token and guild.

    Usage:
        with DiscordClient(settings) as client:
            client.send_batch(channel_id, batch)
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._http = httpx.Client(
            base_url=settings.discord_api_url,
            headers={"Authorization": f"Bot {settings.discord_token}"},
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )
        limits = settings.delivery_limits
        self.sender = RateLimitedSender(
            self._http,
            max_retries=limits.max_retries,
            default_retry_ms=limits.default_retry_ms,
            sleep=sleep,
        )

    def __enter__(self) -> "DiscordClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def send_batch(
        self,
        channel_id: str,
        batch: Batch,
        files: Sequence[Attachment] | None = None,
    ) -> dict[str, Any]:
        """
        Post one batch of embeds, optionally with file uploads.

        With files the payload goes in a multipart `payload_json` field
        next to `files[i]` parts; otherwise it is posted as JSON.

        Returns:
            Created message object
        """
        url = f"/channels/{channel_id}/messages"
        payload = batch.to_payload()

        if files:
            response = self.sender.send(
                "POST",
                url,
                data={"payload_json": json.dumps(payload)},
                files=_multipart_files(files),
            )
        else:
            response = self.sender.send("POST", url, json=payload)

        message = response.json()
        log.debug(
            "batch_posted",
            channel_id=channel_id,
            units=len(batch),
            size=batch.size,
            files=len(files or []),
            message_id=message.get("id"),
        )
        return message

    def upload_files(self, channel_id: str, attachments: Sequence[Attachment]) -> list[str]:
        """
        Upload attachments in one message and return their hosted URLs.

        Returns:
            URLs in submission order; empty if the response lists none
        """
        response = self.sender.send(
            "POST",
            f"/channels/{channel_id}/messages",
            files=_multipart_files(attachments),
        )
        message = response.json()
        urls = [att["url"] for att in message.get("attachments", []) if att.get("url")]

        if not urls:
            log.warning("no_attachment_urls_in_response", channel_id=channel_id)

        return urls

    def get_guild(self) -> dict[str, Any]:
        """Fetch the configured guild."""
        return self.sender.send("GET", f"/guilds/{self._settings.discord_guild_id}").json()

    def guild_icon_url(self, guild: dict[str, Any]) -> str | None:
        """CDN URL of the guild icon (.gif when animated), or None."""
        icon = guild.get("icon")
        if not icon:
            return None
        extension = ".gif" if icon.startswith("a_") else ".png"
        return f"{self._settings.discord_cdn_url}/icons/{guild['id']}/{icon}{extension}"

    def search_members(self, query: str, limit: int = 1000) -> list[dict[str, Any]]:
        """Search guild members whose username or nickname starts with query."""
        response = self.sender.send(
            "GET",
            f"/guilds/{self._settings.discord_guild_id}/members/search",
            params={"query": query, "limit": limit},
        )
        return response.json()

    def create_dm(self, recipient_id: str) -> dict[str, Any]:
        """Open (or fetch) the DM channel with a user."""
        response = self.sender.send(
            "POST",
            "/users/@me/channels",
            json={"recipient_id": recipient_id},
        )
        return response.json()
