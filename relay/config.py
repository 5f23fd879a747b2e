"""
Configuration Management

Pydantic-settings based configuration for the inbound mail relay.
All settings can be overridden via environment variables.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.exceptions import ConfigurationError


@dataclass(frozen=True)
class DeliveryLimits:
    """
    Destination platform limits handed to every delivery component.

    Built once per invocation from Settings; components never read
    settings themselves.
    """

    max_block_length: int = 4096
    max_units_per_batch: int = 10
    max_batch_bytes: int = 6000
    attachment_batch_size: int = 10
    default_retry_ms: int = 1000
    max_retries: int = 3
    merge_threshold: int = 500
    boundary_ratio: float = 0.8


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with RELAY_ and are case-insensitive.
    Example: RELAY_DISCORD_GUILD_ID=123456789
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=[".env.local", ".env"],  # Try .env.local first
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Discord Configuration
    discord_api_url: str = Field(
        default="https://discord.com/api/v10",
        description="Discord REST API base URL (versioned)",
    )
    discord_cdn_url: str = Field(
        default="https://cdn.discordapp.com",
        description="Discord CDN base URL for guild icons",
    )
    discord_token: str | None = Field(
        default=None,
        description="Bot token used in the Authorization header",
    )
    discord_guild_id: str | None = Field(
        default=None,
        description="Guild searched for members matching the recipient",
    )
    attachments_channel_id: str | None = Field(
        default=None,
        description="Channel that hosts uploaded email attachments",
    )
    log_channel_id: str | None = Field(
        default=None,
        description="Channel receiving the per-invocation log; disabled when unset",
    )
    roles_required: str = Field(
        default="",
        description="Comma-separated role IDs; a member needs any one of them",
    )
    channel_map: str = Field(
        default="",
        description="Comma-separated username:channel_id pairs ('others' is the fallback)",
    )
    footer_text: str = Field(
        default="📬 Sent via Mail Relay",
        description="Footer of the metadata embed",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for Discord API calls",
    )

    # Delivery Limits
    max_block_length: int = Field(default=4096, gt=0)
    max_units_per_batch: int = Field(default=10, gt=0)
    max_batch_bytes: int = Field(default=6000, gt=0)
    attachment_batch_size: int = Field(default=10, gt=0)
    default_retry_ms: int = Field(default=1000, ge=0)
    max_retries: int = Field(default=3, ge=0)
    merge_threshold: int = Field(
        default=500,
        ge=0,
        description="Remainders shorter than this are merged into the previous block",
    )
    boundary_ratio: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Only spaces in the tail past this fraction of a chunk are cut points",
    )

    # Auto-reply Configuration
    auto_reply_enabled: bool = Field(
        default=True,
        description="Send a confirmation (or error) reply to the original sender",
    )
    auto_reply_from_name: str = Field(
        default="Auto-replier",
        description="Display name of the auto-reply sender",
    )

    # AWS Configuration
    aws_region: str = Field(
        default="us-west-2",
        description="AWS region",
    )
    s3_endpoint_url: str | None = Field(
        default=None,
        description="S3 endpoint URL (for local development)",
    )
    ses_endpoint_url: str | None = Field(
        default=None,
        description="SES endpoint URL (for local development)",
    )

    # Application Configuration
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def required_roles(self) -> list[str]:
        """Role IDs parsed from roles_required."""
        return [role.strip() for role in self.roles_required.split(",") if role.strip()]

    @property
    def channel_routes(self) -> dict[str, str]:
        """Username to channel ID mapping parsed from channel_map."""
        routes: dict[str, str] = {}
        for item in self.channel_map.split(","):
            username, sep, channel_id = item.strip().partition(":")
            if sep and username.strip() and channel_id.strip():
                routes[username.strip()] = channel_id.strip()
        return routes

    @property
    def delivery_limits(self) -> DeliveryLimits:
        """Frozen limits value for the delivery components."""
        return DeliveryLimits(
            max_block_length=self.max_block_length,
            max_units_per_batch=self.max_units_per_batch,
            max_batch_bytes=self.max_batch_bytes,
            attachment_batch_size=self.attachment_batch_size,
            default_retry_ms=self.default_retry_ms,
            max_retries=self.max_retries,
            merge_threshold=self.merge_threshold,
            boundary_ratio=self.boundary_ratio,
        )

    @property
    def s3_config(self) -> dict:
        """S3 client configuration."""
        config = {"region_name": self.aws_region}
        if self.s3_endpoint_url:
            config["endpoint_url"] = self.s3_endpoint_url
        return config

    @property
    def ses_config(self) -> dict:
        """SES client configuration."""
        config = {"region_name": self.aws_region}
        if self.ses_endpoint_url:
            config["endpoint_url"] = self.ses_endpoint_url
        return config

    def require_discord(self) -> None:
        """
        Check the settings needed to reach Discord.

        Raises:
            ConfigurationError: If token, guild or attachments channel is missing
        """
        missing = [
            name
            for name in ("discord_token", "discord_guild_id", "attachments_channel_id")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(missing)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are loaded only once.
    Call get_settings.cache_clear() in tests after changing the environment.
    """
    return Settings()
