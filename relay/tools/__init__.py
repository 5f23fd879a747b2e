# Shared Tools
"""
Clients for the external services the relay talks to.

Every Discord call goes through RateLimitedSender.
"""

from relay.tools.discord import DiscordClient
from relay.tools.rate_limit import RateLimitedSender, retry_after_ms
from relay.tools.s3 import fetch_email_from_s3
from relay.tools.ses import send_raw_email

__all__ = [
    "DiscordClient",
    "RateLimitedSender",
    "retry_after_ms",
    "fetch_email_from_s3",
    "send_raw_email",
]
