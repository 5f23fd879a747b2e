# Shared Infrastructure for the Inbound Mail Relay
"""
Shared infrastructure components for the mail relay.

This package provides:
- Configuration management and delivery limits
- Immutable email and display models
- Discord, S3 and SES tool implementations
- The per-invocation log buffer
- Custom exceptions
"""

from relay.config import DeliveryLimits, Settings, get_settings
from relay.exceptions import (
    ConfigurationError,
    DeliveryFailed,
    HttpError,
    ParseFailure,
    RateLimitExceeded,
    RelayError,
    SESError,
    TargetResolutionError,
)
from relay.log_buffer import InvocationLog, LogEntry

__all__ = [
    # Config
    "DeliveryLimits",
    "Settings",
    "get_settings",
    # Exceptions
    "ConfigurationError",
    "DeliveryFailed",
    "HttpError",
    "ParseFailure",
    "RateLimitExceeded",
    "RelayError",
    "SESError",
    "TargetResolutionError",
    # Logging
    "InvocationLog",
    "LogEntry",
]
