"""
Custom Exceptions for the Inbound Mail Relay

All exceptions follow the pattern of specific, actionable errors
with context needed for debugging and logging.
"""

from dataclasses import dataclass
from typing import Any


class RelayError(Exception):
    """Base exception for the mail relay."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


@dataclass
class ConfigurationError(RelayError):
    """Required settings are missing."""

    missing: list[str]

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"Missing required settings: {', '.join(missing)}",
            missing=missing,
        )


@dataclass
class ParseFailure(RelayError):
    """Inbound email stream could not be parsed."""

    reason: str

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Failed to parse email content: {reason}", reason=reason)


@dataclass
class HttpError(RelayError):
    """Destination returned a non-throttling failure status."""

    status: int
    body: str
    url: str | None = None

    def __init__(self, status: int, body: str, url: str | None = None) -> None:
        self.status = status
        self.body = body
        self.url = url
        super().__init__(
            f"Request failed with status {status}: {body[:500]}",
            status=status,
            url=url,
        )


@dataclass
class RateLimitExceeded(RelayError):
    """Throttling persisted after the retry budget was spent."""

    url: str
    attempts: int

    def __init__(self, url: str, attempts: int) -> None:
        self.url = url
        self.attempts = attempts
        super().__init__(
            "Rate limit exceeded, maximum retries reached.",
            url=url,
            attempts=attempts,
        )


@dataclass
class TargetResolutionError(RelayError):
    """No channel or DM could be chosen for the recipient."""

    username: str
    reason: str

    def __init__(self, username: str, reason: str) -> None:
        self.username = username
        self.reason = reason
        super().__init__(reason, username=username)


@dataclass
class DeliveryFailed(RelayError):
    """Delivery aborted by the first unrecoverable error of any stage."""

    target: str
    stage: str
    cause: Exception

    def __init__(self, target: str, stage: str, cause: Exception) -> None:
        self.target = target
        self.stage = stage
        self.cause = cause
        super().__init__(
            f"Failed to deliver email to channel '{target}' during {stage}: {cause}",
            target=target,
            stage=stage,
        )


class OversizedUnitError(ValueError):
    """A single display unit exceeds the per-batch size ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Display unit of {size} bytes exceeds batch limit of {limit} bytes")


@dataclass
class SESError(RelayError):
    """SES email operation failed."""

    operation: str  # "send_raw"
    recipient: str | None = None

    def __init__(
        self,
        operation: str,
        recipient: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self.operation = operation
        self.recipient = recipient
        super().__init__(
            f"SES {operation} failed{f' for {recipient}' if recipient else ''}: "
            f"{error_message or 'Unknown error'}",
            operation=operation,
            recipient=recipient,
            error_message=error_message,
        )
