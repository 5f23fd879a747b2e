"""
Invocation Log Buffer

Per-invocation structured logger that also records what it emits,
so the whole run can be posted to the log channel once at the end.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog


@dataclass(frozen=True)
class LogEntry:
    """One recorded log event."""

    timestamp: str
    level: str
    message: str


def _render(event: str, fields: dict[str, Any]) -> str:
    if not fields:
        return event
    details = "\n".join(f"{key}: {value}" for key, value in fields.items())
    return f"{event}\n{details}"


class InvocationLog:
    """
    Bound structlog logger that buffers every event it logs.

    Create one per email event and pass it explicitly to the
    components taking part in that invocation.
    """

    def __init__(self, **context: Any) -> None:
        self._log = structlog.get_logger().bind(**context)
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _record(self, level: str, event: str, fields: dict[str, Any]) -> None:
        self._entries.append(
            LogEntry(
                timestamp=datetime.now(timezone.utc).isoformat(),
                level=level,
                message=_render(event, fields),
            )
        )

    def debug(self, event: str, **fields: Any) -> None:
        self._log.debug(event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._record("INFO", event, fields)
        self._log.info(event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._record("WARNING", event, fields)
        self._log.warning(event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("ERROR", event, {k: v for k, v in fields.items() if k != "exc_info"})
        self._log.error(event, **fields)

    def drain(self) -> list[LogEntry]:
        """Return all buffered entries and clear the buffer."""
        entries, self._entries = self._entries, []
        return entries
