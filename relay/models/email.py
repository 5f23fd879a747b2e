"""
Parsed Email Model

Immutable value types produced by the MIME parser and consumed
by the delivery pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Address:
    """A mailbox address with optional display name."""

    address: str
    name: str | None = None

    @property
    def local_part(self) -> str:
        """Part before the '@' (the relay's username)."""
        return self.address.split("@", 1)[0]

    def __str__(self) -> str:
        return f"{self.name} <{self.address}>" if self.name else self.address


@dataclass(frozen=True)
class Attachment:
    """Binary attachment. Content is never mutated after parsing."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class ParsedEmail:
    """Normalized view of an inbound email."""

    subject: str | None = None
    text: str | None = None
    html: str | None = None
    sender: Address | None = None
    to: tuple[Address, ...] = ()
    date: datetime | None = None
    message_id: str | None = None
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)

    @property
    def recipient_username(self) -> str:
        """Local part of the first recipient, or 'Unknown'."""
        if self.to and self.to[0].address:
            return self.to[0].local_part
        return "Unknown"

    def summary(self) -> dict:
        """Loggable summary without bodies or attachment content."""
        return {
            "subject": self.subject,
            "from": self.sender.address if self.sender else None,
            "to": [addr.address for addr in self.to],
            "date": self.date.isoformat() if self.date else None,
            "message_id": self.message_id,
            "text_length": len(self.text or ""),
            "html_length": len(self.html or ""),
            "attachments": [
                {
                    "filename": att.filename,
                    "content_type": att.content_type,
                    "size_bytes": att.size_bytes,
                }
                for att in self.attachments
            ],
        }
