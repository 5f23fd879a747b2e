"""
Display Models

Pydantic models for what is posted to Discord: embeds (display units),
content blocks, and size-bounded batches of embeds.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ContentBlock:
    """A bounded slice of body text; identity is its position only."""

    text: str


class EmbedFooter(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str


class EmbedThumbnail(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class DisplayUnit(BaseModel):
    """
    One Discord embed.

    Only the first unit of a delivery carries title, footer, timestamp
    and thumbnail; the rest carry a plain description.
    """

    model_config = ConfigDict(frozen=True)

    title: str | None = Field(default=None, description="Embed title")
    description: str | None = Field(default=None, description="Embed body text")
    footer: EmbedFooter | None = None
    timestamp: str | None = Field(default=None, description="ISO 8601 timestamp")
    thumbnail: EmbedThumbnail | None = None
    color: int | None = Field(default=None, description="Sidebar colour as an RGB integer")

    def to_payload(self) -> dict[str, Any]:
        """Embed object as sent to the API, unset fields omitted."""
        return self.model_dump(exclude_none=True)

    @property
    def size(self) -> int:
        """UTF-8 byte length of the compact JSON serialization."""
        serialized = json.dumps(self.to_payload(), separators=(",", ":"), ensure_ascii=False)
        return len(serialized.encode("utf-8"))


@dataclass
class Batch:
    """Ordered embeds posted in one message."""

    units: list[DisplayUnit] = field(default_factory=list)
    size: int = 0

    def add(self, unit: DisplayUnit) -> None:
        self.units.append(unit)
        self.size += unit.size

    def __len__(self) -> int:
        return len(self.units)

    def to_payload(self) -> dict[str, Any]:
        """Message body: {"embeds": [...]}."""
        return {"embeds": [unit.to_payload() for unit in self.units]}
