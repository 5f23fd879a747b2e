# Shared Models
"""
Email value types and Discord display models.
"""

from relay.models.display import (
    Batch,
    ContentBlock,
    DisplayUnit,
    EmbedFooter,
    EmbedThumbnail,
)
from relay.models.email import Address, Attachment, ParsedEmail

__all__ = [
    "Address",
    "Attachment",
    "Batch",
    "ContentBlock",
    "DisplayUnit",
    "EmbedFooter",
    "EmbedThumbnail",
    "ParsedEmail",
]
