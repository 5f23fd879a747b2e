"""
Content Chunker

Splits flat text into ordered blocks of bounded length, preferring
word boundaries and folding a short trailing remainder into the
last block.
"""

from relay.models.display import ContentBlock


class ContentChunker:
    """
    Word-boundary aware text splitter.

    Args:
        max_length: Maximum characters per block
        merge_threshold: Remainders shorter than this are merged into the
            current block when they fit
        boundary_ratio: A space is used as the cut point only if it sits at
            or after this fraction of the prefix length

    Raises:
        ValueError: On non-positive max_length, negative merge_threshold, or
            boundary_ratio outside (0, 1]
    """

    def __init__(
        self,
        max_length: int,
        *,
        merge_threshold: int = 500,
        boundary_ratio: float = 0.8,
    ) -> None:
        if max_length <= 0:
            raise ValueError(f"max_length must be positive, got {max_length}")
        if merge_threshold < 0:
            raise ValueError(f"merge_threshold must be >= 0, got {merge_threshold}")
        if not 0 < boundary_ratio <= 1:
            raise ValueError(f"boundary_ratio must be in (0, 1], got {boundary_ratio}")
        self.max_length = max_length
        self.merge_threshold = merge_threshold
        self.boundary_ratio = boundary_ratio

    def _cut(self, prefix: str) -> str:
        last_space = prefix.rfind(" ")
        if last_space > 0 and last_space >= len(prefix) * self.boundary_ratio:
            return prefix[:last_space]
        return prefix

    def chunk(self, text: str) -> list[ContentBlock]:
        """
        Split text into blocks of at most max_length characters.

        Joining the blocks and ignoring whitespace gives back the
        original text. Empty text yields no blocks.
        """
        blocks: list[ContentBlock] = []
        remaining = text

        while remaining:
            chunk = self._cut(remaining[: self.max_length])
            remaining = remaining[len(chunk):].lstrip()

            if (
                remaining
                and len(remaining) < self.merge_threshold
                and len(chunk) + 1 + len(remaining) <= self.max_length
            ):
                chunk = f"{chunk} {remaining}"
                remaining = ""

            blocks.append(ContentBlock(text=chunk))

        return blocks
