"""
Batchers

Packs display units into message batches bounded by unit count and
serialized size, and windows attachments into upload batches.
"""

from typing import Sequence, TypeVar

from relay.exceptions import OversizedUnitError
from relay.models.display import Batch, DisplayUnit

T = TypeVar("T")


class BlockBatcher:
    """
    Greedy, order-preserving packer for display units.

    A batch is closed before adding a unit that would push it past
    max_batch_bytes or when it already holds max_units units. A unit
    that exactly fills the remaining budget stays in the current batch.
    """

    def __init__(self, max_units: int = 10, max_batch_bytes: int = 6000) -> None:
        if max_units <= 0:
            raise ValueError(f"max_units must be positive, got {max_units}")
        if max_batch_bytes <= 0:
            raise ValueError(f"max_batch_bytes must be positive, got {max_batch_bytes}")
        self.max_units = max_units
        self.max_batch_bytes = max_batch_bytes

    def batch(self, units: Sequence[DisplayUnit]) -> list[Batch]:
        """
        Pack units into batches in a single forward pass.

        Raises:
            OversizedUnitError: If one unit alone exceeds max_batch_bytes
        """
        batches: list[Batch] = []
        current = Batch()

        for unit in units:
            size = unit.size
            if size > self.max_batch_bytes:
                raise OversizedUnitError(size, self.max_batch_bytes)

            if current.size + size > self.max_batch_bytes or len(current) >= self.max_units:
                batches.append(current)
                current = Batch()

            current.add(unit)

        if len(current):
            batches.append(current)

        return batches


class AttachmentBatcher:
    """Fixed-size windows over attachments; no byte accounting."""

    def __init__(self, batch_size: int = 10) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size

    def batch(self, attachments: Sequence[T]) -> list[list[T]]:
        return [
            list(attachments[start : start + self.batch_size])
            for start in range(0, len(attachments), self.batch_size)
        ]
