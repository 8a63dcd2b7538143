"""Order-preserving partitioning of work sequences."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Sequence, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Batch(Generic[T]):
    """A contiguous slice of a larger work sequence."""

    index: int
    items: Tuple[T, ...]
    offset: int

    def __len__(self) -> int:
        return len(self.items)


def make_batches(items: Sequence[T], size: int) -> List[Batch[T]]:
    """Split ``items`` into consecutive batches of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    batches: List[Batch[T]] = []
    for offset in range(0, len(items), size):
        batches.append(
            Batch(index=len(batches), items=tuple(items[offset : offset + size]), offset=offset)
        )
    return batches


__all__ = ["Batch", "make_batches"]
