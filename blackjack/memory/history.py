"""
Bounded FIFO history used by every capped collection in the learning state.
"""

from collections import deque
from typing import Deque, Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar('T')


class BoundedHistory(Generic[T]):
    """Append-only ring buffer that evicts the oldest entry past its cap."""

    def __init__(self, max_size: int, items: Optional[Iterable[T]] = None):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._items: Deque[T] = deque(items or (), maxlen=max_size)

    def append(self, item: T) -> None:
        self._items.append(item)

    def extend(self, items: Iterable[T]) -> None:
        self._items.extend(items)

    def recent(self, count: int) -> List[T]:
        """The last `count` entries, oldest first."""
        if count <= 0:
            return []
        return list(self._items)[-count:]

    def to_list(self) -> List[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __eq__(self, other):
        if isinstance(other, BoundedHistory):
            return self.max_size == other.max_size and list(self) == list(other)
        return NotImplemented

    def __repr__(self):
        return f"BoundedHistory(max_size={self.max_size}, len={len(self)})"
