"""
Address-Range Index
====================

Maps a virtual address to the record whose half-open range
``[start, end)`` contains it.  Ranges may overlap; a lookup returns the
containing range that was registered first (file order).

Ranges are kept sorted by start address alongside a running maximum of
end addresses, so a lookup bisects to the last range starting at or
before the address and walks backwards only while an earlier range could
still reach it.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Generic, Iterable, Optional, TypeVar

T = TypeVar("T")


class AddressRangeIndex(Generic[T]):
    """Immutable interval index over ``(start, end, item)`` triples.

    Empty ranges (``end <= start``) are dropped.
    """

    __slots__ = ("_starts", "_ends", "_orders", "_items", "_max_end")

    def __init__(self, ranges: Iterable[tuple[int, int, T]]) -> None:
        entries = sorted(
            (
                (start, end, order, item)
                for order, (start, end, item) in enumerate(ranges)
                if end > start
            ),
            key=lambda entry: (entry[0], entry[2]),
        )
        self._starts: list[int] = [e[0] for e in entries]
        self._ends: list[int] = [e[1] for e in entries]
        self._orders: list[int] = [e[2] for e in entries]
        self._items: list[T] = [e[3] for e in entries]

        self._max_end: list[int] = []
        running = 0
        for end in self._ends:
            running = max(running, end)
            self._max_end.append(running)

    def __len__(self) -> int:
        return len(self._items)

    def lookup(self, address: int) -> Optional[T]:
        """Return the first-registered item whose range contains *address*."""
        best: Optional[int] = None
        for pos in self._candidates(address):
            if best is None or self._orders[pos] < self._orders[best]:
                best = pos
        return self._items[best] if best is not None else None

    def lookup_all(self, address: int) -> list[T]:
        """Return every item containing *address*, in registration order."""
        positions = sorted(self._candidates(address), key=self._orders.__getitem__)
        return [self._items[pos] for pos in positions]

    def _candidates(self, address: int) -> list[int]:
        found: list[int] = []
        pos = bisect_right(self._starts, address) - 1
        while pos >= 0 and self._max_end[pos] > address:
            if self._ends[pos] > address:
                found.append(pos)
            pos -= 1
        return found
