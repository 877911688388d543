from __future__ import annotations

from collections import deque
from typing import Deque, Hashable, Iterator, Optional, Set

from feed_core.types import Cursor, EventSignatureRef

DEDUP_CAP = 1000


class RecentSet:
    """Set of recently seen keys capped at ``cap``; ``trim()`` evicts oldest first."""

    def __init__(self, cap: int = DEDUP_CAP) -> None:
        if cap <= 0:
            raise ValueError("cap must be positive")
        self.cap = int(cap)
        self._order: Deque[Hashable] = deque()
        self._members: Set[Hashable] = set()

    def add(self, key: Hashable) -> None:
        if key in self._members:
            return
        self._members.add(key)
        self._order.append(key)

    def trim(self) -> int:
        dropped = 0
        while len(self._order) > self.cap:
            self._members.discard(self._order.popleft())
            dropped += 1
        return dropped

    def __contains__(self, key: object) -> bool:
        return key in self._members

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._order)


class CursorTracker:
    """High-water mark plus in-run dedup state for one pipeline instance."""

    def __init__(self, cap: int = DEDUP_CAP) -> None:
        self.cursor = Cursor()
        self.seen = RecentSet(cap)

    def initialize(self, ref: Optional[EventSignatureRef]) -> None:
        if ref is None:
            self.cursor = Cursor()
            return
        self.cursor = Cursor(last_signature=ref.id, last_slot=ref.slot)

    def should_process(self, ref: EventSignatureRef) -> bool:
        if ref.id in self.seen:
            return False
        # A market-scoped query can reach back past the global cursor.
        return ref.slot >= self.cursor.last_slot

    def mark_processed(self, ref: EventSignatureRef) -> None:
        self.seen.add(ref.id)

    def advance_cursor(self, ref: EventSignatureRef) -> None:
        if ref.slot < self.cursor.last_slot:
            return
        self.cursor.last_signature = ref.id
        self.cursor.last_slot = ref.slot

    def trim(self) -> int:
        return self.seen.trim()
