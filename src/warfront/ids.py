"""Monotonic per-kind identifier allocation.

Each entity kind (group, unit, objective) draws from its own counter.  Ids
are never reused.  After a snapshot load the counters are advanced past
every persisted id with observe(), so fresh ids never collide.

The allocator assumes a single writer.  Two concurrent callers of
allocate() can receive the same id; nothing here guards against that.
"""

from __future__ import annotations


class IdAllocator:
    """Hands out increasing integer ids for one entity kind."""

    def __init__(self, kind: str, start: int = 0) -> None:
        self.kind = kind
        self._next = start

    @property
    def next_id(self) -> int:
        return self._next

    def allocate(self) -> int:
        """Return a new id, strictly greater than any id handed out or observed."""
        nid = self._next
        self._next += 1
        return nid

    def observe(self, seen: int) -> None:
        """Advance past ``seen`` if it is at or beyond the current counter."""
        if seen >= self._next:
            self._next = seen + 1

    def __repr__(self) -> str:
        return f"<IdAllocator {self.kind} next={self._next}>"
