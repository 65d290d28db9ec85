"""
============================================================
CRC CARD - application/resource_cache.py
============================================================
Module: Resource cache (local, non-authoritative list) + in-flight registry

Responsibilities:
  - Hold the last successfully fetched list of one resource kind.
  - Replace the whole list atomically; never patch items in place.
  - Guard replacements with a monotonically increasing sequence number:
    a fetch result is applied only if its sequence is higher than the last
    applied one (slow/late responses are discarded).
  - Track whether the list is known to be stale.
  - Track which resource keys have a mutation in flight.

Collaborators:
  - application/synchronizer.py (exclusive owner / writer)
  - UI collaborators read snapshot() only

Policy / Design Notes:
  - Single event loop per session: no locks needed, mutation of state
    happens between awaits only.
  - Snapshots are tuples, so readers cannot mutate the cache.
============================================================
"""

from __future__ import annotations

from typing import Generic, Iterable, TypeVar

T = TypeVar("T")


class ResourceCache(Generic[T]):
    """Local copy of a remote resource list, superseded by every newer fetch."""

    def __init__(self, kind: str):
        self.kind = kind
        self._items: tuple[T, ...] = ()
        self._issued_sequence = 0
        self._applied_sequence = 0
        self._loaded = False
        self._stale = False

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple[T, ...]:
        return self._items

    @property
    def is_loaded(self) -> bool:
        """True once at least one fetch has been applied."""
        return self._loaded

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def applied_sequence(self) -> int:
        return self._applied_sequence

    # ------------------------------------------------------------------
    # Writers (synchronizer only)
    # ------------------------------------------------------------------

    def next_sequence(self) -> int:
        """Reserves the sequence number of a fetch about to be issued."""
        self._issued_sequence += 1
        return self._issued_sequence

    def is_current(self, sequence: int) -> bool:
        """A result with this sequence would still be applied."""
        return sequence > self._applied_sequence

    def apply(self, sequence: int, items: Iterable[T]) -> bool:
        """
        Replaces the whole list if ``sequence`` is newer than the last
        applied result. Returns False (and changes nothing) otherwise.
        """
        if not self.is_current(sequence):
            return False
        self._items = tuple(items)
        self._applied_sequence = sequence
        self._loaded = True
        self._stale = False
        return True

    def mark_stale(self) -> None:
        self._stale = True

    def invalidate(self) -> None:
        """
        Discards every fetch already issued: their late responses will be
        ignored. Used when the collaborator navigates away or logs out.
        """
        self._applied_sequence = self._issued_sequence

    def clear(self) -> None:
        """Forgets the list (logout) and ignores in-flight fetches."""
        self.invalidate()
        self._items = ()
        self._loaded = False
        self._stale = False


class InFlightRegistry:
    """Keys of resources with a pending mutation (one at a time per key)."""

    def __init__(self) -> None:
        self._pending: set[str] = set()

    def claim(self, key: str) -> bool:
        if key in self._pending:
            return False
        self._pending.add(key)
        return True

    def release(self, key: str) -> None:
        self._pending.discard(key)

    def is_pending(self, key: str) -> bool:
        return key in self._pending
