"""
routeguard.auth.cache

Single-flight cache with expire-after-write semantics.

Responsibilities:
- Hold asyncio tasks as cache values so concurrent misses on one key share a single
  upstream computation.
- Expire entries a fixed duration after their value was computed; eviction is lazy.
- Drop failed computations so the next caller retries.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from datetime import timedelta
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(slots=True)
class _Entry(Generic[V]):
    task: asyncio.Task[V]
    written_at: float | None = None


class SingleFlightCache(Generic[K, V]):
    """
    Maps a key to one shared, awaitable computation.

    `ttl=None` keeps completed values for the cache's lifetime.
    """

    def __init__(
        self,
        loader: Callable[[K], Awaitable[V]],
        *,
        ttl: timedelta | None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl = ttl.total_seconds() if ttl is not None else None
        self._clock = clock
        self._entries: dict[K, _Entry[V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not self._expired(entry)

    async def get(self, key: K) -> V:
        entry = self._entries.get(key)
        if entry is None or self._expired(entry):
            self._purge_expired()
            # No await between lookup and insert: concurrent callers on the same event
            # loop observe the new entry and attach to its task.
            entry = _Entry(task=asyncio.ensure_future(self._load(key)))
            self._entries[key] = entry
            entry.task.add_done_callback(lambda t, e=entry, k=key: self._settle(k, e, t))
        # Shield: a cancelled waiter must not cancel the computation other callers share.
        return await asyncio.shield(entry.task)

    def invalidate(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def _load(self, key: K) -> V:
        return await self._loader(key)

    def _settle(self, key: K, entry: _Entry[V], task: asyncio.Task[V]) -> None:
        if task.cancelled() or task.exception() is not None:
            if self._entries.get(key) is entry:
                del self._entries[key]
            return
        entry.written_at = self._clock()

    def _purge_expired(self) -> None:
        # Lazy eviction: only runs when a new computation is inserted.
        for stale in [k for k, e in self._entries.items() if self._expired(e)]:
            del self._entries[stale]

    def _expired(self, entry: _Entry[V]) -> bool:
        if entry.written_at is None or self._ttl is None:
            # In flight, or no expiry configured.
            return False
        return self._clock() - entry.written_at >= self._ttl


# --- Module Notes -----------------------------------------------------------
# Used for the OIDC service token (one constant key), group memberships (keyed by
# username) and the provider registry (no ttl).
