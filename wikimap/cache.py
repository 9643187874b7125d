"""
Session-scoped memo caches.

Entries never expire: the map data and the articles it points at are
static for the lifetime of a session, and the session clears the caches
on teardown.

Each cache also tracks in-flight computations so that concurrent callers
asking for the same key share one computation instead of racing to fill
the entry. The check and the registration of a new computation happen
with no await in between.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

from wikimap.models import HistoricalEvent, WikiResult

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class MemoCache(Generic[K, V]):
    def __init__(self) -> None:
        self._store: dict[K, V] = {}
        self._inflight: dict[K, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def get(self, key: K) -> Optional[V]:
        return self._store.get(key)

    def set(self, key: K, value: V) -> None:
        self._store[key] = value

    def clear(self) -> None:
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self._store.clear()

    async def get_or_compute(self, key: K, compute: Callable[[], Awaitable[Optional[V]]]) -> Optional[V]:
        """Cached value, or the result of compute() stored under key.

        A None result is returned but not stored, so the next call retries.
        """
        if key in self._store:
            logger.debug("Cache HIT: %r", key)
            return self._store[key]

        task = self._inflight.get(key)
        if task is None:
            logger.debug("Cache MISS: %r", key)
            task = asyncio.ensure_future(self._fill(key, compute))
            self._inflight[key] = task
        # shield: one cancelled waiter must not cancel the shared computation
        return await asyncio.shield(task)

    async def _fill(self, key: K, compute: Callable[[], Awaitable[Optional[V]]]) -> Optional[V]:
        try:
            value = await compute()
            if value is not None:
                self._store[key] = value
            return value
        finally:
            self._inflight.pop(key, None)


class WikiCache(MemoCache[tuple[str, str], WikiResult]):
    """WikiResult per (category, feature display name)."""


class EventCache(MemoCache[tuple[int, int], list[HistoricalEvent]]):
    """Normalized on-this-day events per (month, day)."""
