"""
Block-keyed, single-flight memoisation.

Every on-chain derived value (token decimals, pool state, resolved rates) is
a pure function of (entity, block). ``BlockKeyedCache`` stores each value
once per key and shares a single in-flight computation between concurrent
callers, so that one block's gathered tasks never issue the same reads twice.
Failed computations are not cached; the next caller retries.
"""

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from functools import partial
from typing import Generic, TypeVar

V = TypeVar("V")

CacheKey = tuple[Hashable, int]


class BlockKeyedCache(Generic[V]):
    """
    Append-only cache keyed by ``(key, block)``.

    ``retention_blocks`` bounds memory: ``prune(current_block)`` drops every
    entry older than ``current_block - retention_blocks``.
    """

    def __init__(self, name: str, retention_blocks: int = 0):
        self.name = name
        self.retention_blocks = retention_blocks
        self._entries: dict[CacheKey, V] = {}
        self._inflight: dict[CacheKey, asyncio.Future] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, cache_key: CacheKey) -> bool:
        return cache_key in self._entries

    def get(self, key: Hashable, block: int) -> V | None:
        return self._entries.get((key, block))

    async def get_or_create(
        self,
        key: Hashable,
        block: int,
        factory: Callable[[], Awaitable[V]],
    ) -> V:
        """
        Return the cached value for ``(key, block)``, computing it at most once.

        Concurrent callers for the same key await the same task. Exceptions
        propagate to every waiter and leave the key uncached.
        """
        cache_key = (key, block)
        if cache_key in self._entries:
            self.hits += 1
            return self._entries[cache_key]

        task = self._inflight.get(cache_key)
        if task is None:
            self.misses += 1
            task = asyncio.ensure_future(factory())
            self._inflight[cache_key] = task
            task.add_done_callback(partial(self._settle, cache_key))
        else:
            self.hits += 1

        # A cancelled waiter must not cancel the shared computation
        return await asyncio.shield(task)

    def _settle(self, cache_key: CacheKey, task: asyncio.Future) -> None:
        self._inflight.pop(cache_key, None)
        if task.cancelled():
            return
        # exception() also marks a failure as retrieved
        if task.exception() is None:
            self._entries[cache_key] = task.result()

    def put(self, key: Hashable, block: int, value: V) -> V:
        """Store a value computed outside the cache. The first write wins."""
        return self._entries.setdefault((key, block), value)

    def prune(self, current_block: int) -> int:
        """Drop entries outside the retention window. Returns the number removed."""
        oldest = current_block - self.retention_blocks
        stale = [cache_key for cache_key in self._entries if cache_key[1] < oldest]
        for cache_key in stale:
            del self._entries[cache_key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
