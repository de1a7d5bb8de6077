"""
Detection cache — short-TTL memoisation of an adapter's read calls.

Each adapter owns one ``DetectionCache``. Entries live for ``ttl_ms``
from the moment they were written and are dropped wholesale by
``clear()``, which adapters call before returning from any successful
mutation so the very next read sees the new state.

Concurrency: a per-key ``asyncio.Lock`` keeps check → compute → store
atomic for a key, so two callers racing on a cold key share one
computation instead of interleaving writes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_MS = 5000


@dataclass
class _Entry:
    value: Any
    written_at: float  # time.monotonic()


class DetectionCache:
    """Per-adapter, per-key memoisation with a fixed TTL."""

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS, clock: Callable[[], float] = time.monotonic):
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._key_locks: dict[str, asyncio.Lock] = {}
        self._generation = 0

    def _get_key_lock(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = self._key_locks[key] = asyncio.Lock()
        return lock

    def _fresh(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if (self._clock() - entry.written_at) * 1000 >= self.ttl_ms:
            return None
        return entry

    async def get_cached(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for ``key`` or compute and store it."""
        entry = self._fresh(key)
        if entry is not None:
            return entry.value

        async with self._get_key_lock(key):
            # Another caller may have filled it while we waited.
            entry = self._fresh(key)
            if entry is not None:
                return entry.value

            generation = self._generation
            value = await compute()
            # A clear() during compute means the value may predate a write.
            if generation == self._generation:
                self._entries[key] = _Entry(value=value, written_at=self._clock())
            else:
                logger.debug("Cache cleared during compute of %r; not storing", key)
            return value

    def clear(self) -> None:
        """Drop every entry. Synchronous, safe to call from any coroutine."""
        self._entries.clear()
        self._generation += 1

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._fresh(key) is not None
