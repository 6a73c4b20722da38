# app/services/read_model_cache.py
from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.core.config import get_settings

logger = logging.getLogger(__name__)

FINANCIAL_SUMMARY_KEY = "financial-summary"


@dataclass
class _Entry:
    value: Any
    expires_at: float


class ReadModelCache:
    """
    In-process cache of derived read models (financial summaries, ...).

    The database stays the only source of truth: entries are advisory copies
    that writers mark stale through `invalidate()` after committing, and that
    readers rebuild on demand through `read()`.

    Keys are namespaced with ':' so that invalidating ``"financial-summary"``
    also drops ``"financial-summary:2025-01-01:2025-01-31"``.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._generations: Dict[str, int] = {}
        self._epoch = 0

    async def read(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached value for `key`, revalidating through `loader` when
        the entry is missing or expired.
        """
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and entry.expires_at > now:
            return entry.value

        seen = self._generation(key)
        value = await loader()
        # A writer invalidated the key while the loader ran: the value may
        # predate that commit, so hand it back without caching it.
        if self._generation(key) == seen:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + self._ttl_seconds)
        else:
            logger.debug("Discarding read model %r loaded across an invalidation", key)
        return value

    def _generation(self, key: str) -> tuple[int, int]:
        parts = key.split(":")
        prefixes = (":".join(parts[: i + 1]) for i in range(len(parts)))
        return self._epoch, sum(self._generations.get(p, 0) for p in prefixes)

    def invalidate(self, key: str) -> int:
        """
        Drop `key` and every entry nested under it. Returns the number of
        entries removed.
        """
        self._generations[key] = self._generations.get(key, 0) + 1
        prefix = f"{key}:"
        stale = [k for k in self._entries if k == key or k.startswith(prefix)]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.debug("Invalidated %d read model(s) under %r", len(stale), key)
        return len(stale)

    def clear(self) -> int:
        self._epoch += 1
        count = len(self._entries)
        self._entries.clear()
        return count

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()


# Simple singleton-style accessor wired to app settings
_cache_instance: Optional[ReadModelCache] = None


def get_read_model_cache() -> ReadModelCache:
    """
    Lazily construct the process-wide ReadModelCache.

    Also usable as a FastAPI dependency so routes can hand it to services.
    """
    global _cache_instance
    if _cache_instance is None:
        settings = get_settings()
        _cache_instance = ReadModelCache(ttl_seconds=settings.READ_MODEL_CACHE_TTL_SECONDS)
    return _cache_instance


def invalidate_financial_views(cache: ReadModelCache | None) -> None:
    """
    Post-commit hook for writers touching appointments or sessions.
    """
    if cache is not None:
        cache.invalidate(FINANCIAL_SUMMARY_KEY)
