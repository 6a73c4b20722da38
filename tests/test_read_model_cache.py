# tests/test_read_model_cache.py
import pytest

from app.services.read_model_cache import (
    FINANCIAL_SUMMARY_KEY,
    ReadModelCache,
    invalidate_financial_views,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingLoader:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> int:
        self.calls += 1
        return self.calls


@pytest.mark.asyncio
async def test_read_caches_until_invalidated():
    cache = ReadModelCache(ttl_seconds=60)
    loader = CountingLoader()

    assert await cache.read("k", loader) == 1
    assert await cache.read("k", loader) == 1
    assert loader.calls == 1

    assert cache.invalidate("k") == 1
    assert await cache.read("k", loader) == 2


@pytest.mark.asyncio
async def test_read_revalidates_after_ttl():
    clock = FakeClock()
    cache = ReadModelCache(ttl_seconds=10, clock=clock)
    loader = CountingLoader()

    await cache.read("k", loader)
    clock.now = 9.0
    assert await cache.read("k", loader) == 1

    clock.now = 10.5
    assert "k" not in cache
    assert await cache.read("k", loader) == 2


@pytest.mark.asyncio
async def test_invalidate_drops_nested_keys_only():
    cache = ReadModelCache()
    loader = CountingLoader()

    await cache.read(f"{FINANCIAL_SUMMARY_KEY}:2025-01-01:2025-01-31", loader)
    await cache.read(f"{FINANCIAL_SUMMARY_KEY}:2025-02-01:2025-02-28", loader)
    await cache.read("financial-summary-archive", loader)

    invalidate_financial_views(cache)

    assert f"{FINANCIAL_SUMMARY_KEY}:2025-01-01:2025-01-31" not in cache
    assert f"{FINANCIAL_SUMMARY_KEY}:2025-02-01:2025-02-28" not in cache
    assert "financial-summary-archive" in cache


def test_invalidate_financial_views_accepts_missing_cache():
    invalidate_financial_views(None)


@pytest.mark.asyncio
async def test_clear_reports_removed_entries():
    cache = ReadModelCache()
    loader = CountingLoader()
    await cache.read("a", loader)
    await cache.read("b", loader)

    assert cache.clear() == 2
    assert "a" not in cache


@pytest.mark.asyncio
async def test_value_loaded_across_an_invalidation_is_not_cached():
    """
    A summary computed before a write commits must not outlive that
    write's invalidation.
    """
    cache = ReadModelCache(ttl_seconds=300)
    db = {"total": 100}
    key = f"{FINANCIAL_SUMMARY_KEY}:2025-01-01:2025-01-31"

    async def racing_loader() -> int:
        seen = db["total"]
        db["total"] = 200
        invalidate_financial_views(cache)
        return seen

    async def loader() -> int:
        return db["total"]

    assert await cache.read(key, racing_loader) == 100
    assert key not in cache
    assert await cache.read(key, loader) == 200
    assert await cache.read(key, racing_loader) == 200


@pytest.mark.asyncio
async def test_clear_during_load_discards_the_value():
    cache = ReadModelCache()

    async def loader() -> str:
        cache.clear()
        return "stale"

    assert await cache.read("a", loader) == "stale"
    assert "a" not in cache
