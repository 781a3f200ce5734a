"""
Result Cache and Query History Tests

Tests for LRU eviction, expiry, key normalization and history persistence.
"""

import asyncio
import json
from datetime import datetime

from src.orchestration import AnalysisResult, HistoryEntry, QueryHistory, ResultCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def result(query: str) -> AnalysisResult:
    return AnalysisResult(
        query_id=f"id-{query}",
        original_query=query,
        processing_time_ms=10,
        scouts_deployed=3,
        documents_analyzed=0,
    )


def test_put_and_get():
    """Test a stored result comes back for the same query."""
    print("=" * 60)
    print("TEST 1: Cache put/get")
    print("=" * 60)

    async def scenario():
        cache = ResultCache()
        assert await cache.get("techcorp") is None
        await cache.put("techcorp", result("techcorp"))
        cached = await cache.get("techcorp")
        assert cached is not None
        assert cached.query_id == "id-techcorp"
        return cache.stats()

    stats = asyncio.run(scenario())
    print(f"\nStats: {stats}")
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["entries"] == 1
    assert stats["hit_rate"] == 0.5
    print("\n[PASS] Hit after put")


def test_key_normalization():
    async def scenario():
        cache = ResultCache()
        await cache.put("Find  John ", result("find john"))
        assert await cache.get("find john") is not None
        assert await cache.get("FIND JOHN") is not None

        strict = ResultCache(normalize_keys=False)
        await strict.put("Find John", result("Find John"))
        assert await strict.get("find john") is None
        assert await strict.get("Find John") is not None

    asyncio.run(scenario())


def test_lru_eviction():
    """Test the least recently used entry is evicted when full."""
    print("\n" + "=" * 60)
    print("TEST 2: LRU eviction")
    print("=" * 60)

    async def scenario():
        cache = ResultCache(max_entries=2)
        await cache.put("alpha", result("alpha"))
        await cache.put("bravo", result("bravo"))
        # Touch alpha so bravo becomes least recently used
        assert await cache.get("alpha") is not None
        await cache.put("charlie", result("charlie"))

        assert len(cache) == 2
        assert await cache.get("bravo") is None
        assert await cache.get("alpha") is not None
        assert await cache.get("charlie") is not None
        assert cache.evictions == 1

    asyncio.run(scenario())
    print("\n[PASS] 'bravo' evicted")


def test_ttl_expiry():
    clock = FakeClock()

    async def scenario():
        cache = ResultCache(ttl_seconds=60, clock=clock)
        await cache.put("techcorp", result("techcorp"))

        clock.now += 59
        assert await cache.get("techcorp") is not None

        clock.now += 1
        assert await cache.get("techcorp") is None
        assert len(cache) == 0
        assert cache.evictions == 1

        forever = ResultCache(ttl_seconds=None, clock=clock)
        await forever.put("techcorp", result("techcorp"))
        clock.now += 10 ** 6
        assert await forever.get("techcorp") is not None

    asyncio.run(scenario())


def test_invalidate_and_clear():
    async def scenario():
        cache = ResultCache()
        await cache.put("alpha", result("alpha"))
        await cache.put("bravo", result("bravo"))

        assert await cache.invalidate("ALPHA") is True
        assert await cache.invalidate("alpha") is False
        assert await cache.get("alpha") is None

        assert await cache.clear() == 1
        assert len(cache) == 0

    asyncio.run(scenario())


def test_concurrent_puts():
    async def scenario():
        cache = ResultCache(max_entries=10)
        await asyncio.gather(*(cache.put(f"query {i}", result(str(i))) for i in range(50)))
        return cache

    cache = asyncio.run(scenario())
    assert len(cache) == 10
    assert cache.evictions == 40


def test_history_record_and_stats():
    """Test history keeps a bounded window and summary statistics."""
    print("\n" + "=" * 60)
    print("TEST 3: Query history")
    print("=" * 60)

    async def scenario():
        history = QueryHistory(max_entries=3)
        for i, text in enumerate(["techcorp", "globex", "techcorp", "acme"]):
            await history.record(HistoryEntry(
                query_id=f"q{i}",
                query=text,
                processing_time_ms=100 * (i + 1),
                result_count=i,
                cache_hit=(i == 2),
            ))
        return history

    history = asyncio.run(scenario())
    stats = history.stats()
    print(f"\nStats: {stats}")

    assert len(history) == 3
    assert history.total_recorded == 4
    assert [e.query_id for e in history.entries()] == ["q1", "q2", "q3"]
    assert [e.query_id for e in history.recent(2)] == ["q3", "q2"]
    assert history.recent(0) == []
    assert stats["cache_hit_rate"] == round(1 / 3, 4)
    assert stats["avg_processing_time_ms"] == 300.0
    assert set(stats["top_queries"]) == {"globex", "techcorp", "acme"}
    print("\n[PASS] Window of three, four recorded")


def test_history_empty_stats():
    stats = QueryHistory().stats()
    assert stats["entries"] == 0
    assert stats["cache_hit_rate"] == 0.0
    assert stats["top_queries"] == []


def test_history_persistence(tmp_path):
    path = tmp_path / "history" / "queries.jsonl"

    async def record(history: QueryHistory, query_id: str):
        await history.record(HistoryEntry(
            query_id=query_id,
            query="TechCorp acquisition",
            processing_time_ms=42,
            result_count=3,
            user_id="analyst-7",
            timestamp=datetime(2024, 1, 15, 9, 30),
        ))

    history = QueryHistory(persist_path=path)
    asyncio.run(record(history, "q1"))
    asyncio.run(record(history, "q2"))

    lines = path.read_text().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["user_id"] == "analyst-7"

    # Corrupt lines and non-object JSON are skipped on reload
    with open(path, "a") as f:
        f.write("not json\n")
        f.write("[1]\n")
        f.write("\"just a string\"\n")

    reloaded = QueryHistory(persist_path=path)
    assert [e.query_id for e in reloaded.entries()] == ["q1", "q2"]
    assert reloaded.entries()[0].timestamp == datetime(2024, 1, 15, 9, 30)
    assert reloaded.total_recorded == 2


def main():
    """Run all tests."""
    import tempfile
    from pathlib import Path

    test_put_and_get()
    test_key_normalization()
    test_lru_eviction()
    test_ttl_expiry()
    test_invalidate_and_clear()
    test_concurrent_puts()
    test_history_record_and_stats()
    test_history_empty_stats()
    with tempfile.TemporaryDirectory() as tmp:
        test_history_persistence(Path(tmp))
    print("\n" + "=" * 60)
    print("ALL CACHE AND HISTORY TESTS PASSED")
    print("=" * 60)


if __name__ == "__main__":
    main()
