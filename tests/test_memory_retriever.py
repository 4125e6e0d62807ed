"""Tests for MemoryRetriever filtering."""

from datetime import UTC, datetime

from umbra.memory.retriever import MemoryRetriever, TimeRange
from umbra.memory.store import MemoryStore


async def _seed(store: MemoryStore) -> None:
    await store.save(
        "vox",
        {"content": "Jammed with Kai", "type": "event", "significance": "medium",
         "tags": ["music", "kai"], "timestamp": 1000},
    )
    await store.save(
        "vox",
        {"content": "Minor keys feel heavy", "type": "insight", "significance": "high",
         "tags": ["music"], "timestamp": 2000},
    )
    await store.save(
        "vox",
        {"content": "Rain again", "type": "event", "significance": "low",
         "tags": ["weather"], "timestamp": 3000},
    )
    await store.save(
        "vox",
        {"content": "Kai prefers jazz", "type": "insight", "significance": "high",
         "tags": ["kai"], "timestamp": 4000},
    )


async def test_search_without_filters_is_newest_first(
    store: MemoryStore, retriever: MemoryRetriever
) -> None:
    await _seed(store)
    results = await retriever.search("vox")
    assert [r.timestamp for r in results] == [4000, 3000, 2000, 1000]


async def test_query_matches_content_case_insensitive(
    store: MemoryStore, retriever: MemoryRetriever
) -> None:
    await _seed(store)
    results = await retriever.search("vox", query="KAI")
    assert [r.content for r in results] == ["Kai prefers jazz", "Jammed with Kai"]


async def test_query_matches_tags(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    results = await retriever.search("vox", query="weather")
    assert [r.content for r in results] == ["Rain again"]


async def test_type_and_tags_are_conjunctive(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    results = await retriever.search("vox", type="insight", tags=["music"])
    assert [r.content for r in results] == ["Minor keys feel heavy"]
    for record in results:
        assert record.type == "insight"
        assert "music" in record.tags


async def test_tags_require_every_tag(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    results = await retriever.search("vox", tags=["music", "kai"])
    assert [r.content for r in results] == ["Jammed with Kai"]


async def test_significance_limit_returns_newest_matches(
    store: MemoryStore, retriever: MemoryRetriever
) -> None:
    for i in range(5):
        await store.save(
            "vox", {"content": f"high {i}", "significance": "high", "timestamp": 100 + i * 10}
        )
    for i in range(10):
        await store.save(
            "vox", {"content": f"low {i}", "significance": "low", "timestamp": 101 + i * 10}
        )

    results = await retriever.search("vox", significance="high", limit=2)
    assert [r.content for r in results] == ["high 4", "high 3"]


async def test_time_range_is_inclusive(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    results = await retriever.search("vox", time_range=TimeRange(start=2000, end=3000))
    assert [r.timestamp for r in results] == [3000, 2000]


async def test_time_range_accepts_iso_and_datetime(
    store: MemoryStore, retriever: MemoryRetriever
) -> None:
    await _seed(store)
    start = datetime.fromtimestamp(0, tz=UTC)
    results = await retriever.search(
        "vox", time_range=TimeRange(start=start, end="1970-01-01T00:00:02.500Z")
    )
    assert [r.timestamp for r in results] == [2000, 1000]


async def test_scan_limit_caps_search_window(store: MemoryStore) -> None:
    await _seed(store)
    retriever = MemoryRetriever(store, scan_limit=2)
    results = await retriever.search("vox", query="kai")
    assert [r.content for r in results] == ["Kai prefers jazz"]


async def test_unknown_personality_returns_empty(retriever: MemoryRetriever) -> None:
    assert await retriever.search("nobody", query="x") == []


# -- helpers -------------------------------------------------------------------


async def test_recent(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    results = await retriever.recent("vox", limit=2)
    assert [r.timestamp for r in results] == [4000, 3000]


async def test_by_type_and_by_tags(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    assert len(await retriever.by_type("vox", "event")) == 2
    assert [r.content for r in await retriever.by_tags("vox", "weather")] == ["Rain again"]


async def test_high_significance(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    results = await retriever.high_significance("vox")
    assert {r.content for r in results} == {"Minor keys feel heavy", "Kai prefers jazz"}


async def test_context_stats(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    stats = await retriever.context_stats("vox")
    assert stats.total == 4
    assert stats.by_type == {"insight": 2, "event": 2}
    assert stats.by_significance == {"high": 2, "low": 1, "medium": 1}
    assert stats.time_coverage is not None
    assert stats.time_coverage.oldest.startswith("1970-01-01T00:00:01")
    assert stats.time_coverage.newest.startswith("1970-01-01T00:00:04")


async def test_context_stats_by_type(store: MemoryStore, retriever: MemoryRetriever) -> None:
    await _seed(store)
    stats = await retriever.context_stats("vox", memory_type="event")
    assert stats.total == 2
    assert stats.by_type == {"event": 2}


async def test_context_stats_empty(retriever: MemoryRetriever) -> None:
    stats = await retriever.context_stats("nobody")
    assert stats.total == 0
    assert stats.time_coverage is None
