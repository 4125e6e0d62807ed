"""Tests for ContextEngine wiring."""

from pathlib import Path

import pytest
from conftest import START_MS, FakeClock

from umbra.artifacts import SUMMARIES
from umbra.engine import ContextEngine
from umbra.memory.store import MemoryStore


@pytest.fixture
def engine(tmp_path: Path) -> ContextEngine:
    MemoryStore._reset()
    engine = ContextEngine.create(
        db_path=tmp_path / "memories.db",
        artifacts_dir=tmp_path / "artifacts",
        schemas_dir=tmp_path,
        clock=FakeClock(),
    )
    yield engine
    MemoryStore._reset()


def _event(i: int, username: str = "kai", **extra) -> dict:
    return {
        "author": {"id": f"u-{username}", "username": username},
        "content": f"message {i}",
        "timestamp": START_MS + i,
        **extra,
    }


async def test_components_share_state(engine: ContextEngine) -> None:
    assert engine.window.registry is engine.registry
    assert engine.artifacts.root.name == "artifacts"


async def test_ingest_buffers_turns(engine: ContextEngine) -> None:
    assert await engine.ingest(_event(1), "c1") is None
    image = [{"content_type": "image/png"}]
    assert await engine.ingest(_event(2, "vox", attachments=image), "c1") is None

    turns = engine.window.turns("c1")
    assert [t.author for t in turns] == ["kai", "vox"]
    assert turns[1].image_count == 1
    assert turns[0].timestamp == START_MS + 1


async def test_ingest_compacts_at_threshold(engine: ContextEngine) -> None:
    results = [await engine.ingest(_event(i), "c1", "t1") for i in range(25)]

    artifact = results[-1]
    assert all(r is None for r in results[:-1])
    assert artifact is not None
    assert artifact.message_count == 25
    assert engine.window.turn_count("c1", "t1") == 0
    assert (engine.artifacts.root / SUMMARIES / f"{artifact.artifact_id}.json").exists()


async def test_context_for_mention(engine: ContextEngine) -> None:
    for content in ("kai likes jazz", "rain all week"):
        result = await engine.writer.write(
            "vox", {"content": content, "type": "insight", "significance": "medium"}
        )
        assert result.ok
    for i in range(3):
        await engine.ingest(_event(i), "c1")

    context = await engine.context_for_mention(
        "vox",
        "c1",
        text="jazz",
        search_results=[
            {"id": "77", "channelId": "c1", "author": {"username": "kai"}, "content": "jazz?"}
        ],
    )
    payload = context.to_payload()

    assert payload["sources"]["current"]["count"] == 3
    assert payload["sources"]["search"]["message_count"] == 1
    assert [m["content"] for m in payload["sources"]["memory"]["memories"]] == ["kai likes jazz"]
    assert payload["sources"]["stats"]["total"] == 2
    assert "history" not in payload["sources"]
