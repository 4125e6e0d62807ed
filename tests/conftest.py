"""Shared test fixtures."""

from pathlib import Path

import pytest

from umbra.artifacts import ArtifactStore
from umbra.conversation.models import ConversationTurn
from umbra.conversation.window import ConversationRegistry, ConversationWindow
from umbra.memory.retriever import MemoryRetriever
from umbra.memory.store import MemoryStore
from umbra.memory.writer import MemoryWriter

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millis clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_turn(author: str = "alice", text: str = "hello", **kwargs) -> ConversationTurn:
    kwargs.setdefault("timestamp", START_MS)
    return ConversationTurn(author=author, text=text, **kwargs)


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    """Create a MemoryStore backed by a temp database."""
    MemoryStore._reset()
    yield MemoryStore(db_path=tmp_path / "memories.db")
    MemoryStore._reset()


@pytest.fixture
def schemas_dir(tmp_path: Path) -> Path:
    path = tmp_path / "schemas"
    path.mkdir()
    return path


@pytest.fixture
def writer(store: MemoryStore, schemas_dir: Path) -> MemoryWriter:
    return MemoryWriter(store, schemas_dir=schemas_dir)


@pytest.fixture
def retriever(store: MemoryStore) -> MemoryRetriever:
    return MemoryRetriever(store)


@pytest.fixture
def artifacts(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(root=tmp_path / "artifacts")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def window(artifacts: ArtifactStore, clock: FakeClock) -> ConversationWindow:
    return ConversationWindow(ConversationRegistry(), artifacts, clock=clock)
