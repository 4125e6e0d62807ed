"""Wiring for the context engine.

One ``ContextEngine`` is created at process start and owns the conversation
registry for the life of the process.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from umbra.artifacts import ArtifactStore
from umbra.context.builder import AggregatedContext, ContextBuilder, SearchInput
from umbra.conversation.models import ConversationTurn, SummaryArtifact
from umbra.conversation.window import ConversationRegistry, ConversationWindow
from umbra.memory.retriever import MemoryRetriever
from umbra.memory.store import MemoryStore
from umbra.memory.writer import MemoryWriter
from umbra.timeutil import now_ms

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ContextEngine:
    store: MemoryStore
    writer: MemoryWriter
    retriever: MemoryRetriever
    registry: ConversationRegistry
    window: ConversationWindow
    artifacts: ArtifactStore
    builder: ContextBuilder

    @classmethod
    def create(
        cls,
        *,
        db_path: Path | None = None,
        artifacts_dir: Path | None = None,
        schemas_dir: Path | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> ContextEngine:
        """Build every component; paths default to the configured settings."""
        store = MemoryStore(db_path=db_path)
        retriever = MemoryRetriever(store)
        registry = ConversationRegistry()
        artifacts = ArtifactStore(root=artifacts_dir)
        window = ConversationWindow(registry, artifacts, clock=clock)
        engine = cls(
            store=store,
            writer=MemoryWriter(store, schemas_dir=schemas_dir),
            retriever=retriever,
            registry=registry,
            window=window,
            artifacts=artifacts,
            builder=ContextBuilder(store, retriever, window=window, artifacts=artifacts),
        )
        logger.info("Context engine ready (artifacts in %s)", artifacts.root)
        return engine

    async def ingest(
        self,
        event: dict[str, Any],
        channel_id: str,
        thread_id: str | None = None,
    ) -> SummaryArtifact | None:
        """Record an inbound message event in its conversation window."""
        turn = ConversationTurn.from_event(event)
        return await self.window.append(turn, channel_id, thread_id)

    async def context_for_mention(
        self,
        personality: str,
        channel_id: str,
        thread_id: str | None = None,
        text: str | None = None,
        search_results: SearchInput = None,
        memory_limit: int = 10,
    ) -> AggregatedContext:
        """Context for a turn that addressed the agent, queried by the mention text."""
        return await self.builder.build_for_context(
            personality,
            channel_id,
            thread_id=thread_id,
            query=text,
            search_results=search_results,
            memory_limit=memory_limit,
        )
