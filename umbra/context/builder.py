"""Assemble live turns, search results and memories into one model context.

Each source is summarized on its own and only included when it has data.
The rendered ``summary`` string always lists blocks in the same order:
previous context, recent messages, search results, memory.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError

from umbra.conversation.models import ConversationTurn, SummaryArtifact, context_key
from umbra.errors import StorageError
from umbra.memory.models import MemoryStats
from umbra.search.models import SearchContextSummary, SearchMessage, SearchResponse
from umbra.search.summarizer import build_search_summary
from umbra.timeutil import now_ms, truncate

if TYPE_CHECKING:
    from umbra.artifacts import ArtifactStore
    from umbra.conversation.window import ConversationWindow
    from umbra.memory.models import MemoryRecord
    from umbra.memory.retriever import MemoryRetriever
    from umbra.memory.store import MemoryStore

logger = logging.getLogger(__name__)

MEMORY_PREVIEW_CHARS = 500
RECENT_LINE_CHARS = 80
MEMORY_LINE_CHARS = 100

SearchInput = SearchResponse | Sequence[SearchMessage | dict[str, Any]] | None


# -- Payload models ----------------------------------------------------------


class RecentMessage(BaseModel):
    role: str
    author: str
    content: str
    timestamp: int
    attachments: int = 0


class CurrentSource(BaseModel):
    type: str = "recent_messages"
    count: int
    messages: list[RecentMessage]


class MemoryPreview(BaseModel):
    id: str
    type: str | None = None
    content: str
    significance: str | None = None
    timestamp: int
    tags: list[str] = Field(default_factory=list)


class MemorySource(BaseModel):
    type: str = "personality_memories"
    count: int
    memories: list[MemoryPreview]


class ContextSources(BaseModel):
    history: SummaryArtifact | None = None
    current: CurrentSource | None = None
    search: SearchContextSummary | None = None
    memory: MemorySource | None = None
    stats: MemoryStats | None = None

    def present(self) -> dict[str, Any]:
        """Serialized sources, leaving out the ones that were not built."""
        return {
            name: value.model_dump()
            for name in ("history", "current", "search", "memory", "stats")
            if (value := getattr(self, name)) is not None
        }


class AggregatedContext(BaseModel):
    timestamp: int
    personality: str
    channel_id: str
    thread_id: str | None = None
    sources: ContextSources = Field(default_factory=ContextSources)
    summary: str = ""

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(exclude={"sources"})
        payload["sources"] = self.sources.present()
        return payload


# -- Source builders ---------------------------------------------------------


def current_source(turns: Sequence[ConversationTurn]) -> CurrentSource | None:
    if not turns:
        return None
    return CurrentSource(
        count=len(turns),
        messages=[
            RecentMessage(
                role=t.role,
                author=t.author,
                content=t.text,
                timestamp=t.timestamp,
                attachments=t.image_count,
            )
            for t in turns
        ],
    )


def memory_source(memories: Sequence[MemoryRecord]) -> MemorySource | None:
    if not memories:
        return None
    return MemorySource(
        count=len(memories),
        memories=[
            MemoryPreview(
                id=m.id,
                type=m.type,
                content=truncate(m.content, MEMORY_PREVIEW_CHARS),
                significance=m.significance,
                timestamp=m.timestamp,
                tags=list(m.tags),
            )
            for m in memories
        ],
    )


def normalize_search_input(results: SearchInput, context_id: str) -> list[SearchMessage]:
    """Coerce the search input to messages.

    An upstream error yields none; malformed entries are dropped one by one.
    """
    if results is None:
        return []
    if isinstance(results, SearchResponse):
        if results.error:
            logger.warning("Search for %s degraded: %s", context_id, results.error)
        return results.usable_results
    messages = []
    for entry in results:
        if isinstance(entry, SearchMessage):
            messages.append(entry)
            continue
        try:
            messages.append(SearchMessage.model_validate(entry))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed search result for %s: %d errors", context_id, exc.error_count()
            )
    return messages


# -- Rendering ---------------------------------------------------------------


def render_summary(sources: ContextSources) -> str:
    """Render the present sources as text blocks separated by blank lines."""
    blocks = []

    if sources.history:
        blocks.append(
            f"PREVIOUS CONTEXT ({sources.history.message_count} messages):\n"
            f"{sources.history.summary_text}"
        )

    if sources.current:
        lines = [f"RECENT MESSAGES ({sources.current.count}):"]
        for i, msg in enumerate(sources.current.messages, start=1):
            text = truncate(msg.content, RECENT_LINE_CHARS) or "(no content)"
            lines.append(f"  [{i}] {msg.role}: {text}")
        blocks.append("\n".join(lines))

    if sources.search:
        lines = [f"SEARCH RESULTS ({sources.search.count}):"]
        for entry in sources.search.results:
            lines.append(f"  [{entry.rank}] {entry.user}: {entry.text} {entry.link}")
        blocks.append("\n".join(lines))

    if sources.memory:
        lines = [f"MEMORY ({sources.memory.count} memories):"]
        for i, m in enumerate(sources.memory.memories, start=1):
            lines.append(
                f"  [{i}] ({m.significance or 'unrated'}) {m.type or 'memory'}: "
                f"{truncate(m.content, MEMORY_LINE_CHARS)}"
            )
        blocks.append("\n".join(lines))

    return "\n\n".join(blocks)


# -- Builder -----------------------------------------------------------------


class ContextBuilder:
    """Composes an ``AggregatedContext`` for one turn."""

    def __init__(
        self,
        store: MemoryStore,
        retriever: MemoryRetriever,
        window: ConversationWindow | None = None,
        artifacts: ArtifactStore | None = None,
    ) -> None:
        self._store = store
        self._retriever = retriever
        self._window = window
        self._artifacts = artifacts

    async def build(
        self,
        personality: str,
        channel_id: str,
        thread_id: str | None = None,
        query: str | None = None,
        recent_turns: Sequence[ConversationTurn] | None = None,
        search_results: SearchInput = None,
        memory_limit: int = 10,
        include_stats: bool = True,
        history: SummaryArtifact | None = None,
    ) -> AggregatedContext:
        """Build the context from whatever sources were supplied.

        Memory retrieval always runs; without a query it returns the most
        recent memories up to *memory_limit*.
        """
        key = context_key(channel_id, thread_id)
        sources = ContextSources(history=history, current=current_source(recent_turns or []))

        messages = normalize_search_input(search_results, key)
        sources.search = build_search_summary(messages, key, query=query)
        if sources.search is not None:
            await self._persist_search(sources.search)

        memories = await self._retriever.search(personality, query=query, limit=memory_limit)
        sources.memory = memory_source(memories)

        if include_stats:
            sources.stats = await self._store.stats(personality)

        context = AggregatedContext(
            timestamp=now_ms(),
            personality=personality,
            channel_id=channel_id,
            thread_id=thread_id,
            sources=sources,
            summary=render_summary(sources),
        )
        logger.info(
            "Built context for %s in %s: %s",
            personality,
            key,
            ", ".join(sources.present()) or "no sources",
        )
        return context

    async def build_for_context(
        self,
        personality: str,
        channel_id: str,
        thread_id: str | None = None,
        query: str | None = None,
        search_results: SearchInput = None,
        memory_limit: int = 10,
        include_stats: bool = True,
    ) -> AggregatedContext:
        """Build from the live window: recent turns verbatim, older ones summarized."""
        if self._window is None:
            msg = "ContextBuilder has no ConversationWindow to read from"
            raise RuntimeError(msg)

        prepared = await self._window.prepare(channel_id, thread_id)
        return await self.build(
            personality,
            channel_id,
            thread_id=thread_id,
            query=query,
            recent_turns=prepared.recent,
            search_results=search_results,
            memory_limit=memory_limit,
            include_stats=include_stats,
            history=prepared.older_summary,
        )

    async def _persist_search(self, summary: SearchContextSummary) -> None:
        if self._artifacts is None:
            return
        try:
            await asyncio.to_thread(self._artifacts.save_search, summary)
        except StorageError:
            logger.exception("Failed to persist search summary %s", summary.artifact_id)
