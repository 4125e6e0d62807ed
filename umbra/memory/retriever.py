"""Read-side filtering over the memory store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from umbra.config import settings
from umbra.timeutil import ms_to_iso, to_epoch_ms

if TYPE_CHECKING:
    from umbra.memory.models import MemoryRecord
    from umbra.memory.store import MemoryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeRange:
    """Inclusive time window. Bounds may be datetimes, ISO strings or epoch millis."""

    start: datetime | str | int
    end: datetime | str | int

    def contains(self, timestamp: int) -> bool:
        return to_epoch_ms(self.start) <= timestamp <= to_epoch_ms(self.end)


class TimeCoverage(BaseModel):
    oldest: str
    newest: str


class ContextStats(BaseModel):
    total: int = 0
    by_significance: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
    time_coverage: TimeCoverage | None = None


def _matches_query(record: MemoryRecord, needle: str) -> bool:
    return needle in record.content.lower() or needle in " ".join(record.tags).lower()


class MemoryRetriever:
    """Multi-filter search over one personality's memories.

    Filters compose with AND. Searches look at most ``scan_limit`` of the most
    recent records before filtering.
    """

    def __init__(self, store: MemoryStore, scan_limit: int | None = None) -> None:
        self._store = store
        self._scan_limit = scan_limit or settings.memory_scan_limit

    async def search(
        self,
        personality: str,
        query: str | None = None,
        type: str | None = None,  # noqa: A002
        tags: list[str] | None = None,
        significance: str | None = None,
        limit: int = 20,
        time_range: TimeRange | None = None,
    ) -> list[MemoryRecord]:
        memories = await self._store.load_all(personality, limit=self._scan_limit)

        if query:
            needle = query.lower()
            memories = [m for m in memories if _matches_query(m, needle)]
        if type:
            memories = [m for m in memories if m.type == type]
        if tags:
            memories = [m for m in memories if m.has_tags(tags)]
        if significance:
            memories = [m for m in memories if m.significance == significance]
        if time_range:
            memories = [m for m in memories if time_range.contains(m.timestamp)]

        logger.debug(
            "Memory search for %s matched %d records (query=%r)", personality, len(memories), query
        )
        return memories[:limit]

    # -- Convenience views -----------------------------------------------------

    async def recent(
        self,
        personality: str,
        limit: int = 10,
        type: str | None = None,  # noqa: A002
    ) -> list[MemoryRecord]:
        return await self._store.load_all(personality, limit=limit, type=type)

    async def by_type(
        self,
        personality: str,
        memory_type: str,
        limit: int = 100,
    ) -> list[MemoryRecord]:
        return await self.search(personality, type=memory_type, limit=limit)

    async def by_tags(
        self,
        personality: str,
        tags: str | list[str],
        limit: int = 100,
    ) -> list[MemoryRecord]:
        if isinstance(tags, str):
            tags = [tags]
        return await self.search(personality, tags=tags, limit=limit)

    async def high_significance(self, personality: str, limit: int = 20) -> list[MemoryRecord]:
        return await self.search(personality, significance="high", limit=limit)

    async def context_stats(
        self,
        personality: str,
        memory_type: str | None = None,
    ) -> ContextStats:
        """Counts and time coverage for the personality, optionally for one type."""
        if memory_type:
            memories = await self.by_type(personality, memory_type, limit=self._scan_limit)
        else:
            memories = await self._store.load_all(personality, limit=self._scan_limit)

        stats = ContextStats(total=len(memories))
        for memory in memories:
            sig = memory.significance or "unknown"
            kind = memory.type or "unknown"
            stats.by_significance[sig] = stats.by_significance.get(sig, 0) + 1
            stats.by_type[kind] = stats.by_type.get(kind, 0) + 1

        if memories:
            stats.time_coverage = TimeCoverage(
                oldest=ms_to_iso(memories[-1].timestamp),
                newest=ms_to_iso(memories[0].timestamp),
            )
        return stats
