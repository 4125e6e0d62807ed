"""Personality memory — models, persistence, schema-gated writes, retrieval."""

from umbra.memory.models import MemoryRecord, MemorySchema, MemoryStats
from umbra.memory.retriever import MemoryRetriever, TimeRange
from umbra.memory.store import MemoryStore
from umbra.memory.writer import MemoryWriter

__all__ = [
    "MemoryRecord",
    "MemoryRetriever",
    "MemorySchema",
    "MemoryStats",
    "MemoryStore",
    "MemoryWriter",
    "TimeRange",
]
