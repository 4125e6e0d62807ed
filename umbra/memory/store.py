"""MemoryStore — aiosqlite persistence for personality memories."""

from __future__ import annotations

import hashlib
import json
import logging
import secrets
from typing import TYPE_CHECKING, Any

import aiosqlite
from pydantic import ValidationError

from umbra.config import settings
from umbra.errors import StorageError
from umbra.memory.models import MemoryRecord, MemoryStats, significance_rank
from umbra.timeutil import now_ms, to_epoch_ms

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    personality TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    data TEXT NOT NULL
)
"""

_CREATE_INDEX = "CREATE INDEX IF NOT EXISTS idx_memories_personality ON memories (personality)"

_MAX_ID_ATTEMPTS = 5


def make_memory_id(content: str, timestamp: int) -> str:
    """Derive a 16-hex-character memory ID from content, time and a random salt."""
    salt = secrets.token_hex(8)
    digest = hashlib.md5(f"{content}-{timestamp}-{salt}".encode(), usedforsecurity=False)
    return digest.hexdigest()[:16]


class MemoryStore:
    """Persists memory records in SQLite, partitioned by personality.

    Singleton accessed via ``MemoryStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "memories.db"``).

    Writes raise ``StorageError``. Reads never raise: an I/O failure is
    logged and treated as an empty result.
    """

    _instance: MemoryStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.memory_db_path
        self._initialised = False

    @classmethod
    def get(cls) -> MemoryStore:
        """Return the shared MemoryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path), timeout=5.0)
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.execute(_CREATE_INDEX)
            await db.commit()
            self._initialised = True
        return db

    @staticmethod
    def _parse(row: tuple) -> MemoryRecord | None:
        """Deserialize a ``data`` column, or None if the row is corrupt."""
        try:
            return MemoryRecord.model_validate(json.loads(row[0]))
        except (json.JSONDecodeError, TypeError, ValidationError):
            logger.debug("Skipping corrupt memory row")
            return None

    # -- Write -----------------------------------------------------------------

    async def save(self, personality: str, data: Mapping[str, Any]) -> str:
        """Persist a new record and return its ID.

        Any ``id`` in *data* is ignored; a fresh one is derived. ``timestamp``
        defaults to now. An existing ID is never overwritten. A record that
        would not load back as a ``MemoryRecord`` raises ``StorageError``.
        """
        fields = {k: v for k, v in data.items() if k != "id"}
        try:
            timestamp = to_epoch_ms(fields["timestamp"]) if fields.get("timestamp") else now_ms()
            fields["timestamp"] = timestamp
            MemoryRecord.model_validate({**fields, "id": ""})
        except (TypeError, ValueError) as exc:
            msg = f"Memory record for {personality} is not storable: {exc}"
            raise StorageError(msg) from exc
        content = fields.get("content") or json.dumps(fields, sort_keys=True, default=str)

        try:
            db = await self._connect()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Could not open memory store: {exc}"
            raise StorageError(msg) from exc

        try:
            for _ in range(_MAX_ID_ATTEMPTS):
                memory_id = make_memory_id(str(content), timestamp)
                record = {"id": memory_id, **fields}
                try:
                    await db.execute(
                        "INSERT INTO memories (id, personality, timestamp, data) VALUES (?, ?, ?, ?)",
                        (memory_id, personality, timestamp, json.dumps(record, default=str)),
                    )
                    await db.commit()
                except aiosqlite.IntegrityError:
                    logger.warning("Memory ID collision for %s, retrying", personality)
                    continue
                logger.debug("Saved memory %s for %s", memory_id, personality)
                return memory_id
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Failed to save memory for {personality}: {exc}"
            raise StorageError(msg) from exc
        finally:
            await db.close()

        msg = f"Could not allocate a unique memory ID for {personality}"
        raise StorageError(msg)

    async def delete(self, personality: str, memory_id: str) -> bool:
        """Delete a record. Returns True if a row was removed."""
        try:
            db = await self._connect()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Could not open memory store: {exc}"
            raise StorageError(msg) from exc
        try:
            cursor = await db.execute(
                "DELETE FROM memories WHERE personality = ? AND id = ?",
                (personality, memory_id),
            )
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted memory %s for %s", memory_id, personality)
            return deleted
        except aiosqlite.Error as exc:
            msg = f"Failed to delete memory {memory_id}: {exc}"
            raise StorageError(msg) from exc
        finally:
            await db.close()

    # -- Read ------------------------------------------------------------------

    async def _fetch(self, sql: str, params: tuple) -> list[tuple]:
        try:
            db = await self._connect()
        except (aiosqlite.Error, OSError):
            logger.exception("Could not open memory store")
            return []
        try:
            cursor = await db.execute(sql, params)
            return list(await cursor.fetchall())
        except aiosqlite.Error:
            logger.exception("Memory store read failed")
            return []
        finally:
            await db.close()

    async def load(self, personality: str, memory_id: str) -> MemoryRecord | None:
        """Fetch a record by ID, or None if absent or unreadable."""
        rows = await self._fetch(
            "SELECT data FROM memories WHERE personality = ? AND id = ?",
            (personality, memory_id),
        )
        return self._parse(rows[0]) if rows else None

    async def load_all(
        self,
        personality: str,
        limit: int = 100,
        type: str | None = None,  # noqa: A002
        tags: list[str] | None = None,
        min_significance: str | None = None,
    ) -> list[MemoryRecord]:
        """Return records newest-first.

        Only the *limit* most recently created rows are scanned; filters are
        applied to that window, so fewer than *limit* records may come back.
        """
        rows = await self._fetch(
            "SELECT data FROM memories WHERE personality = ? ORDER BY rowid DESC LIMIT ?",
            (personality, limit),
        )
        floor = significance_rank(min_significance) if min_significance else None

        records = []
        for row in rows:
            record = self._parse(row)
            if record is None:
                continue
            if type and record.type != type:
                continue
            if tags and not record.has_tags(tags):
                continue
            if floor is not None and significance_rank(record.significance) < floor:
                continue
            records.append(record)

        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    async def stats(self, personality: str) -> MemoryStats:
        """Count records by type and significance."""
        rows = await self._fetch(
            "SELECT data FROM memories WHERE personality = ?", (personality,)
        )
        stats = MemoryStats()
        for row in rows:
            record = self._parse(row)
            if record is None:
                continue
            stats.total += 1
            if record.type:
                stats.by_type[record.type] = stats.by_type.get(record.type, 0) + 1
            if record.significance:
                stats.by_significance[record.significance] = (
                    stats.by_significance.get(record.significance, 0) + 1
                )
        return stats
