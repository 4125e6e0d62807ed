"""Schema-gated memory writes.

Every write goes through the personality's ``MemorySchema``. Personalities
without a schema file get the default rules (content and significance
required, the standard type and significance vocabularies).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from umbra.config import settings
from umbra.errors import MemoryValidationError, StorageError
from umbra.memory.models import MemoryRecord, MemorySchema
from umbra.timeutil import now_ms, to_epoch_ms

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from umbra.memory.store import MemoryStore

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class WriteResult:
    """Outcome of a single write. ``memory_id`` is None when nothing was persisted."""

    memory_id: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.memory_id is not None


@dataclass
class BatchResult:
    saved: list[str] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)


def load_schema(personality: str, schemas_dir: Path | None = None) -> MemorySchema:
    """Load ``<schemas_dir>/<personality>.json``, falling back to the defaults."""
    path = (schemas_dir or settings.schemas_dir) / f"{personality}.json"
    if not path.exists():
        return MemorySchema()
    try:
        return MemorySchema.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError):
        logger.warning("Unreadable memory schema for %s, using defaults", personality)
        return MemorySchema()


def _shape_errors(data: Mapping[str, Any]) -> list[str]:
    """Errors for values the store could not read back as a ``MemoryRecord``."""
    errors = []
    timestamp = data.get("timestamp")
    epoch = 0
    if timestamp:
        try:
            epoch = to_epoch_ms(timestamp)
        except (TypeError, ValueError):
            errors.append(f"Invalid timestamp: {timestamp!r}")

    fields = {k: v for k, v in data.items() if k not in ("id", "timestamp") and v is not None}
    try:
        MemoryRecord.model_validate({**fields, "id": "", "timestamp": epoch})
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            errors.append(f"Invalid {field}: {error['msg']}")
    return errors


class MemoryWriter:
    """Validates records against the personality schema before saving them."""

    def __init__(self, store: MemoryStore, schemas_dir: Path | None = None) -> None:
        self._store = store
        self._schemas_dir = schemas_dir

    def schema_for(self, personality: str) -> MemorySchema:
        return load_schema(personality, self._schemas_dir)

    def validate(self, personality: str, data: Mapping[str, Any]) -> ValidationResult:
        schema = self.schema_for(personality)
        errors = []

        for name in schema.required:
            if not data.get(name):
                errors.append(f"Missing required field: {name}")

        memory_type = data.get("type")
        if memory_type and memory_type not in schema.allowed_types:
            allowed = ", ".join(schema.allowed_types)
            errors.append(f"Invalid type: {memory_type}. Allowed: {allowed}")

        significance = data.get("significance")
        if significance and significance not in schema.allowed_significances:
            allowed = ", ".join(schema.allowed_significances)
            errors.append(f"Invalid significance: {significance}. Allowed: {allowed}")

        errors.extend(_shape_errors(data))
        return ValidationResult(valid=not errors, errors=errors)

    async def write(self, personality: str, data: Mapping[str, Any]) -> WriteResult:
        """Validate and persist one record. Never raises."""
        validation = self.validate(personality, data)
        if not validation.valid:
            logger.warning(
                "Memory validation failed for %s: %s", personality, "; ".join(validation.errors)
            )
            return WriteResult(errors=validation.errors)

        record = dict(data)
        if not record.get("timestamp"):
            record["timestamp"] = now_ms()

        try:
            memory_id = await self._store.save(personality, record)
        except StorageError as exc:
            logger.exception("Memory write failed for %s", personality)
            return WriteResult(errors=[str(exc)])

        logger.info("Memory saved for %s: %s", personality, memory_id)
        return WriteResult(memory_id=memory_id)

    async def write_or_raise(self, personality: str, data: Mapping[str, Any]) -> str:
        """Like ``write`` but raises ``MemoryValidationError`` / ``StorageError``."""
        validation = self.validate(personality, data)
        if not validation.valid:
            raise MemoryValidationError(personality, validation.errors)
        record = dict(data)
        record.setdefault("timestamp", now_ms())
        return await self._store.save(personality, record)

    async def write_many(
        self, personality: str, records: Iterable[Mapping[str, Any]]
    ) -> BatchResult:
        """Write records independently; one failure never stops the batch."""
        result = BatchResult()
        for data in records:
            outcome = await self.write(personality, data)
            if outcome.ok:
                result.saved.append(outcome.memory_id)  # type: ignore[arg-type]
            else:
                result.failed.append(dict(data))
        return result
