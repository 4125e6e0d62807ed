"""ArtifactStore — JSON audit files for compaction and search summaries."""

from __future__ import annotations

import contextlib
import logging
import os
import re
import tempfile
from typing import TYPE_CHECKING, Protocol

from pydantic import ValidationError

from umbra.config import settings
from umbra.conversation.models import SummaryArtifact
from umbra.errors import StorageError
from umbra.timeutil import now_ms

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

SUMMARIES = "summaries"
SEARCHES = "searches"

_SAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._\-]")


class Artifact(Protocol):
    @property
    def artifact_id(self) -> str: ...

    def model_dump_json(self, *, indent: int | None = None) -> str: ...


class ArtifactStore:
    """Write-once audit artifacts on the local filesystem.

    Each artifact lands in ``<root>/<kind>/<artifact_id>.json``. The ID ends
    in the content hash, so compacting the same input twice rewrites the same
    file instead of adding a new one.

    Methods are synchronous; async callers wrap them in ``asyncio.to_thread``.
    """

    def __init__(self, root: Path | None = None) -> None:
        self._root = (root or settings.artifacts_dir).resolve()

    @property
    def root(self) -> Path:
        return self._root

    @staticmethod
    def sanitize_filename(name: str) -> str:
        """Replace unsafe characters and strip leading dots.

        Raises ``ValueError`` if the result is empty.
        """
        sanitized = _SAFE_FILENAME_RE.sub("_", name).lstrip(".")[:255]
        if not sanitized:
            msg = f"Filename is empty after sanitization: {name!r}"
            raise ValueError(msg)
        return sanitized

    def path_for(self, kind: str, artifact_id: str) -> Path:
        return self._root / kind / f"{self.sanitize_filename(artifact_id)}.json"

    def save(self, kind: str, artifact: Artifact) -> Path:
        """Persist *artifact* atomically. Raises ``StorageError`` on I/O failure."""
        target = self.path_for(kind, artifact.artifact_id)
        tmp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=target.parent,
                prefix=f"{target.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(artifact.model_dump_json(indent=2))
            os.replace(tmp_name, target)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            msg = f"Failed to write artifact {target.name}: {exc}"
            raise StorageError(msg) from exc
        logger.debug("Saved %s artifact %s", kind, target.name)
        return target

    def save_summary(self, artifact: SummaryArtifact) -> Path:
        return self.save(SUMMARIES, artifact)

    def save_search(self, summary: Artifact) -> Path:
        return self.save(SEARCHES, summary)

    # -- Audit reads -----------------------------------------------------------

    def _load_summaries(self, prefix: str) -> list[SummaryArtifact]:
        folder = self._root / SUMMARIES
        if not folder.is_dir():
            return []
        summaries = []
        for path in folder.glob(f"{self.sanitize_filename(prefix)}*.json"):
            try:
                summaries.append(
                    SummaryArtifact.model_validate_json(path.read_text(encoding="utf-8"))
                )
            except (OSError, ValidationError):
                logger.debug("Skipping unreadable artifact %s", path.name)
        return sorted(summaries, key=lambda s: s.timestamp, reverse=True)

    def recent_summaries(
        self, channel_id: str, hours: float = 24, now: int | None = None
    ) -> list[SummaryArtifact]:
        """Compaction summaries for a channel (and its threads) newer than *hours*."""
        cutoff = (now or now_ms()) - int(hours * 60 * 60 * 1000)
        return [
            s
            for s in self._load_summaries(channel_id)
            if s.timestamp > cutoff
            and (s.context_id == channel_id or s.context_id.startswith(f"{channel_id}-"))
        ]

    def latest_summary(self, context_id: str) -> SummaryArtifact | None:
        """Most recent summary written for exactly *context_id*."""
        for summary in self._load_summaries(context_id):
            if summary.context_id == context_id:
                return summary
        return None
