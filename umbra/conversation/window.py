"""Per-context conversation buffers with overflow and idle compaction."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from umbra.config import settings
from umbra.conversation.models import ConversationTurn, SummaryArtifact, context_key
from umbra.conversation.summary import build_summary_artifact
from umbra.errors import StorageError
from umbra.timeutil import now_ms

if TYPE_CHECKING:
    from umbra.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class ContextState:
    """Buffered turns for one channel/thread, oldest first."""

    context_id: str
    turns: list[ConversationTurn] = field(default_factory=list)
    last_activity: int = 0
    compacting: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


class ConversationRegistry:
    """Owns every live ``ContextState``.

    Created once at startup and handed to the components that need it. State
    is only dropped through ``discard``.
    """

    def __init__(self) -> None:
        self._contexts: dict[str, ContextState] = {}

    def get(self, key: str) -> ContextState | None:
        return self._contexts.get(key)

    def get_or_create(self, key: str) -> ContextState:
        if key not in self._contexts:
            self._contexts[key] = ContextState(context_id=key)
        return self._contexts[key]

    def discard(self, key: str) -> bool:
        return self._contexts.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._contexts)

    def __contains__(self, key: object) -> bool:
        return key in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)


@dataclass
class PreparedWindow:
    """Read-time split of a buffer into recent turns and a summary of the rest."""

    context_id: str
    total: int
    recent: list[ConversationTurn]
    older_summary: SummaryArtifact | None = None

    @property
    def summarized_count(self) -> int:
        return self.older_summary.message_count if self.older_summary else 0


class ConversationWindow:
    """Appends turns and compacts a context once it overflows or goes idle.

    A context compacts when it holds ``compaction_threshold`` turns, or when a
    turn arrives more than ``idle_timeout_ms`` after the previous one and the
    buffer holds more than ``idle_min_turns``. Overflow clears the buffer; an
    idle compaction keeps the turn that ended the quiet period.

    Append and compaction for a key run under that key's lock.
    """

    def __init__(
        self,
        registry: ConversationRegistry,
        artifacts: ArtifactStore | None = None,
        *,
        clock: Callable[[], int] = now_ms,
        compaction_threshold: int | None = None,
        idle_timeout_ms: int | None = None,
        idle_min_turns: int | None = None,
        max_turns: int | None = None,
        recent_size: int | None = None,
    ) -> None:
        self._registry = registry
        self._artifacts = artifacts
        self._clock = clock
        self.compaction_threshold = compaction_threshold or settings.compaction_threshold
        self.idle_timeout_ms = idle_timeout_ms or settings.idle_timeout_ms
        self.idle_min_turns = idle_min_turns if idle_min_turns is not None else settings.idle_min_turns
        self.max_turns = max_turns or settings.max_buffered_turns
        self.recent_size = recent_size if recent_size is not None else settings.recent_window_size

    @property
    def registry(self) -> ConversationRegistry:
        return self._registry

    # -- Writes ----------------------------------------------------------------

    async def append(
        self,
        turn: ConversationTurn,
        channel_id: str,
        thread_id: str | None = None,
    ) -> SummaryArtifact | None:
        """Buffer *turn*; returns the artifact if this append triggered compaction."""
        key = context_key(channel_id, thread_id)
        state = self._registry.get_or_create(key)

        async with state.lock:
            now = self._clock()
            idle_ms = now - state.last_activity if state.last_activity else 0

            state.turns.append(turn)
            if len(state.turns) > self.max_turns:
                del state.turns[: len(state.turns) - self.max_turns]
            state.last_activity = now

            count = len(state.turns)
            if count >= self.compaction_threshold:
                batch, retained = list(state.turns), []
            elif idle_ms > self.idle_timeout_ms and count > self.idle_min_turns:
                batch, retained = state.turns[:-1], [turn]
            else:
                return None

            state.compacting = True
            try:
                return await self._compact(key, batch)
            finally:
                state.turns = retained
                state.compacting = False

    async def clear(self, channel_id: str, thread_id: str | None = None) -> int:
        """Drop buffered turns without compacting. Returns the count dropped."""
        state = self._registry.get(context_key(channel_id, thread_id))
        if state is None:
            return 0
        async with state.lock:
            count = len(state.turns)
            state.turns = []
            return count

    async def _compact(self, key: str, batch: list[ConversationTurn]) -> SummaryArtifact | None:
        artifact = build_summary_artifact(batch, key)
        if artifact is None:
            return None

        await self._persist(artifact)
        logger.info(
            "Compacted %s: %d messages from %d users",
            key,
            artifact.message_count,
            artifact.unique_users,
        )
        return artifact

    async def _persist(self, artifact: SummaryArtifact) -> None:
        if self._artifacts is None:
            return
        try:
            await asyncio.to_thread(self._artifacts.save_summary, artifact)
        except StorageError:
            logger.exception("Failed to persist summary %s", artifact.artifact_id)

    # -- Reads -----------------------------------------------------------------

    def state(self, channel_id: str, thread_id: str | None = None) -> ContextState | None:
        return self._registry.get(context_key(channel_id, thread_id))

    def turns(self, channel_id: str, thread_id: str | None = None) -> list[ConversationTurn]:
        state = self._registry.get(context_key(channel_id, thread_id))
        return list(state.turns) if state else []

    def turn_count(self, channel_id: str, thread_id: str | None = None) -> int:
        state = self._registry.get(context_key(channel_id, thread_id))
        return len(state.turns) if state else 0

    async def prepare(
        self,
        channel_id: str,
        thread_id: str | None = None,
        keep: int | None = None,
    ) -> PreparedWindow:
        """Split the buffer into the last *keep* turns and a summary of the rest.

        The buffer itself is left untouched.
        """
        key = context_key(channel_id, thread_id)
        keep = self.recent_size if keep is None else keep
        state = self._registry.get(key)

        if state is None:
            snapshot: list[ConversationTurn] = []
        else:
            async with state.lock:
                snapshot = list(state.turns)

        split = max(len(snapshot) - keep, 0)
        older, recent = snapshot[:split], snapshot[split:]

        summary = build_summary_artifact(older, key)
        if summary is not None:
            await self._persist(summary)

        return PreparedWindow(
            context_id=key,
            total=len(snapshot),
            recent=recent,
            older_summary=summary,
        )
