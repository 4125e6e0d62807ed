"""Conversation turn and compaction artifact models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from pydantic import BaseModel, Field

from umbra.timeutil import now_ms


def context_key(channel_id: str, thread_id: str | None = None) -> str:
    """Composite key for a channel or a thread within it."""
    return f"{channel_id}-{thread_id}" if thread_id else f"{channel_id}"


def count_images(attachments: list[dict[str, Any]] | None) -> int:
    """Number of attachments whose content type is an image."""
    count = 0
    for attachment in attachments or []:
        content_type = attachment.get("content_type") or attachment.get("contentType") or ""
        if content_type.startswith("image/"):
            count += 1
    return count


@dataclass(frozen=True)
class ConversationTurn:
    """A single message-equivalent event in a channel or thread."""

    author: str
    text: str = ""
    is_agent: bool = False
    author_id: str = ""
    image_count: int = 0
    timestamp: int = 0
    reaction_count: int = 0

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> ConversationTurn:
        """Build a turn from a normalized inbound message event."""
        author = event.get("author") or {}
        if isinstance(author, str):
            author = {"username": author}
        return cls(
            author=author.get("username") or "unknown",
            author_id=str(author.get("id") or ""),
            is_agent=bool(author.get("bot") or event.get("is_agent")),
            text=event.get("content") or event.get("text") or "",
            image_count=count_images(event.get("attachments")),
            timestamp=int(event.get("timestamp") or now_ms()),
            reaction_count=int(event.get("reaction_count") or 0),
        )

    @property
    def role(self) -> str:
        return "assistant" if self.is_agent else "user"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SummaryArtifact(BaseModel):
    """Structured extract of a compacted window, persisted for audit."""

    context_id: str
    summary_hash: str
    message_count: int
    unique_users: int
    top_users: list[str] = Field(default_factory=list)
    preview: str = ""
    has_images: bool = False
    start: int = 0
    end: int = 0
    summary_text: str = ""
    timestamp: int = Field(default_factory=now_ms)

    @property
    def artifact_id(self) -> str:
        return f"{self.context_id}-{self.summary_hash}"
