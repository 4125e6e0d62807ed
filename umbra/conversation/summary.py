"""Compaction of buffered turns into a ``SummaryArtifact``.

The extract is purely structural (counts, participants, a short preview); no
natural-language summary is generated. The hash covers only the input turns,
so compacting the same sequence twice yields the same artifact ID.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

from umbra.conversation.models import SummaryArtifact
from umbra.timeutil import ms_to_iso, truncate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from umbra.conversation.models import ConversationTurn

PREVIEW_TURNS = 5
PREVIEW_CHARS = 100
TOP_USERS = 3


def hash_turns(turns: Sequence[ConversationTurn]) -> str:
    """Stable 8-hex-character hash of the serialized turn sequence."""
    payload = json.dumps([t.to_dict() for t in turns], sort_keys=True)
    return hashlib.md5(payload.encode(), usedforsecurity=False).hexdigest()[:8]


def rank_authors(turns: Sequence[ConversationTurn]) -> list[tuple[str, int]]:
    """Authors by turn count, most active first; ties keep first-seen order."""
    counts: dict[str, int] = {}
    for turn in turns:
        counts[turn.author] = counts.get(turn.author, 0) + 1
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def build_summary_artifact(
    turns: Sequence[ConversationTurn], context_id: str
) -> SummaryArtifact | None:
    """Compact *turns* into an artifact, or None when there is nothing to compact."""
    if not turns:
        return None

    ranked = rank_authors(turns)
    preview = "\n".join(
        f"[{t.author}]: {truncate(t.text, PREVIEW_CHARS, '...')}" for t in turns[-PREVIEW_TURNS:]
    )
    start, end = turns[0].timestamp, turns[-1].timestamp
    participants = ", ".join(f"{name} ({count} msgs)" for name, count in ranked[:5])

    summary_text = "\n".join(
        [
            f"SUMMARY ({len(turns)} messages):",
            f"Time span: {ms_to_iso(start)} - {ms_to_iso(end)}",
            f"Participants: {participants}",
            preview,
        ]
    )

    return SummaryArtifact(
        context_id=context_id,
        summary_hash=hash_turns(turns),
        message_count=len(turns),
        unique_users=len(ranked),
        top_users=[name for name, _ in ranked[:TOP_USERS]],
        preview=preview,
        has_images=any(t.image_count > 0 for t in turns),
        start=start,
        end=end,
        summary_text=summary_text,
    )
