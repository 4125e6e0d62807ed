"""Turn a ranked list of historical messages into a ``SearchContextSummary``."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING

from umbra.config import settings
from umbra.search.models import SearchContextSummary, SearchEntry
from umbra.timeutil import now_ms, truncate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from umbra.search.models import SearchMessage, SearchResponse

logger = logging.getLogger(__name__)

SEARCH_PREVIEW_CHARS = 200
MAX_REPORTED_RESULTS = 20


def rank_entries(results: Sequence[SearchMessage]) -> list[SearchEntry]:
    """Number results in the order given and cut each preview to 200 chars."""
    entries = []
    for rank, msg in enumerate(results, start=1):
        author = msg.author
        entries.append(
            SearchEntry(
                rank=rank,
                user=author.username if author else "unknown",
                user_id=author.id if author and author.id else "unknown",
                text=truncate(msg.content, SEARCH_PREVIEW_CHARS),
                has_images=msg.has_images,
                timestamp=msg.timestamp or 0,
                link=settings.permalink(msg.channel_id, msg.id),
            )
        )
    return entries


def hash_entries(entries: Sequence[SearchEntry]) -> str:
    payload = json.dumps([e.model_dump() for e in entries], sort_keys=True)
    return hashlib.md5(payload.encode(), usedforsecurity=False).hexdigest()[:8]


def build_search_summary(
    results: Sequence[SearchMessage],
    context_id: str,
    query: str | None = None,
) -> SearchContextSummary | None:
    """Digest *results*, or None when there are none.

    The hash covers every entry in rank order, so the same result set always
    maps to the same artifact. Only the first 20 entries are reported.
    """
    if not results:
        return None

    entries = rank_entries(results)
    reported = entries[:MAX_REPORTED_RESULTS]
    lines = [
        f"[{e.rank}] {e.user}: {e.text}{' [+image]' if e.has_images else ''} {e.link}"
        for e in reported
    ]
    summary_text = "\n".join(
        [
            f"SEARCH CONTEXT SUMMARY ({len(entries)} messages):",
            f"Query: {query or context_id}",
            *lines,
        ]
    )

    return SearchContextSummary(
        context_id=context_id,
        query=query or "",
        summary_hash=hash_entries(entries),
        message_count=len(entries),
        unique_users=len({e.user for e in entries}),
        has_images=any(e.has_images for e in entries),
        results=reported,
        summary_text=summary_text,
        timestamp=now_ms(),
    )


def summarize_search_response(
    response: SearchResponse, context_id: str
) -> SearchContextSummary | None:
    """Summarize a collaborator response; a reported error counts as no results."""
    if response.error:
        logger.warning("Search for %s degraded: %s", context_id, response.error)
        return None
    return build_search_summary(response.results, context_id, query=response.query)
