"""Infer what a mention is asking for and phrase it as a message-search query."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

MAX_SEARCH_LIMIT = 50

_TIMEFRAMES = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
}

_USER_RE = re.compile(r"from (@?[\w#]+)")


@dataclass(frozen=True)
class SearchIntent:
    """``kind`` is one of ``time``, ``user`` or ``topic``."""

    kind: str
    timeframe: str | None = None
    user: str | None = None
    keywords: str | None = None


@dataclass(frozen=True)
class SearchQuery:
    query: str
    limit: int


def extract_search_intent(text: str) -> SearchIntent:
    content = text.lower()

    if "last 24 hours" in content or "past day" in content:
        return SearchIntent(kind="time", timeframe="24h")
    if "last hour" in content or "past hour" in content:
        return SearchIntent(kind="time", timeframe="1h")
    if "last week" in content:
        return SearchIntent(kind="time", timeframe="7d")

    if "from @" in content or "from user" in content:
        match = _USER_RE.search(content)
        return SearchIntent(kind="user", user=match.group(1) if match else None)

    return SearchIntent(kind="topic", keywords=content)


def intent_cutoff(intent: SearchIntent, now: datetime | None = None) -> str | None:
    """ISO date (``YYYY-MM-DD``) that a time intent searches after."""
    if intent.kind != "time" or intent.timeframe not in _TIMEFRAMES:
        return None
    now = now or datetime.now(UTC)
    return (now - _TIMEFRAMES[intent.timeframe]).date().isoformat()


def build_search_query(
    channel_id: str,
    thread_id: str | None = None,
    text: str = "",
    from_user: str | None = None,
    after: str | None = None,
    before: str | None = None,
    limit: int = MAX_SEARCH_LIMIT,
) -> SearchQuery:
    """Compose a platform search string scoped to a channel or thread."""
    parts = [f"thread:{thread_id}" if thread_id else f"in:#{channel_id}"]
    if from_user:
        parts.append(f"from:{from_user}")
    if after:
        parts.append(f"after:{after}")
    if before:
        parts.append(f"before:{before}")
    if text:
        parts.append(f'"{text}"')
    return SearchQuery(query=" ".join(parts), limit=min(limit, MAX_SEARCH_LIMIT))


def query_for_mention(
    text: str,
    channel_id: str,
    thread_id: str | None = None,
    limit: int = 30,
    now: datetime | None = None,
) -> tuple[SearchIntent, SearchQuery]:
    """Intent plus the query the search collaborator should run for a mention."""
    intent = extract_search_intent(text)
    query = build_search_query(
        channel_id,
        thread_id,
        text=text,
        from_user=intent.user if intent.kind == "user" else None,
        after=intent_cutoff(intent, now),
        limit=limit,
    )
    return intent, query
