"""Tests for search intent extraction and query building."""

from datetime import UTC, datetime

from umbra.search.intent import (
    build_search_query,
    extract_search_intent,
    intent_cutoff,
    query_for_mention,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


class TestExtractSearchIntent:
    def test_last_24_hours(self):
        intent = extract_search_intent("What happened in the LAST 24 HOURS?")
        assert intent.kind == "time"
        assert intent.timeframe == "24h"

    def test_past_hour(self):
        assert extract_search_intent("anything in the past hour").timeframe == "1h"

    def test_last_week(self):
        assert extract_search_intent("recap last week").timeframe == "7d"

    def test_from_user(self):
        intent = extract_search_intent("show messages from @kai about jazz")
        assert intent.kind == "user"
        assert intent.user == "@kai"

    def test_topic_default(self):
        intent = extract_search_intent("Jazz Chords")
        assert intent.kind == "topic"
        assert intent.keywords == "jazz chords"


class TestBuildSearchQuery:
    def test_channel_scope(self):
        query = build_search_query("c1", text="jazz")
        assert query.query == 'in:#c1 "jazz"'
        assert query.limit == 50

    def test_thread_scope_and_filters(self):
        query = build_search_query(
            "c1", "t1", text="x", from_user="kai", after="2026-03-01", before="2026-03-09"
        )
        assert query.query == 'thread:t1 from:kai after:2026-03-01 before:2026-03-09 "x"'

    def test_limit_capped(self):
        assert build_search_query("c1", limit=200).limit == 50


def test_intent_cutoff() -> None:
    intent = extract_search_intent("last week")
    assert intent_cutoff(intent, NOW) == "2026-03-03"
    assert intent_cutoff(extract_search_intent("jazz"), NOW) is None


def test_query_for_mention_time() -> None:
    intent, query = query_for_mention("what did we say in the past day", "c1", now=NOW)
    assert intent.kind == "time"
    assert "after:2026-03-09" in query.query
    assert query.limit == 30


def test_query_for_mention_user() -> None:
    _, query = query_for_mention("stuff from @kai", "c1", "t2", now=NOW)
    assert query.query.startswith("thread:t2 from:@kai")
