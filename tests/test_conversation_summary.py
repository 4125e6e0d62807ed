"""Tests for turn models and compaction artifacts."""

from conftest import make_turn

from umbra.conversation.models import ConversationTurn, context_key
from umbra.conversation.summary import build_summary_artifact, hash_turns, rank_authors


def test_context_key() -> None:
    assert context_key("123") == "123"
    assert context_key("123", "456") == "123-456"


def test_turn_from_event() -> None:
    turn = ConversationTurn.from_event(
        {
            "author": {"id": 7, "username": "kai", "bot": False},
            "content": "look at this",
            "attachments": [
                {"contentType": "image/png"},
                {"content_type": "image/jpeg"},
                {"contentType": "application/pdf"},
            ],
            "timestamp": 5000,
            "reaction_count": 2,
        }
    )
    assert turn.author == "kai"
    assert turn.author_id == "7"
    assert turn.role == "user"
    assert turn.image_count == 2
    assert turn.timestamp == 5000
    assert turn.reaction_count == 2


def test_turn_from_agent_event() -> None:
    turn = ConversationTurn.from_event({"author": {"username": "vox", "bot": True}, "content": "hi"})
    assert turn.is_agent
    assert turn.role == "assistant"
    assert turn.timestamp > 0


def test_empty_input_yields_no_artifact() -> None:
    assert build_summary_artifact([], "c1") is None


def test_rank_authors_breaks_ties_by_first_seen() -> None:
    turns = [make_turn("bo"), make_turn("al"), make_turn("al"), make_turn("bo"), make_turn("cy")]
    assert rank_authors(turns) == [("bo", 2), ("al", 2), ("cy", 1)]


def test_artifact_fields() -> None:
    turns = [
        make_turn("al", "first", timestamp=1000),
        make_turn("bo", "x" * 150, timestamp=2000, image_count=1),
        make_turn("al", "third", timestamp=3000),
    ]
    artifact = build_summary_artifact(turns, "c1-t1")
    assert artifact is not None
    assert artifact.message_count == 3
    assert artifact.unique_users == 2
    assert artifact.top_users == ["al", "bo"]
    assert artifact.has_images
    assert artifact.start == 1000
    assert artifact.end == 3000
    assert f"[bo]: {'x' * 100}..." in artifact.preview
    assert artifact.summary_text.startswith("SUMMARY (3 messages):")
    assert "al (2 msgs), bo (1 msgs)" in artifact.summary_text
    assert artifact.artifact_id == f"c1-t1-{artifact.summary_hash}"


def test_preview_keeps_last_five_turns() -> None:
    turns = [make_turn("al", f"msg {i}") for i in range(8)]
    artifact = build_summary_artifact(turns, "c1")
    assert artifact is not None
    lines = artifact.preview.splitlines()
    assert len(lines) == 5
    assert lines[0] == "[al]: msg 3"


def test_top_users_capped_at_three() -> None:
    turns = [make_turn(name) for name in ["a", "b", "c", "d", "a"]]
    artifact = build_summary_artifact(turns, "c1")
    assert artifact is not None
    assert artifact.top_users == ["a", "b", "c"]
    assert artifact.unique_users == 4


def test_same_turns_hash_identically() -> None:
    turns = [make_turn("al", "one"), make_turn("bo", "two")]
    first = build_summary_artifact(turns, "c1")
    second = build_summary_artifact(list(turns), "c1")
    assert first is not None and second is not None
    assert first.summary_hash == second.summary_hash
    assert len(first.summary_hash) == 8


def test_hash_depends_on_order() -> None:
    a, b = make_turn("al", "one"), make_turn("bo", "two")
    assert hash_turns([a, b]) != hash_turns([b, a])
