"""Live conversation buffers and their compaction."""

from umbra.conversation.models import ConversationTurn, SummaryArtifact, context_key
from umbra.conversation.summary import build_summary_artifact
from umbra.conversation.window import (
    ContextState,
    ConversationRegistry,
    ConversationWindow,
    PreparedWindow,
)

__all__ = [
    "ContextState",
    "ConversationRegistry",
    "ConversationTurn",
    "ConversationWindow",
    "PreparedWindow",
    "SummaryArtifact",
    "build_summary_artifact",
    "context_key",
]
