"""Search collaborator shapes, result digests and query helpers."""

from umbra.search.intent import SearchIntent, build_search_query, extract_search_intent
from umbra.search.models import SearchContextSummary, SearchMessage, SearchResponse
from umbra.search.summarizer import build_search_summary, summarize_search_response

__all__ = [
    "SearchContextSummary",
    "SearchIntent",
    "SearchMessage",
    "SearchResponse",
    "build_search_query",
    "build_search_summary",
    "extract_search_intent",
    "summarize_search_response",
]
