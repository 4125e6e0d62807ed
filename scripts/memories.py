#!/usr/bin/env python3
"""Inspect a personality's memories and recent compaction summaries.

Usage examples:
    # Counts by type and significance
    python scripts/memories.py stats vox

    # Search memory content and tags
    python scripts/memories.py search vox --query coffee --limit 5

    # Only high-significance insights tagged "music"
    python scripts/memories.py search vox --type insight --tag music --significance high

    # Compaction summaries for a channel in the last 4 hours
    python scripts/memories.py summaries 123456789 --hours 4
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from umbra.artifacts import ArtifactStore
from umbra.config import settings
from umbra.memory.retriever import MemoryRetriever
from umbra.memory.store import MemoryStore
from umbra.timeutil import ms_to_iso

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)


async def show_stats(personality: str) -> None:
    retriever = MemoryRetriever(MemoryStore.get())
    stats = await retriever.context_stats(personality)
    print(f"{personality}: {stats.total} memories")
    for label, counts in (("type", stats.by_type), ("significance", stats.by_significance)):
        for key, count in sorted(counts.items()):
            print(f"  {label:<13} {key:<12} {count}")
    if stats.time_coverage:
        print(f"  oldest {stats.time_coverage.oldest}")
        print(f"  newest {stats.time_coverage.newest}")


async def show_search(args: argparse.Namespace) -> None:
    retriever = MemoryRetriever(MemoryStore.get())
    memories = await retriever.search(
        args.personality,
        query=args.query,
        type=args.type,
        tags=args.tag or None,
        significance=args.significance,
        limit=args.limit,
    )
    if not memories:
        print("No matching memories.")
        return
    for m in memories:
        tags = f" [{', '.join(m.tags)}]" if m.tags else ""
        print(f"{m.id}  {ms_to_iso(m.timestamp)}  ({m.significance}) {m.type}{tags}")
        print(f"    {m.content[:200]}")


def show_summaries(channel_id: str, hours: float) -> None:
    summaries = ArtifactStore().recent_summaries(channel_id, hours=hours)
    if not summaries:
        print(f"No summaries for {channel_id} in the last {hours:g} hours.")
        return
    for s in summaries:
        print(f"#{s.summary_hash} {s.context_id}: {s.message_count} messages, {s.unique_users} users")
        print(f"    top: {', '.join(s.top_users) or 'N/A'}  images: {'yes' if s.has_images else 'no'}")
        for line in s.preview.splitlines():
            print(f"    {line}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect stored memories and summaries")
    sub = parser.add_subparsers(dest="command", required=True)

    stats = sub.add_parser("stats", help="Memory counts for a personality")
    stats.add_argument("personality")

    search = sub.add_parser("search", help="Search a personality's memories")
    search.add_argument("personality")
    search.add_argument("--query", "-q")
    search.add_argument("--type")
    search.add_argument("--tag", action="append", help="Required tag (repeatable)")
    search.add_argument("--significance", choices=["low", "medium", "high", "critical"])
    search.add_argument("--limit", "-n", type=int, default=20)

    summaries = sub.add_parser("summaries", help="Recent compaction summaries")
    summaries.add_argument("channel_id")
    summaries.add_argument("--hours", type=float, default=24)

    args = parser.parse_args()

    if args.command == "stats":
        asyncio.run(show_stats(args.personality))
    elif args.command == "search":
        asyncio.run(show_search(args))
    else:
        show_summaries(args.channel_id, args.hours)


if __name__ == "__main__":
    main()
