"""Seed a running notes server with a handful of demo notes.

Saves each note through the MCP ``save_note`` tool, then runs a couple of
searches so the results can be eyeballed.

Usage:
    python scripts/seed_notes.py [--url http://localhost:8001/sse]
"""

from __future__ import annotations

import argparse
import json
import sys
import time

import anyio
from mcp import ClientSession
from mcp.client.sse import sse_client

DEFAULT_URL = "http://localhost:8001/sse"

# Each entry: (title, category, tags, content)
NOTES: list[tuple[str, str, str, str]] = [
    (
        "Sprint planning",
        "meeting",
        "planning, team",
        "Agreed to move the blob migration to next sprint. Owners: storage team.",
    ),
    (
        "Rotate storage keys",
        "task",
        "ops, security",
        "Rotate the storage account keys before the end of the quarter.",
    ),
    (
        "Search by tag",
        "idea",
        "notes, search",
        "Let search_notes accept several comma-separated queries at once.",
    ),
    (
        "Retry helper",
        "code-snippet",
        "python, async",
        "async def retry(fn, attempts=3): ...",
    ),
    (
        "Dentist",
        "reminder",
        "personal",
        "Dentist appointment on Thursday at 9am.",
    ),
]

SEARCHES = ["meeting", "python", "storage", ""]


def _parse_tool_response(result) -> object:
    """Extract the JSON payload from a CallToolResult."""
    return json.loads(result.content[0].text)


async def _seed(url: str) -> tuple[int, dict[str, int]]:
    saved = 0
    hits: dict[str, int] = {}
    async with sse_client(url) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            for i, (title, category, tags, content) in enumerate(NOTES, 1):
                print(f"  [{i}/{len(NOTES)}] {title} ({category})")
                r = await session.call_tool(
                    "save_note",
                    {
                        "title": title,
                        "category": category,
                        "tags": tags,
                        "content": content,
                    },
                )
                if r.isError:
                    print(f"         ERROR:   {r.content[0].text}")
                    continue
                note = _parse_tool_response(r)
                print(f"         Tags:    {note['Tags']}")
                saved += 1

            for query in SEARCHES:
                r = await session.call_tool("search_notes", {"query": query})
                found = _parse_tool_response(r)
                hits[query] = len(found) if isinstance(found, list) else -1
    return saved, hits


def main() -> None:
    """Save all demo notes and report search hit counts."""
    parser = argparse.ArgumentParser(description="Seed demo notes")
    parser.add_argument(
        "--url",
        default=DEFAULT_URL,
        help=f"Notes server SSE URL (default: {DEFAULT_URL})",
    )
    args = parser.parse_args()

    print(f"\n  Seeding notes via {args.url}")
    print("  " + "=" * 58)

    start = time.time()
    try:
        saved, hits = anyio.run(_seed, args.url)
    except Exception as e:
        print(f"  FAIL: could not talk to the notes server: {e}")
        sys.exit(1)

    print("  " + "=" * 58)
    print(f"  Done! {saved}/{len(NOTES)} notes saved in {time.time() - start:.1f}s.")
    for query, count in hits.items():
        label = query or "(all)"
        print(f"    search {label!r:12} -> {count if count >= 0 else 'storage error'}")
    print()


if __name__ == "__main__":
    main()
