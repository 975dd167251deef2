"""
Notes MCP Server

Exposes tools for saving, retrieving, listing, searching and deleting notes
stored as JSON blobs, via the Model Context Protocol.  Runs on port 8001
with SSE transport and serves Prometheus metrics on /metrics.
"""

import json
import logging
import time
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import UTC, datetime
from typing import Any, Optional

import uvicorn
from mcp.server.fastmcp import FastMCP
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response

from .config import settings
from .metrics import TOOL_DURATION, TOOL_INVOCATIONS
from .models import StoreError
from .repository import NoteRepository
from .search import NoteSearch
from .storage import ObjectStoreGateway, create_gateway

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("notes_mcp")

# ---------------------------------------------------------------------------
# MCP server + storage
# ---------------------------------------------------------------------------
mcp = FastMCP("notes", host=settings.notes_host, port=settings.notes_port)

# Created on first use so a missing storage configuration fails the call,
# not the import.
_gateway: Optional[ObjectStoreGateway] = None


def get_gateway() -> ObjectStoreGateway:
    global _gateway
    if _gateway is None:
        _gateway = create_gateway(settings)
    return _gateway


async def close_gateway() -> None:
    """Release the store client, if one was created."""
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


@contextmanager
def _track(tool_name: str) -> Iterator[None]:
    """Record invocation count and latency for *tool_name*."""
    start = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        TOOL_INVOCATIONS.labels(tool_name=tool_name, status=status).inc()
        TOOL_DURATION.labels(tool_name=tool_name).observe(time.perf_counter() - start)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def save_note(
    title: str,
    content: str,
    category: Optional[str] = None,
    tags: Optional[str] = None,
) -> str:
    """Saves a note with a title, category, tags, and content.

    Use for any type of note: meetings, tasks, ideas, code snippets,
    reminders, etc. Saving under an existing title replaces that note.

    Args:
        title: The title or identifier for the note.
        content: The main content of the note.
        category: The category of the note (e.g., meeting, task, idea,
            code-snippet, reminder). Defaults to "general".
        tags: Comma-separated tags for organizing the note.

    Returns:
        The saved note as JSON.
    """
    logger.info("Tool save_note invoked — title='%s'", title)
    with _track("save_note"):
        note = await NoteRepository(get_gateway()).save(
            title=title, content=content, category=category, tags=tags
        )
    return _dump(note.to_document())


@mcp.tool()
async def get_note(title: str) -> str:
    """Retrieves a note by its title.

    Args:
        title: The title of the note to retrieve.

    Returns:
        JSON with the raw stored content, its parsed form and a preview,
        or an error object when no such note exists.
    """
    logger.info("Tool get_note invoked — title='%s'", title)
    with _track("get_note"):
        result = await NoteRepository(get_gateway()).get(title)
    return _dump(result.to_payload())


@mcp.tool()
async def list_notes() -> str:
    """Lists all saved notes with their titles and categories.

    Returns:
        JSON array with the name, size, content type, modification time and
        metadata of every stored note.
    """
    logger.info("Tool list_notes invoked")
    with _track("list_notes"):
        result = await NoteSearch(get_gateway()).list_all()
    if isinstance(result, StoreError):
        return _dump(result.to_payload())
    logger.info("Tool list_notes — found=%d", len(result))
    return _dump([summary.to_payload() for summary in result])


@mcp.tool()
async def search_notes(query: str = "") -> str:
    """Search notes by tags or category.

    Matches the query case-insensitively against category and tags, then
    title and content. An empty query returns every note.

    Args:
        query: Search query for tags or category.

    Returns:
        JSON array of matching notes, each with a "_blobName" field.
    """
    logger.info("Tool search_notes invoked — query='%s'", query)
    with _track("search_notes"):
        result = await NoteSearch(get_gateway()).search(query)
    if isinstance(result, StoreError):
        return _dump(result.to_payload())
    return _dump(result)


@mcp.tool()
async def delete_note(title: str) -> str:
    """Deletes a note by its title.

    Args:
        title: The title of the note to delete.

    Returns:
        JSON with a success flag and a confirmation message.
    """
    logger.info("Tool delete_note invoked — title='%s'", title)
    with _track("delete_note"):
        result = await NoteRepository(get_gateway()).delete(title)
    return _dump(result.to_payload())


@mcp.tool()
def health_check() -> dict:
    """Check whether the notes server is healthy.

    Reports which storage backend and container tool calls go to. The
    store itself is not contacted.

    Returns:
        Dictionary with server status, storage backend and timestamp.
    """
    logger.info("Tool health_check invoked")
    return {
        "status": "healthy",
        "server": "notes",
        "backend": settings.notes_backend,
        "container": settings.notes_container,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@mcp.custom_route("/metrics", methods=["GET"])
async def metrics(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
@asynccontextmanager
async def _lifespan(app: Starlette) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await close_gateway()


def create_app() -> Starlette:
    """SSE app for the MCP server that closes the store client on shutdown."""
    app = mcp.sse_app()
    app.router.lifespan_context = _lifespan
    return app


def main() -> None:
    logger.info("Starting notes MCP server on port %d ...", settings.notes_port)
    uvicorn.run(
        create_app(),
        host=settings.notes_host,
        port=settings.notes_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
