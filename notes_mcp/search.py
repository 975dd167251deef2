"""Collection-wide listing and free-text search over stored notes.

There is no index: every call enumerates the whole container and, for a
search, downloads and parses every object.
"""

import json
import logging
from typing import Any

from .exceptions import MalformedStoredData, NotesError, StoreUnavailable
from .metrics import SEARCH_SKIPPED
from .models import ObjectSummary, StoreError, decode
from .storage import ObjectStoreGateway

logger = logging.getLogger("notes_mcp.search")

BLOB_NAME_FIELD = "_blobName"


def _field(document: dict[str, Any], name: str) -> str:
    value = document.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedStoredData(f"{name} is not a string")
    return value


def _tag_text(tag: Any) -> str:
    if tag is None:
        return ""
    if isinstance(tag, str):
        return tag
    try:
        return json.dumps(tag, ensure_ascii=False)
    except (ValueError, RecursionError) as exc:
        raise MalformedStoredData(f"Unreadable tag: {exc}") from exc


def matches(document: dict[str, Any], query: str) -> bool:
    """Return True if the stored *document* matches *query*.

    Category and tags are checked first; title and content are only read
    when neither of those matched. All checks are case-insensitive
    substring tests, and an empty query matches everything. Non-string
    tags are compared by their JSON text.

    Raises:
        MalformedStoredData: if ``Category``, or ``Title``/``Content`` when
            they have to be read, holds something other than a string.
    """
    q = query.strip().casefold()

    category = _field(document, "Category")
    raw_tags = document.get("Tags")
    tags = [_tag_text(t) for t in raw_tags] if isinstance(raw_tags, list) else []

    if not q:
        return True
    if category and q in category.casefold():
        return True
    if any(tag and q in tag.casefold() for tag in tags):
        return True

    title = _field(document, "Title")
    content = _field(document, "Content")
    if title and q in title.casefold():
        return True
    return bool(content) and q in content.casefold()


class NoteSearch:
    """List and search every object in the notes container."""

    def __init__(self, gateway: ObjectStoreGateway) -> None:
        self._gateway = gateway

    async def list_all(self) -> list[ObjectSummary] | StoreError:
        try:
            return [summary async for summary in self._gateway.list_objects()]
        except StoreUnavailable as exc:
            logger.error("Error listing notes container", exc_info=True)
            return StoreError(details=str(exc))

    async def search(self, query: str | None) -> list[dict[str, Any]] | StoreError:
        """Return every readable note matching *query*.

        Each result carries a ``_blobName`` field with its object key.
        Objects that are empty, malformed, or cannot be read are skipped;
        only a listing failure aborts the search.
        """
        q = (query or "").strip()
        results: list[dict[str, Any]] = []
        try:
            async for summary in self._gateway.list_objects():
                document = await self._load(summary.name)
                if document is None:
                    continue
                try:
                    matched = matches(document, q)
                except MalformedStoredData as exc:
                    logger.warning("Skipping object %s: %s", summary.name, exc)
                    SEARCH_SKIPPED.labels(reason="malformed").inc()
                    continue
                if matched:
                    document[BLOB_NAME_FIELD] = summary.name
                    results.append(document)
        except StoreUnavailable as exc:
            logger.error("Error listing notes container", exc_info=True)
            return StoreError(details=str(exc))

        logger.info("Search '%s' matched %d notes", q, len(results))
        return results

    async def _load(self, key: str) -> dict[str, Any] | None:
        try:
            raw = await self._gateway.read(key)
        except NotesError as exc:
            logger.warning("Failed to read object %s: %s", key, exc)
            SEARCH_SKIPPED.labels(reason="read_error").inc()
            return None

        text = raw.decode("utf-8", errors="replace")
        if not text.strip():
            SEARCH_SKIPPED.labels(reason="empty").inc()
            return None

        try:
            return decode(text)
        except MalformedStoredData as exc:
            logger.warning("Skipping object %s: %s", key, exc)
            SEARCH_SKIPPED.labels(reason="malformed").inc()
            return None
