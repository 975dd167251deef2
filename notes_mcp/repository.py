"""Title-keyed note persistence on top of an object store gateway."""

import logging
from typing import Optional

from .exceptions import MalformedStoredData, ObjectNotFound
from .models import (
    DeleteResult,
    Note,
    NoteNotFound,
    NoteView,
    encode,
    load_json,
    make_preview,
)
from .storage import ObjectStoreGateway, blob_key

logger = logging.getLogger("notes_mcp.repository")


class NoteRepository:
    """Save, get and delete notes by title.

    Every call goes to the gateway; nothing is cached between calls.
    """

    def __init__(self, gateway: ObjectStoreGateway) -> None:
        self._gateway = gateway

    async def save(
        self,
        title: str,
        content: str,
        category: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> Note:
        """Create the note and overwrite whatever is stored under its title."""
        note = Note.create(title, category, tags, content)
        await self._gateway.write(blob_key(title), encode(note))
        logger.info("Saved note '%s' (category=%s)", note.title, note.category)
        return note

    async def get(self, title: str) -> NoteView | NoteNotFound:
        """Read the note stored under *title*.

        A missing or empty object yields ``NoteNotFound``; unparseable
        content yields a view with ``parsed_content`` set to None.
        """
        try:
            raw_bytes = await self._gateway.read(blob_key(title))
        except ObjectNotFound:
            logger.info("Note '%s' not found", title)
            return NoteNotFound(title=title)

        raw = raw_bytes.decode("utf-8", errors="replace")
        if not raw:
            logger.info("Note '%s' is empty, treating as not found", title)
            return NoteNotFound(title=title)

        try:
            parsed = load_json(raw)
        except MalformedStoredData as exc:
            logger.warning("Note '%s' does not contain valid JSON: %s", title, exc)
            parsed = None

        return NoteView(
            title=title,
            raw_content=raw,
            parsed_content=parsed,
            preview=make_preview(raw),
        )

    async def delete(self, title: str) -> DeleteResult:
        deleted = await self._gateway.delete(blob_key(title))
        if deleted:
            logger.info("Deleted note '%s'", title)
            return DeleteResult(
                success=True, message=f"Note '{title}' deleted successfully"
            )
        logger.info("Delete requested for missing note '%s'", title)
        return DeleteResult(success=False, message=f"Note '{title}' not found")
