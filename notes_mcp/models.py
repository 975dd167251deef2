"""Pydantic models for the notes server.

``Note`` is the persisted document; its field aliases (``Title``,
``Category``, ...) are the stored JSON keys and are what search matches
against. The remaining models describe tool responses and serialise with
camelCase keys.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .exceptions import MalformedStoredData

DEFAULT_CATEGORY = "general"
PREVIEW_LENGTH = 500


def split_tags(tags_input: Optional[str]) -> list[str]:
    """Split a comma-separated tag string, trimming each segment.

    Empty segments are kept: ``"a,,b"`` gives ``["a", "", "b"]``.
    """
    if tags_input is None:
        return []
    return [tag.strip() for tag in tags_input.split(",")]


class Note(BaseModel):
    """A single note as stored in the container."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, alias="Title")
    category: str = Field(default=DEFAULT_CATEGORY, alias="Category")
    tags: list[str] = Field(default_factory=list, alias="Tags")
    content: str = Field(..., alias="Content")
    created_at: datetime = Field(..., alias="CreatedAt")
    updated_at: datetime = Field(..., alias="UpdatedAt")

    @classmethod
    def create(
        cls,
        title: str,
        category: Optional[str],
        tags_input: Optional[str],
        content: str,
    ) -> Note:
        """Build a fresh note stamped with the current UTC time."""
        now = datetime.now(UTC)
        return cls(
            title=title,
            category=category or DEFAULT_CATEGORY,
            tags=split_tags(tags_input),
            content=content,
            created_at=now,
            updated_at=now,
        )

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready document with stored key names."""
        return self.model_dump(mode="json", by_alias=True)


def encode(note: Note) -> bytes:
    """Serialise *note* as pretty-printed UTF-8 JSON."""
    return note.model_dump_json(by_alias=True, indent=2).encode("utf-8")


def load_json(data: bytes | str) -> Any:
    """Parse stored bytes as JSON of any shape.

    Raises:
        MalformedStoredData: if *data* is not JSON, including documents
            nested too deeply to decode.
    """
    try:
        return json.loads(data)
    except (ValueError, RecursionError) as exc:
        raise MalformedStoredData(f"Invalid JSON: {exc}") from exc


def decode(data: bytes | str) -> dict[str, Any]:
    """Parse a stored note document, keeping any extra keys it carries.

    Raises:
        MalformedStoredData: if *data* is not a JSON object.
    """
    document = load_json(data)
    if not isinstance(document, dict):
        raise MalformedStoredData("Not a JSON object")
    return document


def make_preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Return the first *limit* characters, suffixed with ``...`` if cut."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


# ---------------------------------------------------------------------------
# Tool responses
# ---------------------------------------------------------------------------


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ObjectSummary(_Response):
    """One entry of a container listing."""

    name: str
    content_length: int = 0
    content_type: str = ""
    last_modified: Optional[datetime] = None
    metadata: dict[str, str] = Field(default_factory=dict)


class NoteView(_Response):
    title: str
    found: bool = True
    raw_content: str
    parsed_content: Optional[Any] = None
    preview: str


class NoteNotFound(_Response):
    error: str = "Note not found"
    title: str


class DeleteResult(_Response):
    success: bool
    message: str


class StoreError(_Response):
    error: str = "Failed to access notes storage"
    details: str
