"""Error taxonomy for the notes server."""


class NotesError(Exception):
    """Base class for every error raised by the notes package."""


class ObjectNotFound(NotesError):
    """The requested object key has no backing object."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Object '{key}' not found")
        self.key = key


class MalformedStoredData(NotesError, ValueError):
    """Stored bytes could not be parsed as a note document."""


class StoreUnavailable(NotesError):
    """Transport or authentication failure talking to the object store."""


class ConfigurationMissing(NotesError):
    """No usable storage connection string or endpoint is configured."""
