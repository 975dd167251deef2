"""Notes server configuration loaded from environment variables."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    # Blob storage (same variables the Functions host uses)
    storage_connection_string: Optional[str] = Field(
        default=None, validation_alias="AzureWebJobsStorage"
    )
    storage_blob_service_uri: Optional[str] = Field(
        default=None, validation_alias="AzureWebJobsStorage__blobServiceUri"
    )
    notes_container: str = "notes"
    notes_backend: Literal["azure", "memory"] = "azure"

    # MCP server
    notes_host: str = "0.0.0.0"
    notes_port: int = 8001

    log_level: str = "INFO"


settings = Settings()
