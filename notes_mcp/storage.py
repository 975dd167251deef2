"""Object store gateways for the notes server.

A gateway is the only I/O boundary: it lists, reads, writes and deletes
objects in a single container. ``AzureBlobGateway`` talks to Azure Blob
Storage; ``InMemoryGateway`` keeps objects in a dict for tests and local
runs. Neither retries failed calls.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Optional, Protocol

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient, ContainerClient

from .config import Settings
from .exceptions import ConfigurationMissing, ObjectNotFound, StoreUnavailable
from .models import ObjectSummary

logger = logging.getLogger("notes_mcp.storage")

JSON_CONTENT_TYPE = "application/json"


def blob_key(title: str) -> str:
    """Object key for the note titled *title*."""
    return f"{title}.json"


class ObjectStoreGateway(Protocol):
    """Key/blob operations against one logical container."""

    def list_objects(self) -> AsyncIterator[ObjectSummary]: ...

    async def read(self, key: str) -> bytes: ...

    async def write(self, key: str, data: bytes) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def close(self) -> None: ...


class AzureBlobGateway:
    """Gateway over an Azure Blob Storage container."""

    def __init__(
        self,
        container: ContainerClient,
        service: Optional[BlobServiceClient] = None,
        credential: Optional[DefaultAzureCredential] = None,
    ) -> None:
        self._container = container
        self._service = service
        self._credential = credential

    async def list_objects(self) -> AsyncIterator[ObjectSummary]:
        """Yield a summary for every blob, in service order."""
        try:
            async for blob in self._container.list_blobs(include=["metadata"]):
                settings = blob.content_settings
                yield ObjectSummary(
                    name=blob.name,
                    content_length=blob.size or 0,
                    content_type=(settings.content_type if settings else None) or "",
                    last_modified=blob.last_modified,
                    metadata=blob.metadata or {},
                )
        except AzureError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def read(self, key: str) -> bytes:
        try:
            downloader = await self._container.download_blob(key)
            return await downloader.readall()
        except ResourceNotFoundError as exc:
            raise ObjectNotFound(key) from exc
        except AzureError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def write(self, key: str, data: bytes) -> None:
        try:
            await self._container.upload_blob(
                key,
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=JSON_CONTENT_TYPE),
            )
        except AzureError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def delete(self, key: str) -> bool:
        try:
            await self._container.delete_blob(key)
        except ResourceNotFoundError:
            return False
        except AzureError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return True

    async def close(self) -> None:
        """Close the HTTP session and, if one was created, the credential."""
        if self._service is not None:
            await self._service.close()
        else:
            await self._container.close()
        if self._credential is not None:
            await self._credential.close()


class InMemoryGateway:
    """Dict-backed gateway. Listing follows insertion order."""

    def __init__(self) -> None:
        self._objects: dict[str, tuple[bytes, str, datetime]] = {}

    def put_raw(
        self, key: str, data: bytes, content_type: str = JSON_CONTENT_TYPE
    ) -> None:
        """Store arbitrary bytes under *key* without going through a note."""
        self._objects[key] = (data, content_type, datetime.now(UTC))

    def keys(self) -> list[str]:
        return list(self._objects)

    async def list_objects(self) -> AsyncIterator[ObjectSummary]:
        for key, (data, content_type, modified) in list(self._objects.items()):
            yield ObjectSummary(
                name=key,
                content_length=len(data),
                content_type=content_type,
                last_modified=modified,
            )

    async def read(self, key: str) -> bytes:
        try:
            return self._objects[key][0]
        except KeyError:
            raise ObjectNotFound(key) from None

    async def write(self, key: str, data: bytes) -> None:
        self.put_raw(key, data)

    async def delete(self, key: str) -> bool:
        return self._objects.pop(key, None) is not None

    async def close(self) -> None:
        pass


def _service_client(
    settings: Settings,
) -> tuple[BlobServiceClient, Optional[DefaultAzureCredential]]:
    if settings.storage_connection_string:
        service = BlobServiceClient.from_connection_string(
            settings.storage_connection_string
        )
        return service, None
    if settings.storage_blob_service_uri:
        credential = DefaultAzureCredential()
        service = BlobServiceClient(
            account_url=settings.storage_blob_service_uri,
            credential=credential,
        )
        return service, credential
    logger.error(
        "AzureWebJobsStorage or AzureWebJobsStorage__blobServiceUri not configured"
    )
    raise ConfigurationMissing("Storage configuration is missing")


def create_gateway(settings: Settings) -> ObjectStoreGateway:
    """Build the gateway selected by ``settings.notes_backend``.

    Raises:
        ConfigurationMissing: for the azure backend when neither a
            connection string nor a blob service URI is set.
    """
    if settings.notes_backend == "memory":
        logger.info("Using in-memory note store")
        return InMemoryGateway()

    service, credential = _service_client(settings)
    logger.info("Using Azure blob container '%s'", settings.notes_container)
    return AzureBlobGateway(
        service.get_container_client(settings.notes_container),
        service=service,
        credential=credential,
    )
