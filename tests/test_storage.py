"""Unit tests for notes_mcp.storage — gateways and gateway factory."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from azure.core.exceptions import (
    ClientAuthenticationError,
    ResourceNotFoundError,
    ServiceRequestError,
)

from notes_mcp.config import Settings
from notes_mcp.exceptions import ConfigurationMissing, ObjectNotFound, StoreUnavailable
from notes_mcp.storage import (
    JSON_CONTENT_TYPE,
    AzureBlobGateway,
    InMemoryGateway,
    blob_key,
    create_gateway,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _AsyncPager:
    """Stand-in for AsyncItemPaged: yields items, then optionally fails."""

    def __init__(self, items, error: Exception | None = None) -> None:
        self._items = items
        self._error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            yield item
        if self._error is not None:
            raise self._error


def _blob(name: str, size: int = 10, content_type: str | None = JSON_CONTENT_TYPE):
    return SimpleNamespace(
        name=name,
        size=size,
        content_settings=SimpleNamespace(content_type=content_type),
        last_modified=datetime(2025, 6, 1, 12, 0, tzinfo=UTC),
        metadata={"source": "test"},
    )


def _make_gateway() -> tuple[AzureBlobGateway, MagicMock]:
    container = MagicMock()
    container.download_blob = AsyncMock()
    container.upload_blob = AsyncMock()
    container.delete_blob = AsyncMock()
    return AzureBlobGateway(container), container


async def _collect(gateway) -> list:
    return [summary async for summary in gateway.list_objects()]


def _settings(monkeypatch, **overrides) -> Settings:
    monkeypatch.delenv("AzureWebJobsStorage", raising=False)
    monkeypatch.delenv("AzureWebJobsStorage__blobServiceUri", raising=False)
    monkeypatch.delenv("NOTES_BACKEND", raising=False)
    return Settings(_env_file=None, **overrides)


def test_blob_key() -> None:
    assert blob_key("Meeting notes") == "Meeting notes.json"


# ---------------------------------------------------------------------------
# AzureBlobGateway
# ---------------------------------------------------------------------------


class TestAzureList:
    @pytest.mark.asyncio
    async def test_maps_blob_properties(self):
        gateway, container = _make_gateway()
        container.list_blobs = MagicMock(
            return_value=_AsyncPager([_blob("a.json", 42), _blob("b.json", None, None)])
        )

        summaries = await _collect(gateway)

        container.list_blobs.assert_called_once_with(include=["metadata"])
        assert [s.name for s in summaries] == ["a.json", "b.json"]
        assert summaries[0].content_length == 42
        assert summaries[0].content_type == JSON_CONTENT_TYPE
        assert summaries[0].metadata == {"source": "test"}
        assert summaries[1].content_length == 0
        assert summaries[1].content_type == ""

    @pytest.mark.asyncio
    async def test_listing_failure_raises_store_unavailable(self):
        gateway, container = _make_gateway()
        container.list_blobs = MagicMock(
            return_value=_AsyncPager([], ServiceRequestError("connection refused"))
        )

        with pytest.raises(StoreUnavailable, match="connection refused"):
            await _collect(gateway)


class TestAzureRead:
    @pytest.mark.asyncio
    async def test_returns_bytes(self):
        gateway, container = _make_gateway()
        downloader = MagicMock()
        downloader.readall = AsyncMock(return_value=b'{"Title": "T"}')
        container.download_blob.return_value = downloader

        assert await gateway.read("T.json") == b'{"Title": "T"}'
        container.download_blob.assert_awaited_once_with("T.json")

    @pytest.mark.asyncio
    async def test_missing_raises_object_not_found(self):
        gateway, container = _make_gateway()
        container.download_blob.side_effect = ResourceNotFoundError("nope")

        with pytest.raises(ObjectNotFound) as info:
            await gateway.read("missing.json")
        assert info.value.key == "missing.json"

    @pytest.mark.asyncio
    async def test_auth_failure_raises_store_unavailable(self):
        gateway, container = _make_gateway()
        container.download_blob.side_effect = ClientAuthenticationError("denied")

        with pytest.raises(StoreUnavailable):
            await gateway.read("T.json")


class TestAzureWrite:
    @pytest.mark.asyncio
    async def test_overwrites_with_json_content_type(self):
        gateway, container = _make_gateway()

        await gateway.write("T.json", b"{}")

        args, kwargs = container.upload_blob.call_args
        assert args == ("T.json", b"{}")
        assert kwargs["overwrite"] is True
        assert kwargs["content_settings"].content_type == JSON_CONTENT_TYPE

    @pytest.mark.asyncio
    async def test_failure_raises_store_unavailable(self):
        gateway, container = _make_gateway()
        container.upload_blob.side_effect = ServiceRequestError("timeout")

        with pytest.raises(StoreUnavailable):
            await gateway.write("T.json", b"{}")


class TestAzureDelete:
    @pytest.mark.asyncio
    async def test_existing_returns_true(self):
        gateway, container = _make_gateway()
        assert await gateway.delete("T.json") is True
        container.delete_blob.assert_awaited_once_with("T.json")

    @pytest.mark.asyncio
    async def test_missing_returns_false(self):
        gateway, container = _make_gateway()
        container.delete_blob.side_effect = ResourceNotFoundError("nope")
        assert await gateway.delete("T.json") is False

    @pytest.mark.asyncio
    async def test_failure_raises_store_unavailable(self):
        gateway, container = _make_gateway()
        container.delete_blob.side_effect = ServiceRequestError("down")
        with pytest.raises(StoreUnavailable):
            await gateway.delete("T.json")


class TestAzureClose:
    @pytest.mark.asyncio
    async def test_closes_service_and_credential(self):
        container, service, credential = MagicMock(), MagicMock(), MagicMock()
        container.close = AsyncMock()
        service.close = AsyncMock()
        credential.close = AsyncMock()
        gateway = AzureBlobGateway(container, service=service, credential=credential)

        await gateway.close()

        service.close.assert_awaited_once()
        credential.close.assert_awaited_once()
        container.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_service_closes_container(self):
        gateway, container = _make_gateway()
        container.close = AsyncMock()

        await gateway.close()

        container.close.assert_awaited_once()


# ---------------------------------------------------------------------------
# InMemoryGateway
# ---------------------------------------------------------------------------


class TestInMemoryGateway:
    @pytest.mark.asyncio
    async def test_write_read(self):
        gateway = InMemoryGateway()
        await gateway.write("a.json", b"data")
        assert await gateway.read("a.json") == b"data"

    @pytest.mark.asyncio
    async def test_read_missing(self):
        with pytest.raises(ObjectNotFound):
            await InMemoryGateway().read("nope.json")

    @pytest.mark.asyncio
    async def test_overwrite_keeps_one_object(self):
        gateway = InMemoryGateway()
        await gateway.write("a.json", b"one")
        await gateway.write("a.json", b"two")
        assert gateway.keys() == ["a.json"]
        assert await gateway.read("a.json") == b"two"

    @pytest.mark.asyncio
    async def test_delete(self):
        gateway = InMemoryGateway()
        await gateway.write("a.json", b"x")
        assert await gateway.delete("a.json") is True
        assert await gateway.delete("a.json") is False

    @pytest.mark.asyncio
    async def test_list_summaries(self):
        gateway = InMemoryGateway()
        await gateway.write("a.json", b"12345")
        gateway.put_raw("b.txt", b"hi", content_type="text/plain")

        summaries = await _collect(gateway)

        assert [(s.name, s.content_length, s.content_type) for s in summaries] == [
            ("a.json", 5, JSON_CONTENT_TYPE),
            ("b.txt", 2, "text/plain"),
        ]
        assert all(s.last_modified is not None for s in summaries)

    @pytest.mark.asyncio
    async def test_close_is_noop(self):
        gateway = InMemoryGateway()
        gateway.put_raw("a.json", b"x")
        await gateway.close()
        assert gateway.keys() == ["a.json"]


# ---------------------------------------------------------------------------
# create_gateway
# ---------------------------------------------------------------------------


class TestCreateGateway:
    def test_memory_backend(self, monkeypatch):
        settings = _settings(monkeypatch, notes_backend="memory")
        assert isinstance(create_gateway(settings), InMemoryGateway)

    def test_connection_string(self, monkeypatch):
        settings = _settings(
            monkeypatch, AzureWebJobsStorage="UseDevelopmentStorage=true"
        )
        with patch("notes_mcp.storage.BlobServiceClient") as service_cls:
            gateway = create_gateway(settings)

        service_cls.from_connection_string.assert_called_once_with(
            "UseDevelopmentStorage=true"
        )
        service_cls.from_connection_string.return_value.get_container_client.assert_called_once_with(
            "notes"
        )
        assert isinstance(gateway, AzureBlobGateway)

    def test_connection_string_wins_over_uri(self, monkeypatch):
        settings = _settings(
            monkeypatch,
            AzureWebJobsStorage="UseDevelopmentStorage=true",
            AzureWebJobsStorage__blobServiceUri="https://acct.blob.core.windows.net",
        )
        with patch("notes_mcp.storage.BlobServiceClient") as service_cls:
            create_gateway(settings)

        service_cls.from_connection_string.assert_called_once()
        service_cls.assert_not_called()

    def test_service_uri_uses_default_credential(self, monkeypatch):
        settings = _settings(
            monkeypatch,
            AzureWebJobsStorage__blobServiceUri="https://acct.blob.core.windows.net",
            notes_container="team-notes",
        )
        with (
            patch("notes_mcp.storage.BlobServiceClient") as service_cls,
            patch("notes_mcp.storage.DefaultAzureCredential") as credential_cls,
        ):
            create_gateway(settings)

        service_cls.assert_called_once_with(
            account_url="https://acct.blob.core.windows.net",
            credential=credential_cls.return_value,
        )
        service_cls.return_value.get_container_client.assert_called_once_with(
            "team-notes"
        )

    def test_missing_configuration_raises(self, monkeypatch):
        settings = _settings(monkeypatch)
        with patch("notes_mcp.storage.BlobServiceClient") as service_cls:
            with pytest.raises(ConfigurationMissing):
                create_gateway(settings)
        service_cls.assert_not_called()
        service_cls.from_connection_string.assert_not_called()

    @pytest.mark.asyncio
    async def test_service_uri_gateway_closes_credential(self, monkeypatch):
        settings = _settings(
            monkeypatch,
            AzureWebJobsStorage__blobServiceUri="https://acct.blob.core.windows.net",
        )
        with (
            patch("notes_mcp.storage.BlobServiceClient") as service_cls,
            patch("notes_mcp.storage.DefaultAzureCredential") as credential_cls,
        ):
            service_cls.return_value.close = AsyncMock()
            credential_cls.return_value.close = AsyncMock()
            gateway = create_gateway(settings)
            await gateway.close()

        service_cls.return_value.close.assert_awaited_once()
        credential_cls.return_value.close.assert_awaited_once()
