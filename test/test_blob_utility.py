#!/usr/bin/env python3
"""Tests for the snapshot store and local mirror."""

import json
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import httpx
import pytest

from airdrop_sync.config import BlobStoreConfig
from airdrop_sync.errors import StoreError
from airdrop_sync.merkle import build_tree
from airdrop_sync.utils.blob_utility import BlobSnapshotStore, LocalMirror

KEY = "claims/eth-sepolia.json"
PAYLOAD = build_tree(
    ["0x1111111111111111111111111111111111111111", "0x2222222222222222222222222222222222222222"],
    5 * 10**18,
    100000,
).to_payload(100000)


def make_response(status_code: int = 200, text: str = "", body=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json = MagicMock(return_value=body)
    response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def store():
    config = BlobStoreConfig(read_host="store.example", token="rw-token")
    return BlobSnapshotStore(config, timeout=5)


class TestBlobSnapshotStoreRead:
    """Tests for reading snapshots."""

    def test_key_and_url(self, store):
        assert store.key_for("eth-sepolia") == KEY
        assert store.url_for(KEY) == "https://store.example/claims/eth-sepolia.json"

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_read_existing(self, mock_client_class, store):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=make_response(text=PAYLOAD.to_json()))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        payload = await store.read(KEY)

        assert payload == PAYLOAD
        assert mock_client.get.call_args.args[0] == "https://store.example/claims/eth-sepolia.json"

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_read_not_found(self, mock_client_class, store):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=make_response(status_code=404))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        assert await store.read(KEY) is None

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_read_server_error(self, mock_client_class, store):
        response = make_response(status_code=500)
        response.raise_for_status = MagicMock(side_effect=httpx.HTTPStatusError(
            "Server error", request=Mock(), response=Mock()
        ))
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=response)
        mock_client_class.return_value.__aenter__.return_value = mock_client

        with pytest.raises(StoreError, match="Snapshot read failed"):
            await store.read(KEY)

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_read_transport_error(self, mock_client_class, store):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        with pytest.raises(StoreError, match="refused"):
            await store.read(KEY)

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_read_invalid_document(self, mock_client_class, store):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=make_response(text=json.dumps({"round": "x"})))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        with pytest.raises(StoreError, match="invalid"):
            await store.read(KEY)

    @pytest.mark.asyncio
    async def test_read_without_host(self):
        store = BlobSnapshotStore(BlobStoreConfig())
        with pytest.raises(StoreError, match="BLOB_READ_HOST"):
            await store.read(KEY)


class TestBlobSnapshotStoreWrite:
    """Tests for uploading snapshots."""

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_write(self, mock_client_class, store):
        stored = "https://store.example/claims/eth-sepolia.json"
        mock_client = AsyncMock()
        mock_client.put = AsyncMock(return_value=make_response(body={"url": stored}))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        assert await store.write(KEY, PAYLOAD) == stored

        mock_client.put.assert_called_once()
        call = mock_client.put.call_args
        assert call.args[0] == "https://blob.vercel-storage.com/claims/eth-sepolia.json"
        assert call.kwargs["content"] == PAYLOAD.to_json()
        assert call.kwargs["headers"]["authorization"] == "Bearer rw-token"
        assert call.kwargs["headers"]["x-add-random-suffix"] == "0"
        assert call.kwargs["timeout"] == 5

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_write_falls_back_to_public_url(self, mock_client_class, store):
        mock_client = AsyncMock()
        mock_client.put = AsyncMock(return_value=make_response(body={}))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        assert await store.write(KEY, PAYLOAD) == "https://store.example/claims/eth-sepolia.json"

    @pytest.mark.asyncio
    @patch('airdrop_sync.utils.blob_utility.httpx.AsyncClient')
    async def test_write_auth_failure(self, mock_client_class, store):
        response = make_response(status_code=403)
        response.raise_for_status = MagicMock(side_effect=httpx.HTTPStatusError(
            "Forbidden", request=Mock(), response=Mock()
        ))
        mock_client = AsyncMock()
        mock_client.put = AsyncMock(return_value=response)
        mock_client_class.return_value.__aenter__.return_value = mock_client

        with pytest.raises(StoreError, match="Snapshot write failed"):
            await store.write(KEY, PAYLOAD)

    @pytest.mark.asyncio
    async def test_write_without_token(self):
        store = BlobSnapshotStore(BlobStoreConfig(read_host="store.example"))
        with pytest.raises(StoreError, match="BLOB_READ_WRITE_TOKEN"):
            await store.write(KEY, PAYLOAD)


class TestLocalMirror:
    def test_path_for(self, tmp_path):
        assert LocalMirror(tmp_path).path_for("base-sepolia") == tmp_path / "base-sepolia.json"

    def test_write_creates_directories(self, tmp_path):
        mirror = LocalMirror(tmp_path / "public" / "claims")
        path = mirror.write("eth-sepolia", PAYLOAD)

        assert path == tmp_path / "public" / "claims" / "eth-sepolia.json"
        assert json.loads(path.read_text()) == PAYLOAD.to_dict()

    def test_write_failure_propagates(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(OSError):
            LocalMirror(blocker / "claims").write("eth-sepolia", PAYLOAD)
