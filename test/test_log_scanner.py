#!/usr/bin/env python3
"""Tests for the chunked log scanner."""

from unittest.mock import MagicMock, PropertyMock

import pytest
from hexbytes import HexBytes
from web3 import Web3

from airdrop_sync.errors import RpcError
from airdrop_sync.models import ZERO_HASH
from airdrop_sync.utils.log_scanner import (
    MINT_TOPICS,
    TRANSFER_TOPIC,
    LogScanner,
    iter_block_windows,
)

NFT = "0x2222222222222222222222222222222222222222"
RECIPIENT_TOPIC = "0x" + "0" * 24 + "11" * 20


def raw_log(block: int) -> dict:
    return {
        "blockNumber": block,
        "transactionHash": HexBytes("0x" + f"{block:064x}"),
        "topics": [HexBytes(TRANSFER_TOPIC), HexBytes(ZERO_HASH), HexBytes(RECIPIENT_TOPIC)],
    }


@pytest.fixture
def mock_w3():
    """Create a mock Web3 instance."""
    mock = MagicMock()
    mock.eth.get_logs = MagicMock(return_value=[])
    return mock


class TestMintTopics:
    def test_transfer_signature(self):
        assert TRANSFER_TOPIC == Web3.to_hex(Web3.keccak(text="Transfer(address,address,uint256)"))
        assert MINT_TOPICS == [TRANSFER_TOPIC, ZERO_HASH]


class TestBlockWindows:
    def test_partitions_ascending(self):
        assert list(iter_block_windows(0, 25, 10)) == [(0, 9), (10, 19), (20, 25)]

    def test_single_block(self):
        assert list(iter_block_windows(7, 7, 10)) == [(7, 7)]

    def test_empty_range(self):
        assert list(iter_block_windows(10, 9, 10)) == []

    def test_invalid_chunk(self):
        with pytest.raises(ValueError):
            list(iter_block_windows(0, 1, 0))


class TestLogScanner:
    """Test suite for LogScanner."""

    def test_invalid_chunk_size(self, mock_w3):
        with pytest.raises(ValueError, match="Chunk size"):
            LogScanner(mock_w3, chunk_size=0)

    def test_window_for(self, mock_w3):
        scanner = LogScanner(mock_w3)
        assert scanner.window_for(1000, 300) == (700, 1000)
        assert scanner.window_for(100, 300) == (0, 100)

    def test_head_block(self, mock_w3):
        mock_w3.eth.block_number = 4242
        assert LogScanner(mock_w3).head_block() == 4242

    def test_head_block_failure(self, mock_w3):
        type(mock_w3.eth).block_number = PropertyMock(side_effect=ConnectionError("down"))
        with pytest.raises(RpcError, match="chain head"):
            LogScanner(mock_w3).head_block()

    @pytest.mark.asyncio
    async def test_scan_queries_chunks_in_order(self, mock_w3):
        mock_w3.eth.get_logs.side_effect = [[raw_log(3)], [], [raw_log(21), raw_log(22)]]
        scanner = LogScanner(mock_w3, chunk_size=10)

        entries = await scanner.scan(NFT, 0, 25)

        assert [e.block_number for e in entries] == [3, 21, 22]
        ranges = [
            (c.args[0]["fromBlock"], c.args[0]["toBlock"])
            for c in mock_w3.eth.get_logs.call_args_list
        ]
        assert ranges == [(0, 9), (10, 19), (20, 25)]

        first_filter = mock_w3.eth.get_logs.call_args_list[0].args[0]
        assert first_filter["address"] == NFT
        assert first_filter["topics"] == MINT_TOPICS

    @pytest.mark.asyncio
    async def test_scan_failure_aborts(self, mock_w3):
        mock_w3.eth.get_logs.side_effect = [[raw_log(1)], Exception("range too large")]
        scanner = LogScanner(mock_w3, chunk_size=10)

        with pytest.raises(RpcError, match="eth_getLogs failed for blocks 10-19"):
            await scanner.scan(NFT, 0, 29)

        assert mock_w3.eth.get_logs.call_count == 2

    @pytest.mark.asyncio
    async def test_scan_malformed_log(self, mock_w3):
        bad = raw_log(1)
        bad["topics"] = bad["topics"][:2]
        mock_w3.eth.get_logs.return_value = [bad]

        with pytest.raises(RpcError, match="Malformed log"):
            await LogScanner(mock_w3).scan(NFT, 0, 5)

    @pytest.mark.asyncio
    async def test_scan_non_list_topics(self, mock_w3):
        bad = raw_log(1)
        bad["topics"] = 5
        mock_w3.eth.get_logs.return_value = [bad]

        with pytest.raises(RpcError, match="topics must be a list"):
            await LogScanner(mock_w3).scan(NFT, 0, 5)
