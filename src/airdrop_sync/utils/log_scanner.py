"""
Chunked log scanner for mint event retrieval.
"""

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from web3 import Web3

from ..errors import RpcError
from ..models import ZERO_HASH, LogEntry

TRANSFER_TOPIC: str = Web3.to_hex(Web3.keccak(text="Transfer(address,address,uint256)"))

# Transfer events with from == address(0)
MINT_TOPICS: list[str] = [TRANSFER_TOPIC, ZERO_HASH]

DEFAULT_CHUNK_SIZE = 10


def iter_block_windows(from_block: int, to_block: int, chunk_size: int) -> Iterator[tuple[int, int]]:
    """Split an inclusive block range into ascending sub-windows of chunk_size blocks."""
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    for start in range(from_block, to_block + 1, chunk_size):
        yield start, min(start + chunk_size - 1, to_block)


class LogScanner:
    """
    Utility for fetching contract logs over a bounded block range.

    Ranges are queried in fixed-size sub-windows to stay under provider limits
    on a single eth_getLogs span.
    """

    def __init__(self, w3: Web3, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize the log scanner.

        Args:
            w3: Web3 connection for the chain being scanned
            chunk_size: Number of blocks per eth_getLogs request
        """
        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")
        self.w3 = w3
        self.chunk_size = chunk_size

        # Setup logging
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def head_block(self) -> int:
        try:
            return int(self.w3.eth.block_number)
        except Exception as e:
            raise RpcError(f"Could not fetch chain head: {e}") from e

    def window_for(self, head: int, blocks_per_window: int) -> tuple[int, int]:
        """Sliding scan window ending at the chain head."""
        return max(0, head - blocks_per_window), head

    async def scan(
        self,
        contract_address: str,
        from_block: int,
        to_block: int,
        topics: Sequence[str | None] = MINT_TOPICS,
    ) -> list[LogEntry]:
        """
        Fetch logs for a contract over [from_block, to_block].

        Sub-windows are queried in ascending order and concatenated in the order
        the provider returns them. Any failed sub-window aborts the whole scan.

        Args:
            contract_address: Contract emitting the events
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            topics: Topic filter

        Returns:
            Ordered list of validated log entries

        Raises:
            RpcError: On transport failure or a malformed log entry
        """
        address = Web3.to_checksum_address(contract_address)
        entries: list[LogEntry] = []
        windows = 0

        for start, end in iter_block_windows(from_block, to_block, self.chunk_size):
            raw_logs = self._get_logs(address, start, end, topics)
            for raw in raw_logs:
                try:
                    entries.append(LogEntry.from_rpc(raw))
                except ValueError as e:
                    raise RpcError(f"Malformed log in blocks {start}-{end}: {e}") from e
            windows += 1

        self.logger.info(
            f"Scanned {address} blocks {from_block}-{to_block} "
            f"in {windows} requests, found {len(entries)} logs"
        )
        return entries

    def _get_logs(
        self,
        address: str,
        start: int,
        end: int,
        topics: Sequence[str | None],
    ) -> list[Any]:
        try:
            return list(
                self.w3.eth.get_logs(
                    {
                        "address": address,
                        "fromBlock": start,
                        "toBlock": end,
                        "topics": list(topics),
                    }
                )
            )
        except Exception as e:
            self.logger.error(f"eth_getLogs failed for blocks {start}-{end}: {e}")
            raise RpcError(f"eth_getLogs failed for blocks {start}-{end}: {e}") from e
