"""Exception types raised by the airdrop sync engine.

Soft errors (configuration, store, transaction) are turned into warnings by the
reconciler. RPC errors abort a chain's run and are caught by the batch runner.
"""


class SyncError(Exception):
    """Base class for all sync engine errors."""


class ConfigurationError(SyncError):
    """Raised when a chain is missing its RPC endpoint or contract addresses."""


class RpcError(SyncError):
    """Raised on transport failure or malformed data from a chain RPC endpoint."""


class ContractNotDeployed(RpcError):
    """Raised when no bytecode exists at the configured distributor address."""

    def __init__(self, address: str) -> None:
        super().__init__(f"No contract bytecode at {address}")
        self.address = address


class StoreError(SyncError):
    """Raised when the snapshot store cannot be read or written."""


class TransactionError(SyncError):
    """Raised when a root-update transaction fails, reverts or times out."""
