"""Per-chain client bundle."""

import logging
from dataclasses import dataclass

from .config import SyncConfig
from .distributor import DistributorClient
from .errors import ConfigurationError
from .registry import ChainConfig
from .utils.contract_utility import ContractUtility
from .utils.log_scanner import LogScanner

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChainClients:
    """Connection, distributor and scanner for one chain, built fresh for each run."""

    contract_util: ContractUtility
    distributor: DistributorClient
    scanner: LogScanner

    @classmethod
    def connect(cls, chain: ChainConfig, config: SyncConfig) -> "ChainClients":
        """
        Build the client bundle for a chain.

        Raises:
            ConfigurationError: If the chain lacks an RPC endpoint or distributor
        """
        if not chain.rpc_url or not chain.distributor_contract:
            raise ConfigurationError(f"{chain.label} is missing its RPC URL or distributor address")

        contract_util = ContractUtility(
            chain.rpc_url,
            config.publisher_private_key or "",
            request_timeout=config.request_timeout,
        )
        logger.debug(
            f"Connected to {chain.label} ({'signing' if contract_util.can_sign else 'read-only'})"
        )
        return cls(
            contract_util=contract_util,
            distributor=DistributorClient(contract_util, chain.distributor_contract),
            scanner=LogScanner(contract_util.w3, config.log_chunk_size),
        )
