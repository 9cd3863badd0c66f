#!/usr/bin/env python3
"""Configuration management for the airdrop sync engine.

Engine-wide settings (snapshot store, reward fallback, publisher key, local
mirror) are loaded from environment variables into frozen dataclasses with
validation. Per-chain settings live in the chain registry.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from web3 import Web3

from .registry import ChainConfig, load_chain_configs

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_BLOB_API_URL = "https://blob.vercel-storage.com"


@dataclass(frozen=True, slots=True)
class BlobStoreConfig:
    """Configuration for the public snapshot store.

    Attributes:
        read_host: Public host snapshots are fetched from
        api_url: Base URL of the store's write API
        token: Read-write token for uploads
        key_prefix: Key prefix under which per-chain snapshots are stored
    """

    read_host: str | None = None
    api_url: str = DEFAULT_BLOB_API_URL
    token: str | None = None
    key_prefix: str = "claims"

    def __post_init__(self) -> None:
        """Strip scheme and trailing slashes from the read host."""
        if self.read_host:
            host = self.read_host.removeprefix("https://").removeprefix("http://").rstrip("/")
            object.__setattr__(self, "read_host", host)
        if not self.api_url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid blob API URL: {self.api_url}")

    def key_for(self, slug: str) -> str:
        """Snapshot key for a chain slug."""
        return f"{self.key_prefix}/{slug}.json"

    def public_url(self, key: str) -> str | None:
        if not self.read_host:
            return None
        return f"https://{self.read_host}/{key}"


def parse_reward_amount(value: str) -> int:
    """Convert a decimal token amount (18 decimals) to base units."""
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Invalid REWARD_AMOUNT: {value!r}") from None
    if amount < 0:
        raise ValueError(f"REWARD_AMOUNT must be non-negative, got {value}")
    return int(Web3.to_wei(amount, "ether"))


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Main configuration for the sync engine.

    Attributes:
        chains: Chains to sync, in run order
        blob: Snapshot store settings
        fallback_reward_wei: Reward used when the distributor reports zero
        log_chunk_size: Blocks per eth_getLogs request
        production: Running in the hardened production context
        write_local: Force the local mirror write even in production
        output_dir: Directory for local mirror files
        publisher_private_key: Key used to sign root updates (optional)
        request_timeout: HTTP timeout for RPC and store requests, in seconds
        tx_timeout: Seconds to wait for a root-update receipt
    """

    chains: tuple[ChainConfig, ...] = ()
    blob: BlobStoreConfig = field(default_factory=BlobStoreConfig)
    fallback_reward_wei: int = 5 * 10**18
    log_chunk_size: int = 10
    production: bool = False
    write_local: bool = False
    output_dir: Path = Path("public/claims")
    publisher_private_key: str | None = None
    request_timeout: int = 30
    tx_timeout: int = 120

    def __post_init__(self) -> None:
        """Validate engine configuration."""
        if self.log_chunk_size <= 0:
            raise ValueError(f"Log chunk size must be positive, got {self.log_chunk_size}")

        if self.fallback_reward_wei < 0:
            raise ValueError(
                f"Fallback reward must be non-negative, got {self.fallback_reward_wei}"
            )

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")

        if self.tx_timeout <= 0:
            raise ValueError(f"Transaction timeout must be positive, got {self.tx_timeout}")

        if self.publisher_private_key:
            key = self.publisher_private_key.removeprefix("0x")
            if len(key) != 64:
                raise ValueError(
                    f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
                )
            try:
                int(key, 16)
            except ValueError:
                raise ValueError("Invalid private key format. Must be hexadecimal") from None

    @property
    def write_local_mirror(self) -> bool:
        """Whether snapshots are also mirrored to the local filesystem."""
        return self.write_local or not self.production

    @property
    def can_publish(self) -> bool:
        return bool(self.publisher_private_key)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "SyncConfig":
        """Load configuration from environment variables.

        Returns:
            SyncConfig instance with loaded values

        Raises:
            ValueError: If a variable is present but invalid
        """
        env = os.environ if env is None else env

        blob = BlobStoreConfig(
            read_host=env.get("BLOB_READ_HOST") or None,
            api_url=env.get("BLOB_API_URL", DEFAULT_BLOB_API_URL),
            token=env.get("BLOB_READ_WRITE_TOKEN") or None,
            key_prefix=env.get("BLOB_KEY_PREFIX", "claims"),
        )

        return cls(
            chains=load_chain_configs(env),
            blob=blob,
            fallback_reward_wei=parse_reward_amount(env.get("REWARD_AMOUNT") or "5"),
            log_chunk_size=int(env.get("LOG_CHUNK_SIZE", "10")),
            production=_env_flag(env, "SYNC_PRODUCTION"),
            write_local=_env_flag(env, "WRITE_LOCAL"),
            output_dir=Path(env.get("CLAIMS_OUTPUT_DIR", "public/claims")),
            publisher_private_key=env.get("PUBLISHER_PRIVATE_KEY") or None,
            request_timeout=int(env.get("REQUEST_TIMEOUT", "30")),
            tx_timeout=int(env.get("TX_TIMEOUT", "120")),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format, hiding secrets."""
        logger.info("=" * 60)
        logger.info("Airdrop Sync Configuration")
        logger.info("=" * 60)

        logger.info("Chains:")
        for chain in self.chains:
            logger.info(f"  [{chain.id}] {chain.label} ({chain.slug})")
            logger.info(f"    RPC URL: {'[SET]' if chain.rpc_url else '[NOT SET]'}")
            logger.info(f"    NFT: {chain.nft_contract or '[NOT SET]'}")
            logger.info(f"    Distributor: {chain.distributor_contract or '[NOT SET]'}")
            logger.info(f"    Window: {chain.blocks_per_window} blocks")

        logger.info("Snapshot Store:")
        logger.info(f"  Read Host: {self.blob.read_host or '[NOT SET]'}")
        logger.info(f"  API URL: {self.blob.api_url}")
        logger.info(f"  Token: {'[SET]' if self.blob.token else '[NOT SET]'}")

        logger.info("Engine Settings:")
        logger.info(f"  Mode: {'PRODUCTION' if self.production else 'DEVELOPMENT'}")
        logger.info(f"  Local Mirror: {self.output_dir if self.write_local_mirror else 'disabled'}")
        logger.info(f"  Fallback Reward: {self.fallback_reward_wei}")
        logger.info(f"  Log Chunk Size: {self.log_chunk_size} blocks")
        logger.info(f"  Publisher Key: {'[CONFIGURED]' if self.can_publish else '[NOT SET]'}")

        logger.info("=" * 60)
