"""Chain registry for the airdrop sync engine.

Static table of supported chains. Each entry is resolved from environment
variables into an immutable ChainConfig once, at process start.
"""

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from urllib.parse import urlparse

from web3 import Web3

logger = logging.getLogger(__name__)

DEFAULT_BLOCKS_PER_WINDOW = 300


@dataclass(frozen=True, slots=True)
class KnownChain:
    """Static registry entry: identity plus the env prefix its settings live under."""

    id: int
    label: str
    slug: str
    env_prefix: str


KNOWN_CHAINS: tuple[KnownChain, ...] = (
    KnownChain(11155111, "Ethereum Sepolia", "eth-sepolia", "ETH_SEP"),
    KnownChain(421614, "Arbitrum Sepolia", "arb-sepolia", "ARB_SEP"),
    KnownChain(84532, "Base Sepolia", "base-sepolia", "BASE_SEP"),
    KnownChain(300, "zkSync Sepolia", "zksync-sepolia", "ZKS_SEP"),
)

DEFAULT_CHAIN_ID = 11155111


def _normalize_address(value: str | None, field_name: str) -> str | None:
    if not value:
        return None
    normalized = value if value.startswith("0x") else f"0x{value}"
    if not Web3.is_address(normalized):
        raise ValueError(f"Invalid {field_name}: {value}")
    return Web3.to_checksum_address(normalized)


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for one chain's sync run.

    Missing endpoint or addresses are allowed here; the reconciler reports
    them as a clean negative result instead of failing the batch.

    Attributes:
        id: EVM chain id
        label: Human readable chain name
        slug: Short name used for snapshot keys and mirror file names
        rpc_url: HTTP(S) RPC endpoint
        token_contract: Reward token address (informational)
        nft_contract: Contract whose mint events define eligibility
        distributor_contract: Merkle distributor holding the published root
        blocks_per_window: Size of the sliding scan window in blocks
    """

    id: int
    label: str
    slug: str
    rpc_url: str | None = None
    token_contract: str | None = None
    nft_contract: str | None = None
    distributor_contract: str | None = None
    blocks_per_window: int = DEFAULT_BLOCKS_PER_WINDOW

    def __post_init__(self) -> None:
        """Validate present values and checksum addresses."""
        if self.rpc_url:
            parsed = urlparse(self.rpc_url)
            if parsed.scheme not in ("http", "https", "ws", "wss"):
                raise ValueError(
                    f"Invalid RPC URL scheme for {self.label}: {parsed.scheme}. "
                    "Expected http, https, ws, or wss"
                )

        for field_name in ("token_contract", "nft_contract", "distributor_contract"):
            current = getattr(self, field_name)
            checksummed = _normalize_address(current, f"{field_name} for {self.label}")
            if checksummed != current:
                object.__setattr__(self, field_name, checksummed)

        if self.blocks_per_window <= 0:
            raise ValueError(
                f"blocks_per_window must be positive, got {self.blocks_per_window}"
            )

    def missing_fields(self) -> list[str]:
        """Names of required settings that are not configured."""
        required = {
            "rpc_url": self.rpc_url,
            "nft_contract": self.nft_contract,
            "distributor_contract": self.distributor_contract,
        }
        return [name for name, value in required.items() if not value]

    @property
    def is_configured(self) -> bool:
        return not self.missing_fields()


def chain_from_env(known: KnownChain, env: Mapping[str, str]) -> ChainConfig:
    """Resolve one registry entry from environment variables."""
    prefix = known.env_prefix
    window = env.get(f"{prefix}_BLOCKS_PER_WINDOW") or env.get(
        "BLOCKS_PER_HOUR", str(DEFAULT_BLOCKS_PER_WINDOW)
    )
    return ChainConfig(
        id=known.id,
        label=known.label,
        slug=known.slug,
        rpc_url=env.get(f"{prefix}_RPC_URL") or None,
        token_contract=env.get(f"{prefix}_TOKEN_ADDRESS") or None,
        nft_contract=env.get(f"{prefix}_NFT_ADDRESS") or None,
        distributor_contract=env.get(f"{prefix}_DISTRIBUTOR_ADDRESS") or None,
        blocks_per_window=int(window),
    )


def parse_chain_ids(raw: str) -> list[int]:
    """Parse a comma separated list of chain ids, keeping order and dropping repeats."""
    ids: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            chain_id = int(part)
        except ValueError:
            raise ValueError(f"Invalid chain id in SYNC_CHAIN_IDS: {part!r}") from None
        if chain_id not in ids:
            ids.append(chain_id)
    return ids


def load_chain_configs(
    env: Mapping[str, str] | None = None,
    chain_ids: Sequence[int] | None = None,
) -> tuple[ChainConfig, ...]:
    """
    Build the configured chain list.

    Args:
        env: Environment mapping (defaults to os.environ)
        chain_ids: Chains to enable, in run order. Defaults to SYNC_CHAIN_IDS,
            or the Sepolia chain when that is unset.

    Returns:
        Tuple of ChainConfig in configuration order

    Raises:
        ValueError: If a chain id is unknown or a configured value is invalid
    """
    env = os.environ if env is None else env
    if chain_ids is None:
        chain_ids = parse_chain_ids(env.get("SYNC_CHAIN_IDS", str(DEFAULT_CHAIN_ID)))

    by_id = {known.id: known for known in KNOWN_CHAINS}
    configs = []
    for chain_id in chain_ids:
        known = by_id.get(chain_id)
        if known is None:
            supported = ", ".join(str(k.id) for k in KNOWN_CHAINS)
            raise ValueError(f"Unknown chain id {chain_id}. Supported chains: {supported}")
        configs.append(chain_from_env(known, env))

    logger.debug(f"Loaded {len(configs)} chain configs: {[c.slug for c in configs]}")
    return tuple(configs)


def get_chain_config(chains: Sequence[ChainConfig], chain_id: int) -> ChainConfig:
    """Look up a configured chain by id."""
    for chain in chains:
        if chain.id == chain_id:
            return chain
    raise ValueError(f"Chain {chain_id} is not configured")
