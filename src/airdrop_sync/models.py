#!/usr/bin/env python3
"""Data models for the airdrop sync engine.

Immutable data classes for raw mint logs, claims, the published proofs file,
distributor state and the per-chain rebuild result. Constructors from external
data (RPC responses, stored JSON) validate shape strictly and raise ValueError.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hexbytes import HexBytes
from web3 import Web3

HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
AMOUNT_PATTERN = re.compile(r"^[0-9]+$")

ZERO_HASH = "0x" + "0" * 64


def to_bytes32(value: Any, what: str = "value") -> bytes:
    """Normalize a 32-byte value given as bytes or hex string."""
    match value:
        case bytes() as raw:
            data = bytes(raw)
        case str() as text if HASH_PATTERN.match(text):
            data = bytes(HexBytes(text))
        case _:
            raise ValueError(f"Expected 32-byte {what}, got {value!r}")
    if len(data) != 32:
        raise ValueError(f"Expected 32-byte {what}, got {len(data)} bytes")
    return data


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A raw Transfer log returned by eth_getLogs.

    Attributes:
        block_number: Block the log was emitted in
        transaction_hash: Hash of the emitting transaction (0x-prefixed)
        topics: Indexed topics, each 32 bytes
    """

    block_number: int
    transaction_hash: str
    topics: tuple[bytes, ...]

    @classmethod
    def from_rpc(cls, raw: Any) -> "LogEntry":
        """Validate and convert one eth_getLogs entry.

        Raises:
            ValueError: If the entry does not have the expected shape
        """
        if not hasattr(raw, "get"):
            raise ValueError(f"Log entry is not a mapping: {type(raw).__name__}")

        block_number = raw.get("blockNumber")
        if isinstance(block_number, str):
            block_number = int(block_number, 16)
        if not _is_uint(block_number):
            raise ValueError(f"Invalid log blockNumber: {block_number!r}")

        tx_hash = Web3.to_hex(to_bytes32(raw.get("transactionHash"), "transactionHash"))

        topics = raw.get("topics")
        if not isinstance(topics, (list, tuple)):
            raise ValueError(f"Log topics must be a list, got {type(topics).__name__}")
        if len(topics) < 3:
            raise ValueError(f"Expected at least 3 topics, got {len(topics)}")

        return cls(
            block_number=block_number,
            transaction_hash=tx_hash,
            topics=tuple(to_bytes32(topic, "topic") for topic in topics),
        )


@dataclass(frozen=True, slots=True)
class Claim:
    """One account's entitlement and its inclusion proof."""

    account: str
    amount: int
    proof: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "amount": str(self.amount),
            "proof": list(self.proof),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Claim":
        if not isinstance(data, dict):
            raise ValueError("Claim must be an object")

        account = data.get("account")
        if not isinstance(account, str) or not ADDRESS_PATTERN.match(account):
            raise ValueError(f"Invalid claim account: {account!r}")

        amount = data.get("amount")
        if not isinstance(amount, str) or not AMOUNT_PATTERN.match(amount):
            raise ValueError(f"Invalid claim amount for {account}: {amount!r}")

        proof = data.get("proof")
        if not isinstance(proof, list) or not all(
            isinstance(p, str) and HASH_PATTERN.match(p) for p in proof
        ):
            raise ValueError(f"Invalid proof for {account}")

        return cls(
            account=Web3.to_checksum_address(account),
            amount=int(amount),
            proof=tuple(p.lower() for p in proof),
        )


@dataclass(frozen=True, slots=True)
class ProofsPayload:
    """The published snapshot: a round, its Merkle root and all claims.

    Field and key order of to_dict() is relied upon by claim UIs.
    """

    round: int
    root: str
    claims: tuple[Claim, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "root": self.root,
            "claims": [claim.to_dict() for claim in self.claims],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: Any) -> "ProofsPayload":
        """Parse a proofs file.

        Raises:
            ValueError: If the document does not match the proofs file format
        """
        if not isinstance(data, dict):
            raise ValueError("Proofs payload must be a JSON object")

        round_ = data.get("round")
        if not _is_uint(round_):
            raise ValueError(f"Invalid payload round: {round_!r}")

        root = data.get("root")
        if not isinstance(root, str) or not HASH_PATTERN.match(root):
            raise ValueError(f"Invalid payload root: {root!r}")

        claims = data.get("claims")
        if not isinstance(claims, list):
            raise ValueError("Payload claims must be a list")

        return cls(
            round=round_,
            root=root.lower(),
            claims=tuple(Claim.from_dict(c) for c in claims),
        )

    @classmethod
    def from_json(cls, text: str) -> "ProofsPayload":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Proofs payload is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def find_claim(self, account: str) -> Claim | None:
        """Find an account's claim, ignoring address case."""
        wanted = account.lower()
        for claim in self.claims:
            if claim.account.lower() == wanted:
                return claim
        return None

    def matches(self, root: str, round_: int) -> bool:
        return self.root.lower() == root.lower() and self.round == round_


@dataclass(frozen=True, slots=True)
class DistributorState:
    """Authoritative state read from the distributor contract.

    Attributes:
        root: Current Merkle root (0x-prefixed, lowercase)
        round: Last published round
        reward_amount: Reward per claim in base units
    """

    root: str
    round: int
    reward_amount: int

    def __post_init__(self) -> None:
        """Validate the shape of the values read on chain."""
        normalized = Web3.to_hex(to_bytes32(self.root, "merkleRoot"))
        if normalized != self.root:
            object.__setattr__(self, "root", normalized)

        if not _is_uint(self.round):
            raise ValueError(f"Invalid distributor round: {self.round!r}")

        if not _is_uint(self.reward_amount):
            raise ValueError(f"Invalid distributor rewardAmount: {self.reward_amount!r}")


class RebuildReason(str, Enum):
    """Why a rebuild finished the way it did."""

    EMPTY = "empty"
    UNCHANGED = "unchanged"
    PUSHED = "pushed"


@dataclass(frozen=True, slots=True)
class RebuildResult:
    """Outcome of one chain's sync run."""

    ok: bool
    updated: bool
    count: int
    round: int
    file_root: str
    reason: RebuildReason | None = None
    onchain_root: str | None = None
    snapshot_url: str | None = None
    local_path: str | None = None
    warnings: tuple[str, ...] = ()
    tx_hash: str | None = None

    @classmethod
    def failed(cls, warning: str) -> "RebuildResult":
        """A clean negative result carrying a single warning."""
        return cls(ok=False, updated=False, count=0, round=0, file_root=ZERO_HASH, warnings=(warning,))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ok": self.ok,
            "updated": self.updated,
            "reason": self.reason.value if self.reason else None,
            "count": self.count,
            "round": self.round,
            "fileRoot": self.file_root,
            "onchainRoot": self.onchain_root,
            "snapshotUrl": self.snapshot_url,
            "localPath": self.local_path,
            "warnings": list(self.warnings),
            "txHash": self.tx_hash,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True, slots=True)
class RebuildBatchItem:
    """A rebuild result tagged with the chain it belongs to."""

    chain_id: int
    chain_slug: str
    label: str
    result: RebuildResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "chainSlug": self.chain_slug,
            "label": self.label,
            "result": self.result.to_dict(),
        }
