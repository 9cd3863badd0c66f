#!/usr/bin/env python3
"""Merkle tree construction and verification for airdrop claims.

Leaves commit to (account, amount, round) using the packed encoding
address(20) | uint256(32) | uint64(8) hashed with keccak256. Internal nodes use
sorted-pair hashing, so a proof verifies without sibling positions. An unpaired
node at the end of a level is promoted unchanged to the next level.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from web3 import Web3

from .models import Claim, ProofsPayload, to_bytes32

logger = logging.getLogger(__name__)

EMPTY_ROOT: str = Web3.to_hex(Web3.keccak(text="empty"))

LEAF_TYPES = ["address", "uint256", "uint64"]


def leaf_hash(account: str, amount: int, round_: int) -> bytes:
    """Hash one account's entitlement for a round."""
    return bytes(
        Web3.solidity_keccak(LEAF_TYPES, [Web3.to_checksum_address(account), amount, round_])
    )


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Hash two sibling nodes in ascending order of value."""
    if a <= b:
        return bytes(Web3.keccak(a + b))
    return bytes(Web3.keccak(b + a))


class MerkleTree:
    """Binary Merkle tree with sorted-pair hashing.

    Leaves are kept in the order given; callers sort the input so the root is
    deterministic.
    """

    def __init__(self, leaves: Sequence[bytes]) -> None:
        if not leaves:
            raise ValueError("Cannot build a Merkle tree without leaves")
        self.layers: list[list[bytes]] = [list(leaves)]
        while len(self.layers[-1]) > 1:
            current = self.layers[-1]
            parents = []
            for i in range(0, len(current), 2):
                if i + 1 < len(current):
                    parents.append(hash_pair(current[i], current[i + 1]))
                else:
                    parents.append(current[i])
            self.layers.append(parents)

    @property
    def root(self) -> bytes:
        return self.layers[-1][0]

    @property
    def leaves(self) -> list[bytes]:
        return self.layers[0]

    def get_proof(self, index: int) -> list[bytes]:
        """Sibling hashes from leaf to root for the leaf at index."""
        if not 0 <= index < len(self.leaves):
            raise IndexError(f"Leaf index {index} out of range")
        proof = []
        for layer in self.layers[:-1]:
            sibling = index ^ 1
            if sibling < len(layer):
                proof.append(layer[sibling])
            index //= 2
        return proof

    def get_hex_proof(self, index: int) -> list[str]:
        return [Web3.to_hex(node) for node in self.get_proof(index)]


def process_proof(leaf: bytes, proof: Sequence[bytes | str]) -> bytes:
    """Fold a proof into the root it implies, as the distributor contract does."""
    computed = leaf
    for node in proof:
        computed = hash_pair(computed, to_bytes32(node, "proof element"))
    return computed


def verify_proof(leaf: bytes, proof: Sequence[bytes | str], root: bytes | str) -> bool:
    return process_proof(leaf, proof) == to_bytes32(root, "root")


def verify_claim(claim: Claim, round_: int, root: str) -> bool:
    """Check a claim's proof against a published root."""
    return verify_proof(leaf_hash(claim.account, claim.amount, round_), claim.proof, root)


@dataclass(frozen=True, slots=True)
class TreeBuild:
    """Root and claims produced for one round."""

    root: str
    claims: tuple[Claim, ...]

    @property
    def is_empty(self) -> bool:
        return not self.claims

    def to_payload(self, round_: int) -> ProofsPayload:
        return ProofsPayload(round=round_, root=self.root, claims=self.claims)


def build_tree(
    addresses: Sequence[str],
    amounts: int | Mapping[str, int],
    round_: int,
) -> TreeBuild:
    """
    Build the claims tree for a round.

    Args:
        addresses: Eligible accounts in canonical order
        amounts: Flat reward for every account, or a per-account mapping
        round_: Round committed into every leaf

    Returns:
        TreeBuild with the hex root and one claim per address, in input order.
        An empty address list yields EMPTY_ROOT and no claims.
    """
    if not addresses:
        return TreeBuild(root=EMPTY_ROOT, claims=())

    if isinstance(amounts, Mapping):
        entitlements = [(account, amounts[account]) for account in addresses]
    else:
        entitlements = [(account, amounts) for account in addresses]

    leaves = [leaf_hash(account, amount, round_) for account, amount in entitlements]
    tree = MerkleTree(leaves)

    claims = tuple(
        Claim(
            account=Web3.to_checksum_address(account),
            amount=amount,
            proof=tuple(tree.get_hex_proof(i)),
        )
        for i, (account, amount) in enumerate(entitlements)
    )

    root = Web3.to_hex(tree.root)
    logger.debug(f"Built tree with {len(leaves)} leaves, depth {len(tree.layers) - 1}, root {root}")
    return TreeBuild(root=root, claims=claims)


def payload_is_consistent(payload: ProofsPayload) -> bool:
    """
    Check that a payload's root is the root over exactly its claims.

    Rebuilds the tree from the claims in file order and verifies every proof.
    Any payload failing this check must be treated as corrupt.
    """
    if not payload.claims:
        return payload.root.lower() == EMPTY_ROOT

    leaves = [leaf_hash(c.account, c.amount, payload.round) for c in payload.claims]
    if len(set(leaves)) != len(leaves):
        return False

    if Web3.to_hex(MerkleTree(leaves).root) != payload.root.lower():
        return False

    return all(
        verify_proof(leaf, claim.proof, payload.root)
        for leaf, claim in zip(leaves, payload.claims)
    )


def claim_leaf_hex(claim: Claim, round_: int) -> str:
    return Web3.to_hex(leaf_hash(claim.account, claim.amount, round_))
