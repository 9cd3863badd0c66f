"""
Airdrop sync package.

Derives airdrop eligibility from NFT mints, builds the claims Merkle tree and
keeps the public proofs snapshot and the distributor root in sync.
"""

from .config import BlobStoreConfig, SyncConfig
from .merkle import build_tree, verify_claim, verify_proof
from .models import Claim, ProofsPayload, RebuildBatchItem, RebuildResult
from .reconciler import ChainReconciler
from .registry import ChainConfig, load_chain_configs
from .runner import BatchRunner

__all__ = [
    "BatchRunner",
    "BlobStoreConfig",
    "ChainConfig",
    "ChainReconciler",
    "Claim",
    "ProofsPayload",
    "RebuildBatchItem",
    "RebuildResult",
    "SyncConfig",
    "build_tree",
    "load_chain_configs",
    "verify_claim",
    "verify_proof",
]
__version__ = "0.1.0"
