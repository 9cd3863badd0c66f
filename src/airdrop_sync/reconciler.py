#!/usr/bin/env python3
"""Per-chain reconciliation of on-chain root, public snapshot and fresh tree.

One rebuild is a fixed sequence of one-shot steps:

1. configuration check (soft termination)
2. distributor bytecode check (soft termination)
3. on-chain state read (hard failure, propagates)
4. scan, derive and build the tree for the current hour round
5. idempotence check against the stored snapshot
6. snapshot publication (store and local mirror)
7. on-chain update decision
8. on-chain publication

Steps 5 to 8 never raise; their failures become warnings on the result.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from .clients import ChainClients
from .config import SyncConfig
from .eligibility import canonical_order, derive_eligible
from .errors import ContractNotDeployed, StoreError, TransactionError
from .events import LoggingObserver, SyncObserver
from .merkle import build_tree, payload_is_consistent
from .models import ProofsPayload, RebuildReason, RebuildResult
from .registry import ChainConfig
from .utils.blob_utility import BlobSnapshotStore, LocalMirror
from .utils.log_scanner import MINT_TOPICS

logger = logging.getLogger(__name__)

SECONDS_PER_ROUND = 3600


def current_round(now: float) -> int:
    """Hour bucket for a unix timestamp."""
    return int(now // SECONDS_PER_ROUND)


class ChainReconciler:
    """Runs the rebuild state machine for one chain at a time."""

    def __init__(
        self,
        config: SyncConfig,
        store: BlobSnapshotStore,
        mirror: LocalMirror | None = None,
        observer: SyncObserver | None = None,
        clock: Callable[[], float] = time.time,
        client_factory: Callable[[ChainConfig, SyncConfig], ChainClients] = ChainClients.connect,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            config: Engine configuration
            store: Snapshot store client
            mirror: Local mirror (defaults to one rooted at config.output_dir)
            observer: Receives run events (defaults to logging them)
            clock: Source of the current unix time
            client_factory: Builds the per-chain client bundle for each run
        """
        self.config = config
        self.store = store
        self.mirror = mirror if mirror is not None else LocalMirror(config.output_dir)
        self.observer = observer if observer is not None else LoggingObserver()
        self.clock = clock
        self.client_factory = client_factory

    def _emit(self, event: str, **fields: Any) -> None:
        try:
            self.observer.emit(event, **fields)
        except Exception as e:
            logger.warning(f"Observer failed on {event}: {e}")

    async def rebuild(self, chain: ChainConfig) -> RebuildResult:
        """
        Reconcile one chain.

        Returns:
            RebuildResult describing what was computed and published

        Raises:
            RpcError: If on-chain state or mint logs cannot be read
        """
        if missing := chain.missing_fields():
            self._emit("config_missing", chain=chain.slug, missing=",".join(missing))
            return RebuildResult.failed(
                f"Missing RPC/NFT/DISTRIBUTOR configuration for {chain.label}: {', '.join(missing)}"
            )

        clients = self.client_factory(chain, self.config)

        try:
            clients.distributor.ensure_deployed()
        except ContractNotDeployed as e:
            self._emit("contract_missing", chain=chain.slug, address=e.address)
            return RebuildResult.failed(str(e))

        state = await clients.distributor.read_state(check_code=False)
        self._emit(
            "onchain_state",
            chain=chain.slug,
            root=state.root,
            round=state.round,
            reward=state.reward_amount,
        )

        warnings: list[str] = []
        reward = state.reward_amount
        if reward == 0:
            reward = self.config.fallback_reward_wei
            warnings.append(f"On-chain rewardAmount is 0; using fallback {reward}")

        head = clients.scanner.head_block()
        from_block, to_block = clients.scanner.window_for(head, chain.blocks_per_window)
        logs = await clients.scanner.scan(chain.nft_contract, from_block, to_block, MINT_TOPICS)
        self._emit("scan_window", chain=chain.slug, from_block=from_block, to_block=to_block, logs=len(logs))

        addresses = canonical_order(derive_eligible(logs))
        round_ = current_round(self.clock())
        tree = build_tree(addresses, reward, round_)
        self._emit("tree_built", chain=chain.slug, leaves=len(tree.claims), round=round_, root=tree.root)

        reason_if_idle = RebuildReason.EMPTY if tree.is_empty else RebuildReason.UNCHANGED
        key = self.store.key_for(chain.slug)

        existing = await self._read_snapshot(key, warnings)
        if existing is not None and existing.matches(tree.root, round_):
            self._emit("snapshot_unchanged", chain=chain.slug, round=round_, root=tree.root)
            return RebuildResult(
                ok=True,
                updated=False,
                reason=reason_if_idle,
                count=len(tree.claims),
                round=round_,
                file_root=tree.root,
                onchain_root=state.root,
                snapshot_url=self.store.url_for(key),
                warnings=tuple(warnings),
            )

        snapshot_url: str | None = None
        snapshot_written = False
        local_path: str | None = None

        if round_ < state.round:
            warnings.append(
                f"Computed round {round_} is behind on-chain round {state.round}; not publishing"
            )
        else:
            payload = tree.to_payload(round_)
            try:
                snapshot_url = await self.store.write(key, payload)
                snapshot_written = True
                self._emit("snapshot_written", chain=chain.slug, key=key, url=snapshot_url)
            except StoreError as e:
                warnings.append(f"Snapshot write failed: {e}")

            if self.config.write_local_mirror:
                try:
                    local_path = str(self.mirror.write(chain.slug, payload))
                except OSError as e:
                    warnings.append(f"Local write failed: {e}")

        needs_update = not tree.is_empty and round_ > state.round
        self._emit(
            "onchain_decision",
            chain=chain.slug,
            needs_update=needs_update,
            round=round_,
            onchain_round=state.round,
            root_changed=tree.root.lower() != state.root.lower(),
        )

        tx_hash: str | None = None
        if needs_update:
            if self.config.can_publish and clients.contract_util.can_sign:
                try:
                    tx_hash = await clients.distributor.publish_root(
                        tree.root, round_, timeout=self.config.tx_timeout
                    )
                    self._emit("onchain_published", chain=chain.slug, round=round_, tx_hash=tx_hash)
                except TransactionError as e:
                    warnings.append(f"setRoot failed: {e}")
            else:
                warnings.append(
                    "setRoot needed but no PUBLISHER_PRIVATE_KEY provided; skipping on-chain update"
                )

        if tree.is_empty:
            reason = RebuildReason.EMPTY
        elif snapshot_written or tx_hash:
            reason = RebuildReason.PUSHED
        else:
            reason = RebuildReason.UNCHANGED

        for warning in warnings:
            logger.warning(f"[{chain.slug}] {warning}")

        return RebuildResult(
            ok=True,
            updated=tx_hash is not None,
            reason=reason,
            count=len(tree.claims),
            round=round_,
            file_root=tree.root,
            onchain_root=state.root,
            snapshot_url=snapshot_url,
            local_path=local_path,
            warnings=tuple(warnings),
            tx_hash=tx_hash,
        )

    async def _read_snapshot(self, key: str, warnings: list[str]) -> ProofsPayload | None:
        """Current stored snapshot, or None if absent, unreadable or corrupt."""
        try:
            existing = await self.store.read(key)
        except StoreError as e:
            warnings.append(f"Snapshot read failed: {e}")
            return None

        if existing is not None and not payload_is_consistent(existing):
            warnings.append(f"Stored snapshot at {key} does not match its claims; ignoring it")
            return None
        return existing
