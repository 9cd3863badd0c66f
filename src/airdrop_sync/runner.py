import logging
from collections.abc import Sequence

from .config import SyncConfig
from .events import SyncObserver
from .models import RebuildBatchItem, RebuildResult
from .reconciler import ChainReconciler
from .registry import ChainConfig
from .utils.blob_utility import BlobSnapshotStore, LocalMirror

logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Runs the reconciler over every configured chain, one after another.

    A failure in one chain becomes a failed result for that chain only; the
    runner itself never raises.
    """

    def __init__(self, config: SyncConfig, reconciler: ChainReconciler) -> None:
        self.config = config
        self.reconciler = reconciler

    @classmethod
    def from_config(cls, config: SyncConfig, observer: SyncObserver | None = None) -> "BatchRunner":
        """Wire up the store, mirror and reconciler for a configuration."""
        store = BlobSnapshotStore(config.blob, timeout=config.request_timeout)
        reconciler = ChainReconciler(
            config,
            store,
            mirror=LocalMirror(config.output_dir),
            observer=observer,
        )
        return cls(config, reconciler)

    async def run_all(self, chains: Sequence[ChainConfig] | None = None) -> list[RebuildBatchItem]:
        """
        Rebuild each chain in order.

        Args:
            chains: Chains to run (defaults to all configured chains)

        Returns:
            One RebuildBatchItem per chain, in the order given
        """
        chains = self.config.chains if chains is None else chains
        items: list[RebuildBatchItem] = []

        for chain in chains:
            logger.info(f"Rebuilding {chain.label} ({chain.id})")
            try:
                result = await self.reconciler.rebuild(chain)
            except Exception as e:
                logger.error(f"Rebuild failed for {chain.label}: {e}", exc_info=True)
                result = RebuildResult.failed(f"Rebuild failed: {e}")

            logger.info(
                f"{chain.label}: ok={result.ok} updated={result.updated} "
                f"reason={result.reason.value if result.reason else '-'} count={result.count}"
            )
            items.append(
                RebuildBatchItem(
                    chain_id=chain.id,
                    chain_slug=chain.slug,
                    label=chain.label,
                    result=result,
                )
            )

        return items
