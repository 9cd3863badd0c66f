#!/usr/bin/env python3
"""Entry point for the airdrop sync job.

`run` reconciles every configured chain once and prints the batch result as
JSON. `check-proof` verifies an account's entry in a proofs file and can
dry-run the claim against a chain's distributor.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from airdrop_sync.config import SyncConfig
from airdrop_sync.distributor import DistributorClient
from airdrop_sync.errors import RpcError
from airdrop_sync.merkle import claim_leaf_hex, verify_claim
from airdrop_sync.models import ProofsPayload
from airdrop_sync.registry import get_chain_config, load_chain_configs
from airdrop_sync.runner import BatchRunner
from airdrop_sync.utils.contract_utility import ContractUtility


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Airdrop Sync - rebuild claim proofs from NFT mints and publish distributor roots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  SYNC_CHAIN_IDS           - Comma separated chain ids to sync (default: 11155111)
  <P>_RPC_URL              - RPC endpoint per chain (P = ETH_SEP, ARB_SEP, BASE_SEP, ZKS_SEP)
  <P>_NFT_ADDRESS          - NFT contract whose mints define eligibility
  <P>_DISTRIBUTOR_ADDRESS  - Merkle distributor contract
  BLOCKS_PER_HOUR          - Scan window in blocks (default: 300)
  REWARD_AMOUNT            - Fallback reward in tokens (default: 5)
  BLOB_READ_HOST           - Public host of the snapshot store
  BLOB_READ_WRITE_TOKEN    - Snapshot store upload token
  PUBLISHER_PRIVATE_KEY    - Key for setRoot (optional, read-only without it)
  SYNC_PRODUCTION          - Set to 1 to disable the local mirror
  LOG_LEVEL                - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Rebuild and publish all configured chains")
    run_parser.add_argument(
        "--chain",
        type=int,
        action="append",
        dest="chains",
        help="Only sync this chain id (repeatable)"
    )

    check_parser = subparsers.add_parser("check-proof", help="Verify an account's proof in a proofs file")
    check_parser.add_argument("file", type=Path, help="Proofs JSON file")
    check_parser.add_argument("address", help="Account to check")
    check_parser.add_argument(
        "--simulate",
        action="store_true",
        default=False,
        help="Dry-run claimV2 against the distributor of --chain"
    )
    check_parser.add_argument("--chain", type=int, help="Chain id for --simulate")
    return parser


async def run_sync(args: argparse.Namespace) -> int:
    config: SyncConfig = SyncConfig.from_env()
    config.log_config()

    chains = config.chains
    if args.chains:
        chains = load_chain_configs(chain_ids=args.chains)

    runner: BatchRunner = BatchRunner.from_config(config)
    items = await runner.run_all(chains)

    print(json.dumps([item.to_dict() for item in items], indent=2))
    return 0 if all(item.result.ok for item in items) else 1


def check_proof(args: argparse.Namespace) -> int:
    """Verify one account's proof; optionally simulate the claim on chain."""
    payload = ProofsPayload.from_json(args.file.read_text(encoding="utf-8"))

    claim = payload.find_claim(args.address)
    if claim is None:
        logger.error(f"{args.address} has no claim in {args.file}")
        return 1

    valid = verify_claim(claim, payload.round, payload.root)
    print(json.dumps({
        "account": claim.account,
        "amount": str(claim.amount),
        "round": payload.round,
        "root": payload.root,
        "leaf": claim_leaf_hex(claim, payload.round),
        "proofLength": len(claim.proof),
        "valid": valid,
    }, indent=2))

    if not valid:
        logger.error(f"Proof for {claim.account} does not verify against {payload.root}")
        return 1

    if args.simulate:
        if args.chain is None:
            raise ValueError("--simulate requires --chain")
        chain = get_chain_config(load_chain_configs(chain_ids=[args.chain]), args.chain)
        if not chain.rpc_url or not chain.distributor_contract:
            raise ValueError(f"{chain.label} is missing its RPC URL or distributor address")

        distributor = DistributorClient(ContractUtility(chain.rpc_url), chain.distributor_contract)
        try:
            distributor.simulate_claim(payload.round, claim.account, claim.proof)
        except RpcError as e:
            logger.error(f"Claim simulation failed: {e}")
            return 1
        logger.info(f"claimV2 simulation succeeded for {claim.account} on {chain.label}")

    return 0


async def main(argv: list[str] | None = None) -> None:
    """Main entry point for the airdrop sync job.

    Raises:
        SystemExit: With the command's exit status
    """
    args: argparse.Namespace = build_parser().parse_args(argv)

    # Set up logging with specified level
    setup_logging(args.log_level)

    try:
        match args.command:
            case "run":
                logger.info("=== Airdrop Sync Starting ===")
                code = await run_sync(args)
            case "check-proof":
                code = check_proof(args)
            case _:
                code = 2

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - SYNC_CHAIN_IDS and the per-chain <P>_RPC_URL / <P>_NFT_ADDRESS / <P>_DISTRIBUTOR_ADDRESS")
        logger.error("  - PUBLISHER_PRIVATE_KEY: 64 hex characters if set")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    # Run the main async function
    asyncio.run(main())
