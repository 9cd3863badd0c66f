#!/usr/bin/env python3
"""Merkle distributor contract access.

Reads the authoritative (root, round, rewardAmount) triple and publishes new
roots with setRoot. Claims can be simulated against the contract for proof
debugging.
"""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.types import TxReceipt

from .errors import ContractNotDeployed, RpcError, TransactionError
from .models import DistributorState, to_bytes32

if TYPE_CHECKING:
    from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)

SET_ROOT_GAS_LIMIT = 200_000

DISTRIBUTOR_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "merkleRoot",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "type": "function",
        "name": "round",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint64"}],
    },
    {
        "type": "function",
        "name": "rewardAmount",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "setRoot",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "newRoot", "type": "bytes32"},
            {"name": "newRound", "type": "uint64"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "claimV2",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "round", "type": "uint64"},
            {"name": "account", "type": "address"},
            {"name": "proof", "type": "bytes32[]"},
        ],
        "outputs": [],
    },
]


class DistributorClient:
    """Reads and updates one chain's distributor contract."""

    def __init__(self, contract_util: "ContractUtility", contract_address: str) -> None:
        """
        Initialize the DistributorClient.

        Args:
            contract_util: Web3 connection for the chain
            contract_address: Address of the distributor contract
        """
        self.contract_util: ContractUtility = contract_util
        self.contract_address: str = Web3.to_checksum_address(contract_address)
        self.contract: Contract = contract_util.contract(self.contract_address, DISTRIBUTOR_ABI)

    @property
    def w3(self) -> Web3:
        return self.contract_util.w3

    def ensure_deployed(self) -> None:
        """
        Check that bytecode exists at the distributor address.

        Raises:
            ContractNotDeployed: If the address has no code
            RpcError: If the code could not be fetched
        """
        try:
            code = self.w3.eth.get_code(self.contract_address)
        except Exception as e:
            raise RpcError(f"eth_getCode failed for {self.contract_address}: {e}") from e

        if not code or bytes(code) in (b"", b"\x00"):
            raise ContractNotDeployed(self.contract_address)

    async def read_state(self, check_code: bool = True) -> DistributorState:
        """
        Read the distributor's current root, round and reward amount.

        All three values are read before anything is returned; a partial read
        never escapes.

        Args:
            check_code: Verify the contract is deployed first

        Returns:
            Validated DistributorState

        Raises:
            ContractNotDeployed: If check_code is set and the address has no code
            RpcError: If any read fails or returns malformed data
        """
        if check_code:
            self.ensure_deployed()

        functions = self.contract.functions
        try:
            root = functions.merkleRoot().call()
            round_ = functions.round().call()
            reward = functions.rewardAmount().call()
        except Exception as e:
            raise RpcError(f"Distributor read failed for {self.contract_address}: {e}") from e

        try:
            state = DistributorState(root=root, round=round_, reward_amount=reward)
        except ValueError as e:
            raise RpcError(f"Malformed distributor state from {self.contract_address}: {e}") from e

        logger.debug(
            f"Distributor {self.contract_address}: root={state.root} "
            f"round={state.round} rewardAmount={state.reward_amount}"
        )
        return state

    async def publish_root(self, root: str, round_: int, timeout: int = 120) -> str:
        """
        Submit setRoot(root, round) and wait for it to be mined.

        Args:
            root: New Merkle root (0x-prefixed)
            round_: Round the root belongs to
            timeout: Seconds to wait for the receipt

        Returns:
            Transaction hash of the mined update

        Raises:
            TransactionError: If signing is unavailable, or the transaction
                fails, reverts or is not mined in time
        """
        if not self.contract_util.can_sign:
            raise TransactionError("No signing account configured for setRoot")

        logger.info(f"Submitting setRoot for round {round_}, root: {root}")

        try:
            tx_hash: HexBytes = self.contract.functions.setRoot(
                to_bytes32(root, "root"),
                round_,
            ).transact({
                "gas": SET_ROOT_GAS_LIMIT,
                "gasPrice": self.w3.eth.gas_price,
            })
        except Exception as e:
            raise TransactionError(f"setRoot submission failed: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"Transaction submitted: {tx_hex}")

        try:
            receipt: TxReceipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except Exception as e:
            raise TransactionError(f"setRoot {tx_hex} not confirmed: {e}") from e

        if (status := receipt.get("status", 0)) != 1:
            raise TransactionError(f"setRoot {tx_hex} failed with status={status}")

        logger.info(f"setRoot confirmed in block {receipt.get('blockNumber')}")
        return tx_hex

    def simulate_claim(self, round_: int, account: str, proof: Sequence[str]) -> None:
        """
        Dry-run claimV2 for an account without sending a transaction.

        Raises:
            RpcError: If the call reverts or cannot be made
        """
        account = Web3.to_checksum_address(account)
        try:
            self.contract.functions.claimV2(
                round_,
                account,
                [to_bytes32(node, "proof element") for node in proof],
            ).call({"from": account})
        except Exception as e:
            raise RpcError(f"claimV2 simulation reverted for {account}: {e}") from e
