from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder


class ContractUtility:
    """
    Per-chain Web3 connection.

    Can be used in two modes:
    1. Signing mode: Initialize with RPC URL and secret to send root updates
    2. Read-only mode: Initialize with RPC URL only for state reads and log scans
    """

    def __init__(self, rpc_url: str, secret: str = "", request_timeout: int = 30) -> None:
        """
        Initialize the ContractUtility.

        Args:
            rpc_url: RPC URL for the chain (required)
            secret: Private key for signing transactions (optional - read-only without it)
            request_timeout: HTTP timeout for RPC requests in seconds
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.account: LocalAccount | None = None

        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": request_timeout}))

        if secret:
            self._add_signing_middleware(secret)

    def _add_signing_middleware(self, secret: str) -> None:
        """
        Add signing middleware to the existing Web3 instance.

        Args:
            secret: Private key for signing transactions
        """
        account: LocalAccount = Account.from_key(secret)
        self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(account))
        self.w3.eth.default_account = account.address
        self.account = account

    @property
    def can_sign(self) -> bool:
        return self.account is not None

    def contract(self, address: str, abi: list[dict]):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
