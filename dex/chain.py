"""
Thin read-only chain client over web3.py.

Exposes the two primitives the quote engine needs ("call a view function,
get decoded values" and "get the current block") plus endpoint fallback
when connecting.
"""

import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from web3 import Web3

from .exceptions import ChainConnectionError
from .utils import get_logger

logger = get_logger(__name__)

# Map chain IDs to readable names
CHAIN_NAMES = {
    1: "Ethereum Mainnet",
    999: "HyperEVM",
    998: "HyperEVM Testnet",
    8453: "Base",
    42161: "Arbitrum",
    10: "Optimism",
    137: "Polygon",
    56: "BSC",
}


class ChainClient:
    """
    Read-only wrapper around a connected Web3 instance.

    Contract objects are cached per (address, abi) since every scan reuses
    the same routers, quoters and tokens. All methods are blocking and are
    expected to run on executor threads.
    """

    def __init__(self, web3: Web3):
        self.web3 = web3
        self._contracts: Dict[Tuple[str, int], Any] = {}
        self._lock = threading.Lock()

    @classmethod
    def connect(
        cls, rpc_urls: Sequence[str], timeout_sec: float = 10
    ) -> "ChainClient":
        """
        Connect to the first RPC endpoint that answers.

        Tries each URL in order and verifies it by reading chain id and block
        number (is_connected() is not reliable on public endpoints).

        Args:
            rpc_urls: Primary endpoint followed by fallbacks
            timeout_sec: HTTP request timeout applied to every RPC call

        Returns:
            Connected ChainClient

        Raises:
            ChainConnectionError: If every endpoint fails
        """
        last_error: Optional[Exception] = None
        tried: List[str] = []

        for rpc_url in rpc_urls:
            if not rpc_url or not isinstance(rpc_url, str) or not rpc_url.strip():
                logger.debug(f"Skipping invalid RPC URL: {rpc_url}")
                continue

            tried.append(rpc_url)
            try:
                logger.info(f"Connecting to RPC: {rpc_url}")
                if not rpc_url.startswith(("http://", "https://")):
                    raise ValueError(f"Invalid RPC URL format: {rpc_url}")

                web3 = Web3(
                    Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout_sec})
                )
                chain_id = web3.eth.chain_id
                block = web3.eth.block_number

                chain_name = CHAIN_NAMES.get(chain_id, f"Chain {chain_id}")
                logger.info(f"✓ Connected to {chain_name} (block #{block:,})")
                return cls(web3)

            except Exception as e:
                last_error = e
                logger.warning(f"RPC connection failed: {e}")
                continue

        raise ChainConnectionError(
            f"Failed to connect to any RPC endpoint. Last error: {last_error}",
            endpoints=tried,
        )

    def _contract(self, address: str, abi: List[Dict[str, Any]]):
        checksum = Web3.to_checksum_address(address)
        key = (checksum, id(abi))
        with self._lock:
            contract = self._contracts.get(key)
            if contract is None:
                contract = self.web3.eth.contract(address=checksum, abi=abi)
                self._contracts[key] = contract
        return contract

    def call_view(
        self,
        address: str,
        abi: List[Dict[str, Any]],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """
        Call a read-only contract function via eth_call.

        Also used for quoter functions that are non-view on-chain but are
        meant to be simulated (QuoterV2 reverts internally to return data).

        Returns:
            Decoded return value(s) as produced by web3.py

        Raises:
            Exception: Whatever web3.py raises (ContractLogicError, timeouts, ...)
        """
        contract = self._contract(address, abi)
        fn = getattr(contract.functions, function_name)
        return fn(*args).call()

    def get_block_number(self) -> int:
        """Get the latest block number."""
        return self.web3.eth.block_number

    def get_code(self, address: str) -> bytes:
        """Get deployed bytecode at an address (empty if none)."""
        return bytes(self.web3.eth.get_code(Web3.to_checksum_address(address)))
