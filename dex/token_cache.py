"""
Token metadata cache.

Resolves ERC-20 decimals / symbol / name once per address for the life of
the process. Each field falls back to its own placeholder so a token with a
broken name() still gets its real decimals.
"""

import asyncio
import threading
from concurrent.futures import Executor
from typing import Any, Dict, Optional

from .abi import ERC20_METADATA_ABI
from .types import DEFAULT_DECIMALS, UNKNOWN_NAME, UNKNOWN_SYMBOL, TokenRef
from .utils import get_logger, short_address

logger = get_logger(__name__)


class TokenMetadataCache:
    """
    Process-lifetime cache of TokenRef keyed by lower-cased address.

    The map is guarded by a threading.Lock; concurrent resolve() calls for
    the same address share a single RPC lookup through a per-address
    asyncio.Lock.
    """

    def __init__(self, chain, executor: Optional[Executor] = None):
        self.chain = chain
        self._executor = executor
        self._tokens: Dict[str, TokenRef] = {}
        self._lock = threading.Lock()
        self._inflight: Dict[str, asyncio.Lock] = {}
        self.lookups = 0

    def get(self, address: str) -> Optional[TokenRef]:
        """Return cached metadata without touching the chain."""
        with self._lock:
            return self._tokens.get(address.lower())

    def preload(self, token: TokenRef) -> None:
        """Seed the cache with known metadata (e.g. tokens from config)."""
        with self._lock:
            self._tokens[token.address.lower()] = token

    async def resolve(self, address: str) -> TokenRef:
        """
        Get metadata for a token, querying the chain on first use.

        Never raises for RPC failures; unreadable fields get placeholders
        (decimals 18, symbol "UNKNOWN", name "Unknown Token").
        """
        key = address.lower()
        cached = self.get(key)
        if cached is not None:
            return cached

        lock = self._inflight.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self.get(key)
            if cached is not None:
                return cached

            loop = asyncio.get_running_loop()
            token = await loop.run_in_executor(self._executor, self._fetch, address)
            with self._lock:
                self._tokens[key] = token
            self._inflight.pop(key, None)
            return token

    def _fetch(self, address: str) -> TokenRef:
        self.lookups += 1
        decimals = self._read_field(address, "decimals", DEFAULT_DECIMALS)
        symbol = self._read_field(address, "symbol", UNKNOWN_SYMBOL)
        name = self._read_field(address, "name", UNKNOWN_NAME)

        try:
            decimals = int(decimals)
        except (TypeError, ValueError):
            decimals = DEFAULT_DECIMALS

        token = TokenRef(
            address=address,
            symbol=str(symbol) or UNKNOWN_SYMBOL,
            decimals=decimals,
            name=str(name) or UNKNOWN_NAME,
        )
        logger.debug(
            f"Token {short_address(address)}: {token.symbol} ({token.decimals} decimals)"
        )
        return token

    def _read_field(self, address: str, function_name: str, default: Any) -> Any:
        try:
            value = self.chain.call_view(address, ERC20_METADATA_ABI, function_name)
        except Exception as e:
            logger.debug(
                f"{function_name}() failed for {short_address(address)}, "
                f"using {default!r}: {e}"
            )
            return default

        # Some old tokens return bytes32 for symbol/name
        if isinstance(value, (bytes, bytearray)):
            value = value.rstrip(b"\x00").decode("utf-8", errors="replace")
        return value
