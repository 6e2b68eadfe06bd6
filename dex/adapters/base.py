"""
Base liquidity source interface.

A liquidity source is one quotable venue: a V2 router, or a V3 quoter at one
fee tier / tick spacing. Sources are immutable and resolved once per run
from configuration; each concrete variant knows how to ask its contract for
an output amount.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, FrozenSet, Optional, Tuple

from ..quote_errors import QuoteErrorKind


class ProtocolKind(Enum):
    CONSTANT_PRODUCT = "v2"
    CONCENTRATED = "v3"


@dataclass(frozen=True)
class LiquiditySource(ABC):
    """
    One quotable venue.

    Attributes:
        venue_id: Config key of the venue (e.g. "hyperswap_v3")
        dex: DEX family name (e.g. "hyperswap"); used for cross-venue checks
        address: Router or quoter contract address
    """

    venue_id: str
    dex: str
    address: str

    kind: ClassVar[ProtocolKind]
    retryable_errors: ClassVar[FrozenSet[QuoteErrorKind]] = frozenset()

    @property
    def concentrated(self) -> bool:
        return self.kind is ProtocolKind.CONCENTRATED

    @property
    def param(self) -> Optional[int]:
        """Fee tier or tick spacing selecting the pool, if any."""
        return None

    @property
    @abstractmethod
    def label(self) -> str:
        """Human-readable venue label used in reports and exclusions."""

    @abstractmethod
    def call_quote(
        self, chain, token_in: str, token_out: str, amount_in: int
    ) -> Tuple[int, int]:
        """
        Query the venue for an exact-input quote (blocking RPC call).

        Args:
            chain: ChainClient used for the eth_call
            token_in: Input token address
            token_out: Output token address
            amount_in: Input amount in the input token's smallest unit

        Returns:
            Tuple of (amount_out_raw, gas_estimate)

        Raises:
            Exception: Any RPC / revert error; classified by the caller
        """
