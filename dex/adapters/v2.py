"""
Uniswap V2 style adapter for constant-product AMM routers.

Quotes come straight from the router's getAmountsOut over a two-token path,
so fees and reserves are applied on-chain exactly as a swap would.
"""

from dataclasses import dataclass
from typing import Tuple

from web3 import Web3

from ..abi import UNISWAP_V2_ROUTER_ABI
from ..exceptions import QuoteError
from ..quote_errors import QuoteErrorKind
from .base import LiquiditySource, ProtocolKind

# Typical gas for a single-hop V2 swap; routers return no estimate
DEFAULT_V2_GAS = 150_000


@dataclass(frozen=True)
class ConstantProductSource(LiquiditySource):
    """V2 router venue. No pool selector; one source per router."""

    gas_estimate: int = DEFAULT_V2_GAS

    kind = ProtocolKind.CONSTANT_PRODUCT

    @property
    def label(self) -> str:
        return f"{self.dex.upper()} V2"

    def call_quote(
        self, chain, token_in: str, token_out: str, amount_in: int
    ) -> Tuple[int, int]:
        path = [
            Web3.to_checksum_address(token_in),
            Web3.to_checksum_address(token_out),
        ]
        amounts = chain.call_view(
            self.address, UNISWAP_V2_ROUTER_ABI, "getAmountsOut", [amount_in, path]
        )

        if not amounts or len(amounts) < 2:
            raise QuoteError(
                "router returned no output amount",
                kind=QuoteErrorKind.ZERO_OUTPUT,
                source_label=self.label,
            )

        return int(amounts[1]), self.gas_estimate
