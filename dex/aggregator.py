"""
Quote aggregation across every liquidity source of a pair.
"""

import asyncio
from decimal import Decimal
from typing import List, Sequence, Tuple, Union

from .adapters.base import LiquiditySource
from .quote_client import QuoteClient
from .token_cache import TokenMetadataCache
from .types import Direction, Quote, QuoteRequest, TokenPair, TokenRef
from .utils import get_logger, to_raw_amount

logger = get_logger(__name__)


def nominal_amount(token: TokenRef, amount: Union[Decimal, int, float, str]) -> int:
    """Human amount of `token` in its smallest unit (e.g. 1 USDC -> 1_000_000)."""
    return to_raw_amount(amount, token.decimals)


class QuoteAggregator:
    """
    Fetches one quote per source for a pair and direction.

    All requests for a call are issued concurrently; a failing source only
    removes itself from the result. Output order matches source order.
    """

    def __init__(self, client: QuoteClient, tokens: TokenMetadataCache):
        self.client = client
        self.tokens = tokens

    async def resolve_tokens(
        self, pair: TokenPair, direction: Direction = Direction.FORWARD
    ) -> Tuple[TokenRef, TokenRef]:
        """(token_in, token_out) for the direction."""
        token_a, token_b = await asyncio.gather(
            self.tokens.resolve(pair.token_a), self.tokens.resolve(pair.token_b)
        )
        if direction is Direction.FORWARD:
            return token_a, token_b
        return token_b, token_a

    async def fetch_all(
        self,
        pair: TokenPair,
        direction: Direction,
        amount_in: Union[Decimal, int, float, str],
        sources: Sequence[LiquiditySource],
    ) -> Tuple[List[Quote], List[str]]:
        """
        Quote `amount_in` (human units of the input token) on every source.

        Returns:
            Tuple of (quotes in source order, exclusions as "<label>: <reason>")
        """
        token_in, token_out = await self.resolve_tokens(pair, direction)
        raw_amount = nominal_amount(token_in, amount_in)
        quotes = await self.fetch_raw(token_in, token_out, raw_amount, sources)

        exclusions = [
            f"{q.source.label}: {q.exclusion_reason}" for q in quotes if not q.success
        ]

        logger.debug(
            f"{pair.name} {direction.value}: "
            f"{len(quotes) - len(exclusions)}/{len(quotes)} sources quoted"
        )
        return quotes, exclusions

    async def fetch_raw(
        self,
        token_in: TokenRef,
        token_out: TokenRef,
        raw_amount: int,
        sources: Sequence[LiquiditySource],
    ) -> List[Quote]:
        """Quote a raw input amount on every source concurrently."""
        requests = [
            QuoteRequest(
                source=source, token_in=token_in, token_out=token_out, amount_in=raw_amount
            )
            for source in sources
        ]
        return list(
            await asyncio.gather(*(self.client.get_amount_out(r) for r in requests))
        )
