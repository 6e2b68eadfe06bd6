"""
Round-trip arbitrage simulation.

Buys token B with token A on one venue, then quotes selling exactly the
measured B output back to A on another venue. Profit is what the two real
quotes say, not a product of rates.
"""

import asyncio
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple, Union

from .adapters.base import LiquiditySource
from .aggregator import QuoteAggregator
from .config import AnalysisSettings
from .spread import usable_quotes
from .types import (
    Direction,
    ExecutionStatus,
    Quote,
    RoundTripReport,
    RoundTripResult,
    TokenPair,
)
from .utils import format_pct, get_logger

logger = get_logger(__name__)


class ArbitrageSimulator:
    """
    Simulates A→B→A round trips over every (buy venue, sell venue) pair.

    Args:
        aggregator: QuoteAggregator used for both legs
        settings: Noise filters applied to both quote sets
    """

    def __init__(
        self, aggregator: QuoteAggregator, settings: Optional[AnalysisSettings] = None
    ):
        self.aggregator = aggregator
        self.settings = settings or AnalysisSettings()

    async def simulate_round_trips(
        self,
        pair: TokenPair,
        sources: Sequence[LiquiditySource],
        amount: Union[Decimal, int, float, str],
        min_profit_pct: Union[Decimal, int, float, str],
    ) -> RoundTripReport:
        """
        Run the full round-trip simulation for one pair.

        The reverse quote set (B→A at the same nominal amount) only decides
        which venues are eligible sell legs; the sell leg itself is always
        re-quoted with the buy leg's actual output.

        Returns:
            RoundTripReport with every execution and the profitable subset
            sorted by profit % (largest first)
        """
        threshold = Decimal(str(min_profit_pct))

        (forward, forward_excl), (reverse, reverse_excl) = await asyncio.gather(
            self.aggregator.fetch_all(pair, Direction.FORWARD, amount, sources),
            self.aggregator.fetch_all(pair, Direction.REVERSE, amount, sources),
        )
        exclusions = forward_excl + reverse_excl

        buy_legs = usable_quotes(forward, self.settings)
        sell_legs = usable_quotes(reverse, self.settings)

        logger.debug(
            f"{pair.name}: {len(buy_legs)} buy × {len(sell_legs)} sell = "
            f"{len(buy_legs) * len(sell_legs)} round trips"
        )

        combos: List[Tuple[Quote, Quote]] = [
            (buy, sell) for buy in buy_legs for sell in sell_legs
        ]
        sell_quotes = await asyncio.gather(
            *(self._quote_sell_leg(buy, sell.source) for buy, sell in combos)
        )

        executions = [
            self._build_result(pair, buy, sell, sell_quote)
            for (buy, sell), sell_quote in zip(combos, sell_quotes)
        ]

        opportunities = [r for r in executions if r.profit_pct >= threshold]
        opportunities.sort(key=lambda r: r.profit_pct, reverse=True)

        best = worst = "N/A"
        if opportunities:
            best = opportunities[0].label
            worst = opportunities[-1].label

        return RoundTripReport(
            opportunities=opportunities,
            executions=executions,
            exclusions=exclusions,
            forward_quotes=forward,
            reverse_quotes=reverse,
            best_combination=best,
            worst_combination=worst,
        )

    async def _quote_sell_leg(self, buy: Quote, sell_source: LiquiditySource) -> Quote:
        quotes = await self.aggregator.fetch_raw(
            buy.token_out, buy.token_in, buy.amount_out_raw, [sell_source]
        )
        return quotes[0]

    def _build_result(
        self, pair: TokenPair, buy: Quote, sell: Quote, sell_quote: Quote
    ) -> RoundTripResult:
        initial = buy.amount_in
        cross_venue = buy.source.dex != sell.source.dex

        if not sell_quote.success:
            logger.debug(
                f"   {buy.label} → {sell.label}: sell failed ({sell_quote.exclusion_reason})"
            )
            return RoundTripResult(
                pair=pair.name,
                buy_source=buy.source,
                sell_source=sell.source,
                initial_amount=initial,
                intermediate_amount=buy.amount_out,
                intermediate_amount_raw=buy.amount_out_raw,
                final_amount=Decimal(0),
                profit=-initial,
                profit_pct=Decimal(-100),
                execution_status=ExecutionStatus.FAILED_AT_SELL,
                buy_rate=buy.rate,
                sell_rate=None,
                cross_venue=cross_venue,
                estimated_gas=buy.gas_estimate,
                failure_reason=sell_quote.exclusion_reason,
            )

        final = sell_quote.amount_out
        profit = final - initial
        profit_pct = profit / initial * Decimal(100)

        logger.debug(
            f"   {buy.label} → {sell.label}: {initial} → {buy.amount_out:.6f} → "
            f"{final:.6f} ({format_pct(profit_pct)})"
        )

        return RoundTripResult(
            pair=pair.name,
            buy_source=buy.source,
            sell_source=sell.source,
            initial_amount=initial,
            intermediate_amount=buy.amount_out,
            intermediate_amount_raw=buy.amount_out_raw,
            final_amount=final,
            profit=profit,
            profit_pct=profit_pct,
            execution_status=ExecutionStatus.SUCCESS,
            buy_rate=buy.rate,
            sell_rate=sell.rate,
            cross_venue=cross_venue,
            estimated_gas=buy.gas_estimate + sell_quote.gas_estimate,
        )
