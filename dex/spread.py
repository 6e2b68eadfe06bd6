"""
Same-direction spread analysis across venues.

Compares the rates of every ordered pair of successful quotes for one
direction. All math is Decimal; functions are pure and synchronous.
"""

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .config import AnalysisSettings
from .types import Quote, SpreadOpportunity

DEFAULT_ANALYSIS = AnalysisSettings()


def usable_quotes(
    quotes: Sequence[Quote], settings: AnalysisSettings = DEFAULT_ANALYSIS
) -> List[Quote]:
    """
    Successful quotes that pass the noise filters.

    Drops rates at or below rate_epsilon and formatted outputs below
    min_output, both of which come from dust pools or decimals mismatches.
    """
    return [
        q
        for q in quotes
        if q.success
        and q.rate is not None
        and q.rate > settings.rate_epsilon
        and q.amount_out >= settings.min_output
    ]


def spread_pct(buy_rate: Decimal, sell_rate: Decimal) -> Decimal:
    """(sell - buy) / buy * 100."""
    return (sell_rate - buy_rate) / buy_rate * Decimal(100)


def _opportunity(pair: str, buy: Quote, sell: Quote, spread: Decimal) -> SpreadOpportunity:
    return SpreadOpportunity(
        pair=pair,
        buy_source=buy.source,
        sell_source=sell.source,
        buy_rate=buy.rate,
        sell_rate=sell.rate,
        spread_pct=spread,
        cross_venue=buy.source.dex != sell.source.dex,
        estimated_gas=buy.gas_estimate + sell.gas_estimate,
    )


def _pair_name(quotes: Sequence[Quote]) -> str:
    if not quotes:
        return ""
    q = quotes[0]
    return f"{q.token_in.symbol}/{q.token_out.symbol}"


def find_price_differences(
    quotes: Sequence[Quote],
    min_spread_pct: Decimal,
    settings: AnalysisSettings = DEFAULT_ANALYSIS,
    pair: Optional[str] = None,
) -> List[SpreadOpportunity]:
    """
    Find spreads between venues quoting the same direction.

    For every ordered (buy, sell) with buy rate below sell rate, keeps the
    combination when the rate ratio is plausible and
    min_spread_pct <= spread <= max_spread_pct.

    Returns:
        Opportunities sorted by spread, largest first (stable)
    """
    min_spread = Decimal(str(min_spread_pct))
    usable = usable_quotes(quotes, settings)
    pair = pair if pair is not None else _pair_name(quotes)

    opportunities = []
    for i, buy in enumerate(usable):
        for j, sell in enumerate(usable):
            if i == j or not buy.rate < sell.rate:
                continue
            if sell.rate / buy.rate > settings.max_rate_ratio:
                continue
            spread = spread_pct(buy.rate, sell.rate)
            if min_spread <= spread <= settings.max_spread_pct:
                opportunities.append(_opportunity(pair, buy, sell, spread))

    opportunities.sort(key=lambda o: o.spread_pct, reverse=True)
    return opportunities


def all_combinations(
    quotes: Sequence[Quote], pair: Optional[str] = None
) -> List[SpreadOpportunity]:
    """
    Every ordered venue combination with a signed spread, for display.

    No ratio or threshold filtering. When the buy rate exceeds the sell rate
    the spread is negative: -(buy - sell) / sell * 100. A single successful
    quote yields one informational row with no sell source.
    """
    valid = [
        q for q in quotes if q.success and q.rate is not None and q.rate > 0 and q.amount_out > 0
    ]
    pair = pair if pair is not None else _pair_name(quotes)

    if not valid:
        return []

    if len(valid) == 1:
        only = valid[0]
        return [
            SpreadOpportunity(
                pair=pair,
                buy_source=only.source,
                sell_source=None,
                buy_rate=only.rate,
                sell_rate=Decimal(0),
                spread_pct=Decimal(0),
                cross_venue=False,
                estimated_gas=only.gas_estimate,
            )
        ]

    combinations = []
    for i, buy in enumerate(valid):
        for j, sell in enumerate(valid):
            if i == j:
                continue
            if buy.rate < sell.rate:
                spread = spread_pct(buy.rate, sell.rate)
            elif buy.rate > sell.rate:
                spread = -((buy.rate - sell.rate) / sell.rate * Decimal(100))
            else:
                spread = Decimal(0)
            combinations.append(_opportunity(pair, buy, sell, spread))

    combinations.sort(key=lambda o: o.spread_pct, reverse=True)
    return combinations


def best_and_worst(quotes: Sequence[Quote]) -> Tuple[Optional[Quote], Optional[Quote]]:
    """Highest- and lowest-rate successful quotes (first wins on ties)."""
    valid = [q for q in quotes if q.success and q.rate is not None]
    if not valid:
        return None, None
    best = valid[0]
    worst = valid[0]
    for q in valid[1:]:
        if q.rate > best.rate:
            best = q
        if q.rate < worst.rate:
            worst = q
    return best, worst
