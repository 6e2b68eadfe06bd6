"""
Unit tests for dex/spread.py (same-direction price differences).
"""

from decimal import Decimal

from dex.config import AnalysisSettings
from dex.spread import all_combinations, best_and_worst, find_price_differences

from dex_fakes import ROUTER_Y, quote, v2, v3


class TestFindPriceDifferences:
    """Test spread detection and noise filtering."""

    def test_ten_percent_spread_found_with_buy_on_lower_rate(self):
        cheap, dear = v2("alpha"), v2("beta", ROUTER_Y)
        quotes = [quote(cheap, 100), quote(dear, 110)]

        opps = find_price_differences(quotes, 5)

        assert len(opps) == 1
        opp = opps[0]
        assert opp.buy_source == cheap
        assert opp.sell_source == dear
        assert opp.spread_pct == Decimal(10)
        assert opp.cross_venue
        assert opp.estimated_gas == 300_000

    def test_below_threshold_is_dropped(self):
        quotes = [quote(v2("alpha"), 100), quote(v2("beta", ROUTER_Y), 101)]
        assert find_price_differences(quotes, 5) == []

    def test_implausible_rate_ratio_excluded(self):
        """A 1000x gap is a decimals mismatch or dust pool, not an opportunity."""
        quotes = [quote(v2("alpha"), 1), quote(v2("beta", ROUTER_Y), 1000)]
        assert find_price_differences(quotes, 0) == []

    def test_spread_above_max_excluded(self):
        quotes = [quote(v2("alpha"), 1), quote(v2("beta", ROUTER_Y), "2.5")]
        assert find_price_differences(quotes, 0) == []

    def test_max_spread_is_configurable(self):
        quotes = [quote(v2("alpha"), 1), quote(v2("beta", ROUTER_Y), "2.5")]
        settings = AnalysisSettings(max_spread_pct=Decimal(200))

        opps = find_price_differences(quotes, 0, settings)

        assert [o.spread_pct for o in opps] == [Decimal(150)]

    def test_dust_rates_and_failures_ignored(self):
        quotes = [
            quote(v2("alpha"), "0.0000001"),
            quote(v2("beta", ROUTER_Y), 1),
            quote(v3("alpha"), None, success=False),
        ]
        assert find_price_differences(quotes, 0) == []

    def test_empty_and_single_quote_lists(self):
        assert find_price_differences([], 0) == []
        assert find_price_differences([quote(v2(), 1)], 0) == []

    def test_spreads_non_negative_sorted_and_idempotent(self):
        quotes = [
            quote(v2("alpha"), 100),
            quote(v3("alpha", fee=500), 104),
            quote(v2("beta", ROUTER_Y), 110),
        ]

        first = find_price_differences(quotes, 0)
        second = find_price_differences(quotes, 0)

        assert first == second
        assert all(o.spread_pct >= 0 for o in first)
        spreads = [o.spread_pct for o in first]
        assert spreads == sorted(spreads, reverse=True)
        assert len(first) == 3

    def test_same_venue_is_not_cross_venue(self):
        quotes = [quote(v3("alpha", fee=500), 100), quote(v3("alpha", fee=3000), 110)]
        assert not find_price_differences(quotes, 1)[0].cross_venue


class TestAllCombinations:
    """Test the unfiltered display enumeration."""

    def test_signed_spreads_for_both_orders(self):
        cheap, dear = v2("alpha"), v2("beta", ROUTER_Y)
        combos = all_combinations([quote(cheap, 100), quote(dear, 110)])

        assert [(c.buy_source, c.spread_pct) for c in combos] == [
            (cheap, Decimal(10)),
            (dear, Decimal(-10)),
        ]

    def test_single_quote_gives_informational_row(self):
        only = v2()
        combos = all_combinations([quote(only, 3, gas=111)])

        assert len(combos) == 1
        row = combos[0]
        assert row.buy_source == only
        assert row.sell_source is None
        assert row.spread_pct == 0
        assert row.estimated_gas == 111

    def test_no_quotes(self):
        assert all_combinations([]) == []
        assert all_combinations([quote(v2(), None, success=False)]) == []

    def test_equal_rates_give_zero_spread(self):
        combos = all_combinations([quote(v2("alpha"), 5), quote(v2("beta", ROUTER_Y), 5)])
        assert [c.spread_pct for c in combos] == [0, 0]

    def test_no_ratio_filter(self):
        combos = all_combinations([quote(v2("alpha"), 1), quote(v2("beta", ROUTER_Y), 1000)])
        assert combos[0].spread_pct == Decimal(99900)


class TestBestAndWorst:
    def test_picks_extremes(self):
        low, mid, high = v2("alpha"), v3("alpha"), v2("beta", ROUTER_Y)
        best, worst = best_and_worst([quote(mid, 2), quote(high, 3), quote(low, 1)])
        assert best.source == high
        assert worst.source == low

    def test_nothing_usable(self):
        assert best_and_worst([quote(v2(), None, success=False)]) == (None, None)
