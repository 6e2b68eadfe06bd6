"""
Unit tests for dex/round_trip.py (A→B→A round-trip simulation).
"""

from decimal import Decimal

import pytest

from dex.aggregator import QuoteAggregator
from dex.quote_client import QuoteClient
from dex.round_trip import ArbitrageSimulator
from dex.token_cache import TokenMetadataCache
from dex.types import ExecutionStatus

from dex_fakes import ROUTER_X, ROUTER_Y, TOKEN_A, TOKEN_B, FakeChain, pair, v2

ONE = 10**18


@pytest.fixture
def chain():
    c = FakeChain()
    c.set_token(TOKEN_A, decimals=18, symbol="AAA")
    c.set_token(TOKEN_B, decimals=18, symbol="BBB")
    return c


@pytest.fixture
def simulator(chain):
    client = QuoteClient(chain, max_workers=4, backoff_sec=0)
    yield ArbitrageSimulator(QuoteAggregator(client, TokenMetadataCache(chain)))
    client.close()


class TestRoundTrip:
    """Test profit accounting on real two-hop quotes."""

    @pytest.mark.asyncio
    async def test_losing_round_trip_recorded_in_executions(self, chain, simulator):
        # 1 A -> 0.5 B -> 0.4 A
        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, "0.5")
        chain.set_route(ROUTER_X, TOKEN_B, TOKEN_A, "0.8")

        report = await simulator.simulate_round_trips(pair(), [v2()], 1, 0)

        assert report.opportunities == []
        assert len(report.executions) == 1
        result = report.executions[0]
        assert result.execution_status is ExecutionStatus.SUCCESS
        assert result.initial_amount == Decimal(1)
        assert result.intermediate_amount == Decimal("0.5")
        assert result.final_amount == Decimal("0.4")
        assert result.profit == Decimal("-0.6")
        assert result.profit_pct == Decimal(-60)
        assert not result.cross_venue

    @pytest.mark.asyncio
    async def test_sell_leg_requoted_with_measured_intermediate(self, chain, simulator):
        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, lambda amt: 123_456_789)
        chain.set_route(ROUTER_X, TOKEN_B, TOKEN_A, 2)

        report = await simulator.simulate_round_trips(pair(), [v2()], 1, 0)

        result = report.executions[0]
        assert result.intermediate_amount_raw == 123_456_789
        sell_inputs = [
            args[0]
            for name, _, args in chain.calls
            if name == "getAmountsOut" and args[1][0].lower() == TOKEN_B
        ]
        assert 123_456_789 in sell_inputs
        assert result.profit == result.final_amount - result.initial_amount

    @pytest.mark.asyncio
    async def test_profitable_cross_venue_trip_is_an_opportunity(self, chain, simulator):
        alpha, beta = v2("alpha", ROUTER_X), v2("beta", ROUTER_Y)
        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, "0.5")
        chain.set_route(ROUTER_X, TOKEN_B, TOKEN_A, "1.9")
        chain.set_route(ROUTER_Y, TOKEN_A, TOKEN_B, "0.45")
        chain.set_route(ROUTER_Y, TOKEN_B, TOKEN_A, "2.2")

        report = await simulator.simulate_round_trips(pair(), [alpha, beta], 1, 5)

        assert len(report.executions) == 4
        assert [o.profit_pct for o in report.opportunities] == [Decimal(10)]
        best = report.opportunities[0]
        assert (best.buy_source, best.sell_source) == (alpha, beta)
        assert best.cross_venue
        assert best.final_amount == Decimal("1.1")
        assert report.best_combination == "ALPHA V2 + BETA V2"
        assert best.estimated_gas == 300_000

    @pytest.mark.asyncio
    async def test_opportunities_sorted_by_profit(self, chain, simulator):
        alpha, beta = v2("alpha", ROUTER_X), v2("beta", ROUTER_Y)
        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, "1")
        chain.set_route(ROUTER_X, TOKEN_B, TOKEN_A, "1.02")
        chain.set_route(ROUTER_Y, TOKEN_A, TOKEN_B, "1")
        chain.set_route(ROUTER_Y, TOKEN_B, TOKEN_A, "1.05")

        report = await simulator.simulate_round_trips(pair(), [alpha, beta], 1, 0)

        profits = [o.profit_pct for o in report.opportunities]
        assert profits == sorted(profits, reverse=True)
        assert profits[0] == Decimal(5)
        assert report.worst_combination.endswith("ALPHA V2")

    @pytest.mark.asyncio
    async def test_sell_failure_is_total_loss(self, chain, simulator):
        def sell(amount):
            # Quotes the nominal 1 B fine, reverts on the real intermediate amount
            if amount != ONE:
                raise Exception("execution reverted: INSUFFICIENT_LIQUIDITY")
            return ONE

        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, "0.5")
        chain.set_route(ROUTER_X, TOKEN_B, TOKEN_A, sell)

        report = await simulator.simulate_round_trips(pair(), [v2()], 1, -100)

        result = report.executions[0]
        assert result.execution_status is ExecutionStatus.FAILED_AT_SELL
        assert result.final_amount == 0
        assert result.profit == Decimal(-1)
        assert result.profit_pct == Decimal(-100)
        assert result.failure_reason == "insufficient liquidity"
        assert result.sell_rate is None
        assert result.estimated_gas == 150_000

    @pytest.mark.asyncio
    async def test_missing_reverse_pool_excludes_sell_venue(self, chain, simulator):
        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, "0.5")

        report = await simulator.simulate_round_trips(pair(), [v2()], 1, 0)

        assert report.executions == []
        assert report.exclusions == ["ALPHA V2: pool or route does not exist"]
        assert report.best_combination == "N/A"
