"""
Unit tests for dex/adapters (V2 router and V3 quoter sources).
"""

import pytest

from dex.adapters import (
    DEFAULT_V2_GAS,
    DEFAULT_V3_GAS,
    ConcentratedLiquiditySource,
    ConstantProductSource,
    ProtocolKind,
)
from dex.exceptions import QuoteError
from dex.quote_errors import QuoteErrorKind

from dex_fakes import QUOTER_X, ROUTER_X, TOKEN_A, TOKEN_B, FakeChain, v2, v3


class TestLabels:
    """Test human-readable source labels used in exclusions."""

    def test_v2_label(self):
        assert v2(dex="hyperswap").label == "HYPERSWAP V2"

    def test_v3_fee_label(self):
        assert v3(dex="hyperswap", fee=500).label == "HYPERSWAP V3 (500)"

    def test_v3_tick_spacing_label(self):
        source = v3(dex="kittenswap", fee=200, style="tick_spacing")
        assert source.label == "KITTENSWAP V3 (tick 200)"

    def test_kinds(self):
        assert v2().kind is ProtocolKind.CONSTANT_PRODUCT
        assert v3().kind is ProtocolKind.CONCENTRATED
        assert v3().concentrated
        assert not v2().concentrated

    def test_only_v3_retries_transient_lock(self):
        assert QuoteErrorKind.TRANSIENT_LOCK in v3().retryable_errors
        assert not v2().retryable_errors

    def test_invalid_param_style_rejected(self):
        with pytest.raises(ValueError):
            ConcentratedLiquiditySource(
                venue_id="x", dex="x", address=QUOTER_X, param_style="bogus"
            )

    def test_sources_are_hashable_and_immutable(self):
        source = v2()
        assert {source: 1}[v2()] == 1
        with pytest.raises(Exception):
            source.dex = "other"


class TestConstantProductSource:
    """Test getAmountsOut quoting."""

    def test_returns_second_amount_and_static_gas(self):
        chain = FakeChain()
        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, 2)

        amount_out, gas = v2().call_quote(chain, TOKEN_A, TOKEN_B, 1000)

        assert amount_out == 2000
        assert gas == DEFAULT_V2_GAS

    def test_configured_gas_is_used(self):
        chain = FakeChain()
        chain.set_route(ROUTER_X, TOKEN_A, TOKEN_B, 1)
        source = ConstantProductSource(
            venue_id="kitten_v2", dex="kittenswap", address=ROUTER_X, gas_estimate=120_000
        )

        assert source.call_quote(chain, TOKEN_A, TOKEN_B, 10)[1] == 120_000

    def test_short_amounts_array_is_zero_output(self):
        class ShortChain:
            def call_view(self, *args, **kwargs):
                return [5]

        with pytest.raises(QuoteError) as excinfo:
            v2().call_quote(ShortChain(), TOKEN_A, TOKEN_B, 5)
        assert excinfo.value.kind is QuoteErrorKind.ZERO_OUTPUT


class TestConcentratedLiquiditySource:
    """Test QuoterV2 quoting."""

    def test_quoter_gas_overrides_default(self):
        chain = FakeChain()
        chain.set_route(QUOTER_X, TOKEN_A, TOKEN_B, 3, param=500, gas=98_765)

        amount_out, gas = v3(fee=500).call_quote(chain, TOKEN_A, TOKEN_B, 100)

        assert amount_out == 300
        assert gas == 98_765

    def test_default_gas_when_quoter_reports_zero(self):
        chain = FakeChain()
        chain.set_route(QUOTER_X, TOKEN_A, TOKEN_B, 3, param=3000)

        _, gas = v3(fee=3000).call_quote(chain, TOKEN_A, TOKEN_B, 100)

        assert gas == DEFAULT_V3_GAS

    def test_passes_fee_or_tick_in_params_tuple(self):
        chain = FakeChain()
        chain.set_route(QUOTER_X, TOKEN_A, TOKEN_B, 1, param=200)

        v3(fee=200, style="tick_spacing").call_quote(chain, TOKEN_A, TOKEN_B, 7)

        function_name, _, args = chain.calls[-1]
        assert function_name == "quoteExactInputSingle"
        token_in, token_out, amount_in, param, limit = args[0]
        assert (amount_in, param, limit) == (7, 200, 0)

    def test_scalar_result_from_legacy_quoter(self):
        class LegacyChain:
            def call_view(self, *args, **kwargs):
                return 1234

        amount_out, gas = v3().call_quote(LegacyChain(), TOKEN_A, TOKEN_B, 1)
        assert (amount_out, gas) == (1234, DEFAULT_V3_GAS)

    @pytest.mark.parametrize("result", [[None, 0, 0, 0], [], None])
    def test_missing_amount_is_zero_output(self, result):
        class EmptyChain:
            def call_view(self, *args, **kwargs):
                return result

        with pytest.raises(QuoteError) as excinfo:
            v3().call_quote(EmptyChain(), TOKEN_A, TOKEN_B, 1)
        assert excinfo.value.kind is QuoteErrorKind.ZERO_OUTPUT
