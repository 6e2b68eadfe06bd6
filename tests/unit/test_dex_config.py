"""
Unit tests for dex/config.py

Verifies that configuration loading, venue expansion and scan defaults
parse correctly and that invalid configs fail fast.
"""

import copy
import os
import unittest
from decimal import Decimal
from unittest.mock import patch

import pytest

from dex.adapters import ConcentratedLiquiditySource, ConstantProductSource
from dex.config import ConfigError, ScanConfig, load_config, parse_mode
from dex.types import ScanMode

BASE_CONFIG = {
    "network": "hyperevm",
    "chain_id": 999,
    "rpc_url": "https://rpc.example.org",
    "venues": {
        "hyperswap_v2": {"dex": "hyperswap", "kind": "v2", "router": "0xrouter"},
        "hyperswap_v3": {
            "dex": "hyperswap",
            "kind": "v3",
            "quoter": "0xquoter",
            "fee_tiers": [500, 3000],
        },
        "kittenswap_v3": {
            "dex": "kittenswap",
            "kind": "v3",
            "quoter": "0xkitten",
            "tick_spacings": [1, 200],
            "status": "deprecated",
        },
    },
    "tokens": {
        "WHYPE": {"address": "0xaaa", "decimals": 18},
        "UBTC": {"address": "0xbbb", "decimals": 8, "name": "Unit Bitcoin"},
    },
    "pairs": [{"name": "WHYPE/UBTC", "token_a": "WHYPE", "token_b": "UBTC"}],
}


def make(**overrides):
    config = copy.deepcopy(BASE_CONFIG)
    config.update(overrides)
    return config


class TestScanConfigParsing(unittest.TestCase):
    """Test the happy path."""

    def test_network_and_tokens(self):
        config = ScanConfig(make())

        self.assertEqual(config.network, "hyperevm")
        self.assertEqual(config.chain_id, 999)
        self.assertEqual(config.rpc_urls, ["https://rpc.example.org"])
        self.assertEqual(config.tokens["UBTC"].decimals, 8)
        self.assertEqual(config.tokens["UBTC"].name, "Unit Bitcoin")
        self.assertEqual(config.tokens["WHYPE"].name, "WHYPE")

    def test_pair_symbols_resolve_to_addresses(self):
        config = ScanConfig(make())
        pair = config.pairs[0]

        self.assertEqual(pair.token_a, "0xaaa")
        self.assertEqual(pair.token_b, "0xbbb")
        self.assertIsNone(pair.available)

    def test_raw_address_pairs_pass_through(self):
        config = ScanConfig(make(pairs=[{"token_a": "0x111", "token_b": "0x222"}]))

        self.assertEqual(config.pairs[0].name, "0x111/0x222")
        self.assertEqual(config.pairs[0].token_a, "0x111")

    def test_deprecated_venues_are_skipped(self):
        config = ScanConfig(make())

        self.assertEqual(
            [v.venue_id for v in config.active_venues], ["hyperswap_v2", "hyperswap_v3"]
        )
        sources = config.sources_for(config.pairs[0])
        self.assertEqual(len(sources), 3)
        self.assertIsInstance(sources[0], ConstantProductSource)
        self.assertEqual(sources[0].gas_estimate, 150_000)
        self.assertEqual([s.fee_or_tick for s in sources[1:]], [500, 3000])
        self.assertEqual(sources[1].label, "HYPERSWAP V3 (500)")

    def test_tick_spacing_style(self):
        venues = copy.deepcopy(BASE_CONFIG["venues"])
        venues["kittenswap_v3"]["status"] = "active"
        config = ScanConfig(make(venues=venues))

        kitten = config.venues["kittenswap_v3"].sources()
        self.assertTrue(all(isinstance(s, ConcentratedLiquiditySource) for s in kitten))
        self.assertEqual(kitten[0].param_style, "tick_spacing")

    def test_available_subset(self):
        pairs = [
            {
                "name": "WHYPE/UBTC",
                "token_a": "WHYPE",
                "token_b": "UBTC",
                "available": {"hyperswap_v2": False, "hyperswap_v3": [3000]},
            }
        ]
        config = ScanConfig(make(pairs=pairs))
        sources = config.sources_for(config.pairs[0])

        self.assertEqual(len(sources), 1)
        self.assertEqual(sources[0].fee_or_tick, 3000)

    def test_scan_defaults(self):
        config = ScanConfig(make())

        self.assertEqual(config.scan.amount, Decimal(1))
        self.assertEqual(config.scan.batch_size, 10)
        self.assertEqual(config.scan.mode, ScanMode.ROUND_TRIP)
        self.assertEqual(config.scan.top_n, 10)
        self.assertEqual(config.scan.threshold_for(ScanMode.ROUND_TRIP), Decimal(1))
        self.assertEqual(config.analysis.max_rate_ratio, Decimal(100))
        self.assertEqual(config.retry.max_attempts, 3)
        self.assertEqual(config.retry.backoff_sec, 0.2)

    def test_scan_overrides(self):
        config = ScanConfig(
            make(scan={"mode": "price-difference", "min_spread_pct": 0.5, "batch_size": 25})
        )

        self.assertEqual(config.scan.mode, ScanMode.PRICE_DIFFERENCE)
        self.assertEqual(config.scan.threshold_for(config.scan.mode), Decimal("0.5"))
        self.assertEqual(config.scan.batch_size, 25)

    def test_find_pair_case_insensitive(self):
        config = ScanConfig(make())
        self.assertEqual(config.find_pair("whype/ubtc").name, "WHYPE/UBTC")
        with self.assertRaises(ConfigError):
            config.find_pair("NOPE/NOPE")


class TestRpcUrlResolution(unittest.TestCase):
    def test_env_var(self):
        config_dict = make(rpc_url_env="TEST_DEX_RPC")
        del config_dict["rpc_url"]
        with patch.dict(os.environ, {"TEST_DEX_RPC": "https://env.example.org"}):
            config = ScanConfig(config_dict)
        self.assertEqual(config.rpc_url, "https://env.example.org")

    def test_unset_env_var_uses_fallbacks(self):
        config_dict = make(
            rpc_url_env="TEST_DEX_RPC_UNSET", rpc_fallbacks=["https://fallback.example.org"]
        )
        del config_dict["rpc_url"]
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("TEST_DEX_RPC_UNSET", None)
            config = ScanConfig(config_dict)
        self.assertEqual(config.rpc_urls, ["https://fallback.example.org"])

    def test_no_endpoint_at_all(self):
        config_dict = make()
        del config_dict["rpc_url"]
        with self.assertRaises(ConfigError):
            ScanConfig(config_dict)


class TestScanConfigValidation(unittest.TestCase):
    """Invalid configs fail at load time."""

    def assertInvalid(self, **overrides):
        with self.assertRaises(ConfigError):
            ScanConfig(make(**overrides))

    def test_missing_venues(self):
        config_dict = make()
        del config_dict["venues"]
        with self.assertRaises(ConfigError):
            ScanConfig(config_dict)

    def test_invalid_kind(self):
        self.assertInvalid(venues={"x": {"kind": "v4", "router": "0x1"}})

    def test_v3_without_tiers(self):
        self.assertInvalid(venues={"x": {"kind": "v3", "quoter": "0x1"}})

    def test_no_active_venue(self):
        self.assertInvalid(
            venues={"x": {"kind": "v2", "router": "0x1", "status": "deprecated"}}
        )

    def test_empty_pairs(self):
        self.assertInvalid(pairs=[])

    def test_invalid_mode(self):
        self.assertInvalid(scan={"mode": "sideways"})

    def test_non_positive_amount(self):
        self.assertInvalid(scan={"amount": 0})

    def test_zero_batch_size(self):
        self.assertInvalid(scan={"batch_size": 0})

    def test_non_numeric_scan_values(self):
        for key, value in (
            ("batch_size", "ten"),
            ("amount", "one"),
            ("min_profit_pct", None),
            ("poll_sec", "soon"),
            ("amount", "NaN"),
        ):
            with self.subTest(key=key, value=value):
                with self.assertRaisesRegex(ConfigError, f"scan.{key}"):
                    ScanConfig(make(scan={key: value}))

    def test_non_numeric_token_decimals(self):
        tokens = {"WHYPE": {"address": "0xaaa", "decimals": "eighteen"}}
        with self.assertRaisesRegex(ConfigError, "tokens.WHYPE.decimals"):
            ScanConfig(make(tokens=tokens))

    def test_non_numeric_available_tier(self):
        pairs = [
            {"token_a": "WHYPE", "token_b": "UBTC", "available": {"hyperswap_v3": ["x"]}}
        ]
        with self.assertRaises(ConfigError):
            ScanConfig(make(pairs=pairs))

    def test_non_numeric_analysis_and_retry(self):
        self.assertInvalid(analysis={"max_rate_ratio": "big"})
        self.assertInvalid(retry={"max_attempts": "three"})
        self.assertInvalid(request_timeout_sec="slow")

    def test_unknown_venue_fails_per_pair(self):
        pairs = [
            {"token_a": "WHYPE", "token_b": "UBTC", "available": {"missing_v2": True}}
        ]
        config = ScanConfig(make(pairs=pairs))
        with self.assertRaises(ConfigError):
            config.sources_for(config.pairs[0])

    def test_unknown_tier_fails_per_pair(self):
        pairs = [
            {"token_a": "WHYPE", "token_b": "UBTC", "available": {"hyperswap_v3": [100]}}
        ]
        config = ScanConfig(make(pairs=pairs))
        with self.assertRaises(ConfigError):
            config.sources_for(config.pairs[0])


class TestParseMode:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("round-trip", ScanMode.ROUND_TRIP),
            ("ROUND_TRIP", ScanMode.ROUND_TRIP),
            ("price-difference", ScanMode.PRICE_DIFFERENCE),
            (ScanMode.PRICE_DIFFERENCE, ScanMode.PRICE_DIFFERENCE),
        ],
    )
    def test_aliases(self, value, expected):
        assert parse_mode(value) is expected


class TestLoadConfig:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "scan.yaml"
        path.write_text(
            """
rpc_url: https://rpc.example.org
venues:
  hyperswap_v2:
    kind: v2
    router: "0xrouter"
tokens:
  WHYPE: {address: "0xaaa", decimals: 18}
  UBTC: {address: "0xbbb", decimals: 8}
pairs:
  - {token_a: WHYPE, token_b: UBTC, category: cross-dex}
scan:
  batch_size: 5
"""
        )
        config = load_config(str(path))

        assert config.venues["hyperswap_v2"].dex == "hyperswap"
        assert config.pairs[0].category == "cross-dex"
        assert config.scan.batch_size == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "missing.yaml"))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_bad_value_in_yaml_is_config_error(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text(
            """
rpc_url: https://rpc.example.org
venues:
  hyperswap_v2: {kind: v2, router: "0xrouter"}
pairs:
  - {token_a: "0x1", token_b: "0x2"}
scan:
  batch_size: ten
"""
        )
        with pytest.raises(ConfigError, match="scan.batch_size"):
            load_config(str(path))

    def test_bundled_config_loads(self):
        root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
        config = load_config(os.path.join(root, "configs", "hyperevm.yaml"))

        assert config.rpc_urls
        assert config.pairs
        for pair in config.pairs:
            assert config.sources_for(pair)
