"""
Configuration loading and validation for the DEX quote scanner.
"""

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .adapters import (
    DEFAULT_V2_GAS,
    DEFAULT_V3_GAS,
    PARAM_STYLE_FEE,
    PARAM_STYLE_TICK_SPACING,
    ConcentratedLiquiditySource,
    ConstantProductSource,
    LiquiditySource,
)
from .exceptions import ConfigError
from .types import ScanMode, TokenPair, TokenRef

__all__ = [
    "AnalysisSettings",
    "ConfigError",
    "RetrySettings",
    "ScanConfig",
    "ScanSettings",
    "VenueConfig",
    "load_config",
    "parse_mode",
]

VENUE_STATUSES = ("active", "deprecated", "testing")

_MODE_ALIASES = {
    "price_difference": ScanMode.PRICE_DIFFERENCE,
    "price-difference": ScanMode.PRICE_DIFFERENCE,
    "round_trip": ScanMode.ROUND_TRIP,
    "round-trip": ScanMode.ROUND_TRIP,
}


def _to_decimal(value: Any) -> Decimal:
    number = Decimal(str(value))
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value}")
    return number


def _convert(convert, value: Any, field: str) -> Any:
    """Apply a type conversion, reporting bad values as ConfigError."""
    try:
        return convert(value)
    except (TypeError, ValueError, ArithmeticError) as e:
        raise ConfigError(f"Config field '{field}' has invalid value {value!r}") from e


def parse_mode(value: Any) -> ScanMode:
    """Parse a scan mode name ("round-trip", "price_difference", ...)."""
    if isinstance(value, ScanMode):
        return value
    mode = _MODE_ALIASES.get(str(value).strip().lower())
    if mode is None:
        raise ConfigError(
            f"Invalid scan mode '{value}' (must be price-difference or round-trip)"
        )
    return mode


@dataclass(frozen=True)
class AnalysisSettings:
    """Noise filters applied to quoted rates before comparison."""

    rate_epsilon: Decimal = Decimal("0.000001")
    min_output: Decimal = Decimal("0.000001")
    max_rate_ratio: Decimal = Decimal(100)
    max_spread_pct: Decimal = Decimal(100)


@dataclass(frozen=True)
class RetrySettings:
    """Bounded retry for transient lock contention on V3 quoters."""

    max_attempts: int = 3
    backoff_sec: float = 0.2


@dataclass(frozen=True)
class ScanSettings:
    """
    Default scan parameters; CLI flags override these per run.

    Attributes:
        amount: Nominal input amount in human units of the input token
        min_spread_pct: Threshold for price-difference mode (%)
        min_profit_pct: Threshold for round-trip mode (%)
        batch_size: Pairs scanned concurrently per batch
        mode: Default scan mode
        top_n: Number of top opportunities kept on the ScanRun
        poll_sec: Seconds between repeated scans
        once: If True, run a single scan and exit
        max_workers: Thread pool size for blocking RPC calls
        call_timeout_sec: Upper bound for one quote call
    """

    amount: Decimal = Decimal(1)
    min_spread_pct: Decimal = Decimal(1)
    min_profit_pct: Decimal = Decimal(1)
    batch_size: int = 10
    mode: ScanMode = ScanMode.ROUND_TRIP
    top_n: int = 10
    poll_sec: float = 30.0
    once: bool = True
    max_workers: int = 16
    call_timeout_sec: float = 15.0

    def threshold_for(self, mode: ScanMode) -> Decimal:
        if mode is ScanMode.PRICE_DIFFERENCE:
            return self.min_spread_pct
        return self.min_profit_pct


@dataclass(frozen=True)
class VenueConfig:
    """
    One configured venue (a router or quoter contract).

    Attributes:
        venue_id: Key under `venues:` (e.g. "hyperswap_v3")
        dex: DEX family name
        kind: "v2" or "v3"
        address: Router (v2) or quoter (v3) address
        params: Fee tiers or tick spacings (v3 only)
        param_style: "fee" or "tick_spacing" (v3 only)
        status: active / deprecated / testing; only active venues are quoted
        gas_estimate: Static gas estimate for the venue
    """

    venue_id: str
    dex: str
    kind: str
    address: str
    params: Tuple[int, ...] = ()
    param_style: str = PARAM_STYLE_FEE
    status: str = "active"
    gas_estimate: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.status == "active"

    def sources(self, params: Optional[Tuple[int, ...]] = None) -> List[LiquiditySource]:
        """
        Expand the venue into quotable sources.

        Args:
            params: Subset of fee tiers / tick spacings to use (None = all)

        Raises:
            ConfigError: If a requested tier is not configured for the venue
        """
        if self.kind == "v2":
            return [
                ConstantProductSource(
                    venue_id=self.venue_id,
                    dex=self.dex,
                    address=self.address,
                    gas_estimate=self.gas_estimate or DEFAULT_V2_GAS,
                )
            ]

        selected = self.params if params is None else params
        unknown = [p for p in selected if p not in self.params]
        if unknown:
            raise ConfigError(
                f"Venue '{self.venue_id}' has no {self.param_style} {unknown} configured"
            )

        return [
            ConcentratedLiquiditySource(
                venue_id=self.venue_id,
                dex=self.dex,
                address=self.address,
                fee_or_tick=param,
                param_style=self.param_style,
                gas_estimate=self.gas_estimate or DEFAULT_V3_GAS,
            )
            for param in selected
        ]


class ScanConfig:
    """
    Parsed and validated configuration for the quote scanner.

    Attributes:
        network: Network name for display
        chain_id: Expected chain id
        rpc_url: Primary HTTP(S) RPC endpoint
        rpc_fallbacks: Endpoints tried after rpc_url
        request_timeout_sec: HTTP timeout for each RPC request
        venues: Dict of {venue_id -> VenueConfig}
        tokens: Dict of {symbol -> TokenRef} preloaded into the metadata cache
        pairs: List of TokenPair in scan order
        scan: ScanSettings
        analysis: AnalysisSettings
        retry: RetrySettings
    """

    def __init__(self, config_dict: Dict[str, Any]):
        """
        Parse and validate config from dictionary.

        Args:
            config_dict: Loaded YAML config

        Raises:
            ConfigError: If required fields missing or invalid
        """
        # Network
        self.network: str = config_dict.get("network", "hyperevm")
        self.chain_id: Optional[int] = config_dict.get("chain_id")
        self.rpc_url: str = self._parse_rpc_url(config_dict)
        fallbacks = config_dict.get("rpc_fallbacks", []) or []
        if not isinstance(fallbacks, list):
            raise ConfigError("rpc_fallbacks must be a list")
        self.rpc_fallbacks: List[str] = [str(u) for u in fallbacks]
        if not self.rpc_url and not self.rpc_fallbacks:
            raise ConfigError(
                "Missing required config field: rpc_url (or rpc_url_env / rpc_fallbacks)"
            )
        self.request_timeout_sec: float = _convert(
            float, config_dict.get("request_timeout_sec", 10), "request_timeout_sec"
        )

        # Venues and tokens
        self.venues: Dict[str, VenueConfig] = self._parse_venues(
            self._get_required(config_dict, "venues", dict)
        )
        if not any(v.active for v in self.venues.values()):
            raise ConfigError("At least one active venue must be configured")

        self.tokens: Dict[str, TokenRef] = self._parse_tokens(
            config_dict.get("tokens", {}) or {}
        )

        # Pairs
        self.pairs: List[TokenPair] = self._parse_pairs(
            self._get_required(config_dict, "pairs", list), self.tokens
        )

        # Scan / analysis / retry settings
        self.scan: ScanSettings = self._parse_scan(config_dict.get("scan", {}) or {})
        self.analysis: AnalysisSettings = self._parse_analysis(
            config_dict.get("analysis", {}) or {}
        )
        self.retry: RetrySettings = self._parse_retry(config_dict.get("retry", {}) or {})

    @property
    def rpc_urls(self) -> List[str]:
        """Primary endpoint followed by fallbacks, without duplicates."""
        urls = []
        for url in [self.rpc_url] + self.rpc_fallbacks:
            if url and url not in urls:
                urls.append(url)
        return urls

    @property
    def active_venues(self) -> List[VenueConfig]:
        return [v for v in self.venues.values() if v.active]

    def find_pair(self, name: str) -> TokenPair:
        """Look up a pair by name (case-insensitive)."""
        for pair in self.pairs:
            if pair.name.lower() == name.lower():
                return pair
        raise ConfigError(f"Pair '{name}' not found in config")

    def sources_for(self, pair: TokenPair) -> Tuple[LiquiditySource, ...]:
        """
        Resolve the immutable source set for a pair.

        Resolved lazily so a bad venue reference fails only that pair.

        Raises:
            ConfigError: If the pair references an unknown venue or tier
        """
        if pair.available is None:
            sources: List[LiquiditySource] = []
            for venue in self.active_venues:
                sources.extend(venue.sources())
            return tuple(sources)

        sources = []
        for venue_id, params in pair.available:
            venue = self.venues.get(venue_id)
            if venue is None:
                raise ConfigError(
                    f"Pair '{pair.name}' references unknown venue '{venue_id}'"
                )
            if not venue.active:
                continue
            sources.extend(venue.sources(params))
        return tuple(sources)

    @staticmethod
    def _get_required(d: Dict, key: str, expected_type: type) -> Any:
        """Get required config field with type validation."""
        if key not in d:
            raise ConfigError(f"Missing required config field: {key}")
        val = d[key]
        if not isinstance(val, expected_type):
            raise ConfigError(
                f"Config field '{key}' must be {expected_type.__name__}, got {type(val).__name__}"
            )
        return val

    @staticmethod
    def _parse_rpc_url(config_dict: Dict[str, Any]) -> str:
        """rpc_url wins; otherwise read the env var named by rpc_url_env."""
        rpc_url = config_dict.get("rpc_url")
        if rpc_url:
            return str(rpc_url)

        env_name = config_dict.get("rpc_url_env")
        if env_name:
            return os.environ.get(str(env_name), "")
        return ""

    @staticmethod
    def _parse_venues(venues_raw: Dict[str, Any]) -> Dict[str, VenueConfig]:
        """Parse and validate venues config."""
        venues = {}
        for venue_id, info in venues_raw.items():
            if not isinstance(info, dict):
                raise ConfigError(f"Venue '{venue_id}' config must be a dict")

            kind = info.get("kind", "v2")
            if kind not in ["v2", "v3"]:
                raise ConfigError(
                    f"Venue '{venue_id}' has invalid kind '{kind}' (must be v2 or v3)"
                )

            status = info.get("status", "active")
            if status not in VENUE_STATUSES:
                raise ConfigError(
                    f"Venue '{venue_id}' has invalid status '{status}'"
                )

            dex = info.get("dex") or str(venue_id).split("_")[0]
            address_key = "router" if kind == "v2" else "quoter"
            address = info.get(address_key) or info.get("address")
            if not address:
                raise ConfigError(f"Venue '{venue_id}' missing '{address_key}'")

            params: Tuple[int, ...] = ()
            param_style = info.get("param_style")
            if kind == "v3":
                if "tick_spacings" in info:
                    raw_params = info["tick_spacings"]
                    param_style = param_style or PARAM_STYLE_TICK_SPACING
                else:
                    raw_params = info.get("fee_tiers")
                    param_style = param_style or PARAM_STYLE_FEE
                if not isinstance(raw_params, list) or not raw_params:
                    raise ConfigError(
                        f"Venue '{venue_id}' needs a non-empty fee_tiers or tick_spacings list"
                    )
                if param_style not in (PARAM_STYLE_FEE, PARAM_STYLE_TICK_SPACING):
                    raise ConfigError(
                        f"Venue '{venue_id}' has invalid param_style '{param_style}'"
                    )
                try:
                    params = tuple(int(p) for p in raw_params)
                except (TypeError, ValueError) as e:
                    raise ConfigError(
                        f"Venue '{venue_id}' has non-integer tier: {e}"
                    ) from e

            gas = info.get("gas_estimate")
            venues[venue_id] = VenueConfig(
                venue_id=str(venue_id),
                dex=str(dex),
                kind=kind,
                address=str(address),
                params=params,
                param_style=param_style or PARAM_STYLE_FEE,
                status=status,
                gas_estimate=(
                    _convert(int, gas, f"venues.{venue_id}.gas_estimate")
                    if gas is not None
                    else None
                ),
            )
        return venues

    @staticmethod
    def _parse_tokens(tokens_raw: Dict[str, Any]) -> Dict[str, TokenRef]:
        """Parse and validate tokens config."""
        tokens = {}
        for symbol, info in tokens_raw.items():
            if not isinstance(info, dict):
                raise ConfigError(f"Token '{symbol}' config must be a dict")
            if "address" not in info:
                raise ConfigError(f"Token '{symbol}' missing 'address'")
            if "decimals" not in info:
                raise ConfigError(f"Token '{symbol}' missing 'decimals'")

            tokens[symbol] = TokenRef(
                address=str(info["address"]),
                symbol=str(symbol),
                decimals=_convert(int, info["decimals"], f"tokens.{symbol}.decimals"),
                name=str(info.get("name", symbol)),
            )
        return tokens

    @staticmethod
    def _parse_pairs(
        pairs_raw: List[Any], tokens: Dict[str, TokenRef]
    ) -> List[TokenPair]:
        """
        Parse pairs config. token_a / token_b may be a symbol from `tokens:`
        or a raw address. Venue ids in `available` are validated later,
        per pair, by sources_for().
        """

        def resolve(value: Any) -> str:
            value = str(value)
            if value in tokens:
                return tokens[value].address
            return value

        pairs = []
        for i, pair in enumerate(pairs_raw):
            if not isinstance(pair, dict):
                raise ConfigError(f"Pair config {i} must be a dict")

            token_a = pair.get("token_a")
            token_b = pair.get("token_b")
            if not token_a or not token_b:
                raise ConfigError(
                    f"Pair config {i} missing required fields (token_a, token_b)"
                )

            name = pair.get("name") or f"{token_a}/{token_b}"

            available = None
            available_raw = pair.get("available")
            if available_raw is not None:
                if not isinstance(available_raw, dict):
                    raise ConfigError(f"Pair '{name}' available must be a dict")
                entries = []
                for venue_id, tiers in available_raw.items():
                    if tiers is False or tiers is None:
                        continue
                    if tiers is True:
                        entries.append((str(venue_id), None))
                    elif isinstance(tiers, list):
                        entries.append(
                            (
                                str(venue_id),
                                tuple(
                                    _convert(int, t, f"pairs.{name}.available.{venue_id}")
                                    for t in tiers
                                ),
                            )
                        )
                    else:
                        raise ConfigError(
                            f"Pair '{name}' venue '{venue_id}' must be true or a list of tiers"
                        )
                available = tuple(entries)

            pairs.append(
                TokenPair(
                    name=str(name),
                    token_a=resolve(token_a),
                    token_b=resolve(token_b),
                    category=str(pair.get("category", "")),
                    available=available,
                )
            )

        if not pairs:
            raise ConfigError("At least one pair must be configured")
        return pairs

    @staticmethod
    def _parse_scan(scan_raw: Dict[str, Any]) -> ScanSettings:
        """Parse scan defaults."""
        defaults = ScanSettings()

        def field(key: str, convert):
            return _convert(convert, scan_raw.get(key, getattr(defaults, key)), f"scan.{key}")

        settings = ScanSettings(
            amount=field("amount", _to_decimal),
            min_spread_pct=field("min_spread_pct", _to_decimal),
            min_profit_pct=field("min_profit_pct", _to_decimal),
            batch_size=field("batch_size", int),
            mode=parse_mode(scan_raw.get("mode", defaults.mode)),
            top_n=field("top_n", int),
            poll_sec=field("poll_sec", float),
            once=bool(scan_raw.get("once", defaults.once)),
            max_workers=field("max_workers", int),
            call_timeout_sec=field("call_timeout_sec", float),
        )

        if settings.amount <= 0:
            raise ConfigError(f"scan.amount must be positive, got {settings.amount}")
        if settings.batch_size < 1:
            raise ConfigError(
                f"scan.batch_size must be >= 1, got {settings.batch_size}"
            )
        if settings.max_workers < 1:
            raise ConfigError(
                f"scan.max_workers must be >= 1, got {settings.max_workers}"
            )
        if settings.call_timeout_sec <= 0:
            raise ConfigError("scan.call_timeout_sec must be positive")
        return settings

    @staticmethod
    def _parse_analysis(analysis_raw: Dict[str, Any]) -> AnalysisSettings:
        """Parse rate noise filters."""
        defaults = AnalysisSettings()
        settings = AnalysisSettings(
            **{
                key: _convert(
                    _to_decimal,
                    analysis_raw.get(key, getattr(defaults, key)),
                    f"analysis.{key}",
                )
                for key in (
                    "rate_epsilon",
                    "min_output",
                    "max_rate_ratio",
                    "max_spread_pct",
                )
            }
        )
        if settings.max_rate_ratio <= 1:
            raise ConfigError("analysis.max_rate_ratio must be greater than 1")
        return settings

    @staticmethod
    def _parse_retry(retry_raw: Dict[str, Any]) -> RetrySettings:
        """Parse lock-contention retry settings."""
        settings = RetrySettings(
            max_attempts=_convert(
                int, retry_raw.get("max_attempts", 3), "retry.max_attempts"
            ),
            backoff_sec=_convert(
                float, retry_raw.get("backoff_sec", 0.2), "retry.backoff_sec"
            ),
        )
        if settings.max_attempts < 1:
            raise ConfigError("retry.max_attempts must be >= 1")
        if settings.backoff_sec < 0:
            raise ConfigError("retry.backoff_sec must not be negative")
        return settings


def load_config(config_path: str) -> ScanConfig:
    """
    Load and validate config from YAML file.

    Args:
        config_path: Path to config YAML file

    Returns:
        Validated ScanConfig instance

    Raises:
        ConfigError: If config invalid or file not found
    """
    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {e}") from e

    if not isinstance(config_dict, dict):
        raise ConfigError("Config file must contain a YAML dictionary")

    return ScanConfig(config_dict)
