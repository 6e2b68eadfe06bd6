"""
Core data types for DEX quote aggregation and arbitrage scanning.

All result types are value objects created fresh per scan and never
mutated; to_dict() gives plain structures for external reporting.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .adapters.base import LiquiditySource, ProtocolKind
from .quote_errors import QuoteErrorKind

__all__ = [
    "BidirectionalCheck",
    "Direction",
    "DirectionSummary",
    "ExecutionStatus",
    "LiquiditySource",
    "PairScanResult",
    "ProgressEvent",
    "ProtocolKind",
    "Quote",
    "QuoteRequest",
    "RoundTripReport",
    "RoundTripResult",
    "ScanMode",
    "ScanRun",
    "SpreadOpportunity",
    "TokenPair",
    "TokenRef",
]

UNKNOWN_SYMBOL = "UNKNOWN"
UNKNOWN_NAME = "Unknown Token"
DEFAULT_DECIMALS = 18


class Direction(Enum):
    FORWARD = "A→B"
    REVERSE = "B→A"


class ScanMode(Enum):
    PRICE_DIFFERENCE = "price_difference"
    ROUND_TRIP = "round_trip"


class ExecutionStatus(Enum):
    SUCCESS = "success"
    FAILED_AT_SELL = "failed_at_sell"


@dataclass(frozen=True)
class TokenRef:
    """
    Token metadata. Placeholder values are used when resolution fails, so
    callers must tolerate symbol "UNKNOWN" and the 18-decimals default.
    """

    address: str
    symbol: str = UNKNOWN_SYMBOL
    decimals: int = DEFAULT_DECIMALS
    name: str = UNKNOWN_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "name": self.name,
        }


@dataclass(frozen=True)
class TokenPair:
    """
    One scannable token pair from configuration.

    Attributes:
        name: Display name (e.g. "WHYPE/USDT0")
        token_a: Address of the base token (input of the forward leg)
        token_b: Address of the quote token
        category: Free-form tag from config (e.g. "cross-dex")
        available: venue_id -> None (all configured tiers) or a tuple of tiers;
            None means every active venue is assumed available
    """

    name: str
    token_a: str
    token_b: str
    category: str = ""
    available: Optional[Tuple[Tuple[str, Optional[Tuple[int, ...]]], ...]] = None

    def reversed(self) -> "TokenPair":
        base, quote = self.name.split("/", 1) if "/" in self.name else (self.name, "")
        name = f"{quote}/{base}" if quote else self.name
        return TokenPair(
            name=name,
            token_a=self.token_b,
            token_b=self.token_a,
            category=self.category,
            available=self.available,
        )


@dataclass(frozen=True)
class QuoteRequest:
    source: LiquiditySource
    token_in: TokenRef
    token_out: TokenRef
    amount_in: int


@dataclass(frozen=True)
class Quote:
    """
    Result of one QuoteRequest.

    amount_in / amount_out are the raw amounts scaled by token decimals.
    rate = amount_out / amount_in (formatted), None when success is False.
    """

    source: LiquiditySource
    token_in: TokenRef
    token_out: TokenRef
    amount_in_raw: int
    amount_out_raw: int
    amount_in: Decimal
    amount_out: Decimal
    rate: Optional[Decimal]
    gas_estimate: int
    success: bool
    error_kind: Optional[QuoteErrorKind] = None
    exclusion_reason: Optional[str] = None

    @property
    def label(self) -> str:
        return self.source.label

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.label,
            "dex": self.source.dex,
            "protocol": self.source.kind.value,
            "param": self.source.param,
            "token_in": self.token_in.symbol,
            "token_out": self.token_out.symbol,
            "amount_in_raw": str(self.amount_in_raw),
            "amount_out_raw": str(self.amount_out_raw),
            "amount_in": float(self.amount_in),
            "amount_out": float(self.amount_out),
            "rate": float(self.rate) if self.rate is not None else None,
            "gas_estimate": self.gas_estimate,
            "success": self.success,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "exclusion_reason": self.exclusion_reason,
        }


@dataclass(frozen=True)
class SpreadOpportunity:
    """
    Same-direction price difference between two venues.

    Buying on buy_source (lower rate) and comparing with sell_source (higher
    rate). sell_source is None only for the single-venue informational row.
    """

    pair: str
    buy_source: LiquiditySource
    sell_source: Optional[LiquiditySource]
    buy_rate: Decimal
    sell_rate: Decimal
    spread_pct: Decimal
    cross_venue: bool
    estimated_gas: int

    @property
    def score(self) -> Decimal:
        return self.spread_pct

    @property
    def label(self) -> str:
        sell = self.sell_source.label if self.sell_source else "N/A"
        return f"{self.buy_source.label} → {sell}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "buy_source": self.buy_source.label,
            "sell_source": self.sell_source.label if self.sell_source else None,
            "buy_rate": float(self.buy_rate),
            "sell_rate": float(self.sell_rate),
            "spread_pct": float(self.spread_pct),
            "cross_venue": self.cross_venue,
            "estimated_gas": self.estimated_gas,
        }


@dataclass(frozen=True)
class RoundTripResult:
    """
    Simulated A→B→A round trip through two venues.

    intermediate_amount_raw is the measured output of the buy leg and is
    exactly what was fed into the sell leg; final_amount is the sell leg's
    quoted output (0 when the sell leg failed).
    """

    pair: str
    buy_source: LiquiditySource
    sell_source: LiquiditySource
    initial_amount: Decimal
    intermediate_amount: Decimal
    intermediate_amount_raw: int
    final_amount: Decimal
    profit: Decimal
    profit_pct: Decimal
    execution_status: ExecutionStatus
    buy_rate: Decimal
    sell_rate: Optional[Decimal]
    cross_venue: bool
    estimated_gas: int
    failure_reason: Optional[str] = None

    @property
    def score(self) -> Decimal:
        return self.profit_pct

    @property
    def label(self) -> str:
        return f"{self.buy_source.label} + {self.sell_source.label}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "buy_source": self.buy_source.label,
            "sell_source": self.sell_source.label,
            "initial_amount": float(self.initial_amount),
            "intermediate_amount": float(self.intermediate_amount),
            "final_amount": float(self.final_amount),
            "profit": float(self.profit),
            "profit_pct": float(self.profit_pct),
            "execution_status": self.execution_status.value,
            "failure_reason": self.failure_reason,
            "buy_rate": float(self.buy_rate),
            "sell_rate": float(self.sell_rate) if self.sell_rate is not None else None,
            "cross_venue": self.cross_venue,
            "estimated_gas": self.estimated_gas,
        }


@dataclass(frozen=True)
class RoundTripReport:
    """All round-trip executions for one pair plus the profitable subset."""

    opportunities: List[RoundTripResult]
    executions: List[RoundTripResult]
    exclusions: List[str]
    forward_quotes: List[Quote]
    reverse_quotes: List[Quote]
    best_combination: str = "N/A"
    worst_combination: str = "N/A"


@dataclass(frozen=True)
class PairScanResult:
    """Everything found for one token pair in one scan."""

    pair: str
    mode: ScanMode
    has_opportunity: bool
    top_metric: Decimal = Decimal(0)
    opportunities: List[Any] = field(default_factory=list)
    combinations: List[Any] = field(default_factory=list)
    quotes: List[Quote] = field(default_factory=list)
    reverse_quotes: List[Quote] = field(default_factory=list)
    exclusions: List[str] = field(default_factory=list)
    best_source: str = "N/A"
    worst_source: str = "N/A"
    valid_sources: int = 0
    configured_sources: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "mode": self.mode.value,
            "has_opportunity": self.has_opportunity,
            "top_metric": float(self.top_metric),
            "opportunities": [o.to_dict() for o in self.opportunities],
            "combinations": [c.to_dict() for c in self.combinations],
            "quotes": [q.to_dict() for q in self.quotes],
            "reverse_quotes": [q.to_dict() for q in self.reverse_quotes],
            "exclusions": list(self.exclusions),
            "best_source": self.best_source,
            "worst_source": self.worst_source,
            "valid_sources": self.valid_sources,
            "configured_sources": self.configured_sources,
            "error": self.error,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted once per completed batch; never revised."""

    batch_index: int
    processed: int
    total: int
    batch_opportunities: int
    opportunities_found: int

    @property
    def progress_pct(self) -> float:
        if self.total == 0:
            return 100.0
        return self.processed / self.total * 100.0


@dataclass(frozen=True)
class ScanRun:
    """Aggregate of one full scan over the configured pair universe."""

    mode: ScanMode
    threshold_pct: Decimal
    batch_size: int
    started_at: float
    duration_sec: float
    total_pairs: int
    opportunity_count: int
    success_rate: float
    results: List[PairScanResult]
    progress: List[ProgressEvent]
    top_opportunities: List[Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "threshold_pct": float(self.threshold_pct),
            "batch_size": self.batch_size,
            "started_at": self.started_at,
            "duration_sec": self.duration_sec,
            "total_pairs": self.total_pairs,
            "opportunity_count": self.opportunity_count,
            "success_rate": self.success_rate,
            "top_opportunities": [o.to_dict() for o in self.top_opportunities],
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class DirectionSummary:
    """Quotes and same-direction spreads for one direction of a pair."""

    direction: Direction
    quotes: List[Quote]
    exclusions: List[str]
    opportunities: List[SpreadOpportunity]
    best_source: str = "N/A"
    worst_source: str = "N/A"
    best_rate: Optional[Decimal] = None
    worst_rate: Optional[Decimal] = None
    spread_pct: Decimal = Decimal(0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "quotes": [q.to_dict() for q in self.quotes],
            "exclusions": list(self.exclusions),
            "opportunities": [o.to_dict() for o in self.opportunities],
            "best_source": self.best_source,
            "worst_source": self.worst_source,
            "best_rate": float(self.best_rate) if self.best_rate is not None else None,
            "worst_rate": float(self.worst_rate) if self.worst_rate is not None else None,
            "spread_pct": float(self.spread_pct),
        }


@dataclass(frozen=True)
class BidirectionalCheck:
    """Single-pair diagnostic: both directions quoted at the same nominal amount."""

    pair: str
    amount: Decimal
    forward: DirectionSummary
    reverse: DirectionSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "amount": float(self.amount),
            "forward": self.forward.to_dict(),
            "reverse": self.reverse.to_dict(),
        }
