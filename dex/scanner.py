"""
Batch scanner.

Scans a universe of token pairs in fixed-size batches: pairs within a batch
run concurrently, batches run one after another, and a progress event is
emitted after each batch. A failing pair is recorded and never stops the run.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .aggregator import QuoteAggregator
from .config import ScanConfig
from .quote_client import QuoteClient
from .round_trip import ArbitrageSimulator
from .spread import all_combinations, best_and_worst, find_price_differences, usable_quotes
from .token_cache import TokenMetadataCache
from .types import (
    BidirectionalCheck,
    Direction,
    DirectionSummary,
    PairScanResult,
    ProgressEvent,
    ScanMode,
    ScanRun,
    TokenPair,
)
from .utils import (
    calculate_percentage,
    format_duration,
    format_pct,
    get_current_timestamp,
    get_logger,
)

logger = get_logger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]
Amount = Union[Decimal, int, float, str]


class BatchScanner:
    """
    Scans configured pairs for price differences or round-trip arbitrage.

    Args:
        config: Validated ScanConfig
        aggregator: QuoteAggregator wired to a chain
        simulator: ArbitrageSimulator; built from the aggregator when omitted
    """

    def __init__(
        self,
        config: ScanConfig,
        aggregator: QuoteAggregator,
        simulator: Optional[ArbitrageSimulator] = None,
    ):
        self.config = config
        self.aggregator = aggregator
        self.simulator = simulator or ArbitrageSimulator(aggregator, config.analysis)
        self._executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def from_chain(cls, config: ScanConfig, chain) -> "BatchScanner":
        """
        Wire the full quote pipeline over a connected ChainClient.

        Token metadata declared in config is preloaded; the quote client and
        token cache share one bounded thread pool.
        """
        executor = ThreadPoolExecutor(
            max_workers=config.scan.max_workers, thread_name_prefix="quote"
        )
        tokens = TokenMetadataCache(chain, executor=executor)
        for token in config.tokens.values():
            tokens.preload(token)

        client = QuoteClient(
            chain,
            executor=executor,
            call_timeout_sec=config.scan.call_timeout_sec,
            max_attempts=config.retry.max_attempts,
            backoff_sec=config.retry.backoff_sec,
        )
        scanner = cls(config, QuoteAggregator(client, tokens))
        scanner._executor = executor
        return scanner

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    async def scan_pair(
        self,
        pair: TokenPair,
        mode: ScanMode,
        amount: Amount,
        threshold: Amount,
    ) -> PairScanResult:
        """
        Scan one pair in the given mode.

        Raises:
            ConfigError: If the pair references an unknown venue or tier
        """
        sources = self.config.sources_for(pair)
        threshold = Decimal(str(threshold))

        if mode is ScanMode.PRICE_DIFFERENCE:
            return await self._scan_price_difference(pair, sources, amount, threshold)
        return await self._scan_round_trip(pair, sources, amount, threshold)

    async def _scan_price_difference(
        self, pair: TokenPair, sources, amount: Amount, threshold: Decimal
    ) -> PairScanResult:
        quotes, exclusions = await self.aggregator.fetch_all(
            pair, Direction.FORWARD, amount, sources
        )
        opportunities = find_price_differences(
            quotes, threshold, self.config.analysis, pair=pair.name
        )
        usable = usable_quotes(quotes, self.config.analysis)
        best, worst = best_and_worst(usable)

        return PairScanResult(
            pair=pair.name,
            mode=ScanMode.PRICE_DIFFERENCE,
            has_opportunity=bool(opportunities),
            top_metric=opportunities[0].spread_pct if opportunities else Decimal(0),
            opportunities=opportunities,
            combinations=all_combinations(quotes, pair=pair.name),
            quotes=quotes,
            exclusions=exclusions,
            best_source=best.label if best else "N/A",
            worst_source=worst.label if worst else "N/A",
            valid_sources=len(usable),
            configured_sources=len(sources),
        )

    async def _scan_round_trip(
        self, pair: TokenPair, sources, amount: Amount, threshold: Decimal
    ) -> PairScanResult:
        report = await self.simulator.simulate_round_trips(
            pair, sources, amount, threshold
        )
        opportunities = report.opportunities
        analysis = self.config.analysis

        # Both directions count: quotes over twice the configured sources
        return PairScanResult(
            pair=pair.name,
            mode=ScanMode.ROUND_TRIP,
            has_opportunity=bool(opportunities),
            top_metric=opportunities[0].profit_pct if opportunities else Decimal(0),
            opportunities=opportunities,
            combinations=report.executions,
            quotes=report.forward_quotes,
            reverse_quotes=report.reverse_quotes,
            exclusions=report.exclusions,
            best_source=report.best_combination,
            worst_source=report.worst_combination,
            valid_sources=len(usable_quotes(report.forward_quotes, analysis))
            + len(usable_quotes(report.reverse_quotes, analysis)),
            configured_sources=len(sources) * 2,
        )

    async def _scan_isolated(
        self, pair: TokenPair, mode: ScanMode, amount: Amount, threshold: Decimal
    ) -> PairScanResult:
        try:
            return await self.scan_pair(pair, mode, amount, threshold)
        except Exception as e:
            logger.warning(f"Pair {pair.name} failed: {e}")
            return PairScanResult(
                pair=pair.name, mode=mode, has_opportunity=False, error=str(e)
            )

    async def run(
        self,
        pairs: Optional[Sequence[TokenPair]] = None,
        batch_size: Optional[int] = None,
        mode: Optional[ScanMode] = None,
        min_threshold: Optional[Amount] = None,
        amount: Optional[Amount] = None,
        top_n: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ScanRun:
        """
        Scan every pair in batches and aggregate the results.

        Any argument left as None falls back to the `scan:` config defaults;
        the threshold default depends on the mode (spread % or profit %).

        Args:
            pairs: Pairs to scan in order (default: all configured pairs)
            batch_size: Pairs scanned concurrently per batch
            mode: PRICE_DIFFERENCE or ROUND_TRIP
            min_threshold: Minimum spread % / profit % for an opportunity
            amount: Nominal input amount (human units)
            top_n: Number of top opportunities to keep on the ScanRun
            on_progress: Called with each ProgressEvent after its batch

        Returns:
            ScanRun with results in pair order
        """
        settings = self.config.scan
        pairs = list(self.config.pairs if pairs is None else pairs)
        batch_size = settings.batch_size if batch_size is None else batch_size
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1: {batch_size}")
        mode = mode or settings.mode
        threshold = Decimal(
            str(settings.threshold_for(mode) if min_threshold is None else min_threshold)
        )
        amount = settings.amount if amount is None else amount
        top_n = settings.top_n if top_n is None else top_n

        total = len(pairs)
        logger.info(
            f"Scanning {total} pairs ({mode.value}, threshold {threshold}%, "
            f"batch size {batch_size})"
        )

        started_at = get_current_timestamp()
        results: List[PairScanResult] = []
        progress: List[ProgressEvent] = []
        found = 0

        for batch_index, start in enumerate(range(0, total, batch_size)):
            batch = pairs[start : start + batch_size]
            batch_results = await asyncio.gather(
                *(self._scan_isolated(p, mode, amount, threshold) for p in batch)
            )
            results.extend(batch_results)

            hits = [r for r in batch_results if r.has_opportunity and not r.error]
            found += len(hits)
            event = ProgressEvent(
                batch_index=batch_index,
                processed=len(results),
                total=total,
                batch_opportunities=len(hits),
                opportunities_found=found,
            )
            progress.append(event)

            logger.info(
                f"Progress: {event.progress_pct:.1f}% ({event.processed}/{total}) "
                f"- opportunities: {len(hits)}"
            )
            for hit in hits:
                logger.info(f"   {hit.pair}: {format_pct(hit.top_metric)}")

            if on_progress is not None:
                on_progress(event)

        duration = get_current_timestamp() - started_at
        opportunity_count = sum(1 for r in results if r.has_opportunity)
        success_rate = opportunity_count / total * 100.0 if total else 0.0

        ranked = [o for r in results for o in r.opportunities]
        ranked.sort(key=lambda o: o.score, reverse=True)

        logger.info(
            f"Scan complete in {format_duration(duration)}: "
            f"{opportunity_count}/{total} pairs with opportunities"
        )

        return ScanRun(
            mode=mode,
            threshold_pct=threshold,
            batch_size=batch_size,
            started_at=started_at,
            duration_sec=duration,
            total_pairs=total,
            opportunity_count=opportunity_count,
            success_rate=success_rate,
            results=results,
            progress=progress,
            top_opportunities=ranked[:top_n],
        )

    async def check_bidirectional(
        self,
        pair: TokenPair,
        amount: Optional[Amount] = None,
        threshold: Optional[Amount] = None,
    ) -> BidirectionalCheck:
        """
        Quote both directions of one pair concurrently at the same nominal
        amount and summarize each direction on its own.
        """
        settings = self.config.scan
        amount = settings.amount if amount is None else amount
        threshold = Decimal(
            str(settings.min_spread_pct if threshold is None else threshold)
        )
        sources = self.config.sources_for(pair)

        (forward, fwd_excl), (reverse, rev_excl) = await asyncio.gather(
            self.aggregator.fetch_all(pair, Direction.FORWARD, amount, sources),
            self.aggregator.fetch_all(pair, Direction.REVERSE, amount, sources),
        )

        return BidirectionalCheck(
            pair=pair.name,
            amount=Decimal(str(amount)),
            forward=self._summarize(Direction.FORWARD, pair.name, forward, fwd_excl, threshold),
            reverse=self._summarize(
                Direction.REVERSE, pair.reversed().name, reverse, rev_excl, threshold
            ),
        )

    def _summarize(
        self,
        direction: Direction,
        name: str,
        quotes,
        exclusions: List[str],
        threshold: Decimal,
    ) -> DirectionSummary:
        best, worst = best_and_worst(usable_quotes(quotes, self.config.analysis))
        spread = Decimal(0)
        if best is not None and worst is not None and worst.rate > 0:
            spread = calculate_percentage(best.rate - worst.rate, worst.rate)

        return DirectionSummary(
            direction=direction,
            quotes=quotes,
            exclusions=exclusions,
            opportunities=find_price_differences(
                quotes, threshold, self.config.analysis, pair=name
            ),
            best_source=best.label if best else "N/A",
            worst_source=worst.label if worst else "N/A",
            best_rate=best.rate if best else None,
            worst_rate=worst.rate if worst else None,
            spread_pct=spread,
        )


def select_pairs(
    pairs: Sequence[TokenPair], limit: Optional[int] = None, name: Optional[str] = None
) -> Tuple[TokenPair, ...]:
    """Pick a single pair by name, or the first `limit` pairs."""
    if name is not None:
        matched = tuple(p for p in pairs if p.name.lower() == name.lower())
        return matched
    if limit is not None:
        return tuple(pairs[:limit])
    return tuple(pairs)
