"""
Console rendering of scan results.
"""

from typing import List, Sequence

from tabulate import tabulate

from .config import ScanConfig
from .types import (
    BidirectionalCheck,
    DirectionSummary,
    RoundTripResult,
    ScanMode,
    ScanRun,
)
from .utils import format_duration, format_pct, timestamp_to_iso


# ANSI color codes for pretty output
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"


def _colored_pct(value) -> str:
    c = Colors
    text = format_pct(value)
    if value > 0:
        return f"{c.GREEN}{text}{c.RESET}"
    if value < 0:
        return f"{c.RED}{text}{c.RESET}"
    return text


def print_banner(config: ScanConfig, mode: ScanMode, threshold, batch_size: int, total: int) -> None:
    """Print run parameters before a scan."""
    c = Colors
    venues = ", ".join(v.venue_id for v in config.active_venues)
    print(f"\n{c.BOLD}{c.BLUE}{'DEX Quote Scanner':^72}{c.RESET}")
    print(f"{c.BLUE}{'─' * 72}{c.RESET}")
    print(f"  Network:     {config.network}")
    print(f"  Venues:      {venues}")
    print(f"  Pairs:       {total}")
    print(f"  Mode:        {mode.value}")
    print(f"  Threshold:   {threshold}%")
    print(f"  Batch size:  {batch_size}")
    print(f"{c.BLUE}{'─' * 72}{c.RESET}\n")


def _opportunity_rows(opportunities: Sequence) -> List[list]:
    rows = []
    for i, opp in enumerate(opportunities, 1):
        if isinstance(opp, RoundTripResult):
            rows.append(
                [
                    i,
                    opp.pair,
                    opp.buy_source.label,
                    opp.sell_source.label,
                    f"{opp.initial_amount:.6f}",
                    f"{opp.final_amount:.6f}",
                    _colored_pct(opp.profit_pct),
                    f"{opp.estimated_gas:,}",
                ]
            )
        else:
            sell = opp.sell_source.label if opp.sell_source else "N/A"
            rows.append(
                [
                    i,
                    opp.pair,
                    opp.buy_source.label,
                    sell,
                    f"{opp.buy_rate:.6f}",
                    f"{opp.sell_rate:.6f}",
                    _colored_pct(opp.spread_pct),
                    f"{opp.estimated_gas:,}",
                ]
            )
    return rows


def print_scan_run(run: ScanRun) -> None:
    """Print the summary and top opportunities of a finished scan."""
    c = Colors
    print(f"\n{c.BOLD}Scan summary{c.RESET} ({timestamp_to_iso(run.started_at)})")
    print(
        tabulate(
            [
                ["Pairs scanned", run.total_pairs],
                ["Pairs with opportunities", run.opportunity_count],
                ["Success rate", f"{run.success_rate:.1f}%"],
                ["Failed pairs", sum(1 for r in run.results if r.error)],
                ["Duration", format_duration(run.duration_sec)],
            ],
            tablefmt="simple",
        )
    )

    if not run.top_opportunities:
        print(f"\n{c.DIM}No opportunities at or above {run.threshold_pct}%{c.RESET}")
        return

    if run.mode is ScanMode.ROUND_TRIP:
        headers = ["#", "Pair", "Buy", "Sell", "In", "Out", "Profit", "Gas"]
    else:
        headers = ["#", "Pair", "Buy", "Sell", "Buy rate", "Sell rate", "Spread", "Gas"]

    print(f"\n{c.BOLD}Top {len(run.top_opportunities)} opportunities{c.RESET}")
    print(tabulate(_opportunity_rows(run.top_opportunities), headers=headers, tablefmt="grid"))


def _print_direction(summary: DirectionSummary) -> None:
    c = Colors
    rows = []
    for q in summary.quotes:
        if q.success:
            rows.append(
                [
                    q.label,
                    f"{c.GREEN}ok{c.RESET}",
                    f"{q.amount_out:.6f} {q.token_out.symbol}",
                    f"{q.rate:.6f}",
                    f"{q.gas_estimate:,}",
                ]
            )
        else:
            rows.append([q.label, f"{c.RED}failed{c.RESET}", q.exclusion_reason, "-", "-"])

    print(f"\n{c.BOLD}{summary.direction.value}{c.RESET}")
    print(tabulate(rows, headers=["Source", "Status", "Output", "Rate", "Gas"], tablefmt="simple"))
    print(
        f"  Best: {summary.best_source}  Worst: {summary.worst_source}  "
        f"Spread: {format_pct(summary.spread_pct)}"
    )
    for opp in summary.opportunities:
        print(f"  {c.YELLOW}↑{c.RESET} {opp.label}: {format_pct(opp.spread_pct)}")


def print_bidirectional(check: BidirectionalCheck) -> None:
    """Print both directions of a single-pair check."""
    c = Colors
    print(f"\n{c.BOLD}{c.BLUE}{check.pair}{c.RESET} ({check.amount} per direction)")
    _print_direction(check.forward)
    _print_direction(check.reverse)
