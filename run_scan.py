#!/usr/bin/env python3
"""
DEX quote scanner CLI.

Quotes every configured venue for each token pair and reports
price differences or simulated round-trip arbitrage.

Usage:
    python3 run_scan.py check
    python3 run_scan.py scan --threshold 0.5 --batch-size 20
    python3 run_scan.py quick --mode price-difference
"""

import argparse
import asyncio
import json
import sys
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

import logging_config
from dex.chain import ChainClient
from dex.config import ConfigError, load_config, parse_mode
from dex.console import print_banner, print_bidirectional, print_scan_run
from dex.exceptions import ChainConnectionError
from dex.scanner import BatchScanner, select_pairs
from dex.utils import get_logger, short_address

logger = get_logger(__name__)

QUICK_PAIR_LIMIT = 10


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value}")


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default="configs/hyperevm.yaml",
        help="Path to config YAML file (default: configs/hyperevm.yaml)",
    )
    common.add_argument(
        "--amount", type=_decimal, help="Nominal input amount per quote (token units)"
    )
    common.add_argument(
        "--threshold", type=_decimal, help="Minimum spread / profit percent"
    )
    common.add_argument(
        "--silent",
        action="store_true",
        help="Only print results and warnings (no per-pair logs)",
    )
    common.add_argument("--debug", action="store_true", help="Verbose per-quote logging")
    common.add_argument(
        "--json", action="store_true", help="Print results as JSON instead of tables"
    )

    parser = argparse.ArgumentParser(
        description="DEX quote aggregation and arbitrage scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Quote one pair in both directions
  python3 run_scan.py check --pair WHYPE/USDT0

  # Full round-trip scan, 0.5% threshold, 20 pairs per batch
  python3 run_scan.py scan --threshold 0.5 --batch-size 20

  # First 10 pairs, same-direction price differences, every 60s
  python3 run_scan.py quick --mode price-difference --interval 60
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", parents=[common], help="Quote a single pair both ways")
    check.add_argument("--pair", help="Pair name (default: first cross-dex pair)")

    for name, help_text in (
        ("scan", "Scan every configured pair"),
        ("quick", f"Scan the first {QUICK_PAIR_LIMIT} pairs"),
    ):
        p = sub.add_parser(name, parents=[common], help=help_text)
        p.add_argument("--pair", help="Scan only this pair")
        p.add_argument("--batch-size", type=int, help="Pairs scanned concurrently")
        p.add_argument(
            "--mode",
            choices=["price-difference", "round-trip"],
            help="Analysis mode (default from config: round-trip)",
        )
        p.add_argument("--top", type=int, help="Number of top opportunities to show")
        p.add_argument(
            "--once",
            action="store_true",
            help="Run a single scan and exit (overrides config setting)",
        )
        p.add_argument(
            "--interval", type=float, help="Repeat the scan every N seconds"
        )

    return parser.parse_args(argv)


def warn_missing_venues(chain, config) -> int:
    """Warn about active venues with no deployed contract. Returns the count."""
    missing = 0
    for venue in config.active_venues:
        try:
            code = chain.get_code(venue.address)
        except Exception as e:
            logger.warning(f"Venue {venue.venue_id}: code lookup failed: {e}")
            continue
        if not code:
            missing += 1
            logger.warning(
                f"Venue {venue.venue_id}: no contract at {short_address(venue.address)}"
            )
    try:
        block = chain.get_block_number()
    except Exception as e:
        raise ChainConnectionError(f"RPC stopped answering: {e}") from e
    logger.info(f"Checked {len(config.active_venues)} venues at block #{block:,}")
    return missing


def default_check_pair(config):
    for pair in config.pairs:
        if pair.category == "cross-dex":
            return pair
    return config.pairs[0]


async def run_scans(scanner: BatchScanner, args: argparse.Namespace) -> None:
    """Scan, print, sleep; runs until --once or the config says stop."""
    config = scanner.config
    limit = QUICK_PAIR_LIMIT if args.command == "quick" else None
    pairs = select_pairs(config.pairs, limit=limit, name=args.pair)
    if not pairs:
        raise ConfigError(f"Pair '{args.pair}' not found in config")

    mode = parse_mode(args.mode) if args.mode else config.scan.mode
    batch_size = args.batch_size or config.scan.batch_size
    threshold = (
        args.threshold
        if args.threshold is not None
        else config.scan.threshold_for(mode)
    )
    poll_sec = args.interval if args.interval is not None else config.scan.poll_sec
    once = args.once or (config.scan.once and args.interval is None)

    if not args.json:
        print_banner(config, mode, threshold, batch_size, len(pairs))

    scan_num = 0
    while True:
        scan_num += 1
        try:
            run = await scanner.run(
                pairs=pairs,
                batch_size=batch_size,
                mode=mode,
                min_threshold=threshold,
                amount=args.amount,
                top_n=args.top,
            )
            if args.json:
                print(json.dumps(run.to_dict(), indent=2))
            else:
                print_scan_run(run)
        except Exception as e:
            logger.error(f"\nScan {scan_num} failed: {e}", exc_info=True)
            if once:
                raise

        if once:
            break

        await asyncio.sleep(poll_sec)


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    load_dotenv()
    args = parse_args(argv)

    if args.debug:
        logging_config.setup_debug()
    else:
        logging_config.setup()
    if args.silent:
        logging_config.set_silent(True)

    # Load config
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1

    # Connect and wire the quote pipeline
    try:
        chain = ChainClient.connect(config.rpc_urls, timeout_sec=config.request_timeout_sec)
        warn_missing_venues(chain, config)
    except ChainConnectionError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    scanner = BatchScanner.from_chain(config, chain)
    try:
        if args.command == "check":
            pair = config.find_pair(args.pair) if args.pair else default_check_pair(config)
            check = asyncio.run(
                scanner.check_bidirectional(pair, args.amount, args.threshold)
            )
            if args.json:
                print(json.dumps(check.to_dict(), indent=2))
            else:
                print_bidirectional(check)
        else:
            asyncio.run(run_scans(scanner, args))
    except KeyboardInterrupt:
        print("\n\n⏸ Stopped by user")
        return 0
    except ConfigError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ Scanner failed: {e}", file=sys.stderr)
        return 1
    finally:
        scanner.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
