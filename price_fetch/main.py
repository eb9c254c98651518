#!/usr/bin/env python3
"""Price Fetch Oracle.

Opens collection windows for asset symbols, fetches prices from an external
provider every tick, and submits a signed median price once each window
closes.

Configure with CLI arguments or environment variables.
"""

import argparse
import asyncio
import logging
import os
import sys

from .src.fetchers import get_available_fetchers, get_fetcher
from .src.FetcherRegistry import normalize_symbol
from .src.Keystore import Keystore
from .src.MedianAggregator import DEFAULT_MIN_SAMPLES
from .src.PriceFetchNode import PriceFetchNode

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_symbols(symbols_str: str | None) -> list[str]:
    """Parse a comma-separated symbol list.

    Format: SYM1,SYM2
    Example: BTC,ETH

    :param symbols_str: Comma-separated symbols.
    :returns: List of upper-cased symbols, empty entries dropped.
    """
    if not symbols_str:
        return []
    return [s.strip().upper() for s in symbols_str.split(",") if s.strip()]


def parse_private_keys(keys_str: str | None) -> list[str]:
    """Parse a comma-separated list of hex private keys.

    :param keys_str: Comma-separated private keys.
    :returns: List of private keys.
    """
    if not keys_str:
        return []
    return [k.strip() for k in keys_str.split(",") if k.strip()]


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with environment defaults."""
    available_sources = get_available_fetchers()

    parser = argparse.ArgumentParser(
        description="Price Fetch Oracle: windowed median price reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available price sources:
  {', '.join(available_sources)}

Examples:
  # Collect ETH prices for 600 ticks and submit the median
  python -m price_fetch.main --symbols ETH --duration 600

  # Several symbols, 1 second ticks, a throwaway signing account
  python -m price_fetch.main --symbols BTC,ETH --tick-period 1 --generate-key

Environment variables (CLI args take precedence):
  SYMBOLS, DURATION, TICK_PERIOD, SOURCE, MIN_SAMPLES, FETCH_TIMEOUT,
  PRIVATE_KEYS
""",
    )

    parser.add_argument(
        "--symbols",
        type=str,
        help="Comma-separated symbols to start fetchers for (e.g., BTC,ETH)",
        default=os.environ.get("SYMBOLS") or "ETH",
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="Collection window length in ticks (default: 600)",
        default=int(os.environ.get("DURATION") or "600"),
    )

    parser.add_argument(
        "--tick-period",
        dest="tick_period",
        type=float,
        help="Seconds between ticks (default: 6.0)",
        default=float(os.environ.get("TICK_PERIOD") or "6.0"),
    )

    parser.add_argument(
        "--source",
        type=str,
        help=f"Price source. Available: {', '.join(available_sources)}",
        default=os.environ.get("SOURCE") or "dia",
    )

    parser.add_argument(
        "--min-samples",
        dest="min_samples",
        type=int,
        help=f"Minimum samples required for a median (default: {DEFAULT_MIN_SAMPLES})",
        default=int(os.environ.get("MIN_SAMPLES") or str(DEFAULT_MIN_SAMPLES)),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for individual fetch requests in seconds (default: 10.0)",
        default=float(os.environ.get("FETCH_TIMEOUT") or "10.0"),
    )

    parser.add_argument(
        "--private-keys",
        dest="private_keys",
        type=str,
        help="Comma-separated hex private keys of the signing accounts",
        default=os.environ.get("PRIVATE_KEYS"),
    )

    parser.add_argument(
        "--generate-key",
        dest="generate_key",
        action="store_true",
        help="Generate a random signing account if no private key is given",
    )

    parser.add_argument(
        "--max-ticks",
        dest="max_ticks",
        type=int,
        help="Stop after this many ticks (default: run forever)",
        default=None,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def main() -> None:
    """Main entry point for the Price Fetch Oracle CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.tick_period <= 0:
        parser.error("--tick-period must be positive")

    if args.duration < 1:
        parser.error("--duration must be at least 1 tick")

    if args.min_samples < 2:
        parser.error("--min-samples must be at least 2")

    if args.source not in get_available_fetchers():
        parser.error(
            f"Unknown source: {args.source}. "
            f"Available: {', '.join(get_available_fetchers())}"
        )

    symbols = parse_symbols(args.symbols)
    if not symbols:
        parser.error("At least one symbol must be specified")

    for symbol in symbols:
        try:
            normalize_symbol(symbol)
        except ValueError as e:
            parser.error(str(e))

    try:
        keystore = Keystore.from_keys(parse_private_keys(args.private_keys))
    except ValueError as e:
        parser.error(str(e))

    if not keystore.has_local_identity() and args.generate_key:
        keystore.generate()

    if not keystore.has_local_identity():
        parser.error("No signing account: set --private-keys or use --generate-key")

    # Log configuration
    logger.info("=" * 60)
    logger.info("Price Fetch Oracle")
    logger.info("=" * 60)
    logger.info(f"Symbols:           {', '.join(symbols)}")
    logger.info(f"Source:            {args.source}")
    logger.info(f"Duration:          {args.duration} ticks")
    logger.info(f"Tick Period:       {args.tick_period}s")
    logger.info(f"Min Samples:       {args.min_samples}")
    logger.info(f"Fetch Timeout:     {args.fetch_timeout}s")
    logger.info(f"Account:           {keystore.local_account()}")
    logger.info("=" * 60)

    try:
        node = PriceFetchNode(
            provider=get_fetcher(args.source, timeout=args.fetch_timeout),
            keystore=keystore,
            tick_period=args.tick_period,
            min_samples=args.min_samples,
        )
        node.start_fetchers(symbols, args.duration)
        asyncio.run(node.run(max_ticks=args.max_ticks))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
