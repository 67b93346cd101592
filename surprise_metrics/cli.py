"""Command-line runner that computes surprise metrics for a trade series."""

from __future__ import annotations

import argparse
import logging
import operator
import time
from typing import Sequence

import numpy as np

from .calculator import MetricsCalculator
from .models import SurpriseMetrics, Trade
from .parser import load_trades_from_file

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
TRADE_SPACING_NS = 1_000_000
START_PRICE = 100.0
PRICE_STDDEV = 0.5
MEAN_TRADE_SIZE = 100
RETURN_STDDEV = 0.001
MAX_JUMP = 0.05
JUMP_WARMUP = 50
EXCHANGE = "N"
GARCH_PARAMS = (0.00001, 0.05, 0.94)
PREVIEW_ROWS = 10

# mode -> (trade count, window size, jump threshold)
MODE_DEFAULTS = {
    "jumps": (1000, 20, 2.5),
    "random": (10000, 100, 4.0),
}


def _check_count(count: int) -> int:
    count = operator.index(count)
    if count < 0:
        raise ValueError("count must not be negative")
    return count


def _timestamps(count: int) -> np.ndarray:
    return time.monotonic_ns() + np.arange(count, dtype=np.int64) * TRADE_SPACING_NS


def _build_trades(stamps: np.ndarray, prices: np.ndarray, sizes: np.ndarray) -> list[Trade]:
    return [
        Trade(timestamp=int(stamp), price=float(price), size=int(size), exchange=EXCHANGE)
        for stamp, price, size in zip(stamps, prices, sizes)
    ]


def generate_test_trades(count: int = 10000, seed: int | None = None) -> list[Trade]:
    """Trades with independent normal prices around 100 and Poisson sizes."""
    count = _check_count(count)
    rng = np.random.default_rng(seed)
    prices = rng.normal(START_PRICE, PRICE_STDDEV, count)
    sizes = rng.poisson(MEAN_TRADE_SIZE, count)
    return _build_trades(_timestamps(count), prices, sizes)


def generate_test_trades_with_jumps(count: int = 1000, seed: int | None = None) -> list[Trade]:
    """A random-walk price series with uniform jumps of up to 5% at fixed positions."""
    count = _check_count(count)
    rng = np.random.default_rng(seed)
    index = np.arange(count)
    jump_at = (index > JUMP_WARMUP) & ((index % 100 == 23) | (index % 137 == 7))
    shocks = np.zeros(count)
    shocks[jump_at] = rng.uniform(-MAX_JUMP, MAX_JUMP, int(jump_at.sum()))
    for position in np.flatnonzero(jump_at):
        logger.info("Added jump at trade %d with size %g", position, shocks[position])
    returns = rng.normal(0.0, RETURN_STDDEV, count) + shocks
    prices = START_PRICE * np.cumprod(1.0 + returns)
    sizes = rng.poisson(MEAN_TRADE_SIZE, count)
    return _build_trades(_timestamps(count), prices, sizes)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="surprise-metrics", description="Compute surprise metrics for a trade series."
    )
    parser.add_argument("--mode", choices=sorted(MODE_DEFAULTS), default="jumps",
                        help="kind of synthetic data to generate")
    parser.add_argument("--count", type=int, help="number of trades to generate")
    parser.add_argument("--seed", type=int, help="random seed for synthetic data")
    parser.add_argument("--window", type=int, help="rolling window size")
    parser.add_argument("--threshold", type=float, help="jump threshold")
    parser.add_argument("--trades", metavar="FILE",
                        help="load trades from a CSV file (plain or gzip) instead of generating")
    return parser


def _print_summary(metrics: list[SurpriseMetrics], trade_count: int, elapsed: float) -> None:
    print("\nDetailed Analysis:")
    print(f"First {PREVIEW_ROWS} metrics:")
    for position, m in enumerate(metrics[:PREVIEW_ROWS]):
        print(f"  [{position}] Return: {m.standardized_return:g}, LM: {m.lee_mykland_stat:g}, "
              f"BNS: {m.bns_stat:g}, Jump: {'YES' if m.jump_detected else 'NO'}")

    jump_count = sum(m.jump_detected for m in metrics)
    max_zscore = max((abs(m.standardized_return) for m in metrics), default=0.0)
    max_lm = max((m.lee_mykland_stat for m in metrics), default=0.0)
    max_bns = max((abs(m.bns_stat) for m in metrics), default=0.0)

    print("\nResults Summary:")
    print(f"  Total Metrics: {len(metrics)}")
    print(f"  Jumps Detected: {jump_count}")
    print(f"  Max Z-Score: {max(max_zscore, 0.0):g}")
    print(f"  Max LM Statistic: {max(max_lm, 0.0):g}")
    print(f"  Max BNS Statistic: {max(max_bns, 0.0):g}")
    if elapsed > 0:
        print(f"  Throughput: {trade_count / elapsed:g} trades/sec")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the metrics pipeline on synthetic or file data; return an exit code."""
    args = _build_parser().parse_args(argv)
    default_count, default_window, default_threshold = MODE_DEFAULTS[args.mode]

    print(f"SurpriseMetrics Runner v{VERSION}")
    print("=============================\n")
    print("Initializing MetricsCalculator...")

    try:
        calculator = MetricsCalculator(num_gpus=0, buffer_size=10000)
        calculator.set_garch_params(*GARCH_PARAMS)
        calculator.jump_threshold = default_threshold if args.threshold is None else args.threshold
        calculator.window_size = default_window if args.window is None else args.window

        if args.trades:
            print(f"Loading trades from {args.trades}...")
            trades = load_trades_from_file(args.trades)
        else:
            count = default_count if args.count is None else args.count
            if args.mode == "jumps":
                print("Generating test data with artificial jumps...")
                trades = generate_test_trades_with_jumps(count, args.seed)
            else:
                print("Generating test data...")
                trades = generate_test_trades(count, args.seed)
        print(f"Generated {len(trades)} trades")

        print("Processing trades...")
        started = time.perf_counter()
        calculator.process_trades(trades)
        elapsed = time.perf_counter() - started
        print(f"Processing completed in {elapsed * 1000:.0f} ms")

        _print_summary(calculator.metrics(), len(trades), elapsed)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=__import_stderr())
        return 1
    return 0


def __import_stderr():
    import sys

    return sys.stderr


if __name__ == "__main__":
    raise SystemExit(main())