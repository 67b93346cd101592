# surprise_metrics

Surprise metrics for high-frequency equity trade data. Given a list of
trades, the package computes, for every trade past a warm-up window:

- the log return standardised by a GARCH(1,1) volatility estimate,
- the Lee-Mykland statistic: the absolute return divided by the square root
  of the bipower variation at that position,
- a BNS-style statistic, `sqrt(window) * max(0, RV - BV) / RV`, where RV is
  the rolling realized variance and BV the bipower variation (0 where either
  is not positive),
- a trade-intensity z-score (always 0.0, see below),
- a jump flag, raised when the Lee-Mykland statistic exceeds
  `0.49 * sqrt(2 * ln(n))`, with `n` the number of returns.

It also reads trade and quote flat files in the Polygon CSV layout, plain or
gzip-compressed.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
surprise-metrics
```

By default this generates 1000 trades forming a random walk with jumps of up
to ±5% injected at fixed positions, runs the calculator over them (window 20)
and prints the first ten metrics, the number of jumps detected, and the
largest z-score, Lee-Mykland and BNS statistics, with the processing time and
throughput.

Options:

- `--mode {jumps,random}` – `jumps` (the default) as above; `random` generates
  10000 trades with independent normal prices around 100 and uses window 100.
- `--count N` – number of trades to generate.
- `--seed N` – random seed for the generated data.
- `--window N` – rolling window size.
- `--threshold X` – value stored as the calculator's `jump_threshold`.
- `--trades FILE` – load trades from a CSV file (plain or gzip) instead of
  generating them.

The command exits with status 1 and prints `Error: ...` if the file cannot be
read or the input is invalid.

## Library use

### Computing metrics from trade records

```python
from surprise_metrics.calculator import MetricsCalculator
from surprise_metrics.cli import generate_test_trades_with_jumps

trades = generate_test_trades_with_jumps(1000, 42)

calculator = MetricsCalculator(num_gpus=0, buffer_size=10_000)
calculator.set_garch_params(0.00001, 0.05, 0.94)
calculator.window_size = 20
calculator.process_trades(trades)

for metric in calculator.metrics():
    if metric.jump_detected:
        print(metric.timestamp, metric.lee_mykland_stat)
```

`process_trades` replaces the previous results. The metrics cover trades
`window_size` up to one before the last, so a run with no more trades than
`window_size + 1` yields none. An empty list, or a single trade, leaves the
previous results in place. `metrics()` returns a copy of the latest results.

Configuration lives in plain attributes: `window_size` (default 100),
`garch_omega`, `garch_alpha`, `garch_beta` (defaults 0.00001, 0.05, 0.94;
also set together through `set_garch_params`) and `jump_threshold`
(default 2.0). `jump_threshold` is stored but does not enter the jump test.

`generate_test_trades(count, seed)` produces the `random` mode data.

### Computing metrics from arrays

```python
import numpy as np
from surprise_metrics.calculator import MetricsCalculator

timestamps = np.array([...], dtype=np.int64)   # nanoseconds
prices = np.array([...], dtype=np.float32)
sizes = np.array([...], dtype=np.int64)

calculator = MetricsCalculator()
result = calculator.process_trades_batch(timestamps, prices, sizes)
# float32 array, one row per metric, six columns:
# timestamp, standardized_return, lee_mykland_stat, bns_stat,
# trade_intensity_zscore, jump_detected (1.0 or 0.0)
```

The three arrays must be one-dimensional and of equal length, or
`ValueError` is raised. Timestamps lose precision in the float32 result.

### Reading flat files

```python
from surprise_metrics.parser import load_trades_from_file, load_quotes_from_file

trades = load_trades_from_file("trades.csv.gz")
quotes = load_quotes_from_file("quotes.csv")
```

Files starting with the gzip magic bytes are decompressed first. The first
line of each file is taken as a header. Trade rows are read as
`participant_timestamp, sip_timestamp, trf_timestamp, sequence, symbol, size,
price, conditions, tape`; quote rows as `participant_timestamp, sip_timestamp,
trf_timestamp, sequence, symbol, bid_price, bid_size, bid_exchange, ask_price,
ask_size, ask_exchange, tape`. Rows that cannot be parsed are skipped with a
logged warning.

`parse_polygon_trades` and `parse_polygon_quotes` do the same from text or
bytes already in memory, and `decompress_gzip` unpacks gzip data on its own,
raising `ValueError` on corrupt input.

### Downloading flat files

```python
from surprise_metrics.parser import PolygonDataLoader

loader = PolygonDataLoader(api_key="placeholder")
loader.base_url = "https://flatfiles.example.com/v3/files/flatfiles"
raw = loader.download_trades_file("2024-01-02", "AAPL")   # gzip bytes
```

The base URL may instead be given in the `SURPRISE_METRICS_FLATFILES_URL`
environment variable. Without one, or when the request fails,
`DownloadError` (an `OSError`) is raised. `download_quotes_file` fetches
quotes the same way; `timeout` (default 60 seconds) may be assigned.

### Building blocks

`surprise_metrics.ops` holds the vector operations the calculator is built
on, each returning a NumPy array:

- `compute_returns(prices)` – log returns between consecutive prices,
- `compute_realized_variance(returns, window)` – sum of squared returns over
  each window, one value per start position `0 .. n - window - 1`,
- `compute_bipower_variation(returns)` – π/2 · |rₜ₊₁| · |rₜ| for each pair.

The record types `Trade`, `Quote` and `SurpriseMetrics` live in
`surprise_metrics.models`.

## What the package does not do

- All computation runs on the CPU with NumPy. `num_gpus` and `buffer_size`
  are recorded on the calculator but change nothing.
- No trade-intensity model is computed: `trade_intensity_zscore` is always
  0.0.
- `process_quotes` only keeps the quotes in `calculator.quotes`; no
  quote-based metrics (spreads, order imbalance) are derived.
- Results are held in memory only; nothing is stored or written out.