"""Per-trade surprise metrics: GARCH-standardised returns and jump statistics."""

from __future__ import annotations

import logging
import math
import operator
from typing import Iterable

import numpy as np

from .models import Quote, SurpriseMetrics, Trade
from .ops import compute_bipower_variation, compute_realized_variance, compute_returns

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 100
DEFAULT_GARCH_OMEGA = 0.00001
DEFAULT_GARCH_ALPHA = 0.05
DEFAULT_GARCH_BETA = 0.94
DEFAULT_JUMP_THRESHOLD = 2.0
LEE_MYKLAND_BETA_STAR = 0.49
BATCH_COLUMNS = 6


class MetricsCalculator:
    """Computes surprise metrics for a sequence of trades.

    ``num_gpus`` and ``buffer_size`` are recorded for configuration
    compatibility; all computation runs on the CPU.
    """

    def __init__(self, num_gpus: int = 1, buffer_size: int = 1_000_000):
        self.num_gpus = num_gpus
        self.buffer_size = buffer_size
        self.window_size = DEFAULT_WINDOW_SIZE
        self.garch_omega = DEFAULT_GARCH_OMEGA
        self.garch_alpha = DEFAULT_GARCH_ALPHA
        self.garch_beta = DEFAULT_GARCH_BETA
        self.jump_threshold = DEFAULT_JUMP_THRESHOLD
        self.quotes: list[Quote] = []
        self._metrics: list[SurpriseMetrics] = []

    def set_garch_params(self, omega: float, alpha: float, beta: float) -> None:
        """Set the GARCH(1,1) omega, alpha and beta used for volatility."""
        self.garch_omega = omega
        self.garch_alpha = alpha
        self.garch_beta = beta

    def metrics(self) -> list[SurpriseMetrics]:
        """Return a copy of the metrics from the last successful run."""
        return list(self._metrics)

    def process_quotes(self, quotes: Iterable[Quote]) -> None:
        """Keep the given quotes; no quote-based metrics are derived from them."""
        self.quotes = list(quotes)

    def process_trades(self, trades: Iterable[Trade]) -> None:
        """Compute metrics for the trades, replacing the previous results.

        With fewer than two trades nothing is computed and the previous
        results are kept.
        """
        trades = list(trades)
        if not trades:
            logger.warning("No trades to process")
            return

        window = operator.index(self.window_size)
        if window < 0:
            raise ValueError("window_size must not be negative")

        prices = np.fromiter((trade.price for trade in trades), dtype=np.float64, count=len(trades))
        logger.info("Extracted %d prices", prices.size)
        if prices.size < 2:
            logger.warning("Not enough prices for returns")
            return

        returns = compute_returns(prices)
        logger.info("Computed %d returns", returns.size)
        self._metrics = self._compute(trades, returns, window)
        logger.info("Computed %d metrics", len(self._metrics))

    def process_trades_batch(self, timestamps, prices, sizes) -> np.ndarray:
        """Process column arrays and return an (n, 6) float32 array.

        Columns: timestamp, standardized return, Lee-Mykland statistic,
        BNS statistic, trade intensity z-score, jump flag (1.0 or 0.0).
        """
        ts = np.asarray(timestamps, dtype=np.int64)
        px = np.asarray(prices, dtype=np.float32)
        sz = np.asarray(sizes, dtype=np.int64)
        if ts.ndim != 1 or px.ndim != 1 or sz.ndim != 1:
            raise ValueError("timestamps, prices and sizes must be one-dimensional")
        if not ts.size == px.size == sz.size:
            raise ValueError("timestamps, prices and sizes must have the same length")

        trades = [
            Trade(timestamp=int(stamp), price=float(price), size=int(size))
            for stamp, price, size in zip(ts, px, sz)
        ]
        self.process_trades(trades)
        rows = [
            (
                m.timestamp,
                m.standardized_return,
                m.lee_mykland_stat,
                m.bns_stat,
                m.trade_intensity_zscore,
                1.0 if m.jump_detected else 0.0,
            )
            for m in self._metrics
        ]
        return np.array(rows, dtype=np.float32).reshape(len(rows), BATCH_COLUMNS)

    def _garch_volatility(self, returns: np.ndarray) -> np.ndarray:
        omega = np.float64(self.garch_omega)
        alpha = np.float64(self.garch_alpha)
        beta = np.float64(self.garch_beta)
        with np.errstate(all="ignore"):
            level = np.sqrt(omega / (1.0 - alpha - beta))
            levels = [level]
            for value in returns[:-1]:
                level = np.sqrt(omega + alpha * value * value + beta * level * level)
                levels.append(level)
        return np.array(levels, dtype=np.float64)

    def _compute(self, trades: list[Trade], returns: np.ndarray, window: int) -> list[SurpriseMetrics]:
        count = returns.size
        sigma = self._garch_volatility(returns)

        rv = np.zeros(count)
        realized = compute_realized_variance(returns, window)
        rv[: realized.size] = realized

        bv = np.zeros(count)
        bipower = compute_bipower_variation(returns)
        bv[: bipower.size] = bipower

        stop = min(count, len(trades))
        if window >= stop:
            return []
        span = slice(window, stop)
        r, s, rv_w, bv_w = returns[span], sigma[span], rv[span], bv[span]

        with np.errstate(all="ignore"):
            standardized = r / np.where(s > 0, s, 1.0)
            local_vol = np.sqrt(np.maximum(0.0, bv_w))
            lee_mykland = np.abs(r) / np.where(local_vol > 0, local_vol, 1.0)
            valid = (rv_w > 0) & (bv_w > 0)
            ratio = np.divide(
                np.maximum(0.0, rv_w - bv_w), rv_w, out=np.zeros_like(rv_w), where=valid
            )
            bns = np.where(valid, math.sqrt(window) * ratio, 0.0)

        critical_value = LEE_MYKLAND_BETA_STAR * math.sqrt(2.0 * math.log(count))
        jumps = lee_mykland > critical_value

        return [
            SurpriseMetrics(
                standardized_return=float(std),
                lee_mykland_stat=float(lm),
                bns_stat=float(stat),
                trade_intensity_zscore=0.0,
                jump_detected=bool(jump),
                timestamp=trade.timestamp,
            )
            for trade, std, lm, stat, jump in zip(
                trades[span], standardized, lee_mykland, bns, jumps
            )
        ]