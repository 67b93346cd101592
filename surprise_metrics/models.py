"""Market data records and the per-trade surprise metrics computed from them."""

from __future__ import annotations

from dataclasses import dataclass, field

CONDITION_SLOTS = 4


def _fixed_conditions(value: bytes | bytearray | str) -> bytes:
    """Return condition codes as exactly four bytes, zero padded or truncated."""
    if isinstance(value, str):
        value = value.encode("latin-1", errors="replace")
    return bytes(value)[:CONDITION_SLOTS].ljust(CONDITION_SLOTS, b"\x00")


def _check_exchange(name: str, value: str) -> None:
    if len(value) > 1:
        raise ValueError(f"{name} must be a single character, got {value!r}")


@dataclass
class Trade:
    """A single executed trade; the timestamp is in nanoseconds."""

    timestamp: int
    price: float
    size: int
    exchange: str = ""
    conditions: bytes = field(default=bytes(CONDITION_SLOTS))

    def __post_init__(self) -> None:
        _check_exchange("exchange", self.exchange)
        self.conditions = _fixed_conditions(self.conditions)


@dataclass
class Quote:
    """A top-of-book quote; the timestamp is in nanoseconds."""

    timestamp: int
    bid_price: float
    ask_price: float
    bid_size: int
    ask_size: int
    bid_exchange: str = ""
    ask_exchange: str = ""

    def __post_init__(self) -> None:
        _check_exchange("bid_exchange", self.bid_exchange)
        _check_exchange("ask_exchange", self.ask_exchange)


@dataclass
class SurpriseMetrics:
    """Surprise statistics for one trade."""

    standardized_return: float = 0.0
    lee_mykland_stat: float = 0.0
    bns_stat: float = 0.0
    trade_intensity_zscore: float = 0.0
    jump_detected: bool = False
    timestamp: int = 0