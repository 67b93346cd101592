"""Loading and parsing of flat-file trade and quote data."""

from __future__ import annotations

import logging
import os
import urllib.error
import urllib.request
import zlib
from pathlib import Path
from typing import Iterator
from urllib.parse import urlencode

from .models import Quote, Trade

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
FLATFILES_URL_ENV = "SURPRISE_METRICS_FLATFILES_URL"
USER_AGENT = "surprise-metrics/0.1"
DEFAULT_TIMEOUT = 60.0


class DownloadError(OSError):
    """Raised when a flat file cannot be downloaded."""


class PolygonDataLoader:
    """Downloads compressed trade and quote flat files for a ticker and date.

    The base URL is read from the environment and may be overridden by
    assigning ``base_url``; ``timeout`` may be assigned likewise.
    """

    def __init__(self, api_key: str):
        self.api_key = api_key
        self.base_url: str | None = os.environ.get(FLATFILES_URL_ENV)
        self.timeout: float = DEFAULT_TIMEOUT

    def download_trades_file(self, date: str, ticker: str) -> bytes:
        return self._download(f"/us/stocks/trades/{date}/{ticker}.csv.gz")

    def download_quotes_file(self, date: str, ticker: str) -> bytes:
        return self._download(f"/us/stocks/quotes/{date}/{ticker}.csv.gz")

    def _download(self, path: str) -> bytes:
        if not self.base_url:
            raise DownloadError(
                f"no flat-file base URL configured; assign base_url or set {FLATFILES_URL_ENV}"
            )
        url = f"{self.base_url.rstrip('/')}{path}?{urlencode({'apiKey': self.api_key})}"
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return response.read()
        except (urllib.error.URLError, OSError) as exc:
            raise DownloadError(f"download failed for {path}: {exc}") from exc


def decompress_gzip(compressed_data: bytes) -> bytes:
    """Inflate a gzip member; raises ValueError on corrupt data."""
    inflater = zlib.decompressobj(16 + zlib.MAX_WBITS)
    try:
        return inflater.decompress(compressed_data) + inflater.flush()
    except zlib.error as exc:
        raise ValueError(f"invalid gzip data: {exc}") from exc


def _data_lines(csv_data: str | bytes) -> Iterator[str]:
    """Yield the non-empty lines after the header."""
    if isinstance(csv_data, (bytes, bytearray)):
        csv_data = bytes(csv_data).decode("latin-1")
    lines = csv_data.split("\n")
    for line in lines[1:]:
        line = line.rstrip("\r")
        if line:
            yield line


def _unsigned(text: str) -> int:
    value = int(text)
    if value < 0:
        raise ValueError(f"expected a non-negative integer, got {text!r}")
    return value


def _optional_char(fields: list[str], index: int) -> str:
    return fields[index][:1] if len(fields) > index else ""


def _parse_trade(line: str) -> Trade:
    # participant_timestamp,sip_timestamp,trf_timestamp,sequence,symbol,size,price,conditions,tape
    fields = line.split(",")
    conditions = fields[7][:4] if len(fields) > 7 else ""
    return Trade(
        timestamp=_unsigned(fields[0]),
        size=_unsigned(fields[5]),
        price=float(fields[6]),
        conditions=conditions,
        exchange=_optional_char(fields, 8),
    )


def _parse_quote(line: str) -> Quote:
    # participant_timestamp,sip_timestamp,trf_timestamp,sequence,symbol,
    # bid_price,bid_size,bid_exchange,ask_price,ask_size,ask_exchange,tape
    fields = line.split(",")
    return Quote(
        timestamp=_unsigned(fields[0]),
        bid_price=float(fields[5]),
        bid_size=_unsigned(fields[6]),
        bid_exchange=fields[7][:1],
        ask_price=float(fields[8]),
        ask_size=_unsigned(fields[9]),
        ask_exchange=_optional_char(fields, 10),
    )


def parse_polygon_trades(csv_data: str | bytes) -> list[Trade]:
    """Parse trade rows, skipping the header and any malformed line."""
    trades = []
    for line in _data_lines(csv_data):
        try:
            trades.append(_parse_trade(line))
        except (ValueError, IndexError) as exc:
            logger.warning("Error parsing trade: %s", exc)
    return trades


def parse_polygon_quotes(csv_data: str | bytes) -> list[Quote]:
    """Parse quote rows, skipping the header and any malformed line."""
    quotes = []
    for line in _data_lines(csv_data):
        try:
            quotes.append(_parse_quote(line))
        except (ValueError, IndexError) as exc:
            logger.warning("Error parsing quote: %s", exc)
    return quotes


def _read_maybe_gzipped(filename: str | os.PathLike) -> bytes:
    data = Path(filename).read_bytes()
    if data[:2] == GZIP_MAGIC:
        data = decompress_gzip(data)
    return data


def load_trades_from_file(filename: str | os.PathLike) -> list[Trade]:
    """Load trades from a plain or gzip-compressed CSV file."""
    return parse_polygon_trades(_read_maybe_gzipped(filename))


def load_quotes_from_file(filename: str | os.PathLike) -> list[Quote]:
    """Load quotes from a plain or gzip-compressed CSV file."""
    return parse_polygon_quotes(_read_maybe_gzipped(filename))