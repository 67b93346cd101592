import gzip
import urllib.error
from unittest import mock

import pytest

from surprise_metrics.parser import (
    FLATFILES_URL_ENV,
    DownloadError,
    PolygonDataLoader,
    decompress_gzip,
    load_quotes_from_file,
    load_trades_from_file,
    parse_polygon_quotes,
    parse_polygon_trades,
)

TRADES_CSV = (
    "participant_timestamp,sip_timestamp,trf_timestamp,sequence,symbol,size,price,conditions,tape\n"
    "1000,1001,1002,1,AAPL,100,150.25,@T,N\n"
    "\n"
    "2000,2001,2002,2,AAPL,not_a_size,150.30,@,N\n"
    "3000,3001,3002,3,AAPL,50,150.5,ABCDEF,Q\r\n"
)

QUOTES_CSV = (
    "participant_timestamp,sip_timestamp,trf_timestamp,sequence,symbol,"
    "bid_price,bid_size,bid_exchange,ask_price,ask_size,ask_exchange,tape\n"
    "5000,5001,5002,1,AAPL,99.5,300,P,99.6,200,Q,C\n"
    "6000,6001,6002,2,AAPL,99.5,300\n"
)

BASE_URL = "https://flatfiles.example.com/v3"


def test_parse_trades_reads_fields():
    trades = parse_polygon_trades(TRADES_CSV)
    assert len(trades) == 2
    first = trades[0]
    assert first.timestamp == 1000
    assert first.size == 100
    assert first.price == 150.25
    assert first.conditions == b"@T\x00\x00"
    assert first.exchange == "N"


def test_parse_trades_truncates_conditions_and_strips_carriage_return():
    last = parse_polygon_trades(TRADES_CSV)[-1]
    assert last.conditions == b"ABCD"
    assert last.exchange == "Q"


def test_parse_trades_accepts_bytes():
    assert parse_polygon_trades(TRADES_CSV.encode()) == parse_polygon_trades(TRADES_CSV)


def test_parse_trades_header_only_gives_nothing():
    assert parse_polygon_trades(TRADES_CSV.split("\n")[0]) == []


def test_parse_trades_rejects_negative_size():
    csv = "header\n1,2,3,4,X,-5,1.0,,N\n"
    assert parse_polygon_trades(csv) == []


def test_parse_quotes_reads_fields_and_skips_short_rows():
    quotes = parse_polygon_quotes(QUOTES_CSV)
    assert len(quotes) == 1
    quote = quotes[0]
    assert quote.timestamp == 5000
    assert (quote.bid_price, quote.bid_size, quote.bid_exchange) == (99.5, 300, "P")
    assert (quote.ask_price, quote.ask_size, quote.ask_exchange) == (99.6, 200, "Q")


def test_decompress_gzip_round_trip():
    payload = TRADES_CSV.encode()
    assert decompress_gzip(gzip.compress(payload)) == payload


def test_decompress_gzip_rejects_garbage():
    with pytest.raises(ValueError):
        decompress_gzip(b"\x1f\x8bthis is not deflate data at all")


def test_load_trades_plain_and_gzipped_agree(tmp_path):
    plain = tmp_path / "trades.csv"
    packed = tmp_path / "trades.csv.gz"
    plain.write_text(TRADES_CSV)
    packed.write_bytes(gzip.compress(TRADES_CSV.encode()))
    from_plain = load_trades_from_file(plain)
    assert from_plain == load_trades_from_file(packed)
    assert len(from_plain) == 2


def test_load_quotes_from_gzipped_file(tmp_path):
    packed = tmp_path / "quotes.csv.gz"
    packed.write_bytes(gzip.compress(QUOTES_CSV.encode()))
    assert load_quotes_from_file(packed) == parse_polygon_quotes(QUOTES_CSV)


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_trades_from_file(tmp_path / "missing.csv")


def _fake_response(body):
    opener = mock.MagicMock()
    opener.return_value.__enter__.return_value.read.return_value = body
    return opener


def test_download_trades_builds_url_and_returns_body(monkeypatch):
    monkeypatch.setenv(FLATFILES_URL_ENV, BASE_URL)
    loader = PolygonDataLoader(api_key="placeholder")
    opener = _fake_response(b"payload")
    with mock.patch("urllib.request.urlopen", opener):
        body = loader.download_trades_file("2024-01-02", "AAPL")
    assert body == b"payload"
    request = opener.call_args.args[0]
    assert request.full_url == (
        BASE_URL + "/us/stocks/trades/2024-01-02/AAPL.csv.gz?apiKey=placeholder"
    )


def test_download_quotes_builds_url(monkeypatch):
    monkeypatch.setenv(FLATFILES_URL_ENV, BASE_URL)
    loader = PolygonDataLoader(api_key="placeholder")
    opener = _fake_response(b"quotes")
    with mock.patch("urllib.request.urlopen", opener):
        body = loader.download_quotes_file("2024-01-02", "MSFT")
    assert body == b"quotes"
    assert opener.call_args.args[0].full_url == (
        BASE_URL + "/us/stocks/quotes/2024-01-02/MSFT.csv.gz?apiKey=placeholder"
    )


def test_download_failure_raises_download_error(monkeypatch):
    monkeypatch.setenv(FLATFILES_URL_ENV, BASE_URL)
    loader = PolygonDataLoader(api_key="placeholder")
    failing = mock.MagicMock(side_effect=urllib.error.URLError("unreachable"))
    with mock.patch("urllib.request.urlopen", failing):
        with pytest.raises(DownloadError):
            loader.download_trades_file("2024-01-02", "AAPL")


def test_download_without_base_url_raises(monkeypatch):
    monkeypatch.delenv(FLATFILES_URL_ENV, raising=False)
    loader = PolygonDataLoader(api_key="placeholder")
    with pytest.raises(DownloadError):
        loader.download_trades_file("2024-01-02", "AAPL")


def test_base_url_taken_from_environment(monkeypatch):
    monkeypatch.setenv(FLATFILES_URL_ENV, BASE_URL)
    loader = PolygonDataLoader(api_key="placeholder")
    assert loader.base_url == BASE_URL