"""
Shared pytest fixtures for the TAIFEX closes test suite.

Provides synthetic upstream payloads that mirror the real TAIFEX shapes
(Big5 open-data CSV, table-layout and text-layout daily reports) so
every test module can exercise the parsers, the date walker and the API
without hitting the network.
"""

import os

# ---------------------------------------------------------------------------
# Disable Redis and rate limiting before anything imports the cache or the
# limiter, so tests never wait on a Redis server or get throttled.
# ---------------------------------------------------------------------------
os.environ.setdefault("DISABLE_REDIS", "1")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402

from src.taifex_lib.core import cache  # noqa: E402
from src.taifex_lib.core.models import ContractQuote  # noqa: E402

# ---------------------------------------------------------------------------
# Synthetic payload builders
# ---------------------------------------------------------------------------

OPEN_DATA_HEADER = "交易日期,契約,到期月份(週別),開盤價,最後成交價,合計成交量,交易時段"

OPEN_DATA_ROWS = [
    "2025/01/03,TX,202501,22950,23000,1000,一般",
    "2025/01/03,TX,202502,22990,23050,5000,一般",
    "2025/01/03,TX,202501,23005,23010,300,盤後",
    "2025/01/03,MTX,202501,22950,23001,9000,一般",
    "2025/1/2,TX,202501,22850,22900,8000,一般",
    "2025/1/2,TX,202502,22900,22950,200,一般",
    "2025/1/2,TX,202503,-,-,700,一般",
    "2024/12/31,TX,202501,22700,22800,6000,一般",
    "2024/12/31,TX,,22700,22810,9999,一般",
]


def make_open_data_bytes(
    rows: list[str] | None = None,
    header: str = OPEN_DATA_HEADER,
    delimiter: str = ",",
    encoding: str = "big5",
) -> bytes:
    """Encode a CSV export the way TAIFEX serves it (Big5, CRLF)."""
    lines = [header] + list(OPEN_DATA_ROWS if rows is None else rows)
    text = "\r\n".join(line.replace(",", delimiter) for line in lines) + "\r\n"
    return text.encode(encoding)


TABLE_HEADER_CELLS = [
    "契約",
    "到期月份(週別)",
    "開盤價",
    "最高價",
    "最低價",
    "最後成交價",
    "漲跌價",
    "一般交易時段成交量",
    "盤後交易時段成交量",
    "合計成交量",
]


def make_table_report(
    trading_date: str,
    rows: list[list[str]],
    header: list[str] | None = None,
) -> str:
    """HTML report with a proper quote table."""
    header = TABLE_HEADER_CELLS if header is None else header
    head = "".join(f"<th>{h}</th>" for h in header)
    body = "".join(
        "<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>" for row in rows
    )
    return (
        "<html><body>"
        f"<div class='caption'>日期：{trading_date}</div>"
        f"<table><tr>{head}</tr>{body}</table>"
        "</body></html>"
    )


def make_text_report(trading_date: str, lines: list[str]) -> str:
    """HTML report whose quotes are loose text lines (no table)."""
    content = "\n".join([f"日期： {trading_date}"] + lines)
    return f"<html><body><pre>\n{content}\n</pre></body></html>"


def tx_row(month: str, close: str, total: str, regular: str = "-", after: str = "-") -> list[str]:
    return ["TX", month, "22,900", "23,100", "22,850", close, "+50", regular, after, total]


def weekday_fetcher(close_for=lambda d: 20000.0 + d.toordinal() % 100):
    """Fake per-date fetcher: quotes on Mon–Fri, None on weekends.

    Records every requested date on ``fetch.calls``.
    """

    def fetch(symbol: str, day: date, session):
        fetch.calls.append(day)
        if day.weekday() >= 5:
            return None
        return ContractQuote(contract=symbol, month="202501", close=close_for(day), total_volume=1000)

    fetch.calls = []
    return fetch


def previous_weekday(day: date) -> date:
    while day.weekday() >= 5:
        day -= timedelta(days=1)
    return day


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_cache():
    """Every test starts with an empty in-memory cache."""
    cache._mem_cache.clear()
    yield
    cache._mem_cache.clear()


@pytest.fixture()
def open_data_bytes() -> bytes:
    return make_open_data_bytes()


@pytest.fixture()
def table_report() -> str:
    return make_table_report(
        "2025/01/03",
        [
            tx_row("202501", "23,000", "120", regular="100", after="20"),
            tx_row("202502", "23,050", "500", regular="450", after="50"),
            tx_row("202501/202502", "50", "99,999"),
            ["MTX", "202501", "1", "1", "1", "23,001", "+1", "1", "1", "88,888"],
        ],
    )


@pytest.fixture()
def text_report() -> str:
    return make_text_report(
        "2025/01/03",
        [
            "臺股期貨",
            "TX",
            "202501",
            "22900 23100 22850 23000 +0.22% 20 100 120",
            "TX",
            "202502",
            "22950 23150 22900 23050 +0.30% 50 450 500",
            "價差行情表",
            "TX",
            "202503",
            "1 2 3 4 +1% 5 6 999999",
        ],
    )
