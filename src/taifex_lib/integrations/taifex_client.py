"""
TAIFEX HTTP client
==================
Fetches the two upstream sources the closes pipeline reads:

  - the open-data bulk export (``DailyMarketReportFut``), one GET, Big5 bytes
  - the per-date futures market report (``futDailyMarketExcel``), one GET
    per calendar date, symbol and session

TAIFEX rejects requests that do not look like they come from a browser,
so every call carries a browser User-Agent and a Referer.  Any non-2xx
response, timeout or connection failure is raised as ``AcquisitionError``;
deciding whether that is fatal is the caller's job.

Usage:
    from src.taifex_lib.integrations.taifex_client import TaifexClient

    with TaifexClient() as client:
        raw = client.fetch_open_data()
        quote = client.fetch_daily_quote("TX", date(2025, 1, 2), Session.REGULAR)

Environment:
    TAIFEX_HTTP_TIMEOUT — per-request timeout in seconds (default 15)
"""

import logging
import os
from datetime import date

import httpx

from src.taifex_lib.core.errors import AcquisitionError
from src.taifex_lib.core.models import ContractQuote, Session
from src.taifex_lib.parsing.daily_report import extract_main_contract, parse_trading_date

logger = logging.getLogger("taifex_client")

OPEN_DATA_URL = (
    "https://www.taifex.com.tw/data_gov/taifex_open_data.asp"
    "?data_name=DailyMarketReportFut"
)
DAILY_REPORT_URL = "https://www.taifex.com.tw/cht/3/futDailyMarketExcel"

HTTP_TIMEOUT = float(os.getenv("TAIFEX_HTTP_TIMEOUT", "15"))

BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome Safari"
    ),
    "Accept-Language": "zh-TW,zh;q=0.9,en;q=0.6",
    "Referer": "https://www.taifex.com.tw/",
}


def format_query_date(day: date) -> str:
    """``date(2025, 1, 2)`` -> ``"2025/01/02"`` (the report's own format)."""
    return day.strftime("%Y/%m/%d")


def daily_report_params(symbol: str, day: date, session: Session | None) -> dict[str, str]:
    params = {"commodity_id": symbol, "queryDate": format_query_date(day)}
    if session is not None:
        params["marketCode"] = str(int(session))
    return params


class TaifexClient:
    """Thin synchronous wrapper around ``httpx.Client``.

    A caller-supplied ``httpx.Client`` (e.g. one with a ``MockTransport``)
    is used as-is and not closed by this wrapper.
    """

    def __init__(
        self,
        timeout: float = HTTP_TIMEOUT,
        client: httpx.Client | None = None,
    ):
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout, headers=BROWSER_HEADERS, follow_redirects=True
        )

    def __enter__(self) -> "TaifexClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _get(self, url: str, params: dict | None = None) -> httpx.Response:
        try:
            resp = self._client.get(url, params=params, headers=BROWSER_HEADERS)
        except httpx.TimeoutException as exc:
            raise AcquisitionError(f"TAIFEX request timed out: {url}") from exc
        except httpx.HTTPError as exc:
            raise AcquisitionError(f"TAIFEX request failed: {exc}") from exc
        if not resp.is_success:
            raise AcquisitionError(
                f"TAIFEX HTTP {resp.status_code}", status_code=resp.status_code
            )
        return resp

    # --- Bulk export ---

    def fetch_open_data(self) -> bytes:
        """Raw (undecoded) bytes of the open-data bulk export."""
        resp = self._get(OPEN_DATA_URL)
        logger.debug("Open data: %d bytes", len(resp.content))
        return resp.content

    # --- Per-date report ---

    def fetch_daily_report(self, symbol: str, day: date, session: Session | None) -> str:
        resp = self._get(DAILY_REPORT_URL, params=daily_report_params(symbol, day, session))
        return resp.text

    def fetch_daily_quote(
        self, symbol: str, day: date, session: Session | None
    ) -> ContractQuote | None:
        """Main-contract quote for *day*, or None if *day* had no session.

        TAIFEX answers a holiday or weekend query with the nearest earlier
        trading day's report, so the report's printed date must equal the
        requested one.  A report that neither extractor can read is also
        None.
        """
        markup = self.fetch_daily_report(symbol, day, session)
        requested = format_query_date(day)
        trading_date = parse_trading_date(markup)
        if trading_date != requested:
            logger.debug(
                "No data for %s %s (report date %s)", symbol, requested, trading_date
            )
            return None
        quote = extract_main_contract(markup, symbol)
        if quote is None:
            logger.info("Report for %s %s had no parseable main-contract row", symbol, requested)
        return quote
