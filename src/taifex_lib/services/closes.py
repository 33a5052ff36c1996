"""
Main-contract close series: assembly, rolling averages and caching.

Two acquisition paths produce the same ``SeriesResult``:

  - ``series_from_open_data``     — one bulk download, filtered in memory
                                    (used by the cache / night refresh)
  - ``series_from_daily_reports`` — walk back one calendar day at a time,
                                    one report request per day (used by the
                                    live ``/api/closes`` endpoint)

The walk is sequential and stops as soon as enough trading days are
collected.  Weekends and holidays are not known up front; a day whose
report carries another date is skipped, and ``lookback_guard`` caps the
number of calendar days examined.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from src.taifex_lib.core.cache import get_cached_series, set_cached_series
from src.taifex_lib.core.errors import AcquisitionError, TaifexError
from src.taifex_lib.core.logging_config import get_logger
from src.taifex_lib.core.models import (
    EXCHANGE_TZ,
    LOOKBACK_GUARD,
    SYMBOLS,
    ClosePoint,
    ContractQuote,
    SeriesRequest,
    SeriesResult,
    Session,
    clamp_days,
)
from src.taifex_lib.integrations.taifex_client import TaifexClient
from src.taifex_lib.parsing.open_data import closes_from_open_data

logger = get_logger("closes")

DailyFetcher = Callable[[str, date, Session], Optional[ContractQuote]]


def exchange_now() -> datetime:
    return datetime.now(tz=EXCHANGE_TZ)


def exchange_today() -> date:
    return exchange_now().date()


# ---------------------------------------------------------------------------
# Rolling averages
# ---------------------------------------------------------------------------


def _mean_close(points: list[ClosePoint]) -> float:
    return round(sum(p.close for p in points) / len(points), 2)


def compute_avg_prev4(points: list[ClosePoint]) -> float | None:
    """Mean close of the four sessions before the newest one."""
    if len(points) < 5:
        return None
    return _mean_close(points[1:5])


def compute_avg_next4(points: list[ClosePoint]) -> float | None:
    """Mean close of the four newest sessions (naive next-day estimate)."""
    if len(points) < 4:
        return None
    return _mean_close(points[0:4])


def build_result(
    symbol: str,
    session: Session,
    points: list[ClosePoint],
    fetched_at: datetime | None = None,
) -> SeriesResult:
    return SeriesResult(
        symbol=symbol,
        session=Session(session),
        fetched_at=fetched_at or exchange_now(),
        avg_prev4=compute_avg_prev4(points),
        avg_next4=compute_avg_next4(points),
        points=list(points),
    )


# ---------------------------------------------------------------------------
# Date walker
# ---------------------------------------------------------------------------


def walk_trading_days(
    request: SeriesRequest,
    fetch_one: DailyFetcher,
    *,
    today: Callable[[], date] = exchange_today,
    lookback_guard: int = LOOKBACK_GUARD,
) -> list[ClosePoint]:
    """Collect up to ``request.count`` trading days, newest first.

    ``fetch_one(symbol, day, session)`` returns a quote, or None when *day*
    was not a trading day.  ``AcquisitionError`` from a single day is
    logged and the walk continues.  At most *lookback_guard* calendar days
    are fetched.
    """
    need = clamp_days(request.count)
    day = request.anchor_date or today()
    log = logger.bind(symbol=request.symbol, session=int(request.session))

    points: list[ClosePoint] = []
    attempts = 0
    while len(points) < need and attempts < lookback_guard:
        try:
            quote = fetch_one(request.symbol, day, request.session)
        except AcquisitionError as exc:
            log.warning(
                "date_fetch_failed",
                date=day.isoformat(),
                status_code=exc.status_code,
                error=str(exc),
            )
            quote = None
        if quote is not None:
            points.append(
                ClosePoint(
                    date=day.isoformat(),
                    close=quote.close,
                    contract_month=quote.month,
                    volume=int(quote.total_volume),
                )
            )
        day -= timedelta(days=1)
        attempts += 1

    log.info("walk_finished", points=len(points), attempts=attempts, wanted=need)
    return points


def series_from_daily_reports(
    request: SeriesRequest,
    client: TaifexClient | None = None,
    *,
    today: Callable[[], date] = exchange_today,
    lookback_guard: int = LOOKBACK_GUARD,
) -> SeriesResult:
    """Live per-date walk against the daily market report."""
    owns = client is None
    client = client or TaifexClient()
    try:
        points = walk_trading_days(
            request, client.fetch_daily_quote, today=today, lookback_guard=lookback_guard
        )
    finally:
        if owns:
            client.close()
    return build_result(request.symbol, request.session, points)


# ---------------------------------------------------------------------------
# Bulk feed
# ---------------------------------------------------------------------------


def series_from_open_data(
    symbol: str,
    session: Session,
    days: int = 30,
    client: TaifexClient | None = None,
) -> SeriesResult:
    """Series from the open-data export.

    Raises ``AcquisitionError`` if the download fails and
    ``SchemaMismatchError`` if the export's headers changed.
    """
    owns = client is None
    client = client or TaifexClient()
    try:
        raw = client.fetch_open_data()
    finally:
        if owns:
            client.close()
    points = closes_from_open_data(raw, symbol, Session(session), clamp_days(days))
    return build_result(symbol, session, points)


# ---------------------------------------------------------------------------
# Cache facade
# ---------------------------------------------------------------------------


def get_or_warm(
    symbol: str,
    session: Session,
    compute: Callable[[str, Session], SeriesResult] | None = None,
) -> dict:
    """Cached payload for (symbol, session), computing and storing on a miss.

    Concurrent misses are not coalesced: each computes and writes, and
    the last write wins.
    """
    cached = get_cached_series(symbol, session)
    if cached is not None:
        return cached
    logger.info("cache_miss", symbol=symbol, session=int(session))
    compute = compute or series_from_open_data
    payload = compute(symbol, Session(session)).to_payload()
    set_cached_series(symbol, session, payload)
    return payload


def refresh_symbols(
    symbols: Iterable[str] = SYMBOLS,
    session: Session = Session.AFTER_HOURS,
    compute: Callable[[str, Session], SeriesResult] | None = None,
) -> list[dict]:
    """Recompute and store every symbol; one status dict per symbol.

    A failure for one symbol is reported in its status entry and does not
    stop the others.
    """
    compute = compute or series_from_open_data
    results = []
    for symbol in symbols:
        try:
            payload = compute(symbol, Session(session)).to_payload()
            set_cached_series(symbol, session, payload)
            results.append(
                {
                    "symbol": symbol,
                    "marketCode": int(session),
                    "ok": True,
                    "fetchedAtTaipei": payload["fetchedAtTaipei"],
                }
            )
        except TaifexError as exc:
            logger.error("refresh_failed", symbol=symbol, session=int(session), error=str(exc))
            results.append(
                {
                    "symbol": symbol,
                    "marketCode": int(session),
                    "ok": False,
                    "error": str(exc),
                }
            )
    return results
