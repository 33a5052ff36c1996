"""
Closes API router.

Endpoints:
    GET /api/closes         — live per-date walk (never cached)
    GET /api/closes/cached  — cached series, warmed from the open-data feed
    GET /api/boot           — every symbol × session from the cache, in one
                              payload for the dashboard to embed
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response

from src.taifex_lib.core.errors import SchemaMismatchError, TaifexError
from src.taifex_lib.core.models import (
    DEFAULT_DAYS,
    DEFAULT_SYMBOL,
    SYMBOLS,
    SeriesRequest,
    Session,
    clamp_days,
)
from src.taifex_lib.services import closes as closes_service
from src.taifex_lib.services.data.api.rate_limit import LIVE_WALK_LIMIT, get_limiter

logger = logging.getLogger("api.closes")

router = APIRouter(tags=["Closes"])
limiter = get_limiter()


# ---------------------------------------------------------------------------
# Query validation
# ---------------------------------------------------------------------------


def _validate_symbol(symbol: str) -> str:
    sym = (symbol or "").strip().upper()
    if sym not in SYMBOLS:
        raise HTTPException(status_code=400, detail="bad symbol")
    return sym


def _parse_session(market_code: str) -> Session:
    try:
        return Session.parse(market_code)
    except ValueError:
        raise HTTPException(status_code=400, detail="bad marketCode") from None


def _parse_start(start: Optional[str]) -> Optional[date]:
    if not start:
        return None
    try:
        return date.fromisoformat(start)
    except ValueError:
        raise HTTPException(status_code=400, detail="bad start date") from None


def _warm(symbol: str, session: Session) -> dict:
    try:
        return closes_service.get_or_warm(symbol, session)
    except SchemaMismatchError as exc:
        logger.error("Open-data schema changed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except TaifexError as exc:
        logger.error("Open-data fetch failed for %s/%s: %s", symbol, int(session), exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/api/closes")
@limiter.limit(LIVE_WALK_LIMIT)
def get_closes(
    request: Request,
    response: Response,
    symbol: str = Query(DEFAULT_SYMBOL, description="TX, MTX or TMF"),
    days: int = Query(DEFAULT_DAYS, description="Trading days to collect (1-60)"),
    marketCode: str = Query("0", description="0 = regular, 1 = after-hours"),
    start: Optional[str] = Query(None, description="Anchor date yyyy-mm-dd"),
):
    """Walk back from *start* (or today, Taipei) collecting main-contract closes."""
    series_request = SeriesRequest(
        symbol=_validate_symbol(symbol),
        session=_parse_session(marketCode),
        count=clamp_days(days),
        anchor_date=_parse_start(start),
    )
    result = closes_service.series_from_daily_reports(series_request)

    response.headers["Cache-Control"] = "no-store"
    payload = result.to_payload()
    payload["start"] = start or None
    return payload


@router.get("/api/closes/cached")
def get_cached_closes(
    symbol: str = Query(DEFAULT_SYMBOL, description="TX, MTX or TMF"),
    marketCode: str = Query("0", description="0 = regular, 1 = after-hours"),
):
    """Cached series; computed from the open-data feed on a miss."""
    return _warm(_validate_symbol(symbol), _parse_session(marketCode))


@router.get("/api/boot")
def get_boot():
    """All symbol/session series keyed ``"<symbol>:<marketCode>"``."""
    boot = {}
    for session in Session:
        for symbol in SYMBOLS:
            boot[f"{symbol}:{int(session)}"] = _warm(symbol, session)
    return {
        "defaultSymbol": DEFAULT_SYMBOL,
        "defaultMarket": str(int(Session.REGULAR)),
        "boot": boot,
    }
