"""
Scheduled refresh router.

    GET /api/cron/night — recompute and cache every symbol for the
                          after-hours session (or ``marketCode``)

Requires ``Authorization: Bearer $CRON_SECRET``.  Per-symbol failures are
reported in ``results`` instead of failing the whole call, so one bad
symbol does not leave the others stale.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from src.taifex_lib.core.models import SYMBOLS, Session
from src.taifex_lib.services import closes as closes_service
from src.taifex_lib.services.data.api.auth import require_cron_secret

logger = logging.getLogger("api.cron")

router = APIRouter(tags=["Cron"], dependencies=[Depends(require_cron_secret)])


@router.get("/api/cron/night")
def night_refresh(
    marketCode: str = Query("1", description="Session to refresh (default after-hours)"),
):
    try:
        session = Session.parse(marketCode)
    except ValueError:
        raise HTTPException(status_code=400, detail="bad marketCode") from None

    results = closes_service.refresh_symbols(SYMBOLS, session)
    logger.info(
        "Night refresh: %d/%d symbols ok",
        sum(1 for r in results if r["ok"]),
        len(results),
    )
    return {"ok": True, "type": "night", "results": results}
