"""
Health check API router.

    GET /health — cache backend status and which series are warm
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter

from src.taifex_lib.core import cache
from src.taifex_lib.core.models import EXCHANGE_TZ

logger = logging.getLogger("api.health")

router = APIRouter(tags=["health"])


def _cache_status() -> dict[str, Any]:
    if not cache.REDIS_AVAILABLE:
        return {"backend": "memory", "status": "ok", "series": cache.cached_keys()}
    try:
        cache._r.ping()
        return {"backend": "redis", "status": "ok", "series": cache.cached_keys()}
    except Exception as exc:
        logger.warning("Redis ping failed: %s", exc)
        return {"backend": "redis", "status": "error", "error": str(exc)}


@router.get("/health")
def health():
    status = _cache_status()
    return {
        "status": "degraded" if status["status"] == "error" else "ok",
        "timestamp": datetime.now(tz=EXCHANGE_TZ).isoformat(),
        "components": {"cache": status},
    }
