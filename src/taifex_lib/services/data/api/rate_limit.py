"""
Per-client request throttling for the closes API (``slowapi``).

A single ``/api/closes`` call can fan out into as many TAIFEX report
requests as ``CLOSES_LOOKBACK_GUARD`` allows, so that route is decorated
with ``LIVE_WALK_LIMIT``.  Everything else shares ``CACHED_READ_LIMIT``.

Environment:
  - ``RATE_LIMIT_ENABLED``  "0" turns throttling into a no-op (tests)
  - ``RATE_LIMIT_DEFAULT``  cached reads, default "30/minute"
  - ``RATE_LIMIT_HEAVY``    live walk, default "5/minute"
  - ``RATE_LIMIT_STORAGE``  limits backend URI, default "memory://"

Usage::

    limiter = get_limiter()

    @router.get("/api/closes")
    @limiter.limit(LIVE_WALK_LIMIT)
    def get_closes(request: Request, ...): ...
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

logger = logging.getLogger("api.rate_limit")

THROTTLING_ON = os.getenv("RATE_LIMIT_ENABLED", "1").strip().lower() in ("1", "true", "yes")
LIMITS_STORAGE = os.getenv("RATE_LIMIT_STORAGE", "") or "memory://"

# Installed but never reached when throttling is off.
_UNLIMITED = "999999/second"


def _limit_from_env(var: str, fallback: str) -> str:
    return os.getenv(var, fallback) if THROTTLING_ON else _UNLIMITED


CACHED_READ_LIMIT = _limit_from_env("RATE_LIMIT_DEFAULT", "30/minute")
LIVE_WALK_LIMIT = _limit_from_env("RATE_LIMIT_HEAVY", "5/minute")


def client_bucket(request: Request) -> str:
    """Throttle per originating IP: first ``X-Forwarded-For`` hop, else the peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    origin = forwarded.split(",")[0].strip() or get_remote_address(request)
    return f"ip:{origin}"


_limiter: Optional[Limiter] = None


def get_limiter() -> Limiter:
    global _limiter
    if _limiter is None:
        _limiter = Limiter(
            key_func=client_bucket,
            default_limits=[CACHED_READ_LIMIT],
            storage_uri=LIMITS_STORAGE,
            strategy="fixed-window",
        )
        logger.info(
            "Throttling %s (cached reads %s, live walk %s, storage %s)",
            "on" if THROTTLING_ON else "off",
            CACHED_READ_LIMIT,
            LIVE_WALK_LIMIT,
            LIMITS_STORAGE,
        )
    return _limiter


def _too_many_requests(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "Throttled %s %s for %s (%s)",
        request.method,
        request.url.path,
        client_bucket(request),
        exc.detail,
    )
    return JSONResponse(
        status_code=429,
        content={"error": "rate_limit_exceeded", "detail": f"Rate limit exceeded: {exc.detail}"},
    )


def setup_rate_limiting(app: FastAPI) -> Limiter:
    """Attach the shared limiter to *app* and answer throttled calls with 429 JSON."""
    limiter = get_limiter()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _too_many_requests)
    return limiter
