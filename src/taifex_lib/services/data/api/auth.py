"""
Bearer-token authentication for the scheduled refresh endpoint.

The night refresh is triggered by an external scheduler that sends
``Authorization: Bearer <CRON_SECRET>``.  When ``CRON_SECRET`` is unset
every request is rejected.

Usage::

    from src.taifex_lib.services.data.api.auth import require_cron_secret

    @router.get("/night", dependencies=[Depends(require_cron_secret)])
    def night(): ...
"""

from __future__ import annotations

import logging
import os
import secrets
from typing import Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger("api.auth")

_bearer_scheme = HTTPBearer(auto_error=False)


def get_cron_secret() -> str:
    """Read on every call so tests and deployments can rotate it live."""
    return os.getenv("CRON_SECRET", "").strip()


async def require_cron_secret(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer_scheme),
) -> None:
    """FastAPI dependency enforcing the cron bearer token.

    Raises ``HTTPException(401)`` when no secret is configured, when the
    header is missing, or when the token does not match.
    """
    expected = get_cron_secret()
    provided = credentials.credentials if credentials is not None else ""

    if not expected or not provided:
        logger.warning(
            "Unauthenticated cron request blocked: %s %s",
            request.method,
            request.url.path,
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    # Constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(provided, expected):
        logger.warning(
            "Invalid cron token from %s for %s",
            request.client.host if request.client else "unknown",
            request.url.path,
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
