"""
TAIFEX Closes Service — FastAPI application
===========================================
Serves main-contract close series for TX / MTX / TMF:

  - ``/api/closes``         live per-date walk of the daily market report
  - ``/api/closes/cached``  cached series from the open-data export
  - ``/api/boot``           every cached series in one payload
  - ``/api/cron/night``     scheduled refresh (Bearer ``CRON_SECRET``)
  - ``/health``             cache backend status

Usage (from project root):
    uvicorn src.taifex_lib.services.data.main:app --host 0.0.0.0 --port 8000
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.taifex_lib.core import cache
from src.taifex_lib.core.logging_config import setup_logging
from src.taifex_lib.services.data.api.closes import router as closes_router
from src.taifex_lib.services.data.api.cron import router as cron_router
from src.taifex_lib.services.data.api.health import router as health_router
from src.taifex_lib.services.data.api.rate_limit import setup_rate_limiting

logger = logging.getLogger("closes_service")

SERVICE_NAME = "taifex-closes-service"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(service="closes-service")
    logger.info(
        "Closes service starting (cache backend: %s)",
        "redis" if cache.REDIS_AVAILABLE else "memory",
    )
    yield
    logger.info("Closes service stopped")


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    """Build the application.  Tests pass ``with_lifespan=False`` to skip
    the process-wide logging setup."""
    app = FastAPI(
        title="TAIFEX Closes Service",
        description=(
            "Daily main-contract closes and 4-session averages for TAIFEX "
            "index futures."
        ),
        version=VERSION,
        lifespan=lifespan if with_lifespan else None,
    )

    # Read-only GETs, consumed by a statically hosted dashboard.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    setup_rate_limiting(app)

    app.include_router(closes_router)
    app.include_router(cron_router)
    app.include_router(health_router)

    @app.get("/")
    def root():
        """Service info and links to docs."""
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "closes": "/api/closes",
                "cached": "/api/closes/cached",
                "boot": "/api/boot",
                "night_refresh": "/api/cron/night",
                "health": "/health",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("DATA_SERVICE_HOST", "0.0.0.0")
    port = int(os.getenv("DATA_SERVICE_PORT", "8000"))

    uvicorn.run(app, host=host, port=port, log_level="info")
