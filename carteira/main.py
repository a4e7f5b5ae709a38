"""FastAPI application entry point.

Usage:
    carteira            (console script)
    python -m carteira.main

Serves the financial computation engine and the per-user storage endpoints.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from carteira.api.routes import router
from carteira.config import settings
from carteira.db.engine import db_lifespan, quote_cache_available

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting Carteira (env=%s)", settings.environment)
    logger.info(
        "Reference rates: CDI %s%%, SELIC fallback %s%%, inflation %s%%, %d holidays",
        settings.market.cdi_reference_rate,
        settings.market.selic_fallback_rate,
        settings.market.inflation_reference_rate,
        len(settings.market.holidays),
    )

    async with db_lifespan():
        logger.info("Database ready")
        if not await quote_cache_available():
            logger.warning("Starting without quote cache; every valuation fetches live quotes")
        yield

    logger.info("Carteira shutdown complete")


app = FastAPI(
    title="Carteira API",
    description="Portfolio valuation, fixed-income accrual, amortized debts and XIRR",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "environment": settings.environment,
        "quote_cache": "ok" if await quote_cache_available() else "unavailable",
    }


def run() -> None:
    uvicorn.run(
        "carteira.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
