# oil_monitor/api/app.py

"""HTTP trigger and history endpoints for cron-driven scrapes."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from oil_monitor.api.auth import require_bearer_auth
from oil_monitor.config.settings import Settings
from oil_monitor.services.history_limit import parse_limit
from oil_monitor.services.price_monitor import OilPriceMonitor
from oil_monitor.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("oil_monitor.api")


class UnauthorizedError(Exception):
    """Raised by the auth dependency; rendered as a 401."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def create_app(
    settings: Settings | None = None,
    db: PriceHistoryDB | None = None,
    monitor: OilPriceMonitor | None = None,
) -> FastAPI:
    """Build the API around one database connection and monitor."""
    cfg = settings or Settings()
    owns_db = db is None
    database = db or PriceHistoryDB(cfg.PRICE_DB_PATH)
    price_monitor = monitor or OilPriceMonitor(database, settings=cfg)

    @asynccontextmanager
    async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
        logger.info("Oil price API started")
        try:
            yield
        finally:
            if owns_db:
                database.close()
            logger.info("Oil price API shut down")

    application = FastAPI(
        title="Oil Price Monitor API",
        version="0.1.0",
        lifespan=_lifespan,
    )

    @application.exception_handler(UnauthorizedError)
    async def _unauthorized(
        request: Request, exc: UnauthorizedError,
    ) -> JSONResponse:
        logger.warning(
            "Rejected %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )
        return JSONResponse(status_code=401, content={"error": exc.message})

    def _require_auth(
        authorization: str | None = Header(default=None),
    ) -> None:
        result = require_bearer_auth(authorization, cfg.CRON_SECRET_TOKEN)
        if not result.authorized:
            raise UnauthorizedError(result.message or "Unauthorized")

    @application.api_route(
        "/api/scrape-oil-prices",
        methods=["GET", "POST"],
        dependencies=[Depends(_require_auth)],
    )
    def scrape_oil_prices() -> JSONResponse:
        """Run one scrape and report whether it succeeded."""
        outcome = price_monitor.run()
        return JSONResponse(
            status_code=200 if outcome.ok else 500,
            content=outcome.to_dict(),
        )

    @application.get(
        "/api/oil-prices",
        dependencies=[Depends(_require_auth)],
    )
    def oil_prices(limit: str | None = None) -> dict[str, Any]:
        """Most recent snapshots, newest first."""
        n = parse_limit(
            limit, cfg.HISTORY_DEFAULT_LIMIT, cfg.HISTORY_MAX_LIMIT,
        )
        records = database.get_recent_records(n)
        return {"data": [r.to_dict() for r in records]}

    return application
