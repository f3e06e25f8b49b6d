from __future__ import annotations

import logging
import os

import psycopg2
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from listing_hunter.config import ConfigError, HuntConfig
from listing_hunter.repositories.postgres import PostgresListingStore
from listing_hunter.services.hunt import make_notifier, run_hunt
from listing_hunter.utils.log import configure_logging

logger = logging.getLogger(__name__)

configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
app = FastAPI(title="Listing Hunter")


def get_config() -> HuntConfig:
    return HuntConfig.from_env()


def get_store(config: HuntConfig = Depends(get_config)) -> PostgresListingStore:
    return PostgresListingStore.from_config(config)


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "status": status, "message": message}, status_code=status)


@app.on_event("startup")
def on_startup() -> None:
    try:
        PostgresListingStore.from_config(get_config()).init_schema()
    except ConfigError as exc:
        logger.warning("Skipping schema init: %s", exc)
    except psycopg2.Error as exc:
        # DB may not be up yet; /api/hunt will report it
        logger.warning("Schema init failed: %s", exc)


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return _error(500, f"Configuration error: {exc}")


@app.get("/healthz")
def healthz() -> dict:
    return {"ok": True}


@app.get("/api/hunt")
def hunt(
    config: HuntConfig = Depends(get_config),
    store: PostgresListingStore = Depends(get_store),
) -> JSONResponse:
    try:
        outcome = run_hunt(config, store, make_notifier(config))
    except psycopg2.Error:
        logger.exception("Database error during hunt")
        return _error(500, "Database error while storing listings")
    return JSONResponse(outcome.body(), status_code=outcome.status_code)
