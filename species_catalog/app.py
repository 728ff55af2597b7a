"""
FastAPI application entry point for the species catalog.
"""

from __future__ import annotations

import locale
import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from species_catalog.config import get_settings
from species_catalog.db import DataAccessError
from species_catalog.pages import router as pages_router
from species_catalog.routes import router

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


async def _data_access_error_handler(request: Request, exc: DataAccessError):
    logger.warning("Backend error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=502, content={"detail": exc.message})


def _configure_locale() -> None:
    # Comment timestamps are rendered with %x / %X, which follow LC_TIME.
    try:
        locale.setlocale(locale.LC_TIME, "")
    except locale.Error as exc:
        logger.warning("Could not apply the environment's time locale: %s", exc)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    _configure_locale()
    app = FastAPI(title="Species Catalog", version="0.1.0")
    app.add_exception_handler(DataAccessError, _data_access_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(pages_router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "species_catalog.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
