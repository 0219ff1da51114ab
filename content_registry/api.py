"""
FastAPI application for the Content Registry.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Dict

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .config import get_settings
from .db.base import get_engine, init_database
from .errors import RegistryError
from .logging_config import configure_logging
from .routes import contents_router, publications_router

logger = structlog.get_logger()

settings = get_settings()


def _version() -> str:
    try:
        return importlib.metadata.version("content-registry")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("Starting Content Registry", environment=settings.environment)

    try:
        init_database()
    except Exception as e:
        logger.error("Failed to start application", error=str(e))
        raise

    yield

    logger.info("Shutting down Content Registry")
    get_engine().dispose()


app = FastAPI(
    title="Content Registry",
    description="Registers encrypted publication artifacts in a blob store and a catalog",
    version=_version(),
    lifespan=lifespan,
)


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Render every registry failure as one well-formed payload."""
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            error=exc.code,
            detail=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed input is a 400, like any other validation failure."""
    messages = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "; ".join(messages), "error": "VALIDATION_ERROR"},
    )


app.include_router(contents_router)
app.include_router(publications_router)


# Health and Info Endpoints
@app.get("/healthz", tags=["system"])
def healthz() -> Dict[str, Any]:
    """Health check endpoint, including database reachability."""
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
        db_ok = True
    except Exception as e:
        logger.warning("healthz_db_unreachable", error=str(e))
        db_ok = False
    return {"ok": db_ok, "db": db_ok}


@app.get("/version", tags=["system"])
def version() -> Dict[str, str]:
    """Return the version of the application."""
    return {"version": _version()}
