"""
FastAPI application entry point for the Crine backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from google.api_core import exceptions

from crine.config import get_settings
from crine.errors import QuotaExceededError, UnauthenticatedError
from crine.routes import router

logger = logging.getLogger(__name__)


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UnauthenticatedError)
    async def unauthenticated_handler(request: Request, exc: UnauthenticatedError):
        return JSONResponse(
            status_code=401,
            content={"detail": str(exc), "code": "UNAUTHENTICATED"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(QuotaExceededError)
    async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
        return JSONResponse(
            status_code=409,
            content={
                "detail": str(exc),
                "code": "QUOTA_EXCEEDED",
                "limit": exc.limit,
            },
        )

    @app.exception_handler(exceptions.NotFound)
    async def not_found_handler(request: Request, exc: exceptions.NotFound):
        return JSONResponse(
            status_code=404, content={"detail": exc.message, "code": "NOT_FOUND"}
        )

    @app.exception_handler(exceptions.PermissionDenied)
    async def permission_denied_handler(
        request: Request, exc: exceptions.PermissionDenied
    ):
        logger.error("Backend permission denied on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=403,
            content={"detail": exc.message, "code": "PERMISSION_DENIED"},
        )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="Crine Backend (FastAPI)", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    add_exception_handlers(app)
    return app


app = create_app()
