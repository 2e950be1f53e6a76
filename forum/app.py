"""
FastAPI application entry point for the forum backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from forum.config import Settings, get_settings
from forum.routes import NOT_FOUND_MESSAGE, router
from forum.schemas import ErrorEnvelope

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _error_response(
    message: str, status_code: int, headers: Optional[dict] = None
) -> JSONResponse:
    return JSONResponse(
        ErrorEnvelope(message=message).model_dump(),
        status_code=status_code,
        headers=headers,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    api_root = settings.api_prefix.rstrip("/") + "/"

    def is_api_path(request: Request) -> bool:
        return request.url.path.startswith(api_root)

    app = FastAPI(title="Forum Backend (FastAPI)", version="0.1.0")

    @app.middleware("http")
    async def preflight_and_cors(request: Request, call_next):
        # Preflight is answered before any routing, whatever the path.
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        if not is_api_path(request):
            return await call_next(request)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error on %s %s", request.method, request.url.path
            )
            response = _error_response("internal server error", 500)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def envelope_http_exception(request: Request, exc: StarletteHTTPException):
        if not is_api_path(request):
            return await http_exception_handler(request, exc)
        if exc.status_code == 405:
            # Dispatch matches (method, path) pairs; a method miss is a plain miss.
            return _error_response(NOT_FOUND_MESSAGE, 404)
        return _error_response(str(exc.detail), exc.status_code, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def envelope_validation_error(request: Request, exc: RequestValidationError):
        if not is_api_path(request):
            return await request_validation_exception_handler(request, exc)
        logger.info(
            "Rejected malformed request to %s (%d errors)",
            request.url.path,
            len(exc.errors()),
        )
        return _error_response("invalid request body", 400)

    app.include_router(router, prefix=settings.api_prefix)

    if settings.static_dir:
        # Everything outside the API prefix is handed to the static file server.
        app.mount(
            "/", StaticFiles(directory=settings.static_dir, html=True), name="static"
        )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    uvicorn.run("forum.app:app", host="0.0.0.0", port=8000)
