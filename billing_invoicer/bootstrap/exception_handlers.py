from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from billing_invoicer.bootstrap.contracts import CallNext, ErrorHandler
from billing_invoicer.errors import (
    AppError,
    app_error_response,
    error_response,
    normalize_http_exception,
    route_not_found_payload,
)


def build_error_handler(*, logger: logging.Logger) -> ErrorHandler:
    """Build the terminal error handler.

    Every error that escapes a route module or the body parser ends up here
    and is converted into exactly one JSON response.
    """

    def handle_error(request: Request, exc: Exception) -> Response:
        if isinstance(exc, AppError):
            if exc.status_code >= 500:
                logger.error("app_error", extra={"request_id": getattr(request.state, "request_id", None)})
            return app_error_response(request, exc)
        if isinstance(exc, StarletteHTTPException):
            # A path registered for other methods is reported like any unmatched route.
            if exc.status_code == 405:
                return JSONResponse(route_not_found_payload(request), status_code=404)
            return normalize_http_exception(request, exc)
        if isinstance(exc, RequestValidationError):
            message = "; ".join(err.get("msg", "invalid request") for err in exc.errors())
            return error_response(
                request,
                status_code=400,
                code="VALIDATION_ERROR",
                message=message or "invalid request",
                details=exc.errors(),
            )

        logger.error(
            "unhandled_exception",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return error_response(
            request,
            status_code=500,
            code="INTERNAL_ERROR",
            message="Internal Server Error",
        )

    return handle_error


def register_exception_handlers(api: FastAPI, *, logger: logging.Logger) -> ErrorHandler:
    handle_error = build_error_handler(logger=logger)

    @api.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> Response:
        return handle_error(request, exc)

    @api.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        return handle_error(request, exc)

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
        return handle_error(request, exc)

    return handle_error


def build_error_boundary(handle_error: ErrorHandler):
    async def error_boundary(request: Request, call_next: CallNext) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return handle_error(request, exc)

    return error_boundary
