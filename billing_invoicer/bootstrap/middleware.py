from __future__ import annotations

import logging
from collections.abc import Mapping

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from billing_invoicer.bootstrap.body_parsing import build_body_parser
from billing_invoicer.bootstrap.contracts import CallNext, ErrorHandler
from billing_invoicer.bootstrap.exception_handlers import build_error_boundary
from billing_invoicer.config import Config
from billing_invoicer.errors import original_url
from billing_invoicer.observability import build_access_log_middleware
from billing_invoicer.policy import RuntimePolicy

REFLECT_ANY_ORIGIN_REGEX = r".*"
OPTIONS_SUCCESS_STATUS = 200

diagnostic_logger = logging.getLogger("billing_invoicer.requests")


def build_security_headers(headers: Mapping[str, str]):
    async def security_headers(request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        if "x-powered-by" in response.headers:
            del response.headers["x-powered-by"]
        return response

    return security_headers


async def answer_options(request: Request, call_next: CallNext) -> Response:
    # Preflights are answered by CORSMiddleware; any other OPTIONS ends here too.
    if request.method == "OPTIONS":
        return Response(status_code=OPTIONS_SUCCESS_STATUS)
    return await call_next(request)


async def diagnostic_request_log(request: Request, call_next: CallNext) -> Response:
    origin = request.headers.get("origin")
    diagnostic_logger.info(
        "[REQ] %s %s - Origin: %s",
        request.method,
        original_url(request),
        origin,
        extra={"method": request.method, "path": request.url.path, "origin": origin},
    )
    return await call_next(request)


def cors_options(config: Config) -> dict:
    options: dict = {
        "allow_credentials": config.CORS_ALLOW_CREDENTIALS,
        "allow_methods": config.cors_allow_methods_list,
        "allow_headers": config.cors_allow_headers_list,
    }
    # allow_origins=["*"] answers "*" unless the request carries a cookie;
    # the regex form echoes every caller origin.
    if config.cors_reflects_any_origin:
        options["allow_origin_regex"] = REFLECT_ANY_ORIGIN_REGEX
    else:
        options["allow_origins"] = config.cors_allow_origins_list
    return options


def register_core_middleware(
    api: FastAPI,
    config: Config,
    policy: RuntimePolicy,
    *,
    handle_error: ErrorHandler,
) -> None:
    """Install the middleware stack.

    Request order, outermost first: proxy headers, security headers, access
    log, CORS, OPTIONS answer, diagnostic log (non-production), terminal
    error boundary, body parsing. Starlette runs the most recently added
    middleware first, so layers are added innermost first.
    """
    api.add_middleware(BaseHTTPMiddleware, dispatch=build_body_parser(max_body_bytes=config.MAX_REQUEST_BODY_BYTES))
    api.add_middleware(BaseHTTPMiddleware, dispatch=build_error_boundary(handle_error))
    if policy.diagnostic_logging:
        api.add_middleware(BaseHTTPMiddleware, dispatch=diagnostic_request_log)
    api.add_middleware(BaseHTTPMiddleware, dispatch=answer_options)
    api.add_middleware(CORSMiddleware, **cors_options(config))
    api.add_middleware(
        BaseHTTPMiddleware,
        dispatch=build_access_log_middleware(api, metrics_enabled=config.METRICS_ENABLED),
    )
    api.add_middleware(BaseHTTPMiddleware, dispatch=build_security_headers(policy.security_headers))
    api.add_middleware(ProxyHeadersMiddleware, trusted_hosts=config.trusted_proxies_list or "127.0.0.1")
