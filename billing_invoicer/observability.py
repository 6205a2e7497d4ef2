from __future__ import annotations

import logging
import sys
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.routing import Match

from billing_invoicer.errors import original_url

REQUEST_COUNT = Counter(
    "billing_invoicer_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "billing_invoicer_http_request_duration_seconds",
    "HTTP request latency (seconds)",
    ["method", "path"],
)
ALLOWED_HTTP_METHOD_LABELS = {"GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"}
MAX_PATH_LABEL_LENGTH = 96
UNMATCHED_PATH_LABEL = "/_unmatched"
CLF_DATE_FORMAT = "%d/%b/%Y:%H:%M:%S %z"

access_logger = logging.getLogger("billing_invoicer.access")
logger = logging.getLogger("billing_invoicer.api")


def _route_template(request: Request, api: FastAPI) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path:
        return str(route_path)

    for candidate in api.router.routes:
        try:
            matched, _ = candidate.matches(request.scope)
        except (AttributeError, KeyError, TypeError, ValueError):
            continue
        if matched == Match.FULL and getattr(candidate, "path", None):
            return str(candidate.path)
    return UNMATCHED_PATH_LABEL


def metric_method_label(method: str | None) -> str:
    normalized = (method or "").upper()
    if normalized in ALLOWED_HTTP_METHOD_LABELS:
        return normalized
    return "OTHER"


def metric_path_label(request: Request, api: FastAPI) -> str:
    path = _route_template(request, api)
    if len(path) > MAX_PATH_LABEL_LENGTH:
        return "/_label_too_long"
    return path


def metric_status_label(status_code: int) -> str:
    if 100 <= int(status_code) <= 599:
        return str(int(status_code))
    return "000"


def format_combined_log_line(
    *,
    client_ip: str | None,
    requested_at: datetime,
    method: str,
    url: str,
    http_version: str,
    status_code: int,
    content_length: str | None,
    referrer: str | None,
    user_agent: str | None,
) -> str:
    return '{host} - - [{date}] "{method} {url} HTTP/{version}" {status} {length} "{referrer}" "{agent}"'.format(
        host=client_ip or "-",
        date=requested_at.strftime(CLF_DATE_FORMAT),
        method=method,
        url=url,
        version=http_version,
        status=int(status_code),
        length=content_length or "-",
        referrer=referrer or "-",
        agent=user_agent or "-",
    )


def build_request_log_payload(
    *,
    request_id: str,
    method: str,
    path: str,
    status_code: int,
    elapsed_seconds: float,
    client_ip: str | None,
) -> dict[str, str | int | float | None]:
    return {
        "request_id": request_id,
        "method": method,
        "path": path,
        "status_code": int(status_code),
        "duration_ms": round(elapsed_seconds * 1000, 2),
        "client_ip": client_ip,
    }


def _observe_request_metrics(*, method: str, path: str, status_code: int, elapsed_seconds: float) -> None:
    method_label = metric_method_label(method)
    REQUEST_COUNT.labels(method_label, path, metric_status_label(status_code)).inc()
    REQUEST_LATENCY.labels(method_label, path).observe(elapsed_seconds)


def build_access_log_middleware(
    api: FastAPI,
    *,
    metrics_enabled: bool,
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def access_log(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        requested_at = datetime.now(timezone.utc)
        started = time.perf_counter()
        client_ip = request.client.host if request.client else None
        url = original_url(request)
        response: Response | None = None
        status_code = 500

        try:
            response = await call_next(request)
            status_code = int(response.status_code)
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            elapsed = time.perf_counter() - started
            if metrics_enabled:
                _observe_request_metrics(
                    method=request.method,
                    path=metric_path_label(request, api),
                    status_code=status_code,
                    elapsed_seconds=elapsed,
                )
            line = format_combined_log_line(
                client_ip=client_ip,
                requested_at=requested_at,
                method=request.method,
                url=url,
                http_version=request.scope.get("http_version", "1.1"),
                status_code=status_code,
                content_length=response.headers.get("content-length") if response is not None else None,
                referrer=request.headers.get("referer"),
                user_agent=request.headers.get("user-agent"),
            )
            log_payload = build_request_log_payload(
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                elapsed_seconds=elapsed,
                client_ip=client_ip,
            )
            if sys.exc_info()[1] is not None:
                logger.exception("request_failed", extra=log_payload)
            access_logger.info(line, extra=log_payload)

    return access_log


def register_observability(api: FastAPI, *, metrics_enabled: bool) -> None:
    if not metrics_enabled:
        return

    @api.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
