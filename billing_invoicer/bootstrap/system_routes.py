from __future__ import annotations

from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from billing_invoicer.schemas import ErrorResponse, HealthResponse

HEALTH_MESSAGE = "Billing Invoicer API is running"
API_HEALTH_MESSAGE = "Billing Invoicer API (api path) is running"


def utc_timestamp(now: datetime | None = None) -> str:
    value = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def health_payload(message: str) -> HealthResponse:
    return HealthResponse(status="OK", message=message, timestamp=utc_timestamp())


def register_system_routes(api: FastAPI) -> None:
    @api.get("/health", tags=["system"], response_model=HealthResponse, responses={500: {"model": ErrorResponse}})
    async def health() -> HealthResponse:
        return health_payload(HEALTH_MESSAGE)

    # Mirrors /health for clients whose base URL already ends in /api.
    @api.get("/api/health", tags=["system"], response_model=HealthResponse, responses={500: {"model": ErrorResponse}})
    async def api_health() -> HealthResponse:
        return health_payload(API_HEALTH_MESSAGE)

    @api.get("/ping", tags=["system"], response_class=PlainTextResponse)
    async def ping() -> PlainTextResponse:
        return PlainTextResponse("pong")
