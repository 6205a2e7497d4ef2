from typing import Any, Dict

import pytest
from fastapi import APIRouter, Request
from fastapi.testclient import TestClient

from billing_invoicer import create_app
from billing_invoicer.config import Config
from billing_invoicer.errors import AppError

TEST_ORIGIN = "https://shop.example.test"


def build_test_config(**overrides: Any) -> Config:
    defaults: dict[str, Any] = {
        "NODE_ENV": "test",
        "LOG_LEVEL": "WARNING",
        "LOG_JSON": False,
        "METRICS_ENABLED": False,
    }
    defaults.update(overrides)
    return Config.model_validate(defaults)


def build_probe_router() -> APIRouter:
    """Stand-in route module exercising the route module contract."""
    router = APIRouter()

    @router.post("/echo")
    async def echo(request: Request) -> Dict[str, Any]:
        return {"you_sent": getattr(request.state, "body", None)}

    @router.get("/boom")
    async def boom() -> Dict[str, Any]:
        raise RuntimeError("route module failure")

    @router.get("/conflict")
    async def conflict() -> Dict[str, Any]:
        raise AppError("Invoice already issued", status_code=409, code="CONFLICT", details={"invoice_id": 7})

    return router


def assert_cors_reflected(response: Any, origin: str = TEST_ORIGIN) -> None:
    assert response.headers["access-control-allow-origin"] == origin
    assert response.headers["access-control-allow-credentials"] == "true"


def assert_payload_too_large_response(response: Any, *, max_request_body_bytes: int) -> Dict[str, Any]:
    assert response.status_code == 413
    payload = response.json()
    assert payload["code"] == "PAYLOAD_TOO_LARGE"
    assert payload["message"] == "Payload Too Large"
    assert payload["details"]["max_request_body_bytes"] == max_request_body_bytes
    return payload


@pytest.fixture
def make_client():
    clients: list[TestClient] = []

    def _make(config: Config | None = None, **kwargs: Any) -> TestClient:
        app = create_app(config or build_test_config(), **kwargs)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def probe_client(make_client):
    return make_client(route_groups={"invoices": build_probe_router()})
