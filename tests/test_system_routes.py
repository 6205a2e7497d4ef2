from datetime import datetime

import pytest

from billing_invoicer.bootstrap.system_routes import utc_timestamp


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.mark.parametrize(
    ("path", "expected_message"),
    [
        ("/health", "Billing Invoicer API is running"),
        ("/api/health", "Billing Invoicer API (api path) is running"),
    ],
)
def test_health_endpoints_report_ok_with_timestamp(client, path, expected_message):
    response = client.get(path)

    assert response.status_code == 200
    payload = response.json()
    assert set(payload) == {"status", "message", "timestamp"}
    assert payload["status"] == "OK"
    assert payload["message"] == expected_message
    assert payload["timestamp"].endswith("Z")
    assert _parse_timestamp(payload["timestamp"]).tzinfo is not None


def test_health_timestamp_is_generated_per_request(client, monkeypatch):
    import billing_invoicer.bootstrap.system_routes as system_routes

    stamps = iter(["2024-01-01T00:00:00.000Z", "2024-01-01T00:00:01.000Z"])
    monkeypatch.setattr(system_routes, "utc_timestamp", lambda: next(stamps))

    first = client.get("/health").json()["timestamp"]
    second = client.get("/health").json()["timestamp"]

    assert first == "2024-01-01T00:00:00.000Z"
    assert second == "2024-01-01T00:00:01.000Z"


def test_ping_returns_plain_pong(client):
    response = client.get("/ping")

    assert response.status_code == 200
    assert response.text == "pong"
    assert response.headers["content-type"].startswith("text/plain")


def test_utc_timestamp_uses_millisecond_precision():
    value = utc_timestamp(datetime.fromisoformat("2024-05-06T07:08:09.123456+02:00"))

    assert value == "2024-05-06T05:08:09.123Z"
