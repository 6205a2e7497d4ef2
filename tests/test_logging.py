import json
import logging

from conftest import TEST_ORIGIN, build_test_config
from billing_invoicer.logging_config import JsonFormatter, configure_logging
from billing_invoicer.observability import format_combined_log_line


def _messages(caplog, logger_name):
    return [record.getMessage() for record in caplog.records if record.name == logger_name]


def test_diagnostic_request_log_outside_production(client, caplog):
    caplog.set_level(logging.INFO, logger="billing_invoicer.requests")

    client.get("/ping?x=1", headers={"Origin": TEST_ORIGIN})

    assert f"[REQ] GET /ping?x=1 - Origin: {TEST_ORIGIN}" in _messages(caplog, "billing_invoicer.requests")


def test_diagnostic_request_log_disabled_in_production(make_client, caplog):
    client = make_client(build_test_config(NODE_ENV="production", CORS_ALLOW_ORIGINS="https://a.test"))
    caplog.set_level(logging.INFO, logger="billing_invoicer.requests")

    client.get("/ping")

    assert _messages(caplog, "billing_invoicer.requests") == []


def test_access_log_uses_combined_format(client, caplog):
    caplog.set_level(logging.INFO, logger="billing_invoicer.access")

    client.get("/health", headers={"User-Agent": "pytest-agent", "Referer": "https://ref.test/page"})

    records = [record for record in caplog.records if record.name == "billing_invoicer.access"]
    assert len(records) == 1
    line = records[0].getMessage()
    assert '"GET /health HTTP/1.1" 200' in line
    assert line.endswith('"https://ref.test/page" "pytest-agent"')
    assert records[0].status_code == 200
    assert records[0].request_id


def test_access_log_records_not_found_status(client, caplog):
    caplog.set_level(logging.INFO, logger="billing_invoicer.access")

    client.get("/nope")

    lines = _messages(caplog, "billing_invoicer.access")
    assert any('"GET /nope HTTP/1.1" 404' in line for line in lines)


def test_access_log_uses_forwarded_client_address(client, caplog):
    caplog.set_level(logging.INFO, logger="billing_invoicer.access")

    client.get("/ping", headers={"X-Forwarded-For": "203.0.113.9"})

    records = [record for record in caplog.records if record.name == "billing_invoicer.access"]
    assert records[-1].client_ip == "203.0.113.9"
    assert records[-1].getMessage().startswith("203.0.113.9 - - [")


def test_format_combined_log_line_uses_dashes_for_missing_values():
    from datetime import datetime, timezone

    line = format_combined_log_line(
        client_ip=None,
        requested_at=datetime(2024, 3, 4, 5, 6, 7, tzinfo=timezone.utc),
        method="POST",
        url="/api/invoices",
        http_version="1.1",
        status_code=201,
        content_length=None,
        referrer=None,
        user_agent=None,
    )

    assert line == '- - - [04/Mar/2024:05:06:07 +0000] "POST /api/invoices HTTP/1.1" 201 - "-" "-"'


def test_json_formatter_includes_request_extras():
    record = logging.LogRecord("billing_invoicer.access", logging.INFO, __file__, 1, "done", None, None)
    record.request_id = "req-1"
    record.status_code = 204

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "done"
    assert payload["level"] == "INFO"
    assert payload["request_id"] == "req-1"
    assert payload["status_code"] == 204
    assert "client_ip" not in payload


def test_configure_logging_installs_a_single_handler():
    root = logging.getLogger()
    previous_level = root.level

    configure_logging(level="DEBUG", json_logs=True)
    configure_logging(level="warning", json_logs=False)

    installed = [h for h in root.handlers if getattr(h, "_billing_invoicer_handler", False)]
    assert len(installed) == 1
    assert root.level == logging.WARNING
    assert not isinstance(installed[0].formatter, JsonFormatter)
    root.setLevel(previous_level)
