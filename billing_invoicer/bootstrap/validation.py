from __future__ import annotations

from ipaddress import ip_network

from billing_invoicer.config import Config

MIN_PORT = 1
MAX_PORT = 65535


def _validate_trusted_proxies(entries: list[str]) -> None:
    for value in entries:
        if value == "*":
            continue
        try:
            ip_network(value, strict=False)
        except ValueError as exc:
            raise RuntimeError(f"Invalid TRUSTED_PROXIES entry: {value}") from exc


def validate_startup_config(config: Config) -> None:
    if not MIN_PORT <= config.PORT <= MAX_PORT:
        raise RuntimeError(f"PORT must be between {MIN_PORT} and {MAX_PORT}.")
    if config.MAX_REQUEST_BODY_BYTES <= 0:
        raise RuntimeError("MAX_REQUEST_BODY_BYTES must be greater than 0.")
    _validate_trusted_proxies(config.trusted_proxies_list)
    if config.is_production and config.cors_reflects_any_origin:
        raise RuntimeError("NODE_ENV=production requires explicit CORS_ALLOW_ORIGINS (wildcard is not allowed).")
