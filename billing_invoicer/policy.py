"""Environment-specific runtime policy.

The environment name is inspected exactly once, here. Everything downstream
consumes the resolved :class:`RuntimePolicy` instead of branching on
``NODE_ENV`` itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from billing_invoicer.config import Config

BASELINE_CSP_DIRECTIVES: dict[str, tuple[str, ...]] = {
    "default-src": ("'self'",),
    "base-uri": ("'self'",),
    "font-src": ("'self'", "https:", "data:"),
    "form-action": ("'self'",),
    "frame-ancestors": ("'self'",),
    "img-src": ("'self'", "data:"),
    "object-src": ("'none'",),
    "script-src": ("'self'",),
    "script-src-attr": ("'none'",),
    "style-src": ("'self'", "https:", "'unsafe-inline'"),
    "upgrade-insecure-requests": (),
}

PRODUCTION_CSP_OVERRIDES: dict[str, tuple[str, ...]] = {
    "default-src": ("'self'",),
    "style-src": ("'self'", "'unsafe-inline'"),
    "img-src": ("'self'", "data:", "https:"),
    "script-src": ("'self'",),
    "connect-src": ("'self'",),
}

# Cross-Origin-Embedder-Policy is never sent.
BASELINE_SECURITY_HEADERS: dict[str, str] = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def render_csp(directives: Mapping[str, tuple[str, ...]]) -> str:
    parts = []
    for name, sources in directives.items():
        parts.append(" ".join((name, *sources)))
    return ";".join(parts)


def production_csp() -> str:
    directives = dict(BASELINE_CSP_DIRECTIVES)
    directives.update(PRODUCTION_CSP_OVERRIDES)
    return render_csp(directives)


@dataclass(frozen=True)
class RuntimePolicy:
    production: bool
    environment: str
    diagnostic_logging: bool
    expose_docs: bool
    security_headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


def resolve_runtime_policy(config: Config) -> RuntimePolicy:
    production = config.is_production
    headers = dict(BASELINE_SECURITY_HEADERS)
    if production:
        headers["Content-Security-Policy"] = production_csp()
    return RuntimePolicy(
        production=production,
        environment=config.app_env,
        diagnostic_logging=not production,
        expose_docs=not production,
        security_headers=MappingProxyType(headers),
    )
