import logging

from fastapi import FastAPI

from billing_invoicer.bootstrap import (
    register_core_middleware,
    register_domain_routes,
    register_exception_handlers,
    register_not_found_handler,
    register_system_routes,
    validate_startup_config,
)
from billing_invoicer.bootstrap.contracts import RouteGroups
from billing_invoicer.config import Config
from billing_invoicer.logging_config import configure_logging
from billing_invoicer.observability import register_observability
from billing_invoicer.policy import resolve_runtime_policy
from billing_invoicer.version import APP_VERSION

OPENAPI_TAGS: list[dict[str, str]] = [
    {"name": "system", "description": "System and health endpoints"},
    {"name": "auth", "description": "Authentication"},
    {"name": "products", "description": "Product management"},
    {"name": "invoices", "description": "Invoice generation"},
    {"name": "shop", "description": "Shop operations"},
]

logger = logging.getLogger("billing_invoicer.api")


def create_app(app_config: Config | None = None, *, route_groups: RouteGroups | None = None) -> FastAPI:
    if app_config is None:
        app_config = Config()

    configure_logging(level=app_config.LOG_LEVEL, json_logs=app_config.LOG_JSON)
    validate_startup_config(app_config)
    policy = resolve_runtime_policy(app_config)

    docs_kwargs = {} if policy.expose_docs else {"docs_url": None, "redoc_url": None, "openapi_url": None}
    api = FastAPI(
        title="Billing Invoicer API",
        version=APP_VERSION,
        description="Billing and invoicing backend",
        openapi_tags=OPENAPI_TAGS,
        **docs_kwargs,
    )
    api.state.config = app_config
    api.state.policy = policy

    register_system_routes(api)
    register_observability(api, metrics_enabled=app_config.METRICS_ENABLED)
    register_domain_routes(api, route_groups=route_groups)
    register_not_found_handler(api)
    handle_error = register_exception_handlers(api, logger=logger)
    register_core_middleware(api, app_config, policy, handle_error=handle_error)

    return api
