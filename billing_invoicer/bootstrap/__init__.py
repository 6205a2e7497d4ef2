from billing_invoicer.bootstrap.exception_handlers import register_exception_handlers
from billing_invoicer.bootstrap.middleware import register_core_middleware
from billing_invoicer.bootstrap.routes import register_domain_routes, register_not_found_handler
from billing_invoicer.bootstrap.system_routes import register_system_routes
from billing_invoicer.bootstrap.validation import validate_startup_config

__all__ = [
    "register_core_middleware",
    "register_domain_routes",
    "register_not_found_handler",
    "register_system_routes",
    "register_exception_handlers",
    "validate_startup_config",
]
