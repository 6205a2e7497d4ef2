"""Route groups mounted under ``/api``.

Each group is an ``APIRouter`` owned by its domain module. Handlers read the
decoded request body from ``request.state.body`` (or declare FastAPI body
parameters) and raise on failure; raised errors reach the terminal error
handler.
"""

from collections.abc import Mapping

from fastapi import APIRouter, FastAPI

from billing_invoicer.routes.auth import router as auth_router
from billing_invoicer.routes.invoices import router as invoices_router
from billing_invoicer.routes.products import router as products_router
from billing_invoicer.routes.shop import router as shop_router

API_PREFIX = "/api"

ROUTE_GROUPS: dict[str, APIRouter] = {
    "auth": auth_router,
    "products": products_router,
    "invoices": invoices_router,
    "shop": shop_router,
}


def route_group_prefix(name: str) -> str:
    return f"{API_PREFIX}/{name}"


def register_routes(app: FastAPI, *, route_groups: Mapping[str, APIRouter] | None = None) -> None:
    groups = dict(ROUTE_GROUPS)
    groups.update(route_groups or {})
    for name, router in groups.items():
        app.include_router(router, prefix=route_group_prefix(name))
