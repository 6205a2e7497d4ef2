from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.routing import Router
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocketClose

from billing_invoicer.bootstrap.contracts import RouteGroups
from billing_invoicer.errors import route_not_found_payload
from billing_invoicer.routes import register_routes

TRAILING_SLASH_RETRY_KEY = "billing_invoicer.trailing_slash_retry"


def register_domain_routes(api: FastAPI, *, route_groups: RouteGroups | None = None) -> None:
    register_routes(api, route_groups=route_groups)


def toggle_trailing_slash(path: str) -> str | None:
    if path == "/":
        return None
    if path.endswith("/"):
        return path.rstrip("/") or "/"
    return f"{path}/"


async def route_not_found(scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] == "websocket":
        await WebSocketClose()(scope, receive, send)
        return

    request = Request(scope)
    response = JSONResponse(route_not_found_payload(request), status_code=404)
    await response(scope, receive, send)


def build_route_fallback(router: Router) -> ASGIApp:
    """Serve ``/path/`` and ``/path`` from the same route, then fall back to 404.

    The request is dispatched once more with the trailing slash toggled;
    a second miss renders the route-not-found response.
    """

    async def route_fallback(scope: Scope, receive: Receive, send: Send) -> None:
        alternate = toggle_trailing_slash(scope["path"])
        if alternate is None or scope.get(TRAILING_SLASH_RETRY_KEY):
            await route_not_found(scope, receive, send)
            return

        scope[TRAILING_SLASH_RETRY_KEY] = True
        scope["path"] = alternate
        await router(scope, receive, send)

    return route_fallback


def register_not_found_handler(api: FastAPI) -> None:
    api.router.redirect_slashes = False
    api.router.default = build_route_fallback(api.router)
