from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient

from billing_invoicer.routes import ROUTE_GROUPS, register_routes, route_group_prefix


def test_four_route_groups_are_mounted_under_api():
    assert list(ROUTE_GROUPS) == ["auth", "products", "invoices", "shop"]
    assert [route_group_prefix(name) for name in ROUTE_GROUPS] == [
        "/api/auth",
        "/api/products",
        "/api/invoices",
        "/api/shop",
    ]


def test_register_routes_mounts_substituted_group_at_its_prefix():
    router = APIRouter()

    @router.get("/me")
    async def me():
        return {"user": "alice"}

    api = FastAPI()
    register_routes(api, route_groups={"auth": router})

    with TestClient(api) as client:
        assert client.get("/api/auth/me").json() == {"user": "alice"}
        assert client.get("/me").status_code == 404


def test_route_modules_receive_delegated_requests(make_client):
    routers = {}
    for name in ("auth", "products", "invoices", "shop"):
        router = APIRouter()

        def _make_handler(group: str):
            async def handler():
                return {"group": group}

            return handler

        router.add_api_route("/probe", _make_handler(name), methods=["GET"])
        routers[name] = router

    client = make_client(route_groups=routers)

    for name in routers:
        response = client.get(f"/api/{name}/probe")
        assert response.status_code == 200
        assert response.json() == {"group": name}
