from unittest.mock import patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from saasresto.middleware.edge import EdgeRoutingMiddleware
from saasresto.services.edge_router import PassThrough, RewriteTo, RoutingConfig, route_request

CONFIG = RoutingConfig(base_domain="saasresto.test")


def test_tenant_host_is_rewritten_under_tenant_prefix():
    decision = route_request({"host": "pizza.saasresto.test"}, "/menu/drinks", CONFIG)

    assert decision == RewriteTo(path="/t/pizza/menu/drinks", tenant_slug="pizza")


def test_root_path_rewrites_to_tenant_home():
    decision = route_request({"host": "Pizza.SaasResto.Test:3000"}, "/", CONFIG)

    assert decision == RewriteTo(path="/t/pizza", tenant_slug="pizza")


def test_host_with_trailing_newline_label_is_not_rewritten():
    assert route_request({"host": "pizza\n.saasresto.test"}, "/menu", CONFIG) == PassThrough()


@pytest.mark.parametrize(
    "path",
    [
        "/app",
        "/app/login",
        "/api/auth/login",
        "/internal/metrics/tenants",
        "/t/pizza/menu",
        "/uploads/logo.png",
        "/docs",
        "/openapi.json",
        "/favicon.ico",
        "/menu/hero.jpg",
    ],
)
def test_bypassed_paths_pass_through(path):
    assert route_request({"host": "pizza.saasresto.test"}, path, CONFIG) == PassThrough()


def test_prefix_match_respects_segment_boundary():
    decision = route_request({"host": "pizza.saasresto.test"}, "/apple-pie", CONFIG)

    assert decision == RewriteTo(path="/t/pizza/apple-pie", tenant_slug="pizza")


@pytest.mark.parametrize("host", ["saasresto.test", "www.saasresto.test", "other.example.com", "a.b.saasresto.test", ""])
def test_no_tenant_passes_through(host):
    assert route_request({"host": host}, "/menu", CONFIG) == PassThrough()


def test_router_never_consults_the_store():
    with patch("saasresto.services.credential_store.CredentialStore.get_tenant_by_slug") as lookup:
        decision = route_request({"host": "pizza.saasresto.test"}, "/", CONFIG)

    assert isinstance(decision, RewriteTo)
    lookup.assert_not_called()


def _build_echo_client() -> TestClient:
    app = FastAPI()
    app.add_middleware(EdgeRoutingMiddleware, config=CONFIG)

    @app.get("/{full_path:path}")
    def echo(full_path: str, request: Request):
        return {
            "path": request.url.path,
            "tenant_header": request.headers.get("x-tenant-slug"),
            "edge_slug": request.state.edge_tenant_slug,
        }

    return TestClient(app)


def test_middleware_rewrites_scope_and_sets_trusted_header():
    client = _build_echo_client()

    response = client.get("/menu?table=4", headers={"host": "pizza.saasresto.test"})

    assert response.status_code == 200
    assert response.json() == {"path": "/t/pizza/menu", "tenant_header": "pizza", "edge_slug": "pizza"}


def test_middleware_strips_client_supplied_tenant_header_on_pass_through():
    client = _build_echo_client()

    response = client.get("/api/orders", headers={"host": "app.saasresto.test", "x-tenant-slug": "victim"})

    assert response.json() == {"path": "/api/orders", "tenant_header": None, "edge_slug": None}


def test_middleware_overwrites_client_supplied_tenant_header_on_rewrite():
    client = _build_echo_client()

    response = client.get("/", headers={"host": "pizza.saasresto.test", "X-Tenant-Slug": "victim"})

    assert response.json()["tenant_header"] == "pizza"
