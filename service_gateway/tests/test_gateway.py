"""
Tests for Gateway service.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.main import GatewayService, create_app

ROUTES = {
    "/auth": "http://auth:5001",
    "/products": "http://product:5002",
    "/orders": "http://order:5003",
}


class Recorder:
    """MockTransport handler that remembers what reached the downstream.

    Replies are built per request with an unread body stream, the way a
    real transport hands them back.
    """

    def __init__(self, status_code=200, content=b'{"ok":true}', headers=None, error=None):
        self.requests = []
        self.status_code = status_code
        self.content = content
        self.headers = headers if headers is not None else [("Content-Type", "application/json")]
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(f"simulated {self.error.__name__}", request=request)
        headers = list(self.headers) + [("Content-Length", str(len(self.content)))]
        return httpx.Response(self.status_code, headers=headers, stream=httpx.ByteStream(self.content))


def _client(handler, routes=ROUTES):
    return TestClient(create_app(routes=routes, transport=httpx.MockTransport(handler)))


def test_root_endpoint():
    client = _client(Recorder())
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"service": "gateway", "message": "API Gateway is running", "version": "1.0.0"}


def test_health_check():
    client = _client(Recorder())
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "gateway"
    assert data["status"] == "ok"
    assert "storage" not in data


def test_unmatched_path_returns_404_without_forwarding():
    recorder = Recorder()
    client = _client(recorder)

    response = client.get("/unknown/path")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
    assert recorder.requests == []


def test_segment_boundary_is_not_forwarded():
    recorder = Recorder()
    response = _client(recorder).get("/productsx")
    assert response.status_code == 404
    assert recorder.requests == []


def test_prefix_stripped_and_query_kept():
    recorder = Recorder()
    client = _client(recorder)

    response = client.get("/products/42?expand=stock&page=2")
    assert response.status_code == 200

    forwarded = recorder.requests[0]
    assert forwarded.url.host == "product"
    assert forwarded.url.port == 5002
    assert forwarded.url.path == "/42"
    assert forwarded.url.query == b"expand=stock&page=2"


def test_escaped_path_forwarded_unchanged():
    recorder = Recorder()
    client = _client(recorder)

    assert client.get("/products/a%2Fb?q=x%20y").status_code == 200
    assert client.get("/orders/caf%C3%A9%20bar").status_code == 200

    assert recorder.requests[0].url.raw_path == b"/a%2Fb?q=x%20y"
    assert recorder.requests[1].url.raw_path == b"/caf%C3%A9%20bar"


def test_escaped_prefix_is_not_routed():
    recorder = Recorder()
    response = _client(recorder).get("/products%2F42")
    assert response.status_code == 404
    assert recorder.requests == []


def test_bare_prefix_forwards_root_path():
    recorder = Recorder()
    _client(recorder).get("/products")
    assert recorder.requests[0].url.path == "/"


def test_forwarding_headers_are_set():
    recorder = Recorder()
    client = _client(recorder)

    client.get("/orders/1", headers={"X-Request-ID": "req-42", "Authorization": "Bearer abc"})

    headers = recorder.requests[0].headers
    assert headers["x-forwarded-for"] == "testclient"
    assert headers["x-forwarded-prefix"] == "/orders"
    assert headers["x-forwarded-proto"] == "http"
    assert headers["x-forwarded-host"] == "testserver"
    assert headers["x-request-id"] == "req-42"
    assert headers["authorization"] == "Bearer abc"
    assert headers["host"] == "order:5003"


def test_existing_forwarded_for_is_extended():
    recorder = Recorder()
    _client(recorder).get("/orders", headers={"X-Forwarded-For": "203.0.113.9"})
    assert recorder.requests[0].headers["x-forwarded-for"] == "203.0.113.9, testclient"


def test_hop_by_hop_headers_not_forwarded():
    recorder = Recorder()
    _client(recorder).get("/auth/me", headers={"Connection": "X-Debug", "X-Debug": "1", "TE": "trailers"})

    headers = recorder.requests[0].headers
    assert "x-debug" not in headers
    assert "te" not in headers


def test_method_and_body_relayed():
    recorder = Recorder(status_code=201, content=b'{"message":"Product created","productId":"9"}')
    client = _client(recorder)

    response = client.post("/products", json={"name": "Lamp", "price": 10})

    forwarded = recorder.requests[0]
    assert forwarded.method == "POST"
    assert json.loads(forwarded.content) == {"name": "Lamp", "price": 10}
    assert response.status_code == 201
    assert response.json() == {"message": "Product created", "productId": "9"}


@pytest.mark.parametrize("status_code", [400, 401, 404, 409, 500])
def test_downstream_status_and_body_relayed_unchanged(status_code):
    body = b'{"code":"DOWNSTREAM","message":"as is"}'
    recorder = Recorder(
        status_code=status_code,
        content=body,
        headers=[("Content-Type", "application/json"), ("X-Custom", "kept")],
    )

    response = _client(recorder).patch("/orders/1/status", json={"status": "completed"})

    assert response.status_code == status_code
    assert response.content == body
    assert response.headers["x-custom"] == "kept"


def test_duplicate_response_headers_preserved():
    recorder = Recorder(
        content=b"ok",
        headers=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")],
    )

    response = _client(recorder).get("/auth/session")

    assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]


def test_unreachable_downstream_returns_502():
    client = _client(Recorder(error=httpx.ConnectError))

    response = client.get("/products")
    assert response.status_code == 502
    data = response.json()
    assert data["code"] == "UPSTREAM_UNAVAILABLE"
    assert data["details"]["target"] == "http://product:5002"


def test_slow_downstream_returns_504():
    client = _client(Recorder(error=httpx.ReadTimeout))

    response = client.get("/orders")
    assert response.status_code == 504
    assert response.json()["code"] == "UPSTREAM_TIMEOUT"


def test_proxy_metrics_recorded():
    client = _client(Recorder(error=httpx.ConnectError))
    client.get("/products")

    metrics = client.get("/metrics").text
    assert "upstream_errors_total" in metrics
    assert 'route="products"' in metrics


def test_routes_from_configuration(monkeypatch):
    monkeypatch.setenv("STOREFRONT_PRODUCT_SERVICE_URL", "http://catalog:9000")
    service = GatewayService()

    match = service.route_table.match("/products/1")
    assert match.url == "http://catalog:9000/1"
    assert service.route_table.match("/auth/login") is not None


def test_routes_from_json_environment(monkeypatch):
    monkeypatch.setenv("STOREFRONT_GATEWAY_ROUTES", '{"/inventory": "http://inventory:7000"}')
    service = GatewayService()

    assert [route.prefix for route in service.route_table.routes] == ["/inventory"]
    assert service.route_table.match("/products") is None


def test_shutdown_closes_proxy_client():
    app = create_app(routes=ROUTES, transport=httpx.MockTransport(Recorder()))
    with TestClient(app) as client:
        assert client.get("/products").status_code == 200
    assert app.state.gateway_service.proxy.client.is_closed
