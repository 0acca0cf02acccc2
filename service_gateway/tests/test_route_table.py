"""
Tests for the gateway routing table.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.routing import RouteTable


@pytest.fixture
def table():
    return RouteTable({
        "/auth": "http://auth:5001",
        "/products": "http://product:5002/",
        "/products/featured": "http://featured:5010",
        "/orders": "http://order:5003",
    })


class TestRouteTable:
    """Test cases for prefix matching."""

    def test_exact_prefix(self, table):
        match = table.match("/products")
        assert match.route.target == "http://product:5002"
        assert match.downstream_path == "/"
        assert match.url == "http://product:5002/"

    def test_prefix_is_stripped(self, table):
        match = table.match("/products/42")
        assert match.downstream_path == "/42"
        assert match.url == "http://product:5002/42"

    def test_nested_path(self, table):
        assert table.match("/orders/7/status").downstream_path == "/7/status"

    def test_longest_prefix_wins(self, table):
        match = table.match("/products/featured/today")
        assert match.route.prefix == "/products/featured"
        assert match.downstream_path == "/today"

    def test_segment_boundary(self, table):
        assert table.match("/productsx") is None
        assert table.match("/authorize") is None

    def test_unmatched_path(self, table):
        assert table.match("/") is None
        assert table.match("/unknown/path") is None

    def test_routes_sorted_longest_first(self, table):
        prefixes = [route.prefix for route in table.routes]
        assert prefixes[0] == "/products/featured"
        assert set(prefixes) == {"/auth", "/products", "/products/featured", "/orders"}

    def test_prefix_normalized(self):
        table = RouteTable({"products/": "http://product:5002"})
        assert table.routes[0].prefix == "/products"
        assert table.routes[0].name == "products"

    def test_root_prefix_catches_everything_else(self):
        table = RouteTable({"/": "http://web:3000", "/auth": "http://auth:5001"})
        assert table.match("/auth/login").route.prefix == "/auth"
        match = table.match("/about")
        assert match.route.prefix == "/"
        assert match.downstream_path == "/about"

    @pytest.mark.parametrize("target", ["auth:5001", "ftp://auth", "http://", ""])
    def test_invalid_target_rejected(self, target):
        with pytest.raises(ValueError):
            RouteTable({"/auth": target})

    def test_duplicate_prefix_rejected(self):
        with pytest.raises(ValueError):
            RouteTable({"/auth": "http://a:1", "/auth/": "http://b:2"})
