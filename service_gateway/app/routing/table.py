"""
Static path-prefix routing table for the Gateway.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlsplit


@dataclass(frozen=True)
class Route:
    """One prefix mapped to one downstream base URL."""
    prefix: str
    target: str

    @property
    def name(self) -> str:
        return self.prefix.strip("/") or "root"

    def matches(self, path: str) -> bool:
        if self.prefix == "/":
            return path.startswith("/")
        return path == self.prefix or path.startswith(self.prefix + "/")

    def strip(self, path: str) -> str:
        """Remove the prefix, keeping a leading slash."""
        if self.prefix == "/":
            return path
        return path[len(self.prefix):] or "/"


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    downstream_path: str

    @property
    def url(self) -> str:
        return self.route.target + self.downstream_path


def normalize_prefix(prefix: str) -> str:
    prefix = "/" + prefix.strip().strip("/")
    return prefix


class RouteTable:
    """Longest-prefix lookup over a fixed set of routes.

    Prefixes match on path segment boundaries: ``/products`` matches
    ``/products`` and ``/products/42`` but never ``/productsx``.
    """

    def __init__(self, routes: Dict[str, str]):
        self._routes: List[Route] = []
        seen = set()
        for prefix, target in routes.items():
            route = Route(prefix=normalize_prefix(prefix), target=self._validate_target(prefix, target))
            if route.prefix in seen:
                raise ValueError(f"Duplicate route prefix: {route.prefix}")
            seen.add(route.prefix)
            self._routes.append(route)
        self._routes.sort(key=lambda route: len(route.prefix), reverse=True)

    @staticmethod
    def _validate_target(prefix: str, target: str) -> str:
        parts = urlsplit(target)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Route {prefix!r} has an invalid target URL: {target!r}")
        return target.rstrip("/")

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)

    def match(self, path: str) -> Optional[RouteMatch]:
        """Resolve a request path to a route and its rewritten path."""
        for route in self._routes:
            if route.matches(path):
                return RouteMatch(route=route, downstream_path=route.strip(path))
        return None
