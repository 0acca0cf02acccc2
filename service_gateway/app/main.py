"""
API Gateway service for Storefront.
"""

from typing import Dict, Optional

import httpx
from fastapi import Request

from shared.base_service import BaseService
from shared.errors import NotFoundError
from .adapters.service_proxy import ServiceProxy, request_path
from .routing import RouteTable

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


class GatewayService(BaseService):
    """API Gateway service implementation.

    Routes are fixed at construction: either passed in explicitly or read
    from configuration (``STOREFRONT_GATEWAY_ROUTES`` or the three service
    URLs).
    """

    def __init__(
        self,
        routes: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__("gateway", 8000)
        self.route_table = RouteTable(routes if routes is not None else self.config.route_table())
        self.proxy = ServiceProxy(
            timeout=self.config.proxy_timeout_seconds,
            transport=transport,
            metrics=self.metrics,
        )

        for route in self.route_table.routes:
            self.logger.info("Route configured", prefix=route.prefix, target=route.target)

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    def _setup_gateway_routes(self):
        """Set up gateway-specific routes."""

        @self.app.get("/")
        async def root():
            """Liveness endpoint."""
            return {
                "service": "gateway",
                "message": "API Gateway is running",
                "version": "1.0.0"
            }

        @self.app.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
        async def proxy(request: Request, path: str):
            path = request_path(request)
            match = self.route_table.match(path)
            if match is None:
                raise NotFoundError(f"No route for {path}", details={"path": path})
            return await self.proxy.forward(request, match)

    async def on_shutdown(self):
        await self.proxy.close()


def create_app(routes: Optional[Dict[str, str]] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
    """Create FastAPI application."""
    service = GatewayService(routes=routes, transport=transport)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
