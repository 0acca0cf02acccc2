"""
Reverse proxy adapter for Gateway.
"""

from typing import List, Optional, Tuple

import httpx
from fastapi import Request
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from shared.errors import UpstreamTimeoutError, UpstreamUnavailableError
from shared.logging import get_logger, get_request_id
from shared.metrics import MetricsCollector
from ..routing import RouteMatch

HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
})

# Rewritten by the proxy rather than copied from the client
REWRITTEN_HEADERS = frozenset({
    "host",
    "content-length",
    "x-forwarded-for",
    "x-forwarded-host",
    "x-forwarded-proto",
    "x-forwarded-prefix",
    "x-request-id",
})


def request_path(request: Request) -> str:
    """Path as sent by the client, percent-escapes intact."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        # some servers leave the query string on raw_path
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.url.path


def _connection_tokens(value: Optional[str]) -> set:
    if not value:
        return set()
    return {token.strip().lower() for token in value.split(",") if token.strip()}


class ServiceProxy:
    """Forwards one request to one downstream service.

    No retries and no caching: a downstream that cannot be reached surfaces
    as 502 and one that does not answer in time as 504.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.logger = get_logger("gateway.proxy")
        self.metrics = metrics
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=False)

    async def close(self):
        await self.client.aclose()

    def _request_headers(self, request: Request, match: RouteMatch) -> List[Tuple[str, str]]:
        dropped = HOP_BY_HOP_HEADERS | REWRITTEN_HEADERS | _connection_tokens(request.headers.get("connection"))
        headers = [(name, value) for name, value in request.headers.items() if name.lower() not in dropped]

        client_ip = request.client.host if request.client else "unknown"
        forwarded_for = request.headers.get("x-forwarded-for")
        headers.append(("x-forwarded-for", f"{forwarded_for}, {client_ip}" if forwarded_for else client_ip))
        if request.headers.get("host"):
            headers.append(("x-forwarded-host", request.headers["host"]))
        headers.append(("x-forwarded-proto", request.url.scheme))
        headers.append(("x-forwarded-prefix", match.route.prefix))

        request_id = get_request_id() or request.headers.get("x-request-id")
        if request_id:
            headers.append(("x-request-id", request_id))
        return headers

    @staticmethod
    def _response_headers(upstream: httpx.Response) -> List[Tuple[bytes, bytes]]:
        dropped = HOP_BY_HOP_HEADERS | _connection_tokens(upstream.headers.get("connection"))
        return [
            (name.lower(), value)
            for name, value in upstream.headers.raw
            if name.decode("latin-1").lower() not in dropped
        ]

    async def forward(self, request: Request, match: RouteMatch) -> StreamingResponse:
        """Send the request downstream and stream the reply back as-is."""
        route = match.route
        url = match.url
        if request.url.query:
            url = f"{url}?{request.url.query}"

        body = await request.body()
        upstream_request = self.client.build_request(
            request.method,
            url,
            headers=self._request_headers(request, match),
            content=body,
        )

        try:
            upstream = await self.client.send(upstream_request, stream=True)
        except httpx.TimeoutException as e:
            self.logger.error("Downstream timed out", route=route.prefix, url=url, error=str(e))
            if self.metrics:
                self.metrics.record_upstream_error(route.name, "timeout")
            raise UpstreamTimeoutError(route.name, details={"target": route.target}) from e
        except httpx.TransportError as e:
            self.logger.error("Downstream unreachable", route=route.prefix, url=url, error=str(e))
            if self.metrics:
                self.metrics.record_upstream_error(route.name, "unavailable")
            raise UpstreamUnavailableError(route.name, details={"target": route.target}) from e

        self.logger.info(
            "Proxied request",
            route=route.prefix,
            method=request.method,
            downstream_path=match.downstream_path,
            status_code=upstream.status_code
        )
        if self.metrics:
            self.metrics.record_proxy_request(route.name, upstream.status_code)

        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers = self._response_headers(upstream)
        return response
