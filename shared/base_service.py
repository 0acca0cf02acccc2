"""
Base service class for Storefront services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Dict, Any, List, Optional
import time
import os

from shared.config import get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import ErrorKind, ErrorResponse, ServiceException
from shared.storage import Storage, open_storage

REQUEST_ID_HEADER = "X-Request-ID"


def _describe_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    described = []
    for error in errors:
        # drop the leading "body"/"query"/"path" location segment
        location = [str(part) for part in error.get("loc", ())[1:]]
        described.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "invalid value"),
            "type": error.get("type", "value_error"),
        })
    return described


class BaseService:
    """Base service class with common functionality.

    Services that persist documents set ``uses_storage``; their storage is
    resolved once on startup unless one was injected through the constructor.
    """

    uses_storage = False

    def __init__(self, service_name: str, port: int, storage: Optional[Storage] = None):
        self.service_name = service_name
        self.config = get_config(service_name, port)
        self.port = self.config.port
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self.storage = storage
        self._owns_storage = storage is None
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_lifecycle()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Storefront - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
            start_time = time.time()

            try:
                response = await call_next(request)

                duration = time.time() - start_time

                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=request.url.path,
                    status_code=response.status_code,
                    duration=duration
                )

                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers[REQUEST_ID_HEADER] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            try:
                dependencies = await self._check_dependencies()
                status = "ok" if all(value == "ok" for value in dependencies.values()) else "degraded"
                self.metrics.record_health_check(status)

                payload = {
                    "service": self.service_name,
                    "status": status,
                    "uptime_seconds": self._get_uptime(),
                    "dependencies": dependencies,
                    "version": "1.0.0",
                    "commit": os.getenv("GIT_COMMIT", "unknown")
                }
                if self.uses_storage:
                    payload["storage"] = self.storage.backend if self.storage else "unresolved"
                return payload
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e)
                    }
                )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(
                content=self.metrics.export(),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(ServiceException)
        async def service_exception_handler(request: Request, exc: ServiceException):
            """Handle ServiceException."""
            log = self.logger.error if exc.status_code >= 500 else self.logger.warning
            log(
                "Request failed",
                code=exc.code,
                message=exc.message,
                details=exc.details,
                path=request.url.path
            )
            self.metrics.record_error(exc.code)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump(mode="json")
            )

        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """Reject malformed payloads with 400 instead of FastAPI's 422."""
            errors = _describe_validation_errors(exc.errors())
            message = "; ".join(f"{error['field']}: {error['message']}" for error in errors)
            error = ServiceException(
                f"Invalid request: {message}" if message else "Invalid request",
                details={"errors": errors},
                kind=ErrorKind.VALIDATION_ERROR
            )
            return await service_exception_handler(request, error)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Give framework-raised HTTP errors the standard error body."""
            body = ErrorResponse(
                request_id=request.headers.get(REQUEST_ID_HEADER),
                code=ErrorKind.from_status(exc.status_code),
                message=str(exc.detail)
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=body.model_dump(mode="json"),
                headers=getattr(exc, "headers", None)
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
            self.metrics.record_error(ErrorKind.INTERNAL_ERROR.value)
            body = ErrorResponse(
                request_id=request.headers.get(REQUEST_ID_HEADER),
                code=ErrorKind.INTERNAL_ERROR,
                message="Internal server error"
            )
            return JSONResponse(status_code=500, content=body.model_dump(mode="json"))

    def _setup_lifecycle(self):
        """Resolve storage on startup and release it on shutdown."""

        @self.app.on_event("startup")
        async def _startup():
            if self.uses_storage and self.storage is None:
                self.storage = await open_storage(self.config, self.service_name)
                self.logger.info("Storage resolved", backend=self.storage.backend)
            await self.on_startup()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.on_shutdown()
            if self.storage is not None and self._owns_storage:
                await self.storage.stop()

    async def on_startup(self):
        """Hook for subclasses, runs after storage is resolved."""
        return None

    async def on_shutdown(self):
        return None

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        if not self.uses_storage or self.storage is None:
            return {}
        return {"storage": "ok" if await self.storage.ping() else "error"}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.port,
            log_level=self.config.log_level.lower()
        )
