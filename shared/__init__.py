"""
Shared utilities for Storefront services.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Tagged error kinds and the standard error body
- storage: Document storage with redis and in-memory backends
- base_service: FastAPI application scaffolding shared by every service

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
