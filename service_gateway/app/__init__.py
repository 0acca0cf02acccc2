"""
API Gateway Service package for Storefront.

The gateway is the single ingress for clients. It matches each request
against a static prefix table, strips the matched prefix and forwards the
request to the owning domain service, relaying the reply unchanged.
Authentication is left to the auth service.

Structure:
- app.main: FastAPI app and the catch-all proxy route.
- app.routing: Prefix table and path rewriting.
- app.adapters: HTTP client that forwards requests downstream.
"""
