"""
Auth Service package for Storefront.

This package exposes the FastAPI application for registering accounts and
issuing access tokens:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.models: Request/response schemas validated at the boundary.
- app.security: bcrypt password hashing and JWT issuing.

Design notes:
- Module import must not perform IO. Storage is resolved in the startup
  hook (or injected by the caller).
- Use the shared/ utilities for logging, metrics, storage and errors.
"""
