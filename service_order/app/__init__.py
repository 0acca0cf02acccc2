"""
Order Service package for Storefront.

- app.main: FastAPI application with order creation, lookup and status routes.
- app.models: Schemas, the order status lifecycle and total computation.
"""
