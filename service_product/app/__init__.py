"""
Product Service package for Storefront.

- app.main: FastAPI application with catalogue CRUD routes and startup seeding.
- app.models: Request/response schemas and the seed catalogue.
"""
