"""
Product service for Storefront.
"""

from typing import List, Optional

from shared.base_service import BaseService
from shared.errors import NotFoundError
from shared.storage import Storage, timestamp
from .models import (
    ProductCreateRequest, ProductUpdateRequest, ProductResponse,
    ProductCreatedResponse, ProductUpdatedResponse, MessageResponse,
    SEED_PRODUCTS
)

PRODUCTS = "products"


class ProductService(BaseService):
    """Product catalogue CRUD service."""

    uses_storage = True

    def __init__(self, storage: Optional[Storage] = None):
        super().__init__("product", 5002, storage=storage)
        self._setup_product_routes()

    @property
    def products(self):
        return self.storage.collection(PRODUCTS)

    async def on_startup(self):
        if self.config.seed_products:
            await self.seed_products()

    async def seed_products(self) -> int:
        """Insert the starter catalogue when the store is empty."""
        if await self.products.count() > 0:
            return 0
        for product in SEED_PRODUCTS:
            await self.products.insert({**product, "created_at": timestamp()})
        self.logger.info("Seeded initial products", count=len(SEED_PRODUCTS))
        return len(SEED_PRODUCTS)

    async def _get_or_404(self, product_id: str):
        product = await self.products.get(product_id)
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        return product

    def _setup_product_routes(self):
        """Set up product-specific routes."""

        # No pagination: the whole catalogue is returned
        @self.app.get("/", response_model=List[ProductResponse])
        async def list_products():
            """List all products."""
            return [ProductResponse.model_validate(product) for product in await self.products.list()]

        @self.app.get("/{product_id}", response_model=ProductResponse)
        async def get_product(product_id: str):
            """Get product by ID."""
            return ProductResponse.model_validate(await self._get_or_404(product_id))

        @self.app.post("/", status_code=201, response_model=ProductCreatedResponse)
        async def create_product(request: ProductCreateRequest):
            """Create new product."""
            product = await self.products.insert({
                "name": request.name,
                "description": request.description,
                "price": request.price,
                "stock": request.stock,
                "created_at": timestamp()
            })

            self.logger.info("Product created", product_id=product["id"])
            self.metrics.record_business_event("product_created")
            return ProductCreatedResponse(message="Product created", product_id=product["id"])

        @self.app.put("/{product_id}", response_model=ProductUpdatedResponse)
        async def update_product(product_id: str, request: ProductUpdateRequest):
            """Merge the supplied fields into a product."""
            changes = request.changes()
            changes["updated_at"] = timestamp()

            product = await self.products.update(product_id, changes)
            if product is None:
                raise NotFoundError("Product not found", details={"product_id": product_id})

            self.logger.info("Product updated", product_id=product_id, fields=sorted(changes))
            return ProductUpdatedResponse(message="Product updated", product=ProductResponse.model_validate(product))

        @self.app.delete("/{product_id}", response_model=MessageResponse)
        async def delete_product(product_id: str):
            """Delete product. A missing id is 404 every time."""
            if not await self.products.delete(product_id):
                raise NotFoundError("Product not found", details={"product_id": product_id})

            self.logger.info("Product deleted", product_id=product_id)
            self.metrics.record_business_event("product_deleted")
            return MessageResponse(message="Product deleted")


def create_app(storage: Optional[Storage] = None):
    """Create FastAPI application."""
    service = ProductService(storage=storage)
    return service.app


if __name__ == "__main__":
    service = ProductService()
    service.run()
