"""
Product data models for Product service.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProductCreateRequest(BaseModel):
    """Request model for product creation."""
    name: str = Field(..., min_length=1, description="Product name")
    description: Optional[str] = Field(None, description="Free-text description")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Unit price")
    stock: int = Field(0, ge=0, description="Units in stock")


class ProductUpdateRequest(BaseModel):
    """Request model for product update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    stock: Optional[int] = Field(None, ge=0)

    def changes(self):
        """Fields the client supplied. Null is only meaningful for description."""
        supplied = self.model_dump(exclude_unset=True)
        return {
            key: value for key, value in supplied.items()
            if value is not None or key == "description"
        }


class ProductResponse(BaseModel):
    """Product as returned to clients."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., alias="_id")
    name: str
    description: Optional[str] = None
    price: float
    stock: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class ProductCreatedResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    product_id: str


class ProductUpdatedResponse(BaseModel):
    message: str
    product: ProductResponse


class MessageResponse(BaseModel):
    message: str


# Catalogue written into an empty product store on startup
SEED_PRODUCTS = [
    {
        "name": "Wireless Headphones",
        "description": "Premium noise-canceling wireless headphones",
        "price": 299.99,
        "stock": 50,
    },
    {
        "name": "Smart Watch",
        "description": "Fitness tracking smart watch with heart rate monitor",
        "price": 199.99,
        "stock": 100,
    },
    {
        "name": "Laptop Stand",
        "description": "Ergonomic aluminum laptop stand",
        "price": 49.99,
        "stock": 75,
    },
]
