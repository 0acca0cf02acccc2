"""
Order data models for Order service.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    """Order lifecycle states."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItem(CamelModel):
    """One line of an order. The product is referenced, not checked."""
    product_id: Optional[str] = None
    name: Optional[str] = None
    price: float = Field(..., ge=0, allow_inf_nan=False)
    quantity: int = Field(1, ge=1)


class OrderCreateRequest(CamelModel):
    """Request model for order creation."""
    items: List[OrderItem] = Field(..., min_length=1)
    user_email: str = Field("guest", min_length=1)


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus


class OrderResponse(CamelModel):
    id: str = Field(..., alias="_id")
    items: List[OrderItem]
    user_email: str
    total: float
    status: OrderStatus
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrderCreatedResponse(CamelModel):
    message: str
    order_id: str
    total: float


class OrderStatusUpdatedResponse(BaseModel):
    message: str
    status: OrderStatus


def order_total(items: List[OrderItem]) -> float:
    """Sum of price x quantity over the items."""
    return sum(item.price * item.quantity for item in items)
