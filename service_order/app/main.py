"""
Order service for Storefront.
"""

import asyncio
import math
from typing import List, Optional

from shared.base_service import BaseService
from shared.errors import InvalidTransitionError, NotFoundError, ValidationError
from shared.storage import Storage, timestamp
from .models import (
    OrderCreateRequest, OrderCreatedResponse, OrderResponse, OrderStatus,
    OrderStatusUpdateRequest, OrderStatusUpdatedResponse, can_transition, order_total
)

ORDERS = "orders"


class OrderService(BaseService):
    """Order service implementation.

    The total is computed once from the submitted items and stored; later
    price changes never touch existing orders. Items are not checked against
    the product service.
    """

    uses_storage = True

    def __init__(self, storage: Optional[Storage] = None):
        super().__init__("order", 5003, storage=storage)
        # read-check-write of the status must not interleave with another transition
        self._status_lock = asyncio.Lock()
        self._setup_order_routes()

    @property
    def orders(self):
        return self.storage.collection(ORDERS)

    async def _get_or_404(self, order_id: str):
        order = await self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        return order

    def _setup_order_routes(self):
        """Set up order-specific routes."""

        @self.app.get("/", response_model=List[OrderResponse])
        async def list_orders():
            """List all orders, newest first."""
            orders = list(reversed(await self.orders.list()))
            orders.sort(key=lambda order: order["created_at"], reverse=True)
            return [OrderResponse.model_validate(order) for order in orders]

        @self.app.get("/{order_id}", response_model=OrderResponse)
        async def get_order(order_id: str):
            """Get order by ID."""
            return OrderResponse.model_validate(await self._get_or_404(order_id))

        @self.app.post("/", status_code=201, response_model=OrderCreatedResponse)
        async def create_order(request: OrderCreateRequest):
            """Create new order."""
            total = order_total(request.items)
            if not math.isfinite(total):
                raise ValidationError("Order total is out of range", details={"items": len(request.items)})
            order = await self.orders.insert({
                "items": [item.model_dump() for item in request.items],
                "user_email": request.user_email,
                "total": total,
                "status": OrderStatus.PENDING.value,
                "created_at": timestamp()
            })

            self.logger.info("Order created", order_id=order["id"], total=total, items=len(request.items))
            self.metrics.record_business_event("order_created")
            return OrderCreatedResponse(message="Order created", order_id=order["id"], total=total)

        @self.app.patch("/{order_id}/status", response_model=OrderStatusUpdatedResponse)
        async def update_order_status(order_id: str, request: OrderStatusUpdateRequest):
            """Move an order to a new status along an allowed transition."""
            async with self._status_lock:
                order = await self._get_or_404(order_id)
                current = OrderStatus(order["status"])

                if not can_transition(current, request.status):
                    raise InvalidTransitionError(current.value, request.status.value, details={"order_id": order_id})

                updated = await self.orders.update(order_id, {
                    "status": request.status.value,
                    "updated_at": timestamp()
                })
            if updated is None:
                raise NotFoundError("Order not found", details={"order_id": order_id})

            self.logger.info("Order status updated", order_id=order_id, previous=current.value, status=request.status.value)
            self.metrics.record_business_event(f"order_{request.status.value}")
            return OrderStatusUpdatedResponse(message="Order status updated", status=request.status)


def create_app(storage: Optional[Storage] = None):
    """Create FastAPI application."""
    service = OrderService(storage=storage)
    return service.app


if __name__ == "__main__":
    service = OrderService()
    service.run()
