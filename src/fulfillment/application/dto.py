"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI/event entry points and the application
layer without exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fulfillment.domain.model.order import Order


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: what the customer asked for (product ID + quantity)."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class OrderReceipt:
    """Output of order creation: enough to start payment."""

    order_id: str
    total_amount: Decimal
    currency: str


@dataclass(frozen=True)
class OrderLineItemDTO:
    product_id: str
    product_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "INR 50.00"
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    order_id: str
    store_id: str
    status: str
    payment_method: str
    items: list[OrderLineItemDTO]
    subtotal: str
    delivery_fee: str
    total_amount: str
    customer_name: str
    delivery_agent_id: str | None
    created_at: str

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        return OrderDTO(
            order_id=order.order_id,
            store_id=order.store_id,
            status=order.status.value,
            payment_method=order.payment_method.value,
            items=[
                OrderLineItemDTO(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                )
                for item in order.items
            ],
            subtotal=str(order.subtotal),
            delivery_fee=str(order.delivery_fee),
            total_amount=str(order.total_amount),
            customer_name=order.customer.name,
            delivery_agent_id=order.delivery_agent_id,
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        )
