"""Application service: Cancel Order use case.

Cancels the order and announces ORDER_CANCELLED.  Stock is never
touched here: the inventory side restores exactly what its deduction
record says was debited, which is nothing if the order was cancelled
before ORDER_PLACED was processed.
"""

from __future__ import annotations

import structlog

from fulfillment.domain.events import OrderCancelled
from fulfillment.domain.exceptions import OrderNotFoundError
from fulfillment.domain.model.stock_deduction import StockLine
from fulfillment.domain.ports import EventPublisher
from fulfillment.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


class CancelOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        publisher: EventPublisher,
    ) -> None:
        self._order_repo = order_repo
        self._publisher = publisher

    def handle(self, order_id: str) -> None:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        previous = order.status
        order.cancel()
        self._order_repo.save(order)

        self._publisher.publish(
            OrderCancelled(
                tenant_id=order.tenant_id,
                store_id=order.store_id,
                order_id=order.order_id,
                items=tuple(
                    StockLine(item.product_id, item.quantity.value)
                    for item in order.items
                ),
            )
        )
        logger.info(
            "order_cancelled",
            order_id=order_id,
            previous_status=previous.value,
        )
