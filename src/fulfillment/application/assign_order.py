"""Application service: Assign Order use case.

Creates a PENDING delivery for an order and hands the order to the
agent.  The delivery copies the customer, address and amount fields
once, at assignment time.  Only CONFIRMED or PAID orders are assigned,
and the new delivery and the updated order are written in one step.
"""

from __future__ import annotations

import structlog

from fulfillment.domain.exceptions import OrderNotFoundError, ValidationError
from fulfillment.domain.model.delivery import Delivery
from fulfillment.domain.repository.delivery_repository import DeliveryRepository
from fulfillment.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


class AssignOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        delivery_repo: DeliveryRepository,
    ) -> None:
        self._order_repo = order_repo
        self._delivery_repo = delivery_repo

    def handle(
        self,
        order_id: str,
        agent_id: str,
        estimated_delivery_time: str | None = None,
    ) -> str:
        """Returns the new delivery ID."""
        if not order_id:
            raise ValidationError("Order ID is required")
        if not agent_id:
            raise ValidationError("Agent ID is required")

        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        delivery = Delivery.assign(
            delivery_id=self._delivery_repo.next_id(),
            order=order,
            agent_id=agent_id,
            estimated_delivery_time=estimated_delivery_time,
        )
        order.assign_to_agent(agent_id)

        self._delivery_repo.save_with_order(delivery, order)

        logger.info(
            "order_assigned",
            order_id=order_id,
            delivery_id=delivery.delivery_id,
            agent_id=agent_id,
            is_cod=delivery.is_cod,
        )
        return delivery.delivery_id
