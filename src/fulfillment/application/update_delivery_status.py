"""Application service: Update Delivery Status use case.

Advances the delivery through its state machine, mirrors the derived
status onto the parent order and, on pickup and delivery, tries to text
the customer.  The notification is best-effort: any failure is logged
and the status update still succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from fulfillment.domain.exceptions import DeliveryNotFoundError, InvalidTransitionError
from fulfillment.domain.model.delivery import (
    Delivery,
    DeliveryStatus,
    order_status_for,
)
from fulfillment.domain.ports import Notifier
from fulfillment.domain.repository.delivery_repository import DeliveryRepository
from fulfillment.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)

CUSTOMER_MESSAGES = {
    DeliveryStatus.PICKED_UP: "Your order from {store_id} has been picked up and is on its way!",
    DeliveryStatus.DELIVERED: "Your order has been delivered. Thank you for shopping with us!",
}


@dataclass(frozen=True)
class DeliveryStatusUpdate:
    delivery_id: str
    new_status: str
    order_status: str


class UpdateDeliveryStatusHandler:

    def __init__(
        self,
        delivery_repo: DeliveryRepository,
        order_repo: OrderRepository,
        notifier: Notifier,
    ) -> None:
        self._delivery_repo = delivery_repo
        self._order_repo = order_repo
        self._notifier = notifier

    def handle(
        self,
        delivery_id: str,
        status: str,
        location: str | None = None,
        notes: str | None = None,
    ) -> DeliveryStatusUpdate:
        delivery = self._delivery_repo.get_by_id(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(delivery_id)

        try:
            new_status = DeliveryStatus(status)
        except ValueError:
            raise InvalidTransitionError(
                delivery.status.value,
                str(status),
                [s.value for s in delivery.allowed_next()],
            ) from None

        delivery.transition_to(new_status, location=location, notes=notes)

        order_status = order_status_for(new_status)
        order = self._order_repo.get_by_id(delivery.order_id)
        if order is None:
            logger.warning(
                "delivery_order_missing",
                delivery_id=delivery_id,
                order_id=delivery.order_id,
            )
            self._delivery_repo.save(delivery)
        else:
            order.mirror_delivery_status(order_status)
            self._delivery_repo.save_with_order(delivery, order)

        if new_status in CUSTOMER_MESSAGES:
            self._notify_customer(delivery, new_status)

        logger.info(
            "delivery_status_updated",
            delivery_id=delivery_id,
            new_status=new_status.value,
            order_status=order_status.value,
        )
        return DeliveryStatusUpdate(
            delivery_id=delivery_id,
            new_status=new_status.value,
            order_status=order_status.value,
        )

    def _notify_customer(self, delivery: Delivery, status: DeliveryStatus) -> None:
        phone = delivery.customer.phone
        if not phone:
            return
        message = CUSTOMER_MESSAGES[status].format(store_id=delivery.store_id)
        try:
            sent = self._notifier.send(phone, message)
        except Exception:
            logger.exception(
                "customer_notification_failed",
                delivery_id=delivery.delivery_id,
                status=status.value,
            )
            return
        if not sent:
            logger.warning(
                "customer_notification_not_sent",
                delivery_id=delivery.delivery_id,
                status=status.value,
            )
