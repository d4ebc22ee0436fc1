"""Application services: payment initiation and confirmation.

Online orders are confirmed by a signed gateway callback; cash-on-delivery
orders are confirmed directly.  Either way the order is announced with an
ORDER_PLACED event, which is what triggers the stock debit.
"""

from __future__ import annotations

import json

import structlog

from fulfillment.domain.events import OrderPlaced
from fulfillment.domain.exceptions import (
    OrderNotFoundError,
    SignatureVerificationError,
    ValidationError,
)
from fulfillment.domain.model.order import Order, OrderStatus
from fulfillment.domain.model.payment import PaymentReference
from fulfillment.domain.model.stock_deduction import StockLine
from fulfillment.domain.ports import CallbackVerifier, EventPublisher, PaymentGateway
from fulfillment.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)

ORDER_PAID_EVENT = "order.paid"


def _order_placed(order: Order) -> OrderPlaced:
    return OrderPlaced(
        tenant_id=order.tenant_id,
        store_id=order.store_id,
        order_id=order.order_id,
        items=tuple(
            StockLine(item.product_id, item.quantity.value) for item in order.items
        ),
    )


class InitiatePaymentHandler:

    def __init__(self, order_repo: OrderRepository, gateway: PaymentGateway) -> None:
        self._order_repo = order_repo
        self._gateway = gateway

    def handle(self, order_id: str) -> PaymentReference:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.is_cod:
            raise ValidationError(f"Order {order_id} is paid in cash on delivery")
        if order.status != OrderStatus.PENDING_PAYMENT:
            raise ValidationError(
                f"Order {order_id} is not awaiting payment (status {order.status.value})"
            )
        return self._gateway.create_payment_reference(order)


class ConfirmPaymentHandler:
    """Processes the gateway's signed ``order paid`` callback.

    The signature is checked against the raw body before anything is
    parsed; a verification failure raises SignatureVerificationError and
    changes nothing.  Redelivered callbacks are acknowledged without
    publishing a second ORDER_PLACED.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        verifier: CallbackVerifier,
        publisher: EventPublisher,
    ) -> None:
        self._order_repo = order_repo
        self._verifier = verifier
        self._publisher = publisher

    def handle(self, body: bytes | str, signature: str | None) -> str | None:
        """Returns the confirmed order ID, or None if nothing changed."""
        raw = body.encode("utf-8") if isinstance(body, str) else body
        if not self._verifier.verify(raw, signature):
            logger.warning("payment_callback_rejected", reason="invalid_signature")
            raise SignatureVerificationError("Invalid payment callback signature")

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise ValidationError("Payment callback body is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise ValidationError("Payment callback body must be a JSON object")

        event_type = payload.get("event")
        if event_type != ORDER_PAID_EVENT:
            logger.info("payment_callback_ignored", callback_event=event_type)
            return None

        try:
            order_id = payload["payload"]["order"]["entity"]["receipt"]
            payment = payload["payload"]["payment"]["entity"]
            payment_id = payment["id"]
        except (KeyError, TypeError) as exc:
            raise ValidationError(f"Payment callback missing field: {exc}") from exc

        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if not order.mark_paid(payment_id):
            logger.info(
                "payment_callback_duplicate",
                order_id=order_id,
                status=order.status.value,
            )
            return None

        self._order_repo.save(order)
        self._publisher.publish(_order_placed(order))
        logger.info(
            "order_paid",
            order_id=order_id,
            payment_id=payment_id,
            payment_channel=payment.get("method"),
        )
        return order_id


class ConfirmCodOrderHandler:

    def __init__(self, order_repo: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repo = order_repo
        self._publisher = publisher

    def handle(self, order_id: str) -> bool:
        """Confirm a cash-on-delivery order.  Returns False if already confirmed."""
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if not order.confirm_cash_on_delivery():
            return False

        self._order_repo.save(order)
        self._publisher.publish(_order_placed(order))
        logger.info("cod_order_confirmed", order_id=order_id)
        return True
