"""Application service: Record Cash Collection use case.

The delivery's cash fields and the matching payment record are written
together in one conditional transaction, so a delivery can never be
marked collected without its payment record (or the reverse), and a
concurrent second collection is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import structlog

from fulfillment.domain.exceptions import (
    DeliveryNotFoundError,
    EntityNotFoundError,
    ValidationError,
)
from fulfillment.domain.model.payment import PaymentRecord, cod_payment_id
from fulfillment.domain.model.value_objects import Money
from fulfillment.domain.repository.delivery_repository import (
    DeliveryRepository,
    PaymentRepository,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CashCollectionResult:
    delivery_id: str
    payment_id: str
    expected_amount: Decimal
    collected_amount: Decimal
    variance: Decimal
    status: str  # MATCHED | OVER_COLLECTED | SHORT
    currency: str


class RecordCashCollectionHandler:

    def __init__(self, delivery_repo: DeliveryRepository) -> None:
        self._delivery_repo = delivery_repo

    def handle(
        self,
        delivery_id: str,
        amount_collected: str | int | Decimal | None,
        notes: str | None = None,
    ) -> CashCollectionResult:
        if amount_collected is None or amount_collected == "":
            raise ValidationError("Amount collected is required")

        delivery = self._delivery_repo.get_by_id(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(delivery_id)

        currency = delivery.order_total.currency
        collection = delivery.collect_cash(Money.of(amount_collected, currency), notes=notes)
        payment = PaymentRecord.for_cash_collection(delivery, collection)
        self._delivery_repo.record_cash_collection(delivery, payment)

        log = logger.info if collection.variance == 0 else logger.warning
        log(
            "cash_collected",
            delivery_id=delivery_id,
            agent_id=delivery.agent_id,
            expected=str(collection.expected_amount.amount),
            collected=str(collection.collected_amount.amount),
            variance=str(collection.variance),
            variance_status=collection.status.value,
        )
        return CashCollectionResult(
            delivery_id=delivery_id,
            payment_id=payment.payment_id,
            expected_amount=collection.expected_amount.amount,
            collected_amount=collection.collected_amount.amount,
            variance=collection.variance,
            status=collection.status.value,
            currency=currency,
        )


class ShowCashReceiptHandler:
    """Look up the payment record written for a delivery's cash collection."""

    def __init__(
        self,
        delivery_repo: DeliveryRepository,
        payment_repo: PaymentRepository,
    ) -> None:
        self._delivery_repo = delivery_repo
        self._payment_repo = payment_repo

    def handle(self, delivery_id: str) -> PaymentRecord:
        delivery = self._delivery_repo.get_by_id(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(delivery_id)
        if not delivery.cod_collected:
            raise ValidationError(f"No cash recorded for delivery {delivery_id}")

        payment = self._payment_repo.get(delivery.tenant_id, cod_payment_id(delivery_id))
        if payment is None:
            raise EntityNotFoundError(f"Payment record for delivery {delivery_id} not found")
        return payment
