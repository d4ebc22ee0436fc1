"""Payment records written by cash reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from fulfillment.domain.model.delivery import CashCollection, Delivery
from fulfillment.domain.model.value_objects import Money


class PaymentRecordStatus(Enum):
    MATCHED = "MATCHED"
    VARIANCE = "VARIANCE"


def cod_payment_id(delivery_id: str) -> str:
    return f"COD-{delivery_id}"


@dataclass(frozen=True)
class PaymentRecord:
    """A settled payment, keyed by (tenant_id, payment_id)."""

    tenant_id: str
    payment_id: str
    order_id: str
    store_id: str
    amount: Money
    expected_amount: Money
    variance: Decimal
    payment_method: str
    collected_by: str
    collected_at: datetime
    status: PaymentRecordStatus

    @staticmethod
    def for_cash_collection(delivery: Delivery, collection: CashCollection) -> PaymentRecord:
        return PaymentRecord(
            tenant_id=delivery.tenant_id,
            payment_id=cod_payment_id(delivery.delivery_id),
            order_id=delivery.order_id,
            store_id=delivery.store_id,
            amount=collection.collected_amount,
            expected_amount=collection.expected_amount,
            variance=collection.variance,
            payment_method="COD",
            collected_by=delivery.agent_id,
            collected_at=collection.collected_at,
            status=(
                PaymentRecordStatus.MATCHED
                if collection.variance == 0
                else PaymentRecordStatus.VARIANCE
            ),
        )


@dataclass(frozen=True)
class PaymentReference:
    """What the gateway hands back for an order awaiting payment."""

    reference: str
    order_id: str
    amount: Money
