"""Delivery aggregate: assignment of one order to one agent.

State Machine:
    PENDING -> PICKED_UP -> IN_TRANSIT -> {DELIVERED | FAILED}
    FAILED -> PENDING   (retry)
    DELIVERED is terminal.

A delivery also carries the cash-on-delivery ledger for its order:
expected amount, collected amount and variance. Cash can be recorded
exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from fulfillment.domain.exceptions import (
    AlreadyCollectedError,
    InvalidTransitionError,
    NotCODError,
)
from fulfillment.domain.model.order import CustomerDetails, Order, OrderStatus
from fulfillment.domain.model.value_objects import Money, utc_now


class DeliveryStatus(Enum):
    PENDING = "PENDING"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS: dict[DeliveryStatus, tuple[DeliveryStatus, ...]] = {
    DeliveryStatus.PENDING: (DeliveryStatus.PICKED_UP,),
    DeliveryStatus.PICKED_UP: (DeliveryStatus.IN_TRANSIT,),
    DeliveryStatus.IN_TRANSIT: (DeliveryStatus.DELIVERED, DeliveryStatus.FAILED),
    DeliveryStatus.DELIVERED: (),  # terminal
    DeliveryStatus.FAILED: (DeliveryStatus.PENDING,),
}

ACTIVE_STATUSES = frozenset({
    DeliveryStatus.PENDING,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.IN_TRANSIT,
})

STATUS_MESSAGES = {
    DeliveryStatus.PENDING: "Order is ready for pickup",
    DeliveryStatus.PICKED_UP: "Order has been picked up by delivery agent",
    DeliveryStatus.IN_TRANSIT: "Order is on the way to you",
    DeliveryStatus.DELIVERED: "Order has been delivered",
    DeliveryStatus.FAILED: "Delivery attempt failed",
}


def order_status_for(status: DeliveryStatus) -> OrderStatus:
    """The order-level status mirrored from a delivery status."""
    if status == DeliveryStatus.DELIVERED:
        return OrderStatus.DELIVERED
    if status == DeliveryStatus.FAILED:
        return OrderStatus.DELIVERY_FAILED
    return OrderStatus.OUT_FOR_DELIVERY


class VarianceStatus(Enum):
    MATCHED = "MATCHED"
    OVER_COLLECTED = "OVER_COLLECTED"
    SHORT = "SHORT"

    @staticmethod
    def classify(variance: Decimal) -> VarianceStatus:
        if variance == 0:
            return VarianceStatus.MATCHED
        if variance > 0:
            return VarianceStatus.OVER_COLLECTED
        return VarianceStatus.SHORT


@dataclass(frozen=True)
class DeliveryNote:
    text: str
    timestamp: datetime


@dataclass(frozen=True)
class CashCollection:
    """Outcome of recording cash against a COD delivery."""

    delivery_id: str
    expected_amount: Money
    collected_amount: Money
    variance: Decimal
    status: VarianceStatus
    collected_at: datetime


@dataclass
class Delivery:
    """Aggregate root for a delivery assignment.

    Customer, address and amount fields are a snapshot copied from the
    order at assignment time; they are not kept in sync afterwards.
    """

    delivery_id: str
    order_id: str
    tenant_id: str
    store_id: str
    agent_id: str
    order_total: Money
    customer: CustomerDetails = field(default_factory=CustomerDetails)
    payment_method: str = "ONLINE"
    status: DeliveryStatus = DeliveryStatus.PENDING
    is_cod: bool = False
    cod_amount: Money | None = None
    cod_collected: bool = False
    cod_collected_amount: Money | None = None
    cod_variance: Decimal | None = None
    cod_collected_at: datetime | None = None
    cod_notes: str | None = None
    estimated_delivery_time: str | None = None
    last_location: str | None = None
    notes: tuple[DeliveryNote, ...] = ()
    picked_up_at: datetime | None = None
    delivered_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    version: int = 0

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def assign(
        delivery_id: str,
        order: Order,
        agent_id: str,
        estimated_delivery_time: str | None = None,
    ) -> Delivery:
        """Create a PENDING delivery from a one-time snapshot of ``order``."""
        return Delivery(
            delivery_id=delivery_id,
            order_id=order.order_id,
            tenant_id=order.tenant_id,
            store_id=order.store_id,
            agent_id=agent_id,
            order_total=order.total_amount,
            customer=order.customer,
            payment_method=order.payment_method.value,
            is_cod=order.is_cod,
            cod_amount=order.total_amount if order.is_cod else Money.zero(order.currency),
            estimated_delivery_time=estimated_delivery_time,
        )

    # --- State transitions ----------------------------------------------------

    def allowed_next(self) -> tuple[DeliveryStatus, ...]:
        return ALLOWED_TRANSITIONS[self.status]

    def transition_to(
        self,
        new_status: DeliveryStatus,
        location: str | None = None,
        notes: str | None = None,
    ) -> None:
        """Advance the delivery, appending a note if one is given.

        Raises InvalidTransitionError carrying the allowed next statuses
        so the caller can correct the request.
        """
        allowed = self.allowed_next()
        if new_status not in allowed:
            raise InvalidTransitionError(
                self.status.value, new_status.value, [s.value for s in allowed]
            )

        now = utc_now()
        self.status = new_status
        if location:
            self.last_location = location
        if notes:
            self.notes = self.notes + (DeliveryNote(text=notes, timestamp=now),)
        if new_status == DeliveryStatus.PICKED_UP:
            self.picked_up_at = now
        elif new_status == DeliveryStatus.DELIVERED:
            self.delivered_at = now
        self.updated_at = now

    # --- Cash on delivery -----------------------------------------------------

    def collect_cash(self, amount: Money, notes: str | None = None) -> CashCollection:
        """Record the cash handed over by the customer.

        Only allowed once per delivery; a second attempt raises
        AlreadyCollectedError and leaves the first record untouched.
        """
        if not self.is_cod:
            raise NotCODError(f"Delivery {self.delivery_id} is not a COD delivery")
        if self.cod_collected:
            raise AlreadyCollectedError(
                f"Cash already collected for delivery {self.delivery_id}"
            )

        expected = self.cod_amount or Money.zero(amount.currency)
        variance = amount.variance_from(expected)
        now = utc_now()

        self.cod_collected = True
        self.cod_collected_amount = amount
        self.cod_variance = variance
        self.cod_collected_at = now
        self.cod_notes = notes
        self.updated_at = now

        return CashCollection(
            delivery_id=self.delivery_id,
            expected_amount=expected,
            collected_amount=amount,
            variance=variance,
            status=VarianceStatus.classify(variance),
            collected_at=now,
        )

    # --- Computed properties --------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def status_message(self) -> str:
        return STATUS_MESSAGES.get(self.status, "Status unknown")
