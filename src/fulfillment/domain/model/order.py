"""Order aggregate, the core of the domain.

The Order is an aggregate root that owns its line items. Items, prices
and totals are snapshotted at creation and never recomputed; only the
status and a few status-adjacent fields change afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import Money, Quantity, utc_now


class OrderStatus(Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    ASSIGNED_TO_DELIVERY = "ASSIGNED_TO_DELIVERY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    CANCELLED = "CANCELLED"


class PaymentMethod(Enum):
    ONLINE = "ONLINE"
    COD = "COD"


AWAITING_PAYMENT = frozenset({OrderStatus.PENDING_PAYMENT})

CANCELLABLE_STATUSES = frozenset({
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.CONFIRMED,
    OrderStatus.PAID,
    OrderStatus.ASSIGNED_TO_DELIVERY,
    OrderStatus.DELIVERY_FAILED,
})

# A failed delivery is retried on its own record (FAILED -> PENDING),
# never by assigning the order a second time.
ASSIGNABLE_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.PAID})

# A delivery update may not overwrite these.
FINAL_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.DELIVERED})

# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
# One atomic stock debit holds every line plus the deduction record.
MAX_LINE_ITEMS = 99


@dataclass(frozen=True)
class OrderLineItem:
    """Captures the price snapshot of a product at order-creation time."""

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass(frozen=True)
class CustomerDetails:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""


@dataclass
class Order:
    """Aggregate root for customer orders.

    New orders come from ``Order.create()``, which validates the items and
    freezes the totals.  ``__init__`` does no validation; repositories use
    it to reconstitute persisted orders.
    """

    order_id: str
    store_id: str
    tenant_id: str
    items: tuple[OrderLineItem, ...]
    subtotal: Money
    delivery_fee: Money
    total_amount: Money
    customer: CustomerDetails = field(default_factory=CustomerDetails)
    payment_method: PaymentMethod = PaymentMethod.ONLINE
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    payment_id: str | None = None
    paid_at: datetime | None = None
    delivery_agent_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    version: int = 0

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        order_id: str,
        store_id: str,
        tenant_id: str,
        items: list[OrderLineItem],
        delivery_fee: Money,
        customer: CustomerDetails | None = None,
        payment_method: PaymentMethod = PaymentMethod.ONLINE,
    ) -> Order:
        """Create a new order, computing and freezing its totals."""
        if not items:
            raise ValidationError("Order must contain at least one item")

        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        subtotal = Money.zero(items[0].unit_price.currency)
        for item in items:
            subtotal = subtotal + item.line_total

        return Order(
            order_id=order_id,
            store_id=store_id,
            tenant_id=tenant_id,
            items=tuple(items),
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total_amount=subtotal + delivery_fee,
            customer=customer or CustomerDetails(),
            payment_method=payment_method,
        )

    # --- State transitions ----------------------------------------------------

    def mark_paid(self, payment_id: str) -> bool:
        """Transition PENDING_PAYMENT -> PAID on a verified gateway callback.

        Returns False when the order has already moved past payment, so a
        redelivered callback is a no-op rather than an error.
        """
        if self.status == OrderStatus.CANCELLED:
            raise ValidationError(f"Order {self.order_id} was cancelled before payment")
        if self.status not in AWAITING_PAYMENT:
            return False
        self.status = OrderStatus.PAID
        self.payment_id = payment_id
        self.paid_at = utc_now()
        self._touch()
        return True

    def confirm_cash_on_delivery(self) -> bool:
        """Transition a COD order PENDING_PAYMENT -> CONFIRMED."""
        if self.payment_method != PaymentMethod.COD:
            raise ValidationError(
                f"Order {self.order_id} is not a cash-on-delivery order"
            )
        if self.status == OrderStatus.CANCELLED:
            raise ValidationError(f"Order {self.order_id} is cancelled")
        if self.status not in AWAITING_PAYMENT:
            return False
        self.status = OrderStatus.CONFIRMED
        self._touch()
        return True

    def assign_to_agent(self, agent_id: str) -> None:
        """Transition CONFIRMED / PAID -> ASSIGNED_TO_DELIVERY.

        An order is assigned at most once, so it never has two deliveries
        that could both collect cash.
        """
        self._require(OrderStatus.ASSIGNED_TO_DELIVERY, ASSIGNABLE_STATUSES)
        self.delivery_agent_id = agent_id
        self.status = OrderStatus.ASSIGNED_TO_DELIVERY
        self._touch()

    def mirror_delivery_status(self, status: OrderStatus) -> None:
        """Apply the order-level status derived from a delivery transition.

        Raises ValidationError once the order is cancelled or delivered.
        """
        if self.status in FINAL_STATUSES:
            raise ValidationError(
                f"Order {self.order_id} is {self.status.value}; "
                f"delivery updates no longer apply"
            )
        self.status = status
        self._touch()

    def cancel(self) -> None:
        if self.status == OrderStatus.CANCELLED:
            raise ValidationError("Order is already cancelled")
        self._require(OrderStatus.CANCELLED, CANCELLABLE_STATUSES)
        self.status = OrderStatus.CANCELLED
        self._touch()

    # --- Computed properties --------------------------------------------------

    @property
    def currency(self) -> str:
        return self.total_amount.currency

    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD

    # --- Internal helpers -----------------------------------------------------

    def _require(self, target: OrderStatus, allowed_from: frozenset) -> None:
        if self.status not in allowed_from:
            raise ValidationError(
                f"Cannot move order {self.order_id} from {self.status.value} "
                f"to {target.value}"
            )

    def _touch(self) -> None:
        self.updated_at = utc_now()

