"""StockDeduction: the per-order record of what was debited from stock.

One record per order, created in the same atomic transaction as the
debit itself.  Its existence is what makes deduction exactly-once and
restoration exact:

- DEBITED:  stock was taken for the listed lines.
- RESTORED: the same lines were credited back after cancellation.
- VOIDED:   the order was cancelled before any debit; a late
            ORDER_PLACED for it must not debit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import utc_now


class DeductionStatus(Enum):
    DEBITED = "DEBITED"
    RESTORED = "RESTORED"
    VOIDED = "VOIDED"


@dataclass(frozen=True)
class StockLine:
    product_id: str
    quantity: int

    def __post_init__(self) -> None:
        if not self.product_id:
            raise ValidationError("Stock line requires a product ID")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError(
                f"Quantity for {self.product_id} must be an integer"
            )
        if self.quantity <= 0:
            raise ValidationError(
                f"Quantity for {self.product_id} must be positive"
            )


def merge_lines(lines: list[StockLine]) -> list[StockLine]:
    """Collapse repeated products into one line each, keeping first-seen order.

    A single transaction may touch each product record only once.
    """
    totals: dict[str, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return [StockLine(pid, qty) for pid, qty in totals.items()]


@dataclass
class StockDeduction:
    order_id: str
    store_id: str
    lines: tuple[StockLine, ...]
    status: DeductionStatus = DeductionStatus.DEBITED
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @staticmethod
    def void(order_id: str, store_id: str) -> StockDeduction:
        return StockDeduction(
            order_id=order_id,
            store_id=store_id,
            lines=(),
            status=DeductionStatus.VOIDED,
        )
