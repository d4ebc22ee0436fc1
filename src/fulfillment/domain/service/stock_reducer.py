"""Domain service: Stock Reducer.

Owns every stock mutation caused by an order.  Debits go through one
multi-item transaction so either every line is taken or none is; the
per-order StockDeduction record written in that same transaction makes
the debit exactly-once and lets cancellation restore precisely what was
taken, even when events arrive twice or out of order.

Known limitation: an order touching more than ``MAX_DEBIT_LINES``
distinct products cannot be debited atomically.  Such requests are
rejected with TransactionCapacityError; splitting them into a saga with
compensation is not implemented.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from fulfillment.domain.exceptions import (
    DomainException,
    TransactionCapacityError,
    ValidationError,
)
from fulfillment.domain.model.product import Product
from fulfillment.domain.model.stock_deduction import (
    DeductionStatus,
    StockDeduction,
    StockLine,
    merge_lines,
)
from fulfillment.domain.repository.product_repository import ProductRepository
from fulfillment.domain.repository.stock_deduction_repository import (
    DeductionAlreadyRecorded,
    StockDeductionRepository,
)

logger = structlog.get_logger(__name__)

# Ceiling of the persistence layer's multi-item transaction.  One slot
# holds the deduction record itself.
MAX_TRANSACTION_ITEMS = 100
MAX_DEBIT_LINES = MAX_TRANSACTION_ITEMS - 1


@dataclass(frozen=True)
class DeductionResult:
    order_id: str
    applied: bool
    products: list[Product] = field(default_factory=list)

    @property
    def low_stock_products(self) -> list[Product]:
        return [p for p in self.products if p.is_low_stock]


@dataclass(frozen=True)
class RestoreResult:
    order_id: str
    restored: list[StockLine] = field(default_factory=list)
    failed: list[StockLine] = field(default_factory=list)
    was_debited: bool = False


class StockReducer:

    def __init__(
        self,
        product_repo: ProductRepository,
        deduction_repo: StockDeductionRepository,
    ) -> None:
        self._product_repo = product_repo
        self._deduction_repo = deduction_repo

    def reduce_stock_for_order(
        self,
        order_id: str,
        store_id: str,
        items: list[StockLine],
    ) -> DeductionResult:
        """Debit stock for every item of an order, all or nothing.

        Raises InsufficientStockError (naming the failing products) or
        ProductNotFoundError when the transaction aborts; no partial debit
        is ever observable.  Returns ``applied=False`` if this order was
        already debited or voided, leaving stock untouched.
        """
        if not order_id or not store_id:
            raise ValidationError("Order ID and store ID are required")
        if not items:
            raise ValidationError("Nothing to debit: order has no items")

        lines = merge_lines(list(items))
        if len(lines) > MAX_DEBIT_LINES:
            raise TransactionCapacityError(len(lines), MAX_DEBIT_LINES)

        deduction = StockDeduction(order_id=order_id, store_id=store_id, lines=tuple(lines))
        try:
            products = self._deduction_repo.debit(deduction)
        except DeductionAlreadyRecorded:
            existing = self._deduction_repo.get(order_id)
            logger.info(
                "stock_debit_skipped",
                order_id=order_id,
                existing_status=existing.status.value if existing else None,
            )
            return DeductionResult(order_id=order_id, applied=False)

        logger.info(
            "stock_debited",
            order_id=order_id,
            store_id=store_id,
            items=len(lines),
        )
        return DeductionResult(order_id=order_id, applied=True, products=products)

    def restore_stock_for_order(self, order_id: str, store_id: str) -> RestoreResult:
        """Credit back exactly what was debited for a cancelled order.

        - Nothing debited yet: store a VOIDED record so a late debit for
          this order is skipped, and restore nothing.
        - Already restored or voided: no-op.
        - Debited: claim the record (DEBITED -> RESTORED), then credit each
          line individually.  A failing line is logged and reported in
          the result; the remaining lines are still restored.
        """
        deduction = self._deduction_repo.get(order_id)

        if deduction is None:
            if self._deduction_repo.create_void(StockDeduction.void(order_id, store_id)):
                logger.info("stock_restore_voided_order", order_id=order_id)
                return RestoreResult(order_id=order_id)
            # A debit landed between our read and the void; fall through
            # with the fresh record.
            deduction = self._deduction_repo.get(order_id)
            if deduction is None:
                return RestoreResult(order_id=order_id)

        if deduction.status != DeductionStatus.DEBITED:
            logger.info(
                "stock_restore_skipped",
                order_id=order_id,
                status=deduction.status.value,
            )
            return RestoreResult(order_id=order_id)

        if not self._deduction_repo.mark_restored(order_id):
            logger.info("stock_restore_already_claimed", order_id=order_id)
            return RestoreResult(order_id=order_id, was_debited=True)

        restored: list[StockLine] = []
        failed: list[StockLine] = []
        for line in deduction.lines:
            try:
                self._product_repo.adjust_stock(
                    deduction.store_id, line.product_id, line.quantity
                )
            except DomainException as exc:
                logger.error(
                    "stock_restore_failed",
                    order_id=order_id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    error=str(exc),
                )
                failed.append(line)
            else:
                restored.append(line)

        logger.info(
            "stock_restored",
            order_id=order_id,
            restored=len(restored),
            failed=len(failed),
        )
        return RestoreResult(
            order_id=order_id, restored=restored, failed=failed, was_debited=True
        )
