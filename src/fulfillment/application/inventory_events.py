"""Application service: inventory reactions to order events.

ORDER_PLACED debits stock through the StockReducer.  A failed debit is
not retried here; it is reported as one STOCK_DEDUCTION_FAILED event per
failing product for out-of-band remediation.  Products left at or below
their threshold are announced in a single LOW_STOCK_ALERT.

ORDER_CANCELLED restores whatever the order's deduction record says was
taken.
"""

from __future__ import annotations

import structlog

from fulfillment.application.event_router import EventHandler, ignore
from fulfillment.domain.events import (
    LowStockAlert,
    OrderCancelled,
    OrderPlaced,
    StockDeductionFailed,
)
from fulfillment.domain.exceptions import (
    DomainException,
    InsufficientStockError,
    ProductNotFoundError,
)
from fulfillment.domain.ports import EventPublisher
from fulfillment.domain.service.stock_reducer import RestoreResult, StockReducer

logger = structlog.get_logger(__name__)


class InventoryEventHandler:

    def __init__(self, reducer: StockReducer, publisher: EventPublisher) -> None:
        self._reducer = reducer
        self._publisher = publisher

    def on_order_placed(self, event: OrderPlaced) -> None:
        try:
            result = self._reducer.reduce_stock_for_order(
                event.order_id, event.store_id, list(event.items)
            )
        except DomainException as exc:
            self._report_failure(event, exc)
            return
        except Exception as exc:
            # Store outages are reported like any failed debit, then re-raised
            # so the router counts the record as failed.
            self._report_failure(event, exc)
            raise

        low = result.low_stock_products
        if low:
            self._publisher.publish(
                LowStockAlert(
                    tenant_id=event.tenant_id,
                    store_id=event.store_id,
                    product_ids=tuple(p.product_id for p in low),
                )
            )
            logger.warning(
                "low_stock_detected",
                store_id=event.store_id,
                product_ids=[p.product_id for p in low],
            )

    def on_order_cancelled(self, event: OrderCancelled) -> RestoreResult:
        return self._reducer.restore_stock_for_order(event.order_id, event.store_id)

    def handlers(self) -> dict[type, EventHandler]:
        """Handler table for the inventory service's EventRouter."""
        return {
            OrderPlaced: self.on_order_placed,
            OrderCancelled: self.on_order_cancelled,
            LowStockAlert: ignore,
            StockDeductionFailed: _log_deduction_failure,
        }

    # --- Internal helpers -----------------------------------------------------

    def _report_failure(self, event: OrderPlaced, exc: Exception) -> None:
        requested = {}
        for line in event.items:
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

        if isinstance(exc, InsufficientStockError) and exc.product_ids:
            failing = exc.product_ids
        elif isinstance(exc, ProductNotFoundError):
            failing = [exc.product_id]
        else:
            failing = list(requested)

        logger.error(
            "stock_deduction_failed",
            order_id=event.order_id,
            product_ids=failing,
            error=str(exc),
        )
        for product_id in failing:
            self._publisher.publish(
                StockDeductionFailed(
                    tenant_id=event.tenant_id,
                    store_id=event.store_id,
                    order_id=event.order_id,
                    product_id=product_id,
                    requested_quantity=requested.get(product_id, 0),
                    error=str(exc),
                )
            )


def _log_deduction_failure(event: StockDeductionFailed) -> None:
    logger.error(
        "stock_deduction_failure_reported",
        order_id=event.order_id,
        product_id=event.product_id,
        requested_quantity=event.requested_quantity,
        error=event.error,
    )

