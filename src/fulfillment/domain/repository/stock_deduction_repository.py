"""Abstract repository for StockDeduction records and the atomic debit."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.product import Product
from fulfillment.domain.model.stock_deduction import StockDeduction


class DeductionAlreadyRecorded(Exception):
    """A deduction record already exists for the order.

    Not a DomainException: it signals a duplicate or late event, which the
    stock reducer treats as a no-op rather than an error.
    """

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Stock deduction already recorded for order {order_id}")
        self.order_id = order_id


class StockDeductionRepository(ABC):

    @abstractmethod
    def get(self, order_id: str) -> StockDeduction | None:
        """Return the deduction record for an order, or None."""

    @abstractmethod
    def debit(self, deduction: StockDeduction) -> list[Product]:
        """Debit every line and create the record, all or nothing.

        Each product update is conditional on ``stock_quantity >= quantity``
        and the record is created only if none exists for the order.

        Raises InsufficientStockError naming the failing products,
        DeductionAlreadyRecorded when a record exists, and
        ProductNotFoundError for unknown products.  Returns the updated
        products in line order.
        """

    @abstractmethod
    def create_void(self, deduction: StockDeduction) -> bool:
        """Store a VOIDED record if none exists.  Returns False if one did."""

    @abstractmethod
    def mark_restored(self, order_id: str) -> bool:
        """Flip a DEBITED record to RESTORED.

        Returns False if the record is not (or no longer) DEBITED, so only
        one caller ever wins the right to credit the stock back.
        """
