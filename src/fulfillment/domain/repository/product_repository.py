"""Abstract repository for the Product aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (DynamoDB, in-memory) live in
the infrastructure layer and in the test fakes.

Stock is only ever changed through ``adjust_stock`` (one conditional
update) or through ``StockDeductionRepository.debit`` (one transaction);
``save`` is for provisioning and catalog edits, never for stock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.product import Product


class ProductRepository(ABC):

    @abstractmethod
    def get_by_id(self, store_id: str, product_id: str) -> Product | None:
        """Return a product by its key, or None if not found."""

    @abstractmethod
    def get_many(self, store_id: str, product_ids: list[str]) -> dict[str, Product]:
        """Fetch several products of one store in a single batch read.

        Missing products are simply absent from the returned mapping.
        """

    @abstractmethod
    def list_by_store(self, store_id: str) -> list[Product]:
        """Return every product of a store."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product's catalog attributes."""

    @abstractmethod
    def adjust_stock(
        self,
        store_id: str,
        product_id: str,
        delta: int,
        minimum: int = 0,
    ) -> Product:
        """Add ``delta`` to the stock in one conditional write.

        The write commits only if the product exists and the resulting
        ``stock_quantity`` is at least ``minimum``.  Raises
        ProductNotFoundError or InsufficientStockError otherwise and
        leaves the record untouched.  Returns the updated product.
        """
