"""Application service: Deactivate Product use case (soft delete)."""

from __future__ import annotations

from fulfillment.domain.exceptions import ProductNotFoundError
from fulfillment.domain.repository.product_repository import ProductRepository


class DeactivateProductHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(self, store_id: str, product_id: str) -> None:
        """Hide a product from new orders.

        Existing orders keep their snapshot and stock is left as is.
        """
        product = self._product_repo.get_by_id(store_id, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        product.deactivate()
        self._product_repo.save(product)
