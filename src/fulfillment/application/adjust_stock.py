"""Application service: Adjust Stock use case (manual stock update).

Stock moves only by a signed delta applied in one conditional write;
there is no "set to N" operation.
"""

from __future__ import annotations

import structlog

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.product import Product
from fulfillment.domain.repository.product_repository import ProductRepository

logger = structlog.get_logger(__name__)


class AdjustStockHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(
        self,
        store_id: str,
        product_id: str,
        delta: int,
        reason: str | None = None,
    ) -> Product:
        if not store_id or not product_id:
            raise ValidationError("Store ID and Product ID are required")
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("Quantity must be a number")
        if delta == 0:
            raise ValidationError("Stock adjustment must be non-zero")

        product = self._product_repo.adjust_stock(store_id, product_id, delta)
        logger.info(
            "stock_adjusted",
            store_id=store_id,
            product_id=product_id,
            delta=delta,
            new_quantity=product.stock_quantity,
            reason=reason,
        )
        return product
