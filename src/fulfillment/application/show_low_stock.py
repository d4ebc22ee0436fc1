"""Application service: Show Low Stock use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.repository.product_repository import ProductRepository


@dataclass(frozen=True)
class LowStockLineDTO:
    product_id: str
    name: str
    current_stock: int
    threshold: int
    category: str
    urgency: str  # "critical" when out of stock, else "warning"


class ShowLowStockHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(self, store_id: str) -> list[LowStockLineDTO]:
        if not store_id:
            raise ValidationError("Store ID is required")
        products = self._product_repo.list_by_store(store_id)
        return [
            LowStockLineDTO(
                product_id=p.product_id,
                name=p.name,
                current_stock=p.stock_quantity,
                threshold=p.low_stock_threshold,
                category=p.category,
                urgency="critical" if p.stock_quantity == 0 else "warning",
            )
            for p in products
            if p.is_active and p.is_low_stock
        ]
