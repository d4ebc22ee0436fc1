"""Product aggregate.

Products live independently of orders. They have their own lifecycle:
prices change, stock moves, and products are soft-deleted by flipping
``is_active``.

``stock_quantity`` is owned by the persistence layer's conditional
update; nothing in the domain assigns it directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import Money, utc_now

DEFAULT_LOW_STOCK_THRESHOLD = 10


@dataclass
class Product:
    """A product in a store's catalog, keyed by (store_id, product_id)."""

    store_id: str
    product_id: str
    name: str
    price: Money
    stock_quantity: int = 0
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    is_active: bool = True
    category: str = ""
    tenant_id: str = ""
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if self.stock_quantity < 0:
            raise ValidationError(
                f"Stock for {self.product_id} cannot be negative, got {self.stock_quantity}"
            )

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold

    def deactivate(self) -> None:
        """Soft-delete the product; existing orders keep their snapshot."""
        self.is_active = False
        self.updated_at = utc_now()

    def update_price(self, new_price: Money) -> None:
        """Change the product price.

        This does NOT affect any existing orders because orders
        capture a price snapshot at creation time.
        """
        if new_price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        self.price = new_price
        self.updated_at = utc_now()
