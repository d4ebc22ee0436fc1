"""Application service: Create Order use case.

Validates a cart against the product ledger, snapshots current prices
and persists a new order awaiting payment.

The stock check here is advisory only: stock is not held, and the
authoritative no-oversell guarantee comes from the atomic debit made
when the ORDER_PLACED event is processed.  Prices are likewise read
without a lock, so a price change racing with checkout is accepted and
the order keeps the price it read.
"""

from __future__ import annotations

import structlog

from fulfillment.application.dto import OrderItemSpec, OrderReceipt
from fulfillment.domain.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from fulfillment.domain.model.order import (
    CustomerDetails,
    Order,
    OrderLineItem,
    PaymentMethod,
)
from fulfillment.domain.model.value_objects import Money, Quantity
from fulfillment.domain.repository.order_repository import OrderRepository
from fulfillment.domain.repository.product_repository import ProductRepository

logger = structlog.get_logger(__name__)


class CreateOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo

    def handle(
        self,
        store_id: str,
        tenant_id: str,
        item_specs: list[OrderItemSpec],
        customer: CustomerDetails | None = None,
        delivery_fee: str = "0",
        payment_method: str = PaymentMethod.ONLINE.value,
    ) -> OrderReceipt:
        """Create a new order in PENDING_PAYMENT.

        Steps:
        1. Validate the request before touching anything.
        2. Fetch every referenced product in one batch read.
        3. Reject the whole order on the first missing/inactive product
           or short stock line.
        4. Build line items with *current* prices (snapshot) and persist.
        """
        if not store_id or not tenant_id:
            raise ValidationError("Store ID and tenant ID are required")
        if not item_specs:
            raise ValidationError("Order must contain at least one item")
        for spec in item_specs:
            if not spec.product_id:
                raise ValidationError("Every item needs a product ID")
            Quantity(spec.quantity)
        try:
            method = PaymentMethod(payment_method.upper())
        except ValueError as exc:
            raise ValidationError(f"Unknown payment method: {payment_method!r}") from exc

        product_ids = list(dict.fromkeys(spec.product_id for spec in item_specs))
        products = self._product_repo.get_many(store_id, product_ids)

        requested: dict[str, int] = {}
        for spec in item_specs:
            requested[spec.product_id] = requested.get(spec.product_id, 0) + spec.quantity

        for product_id in product_ids:
            product = products.get(product_id)
            if product is None or not product.is_active:
                raise ProductNotFoundError(product_id)
            if requested[product_id] > product.stock_quantity:
                raise InsufficientStockError(
                    [product_id],
                    f"need {requested[product_id]}, have {product.stock_quantity}",
                )

        line_items = [
            OrderLineItem(
                product_id=spec.product_id,
                product_name=products[spec.product_id].name,
                quantity=Quantity(spec.quantity),
                unit_price=products[spec.product_id].price,  # <-- price snapshot
            )
            for spec in item_specs
        ]

        currency = line_items[0].unit_price.currency
        order = Order.create(
            order_id=self._order_repo.next_id(),
            store_id=store_id,
            tenant_id=tenant_id,
            items=line_items,
            delivery_fee=Money.of(delivery_fee, currency),
            customer=customer,
            payment_method=method,
        )
        self._order_repo.save(order)

        logger.info(
            "order_created",
            order_id=order.order_id,
            store_id=store_id,
            total_amount=str(order.total_amount.amount),
            items=len(line_items),
        )
        return OrderReceipt(
            order_id=order.order_id,
            total_amount=order.total_amount.amount,
            currency=order.currency,
        )
