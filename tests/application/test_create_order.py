"""Integration tests for the CreateOrder use case.

Uses in-memory fake repositories.
"""

from decimal import Decimal

import pytest

from fulfillment.application.create_order import CreateOrderHandler
from fulfillment.application.dto import OrderItemSpec
from fulfillment.domain.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from fulfillment.domain.model.order import CustomerDetails, OrderStatus, PaymentMethod
from fulfillment.domain.model.product import Product
from fulfillment.domain.model.value_objects import Money
from tests.fakes import STORE, TENANT, FakeOrderRepository, FakeProductRepository, make_product


def _setup(
    products: list[Product] | None = None,
) -> tuple[CreateOrderHandler, FakeOrderRepository, FakeProductRepository]:
    """Build handler with fake repos, optionally pre-loaded with products."""
    if products is None:
        products = [
            make_product("P-X", 10, price="50.00"),
            make_product("P-Y", 3, price="30.00"),
            make_product("P-OLD", 10, price="5.00", is_active=False),
        ]
    order_repo = FakeOrderRepository()
    product_repo = FakeProductRepository(products)
    return CreateOrderHandler(order_repo, product_repo), order_repo, product_repo


def _create(handler, *specs, **kwargs):
    return handler.handle(
        store_id=STORE,
        tenant_id=TENANT,
        item_specs=[OrderItemSpec(pid, qty) for pid, qty in specs],
        customer=CustomerDetails(name="Asha", phone="+919800000000"),
        **kwargs,
    )


class TestCreateOrderHappyPath:

    def test_computes_totals(self):
        handler, _, _ = _setup()
        receipt = _create(handler, ("P-X", 2), ("P-Y", 1), delivery_fee="20")
        assert receipt.total_amount == Decimal("150.00")
        assert receipt.currency == "INR"

    def test_persists_pending_order(self):
        handler, order_repo, _ = _setup()
        receipt = _create(handler, ("P-X", 2))
        saved = order_repo.get_by_id(receipt.order_id)
        assert saved.status == OrderStatus.PENDING_PAYMENT
        assert saved.subtotal == Money.of("100.00")
        assert saved.customer.name == "Asha"

    def test_reads_products_in_one_batch(self):
        handler, _, product_repo = _setup()
        _create(handler, ("P-X", 1), ("P-Y", 1))
        assert product_repo.batch_reads == 1

    def test_cod_order(self):
        handler, order_repo, _ = _setup()
        receipt = _create(handler, ("P-X", 1), payment_method="cod")
        assert order_repo.get_by_id(receipt.order_id).payment_method == PaymentMethod.COD

    def test_does_not_touch_stock(self):
        handler, _, product_repo = _setup()
        _create(handler, ("P-X", 4))
        assert product_repo.stock_of("P-X") == 10


class TestCreateOrderPriceLock:

    def test_price_snapshot_at_creation(self):
        handler, order_repo, product_repo = _setup()
        receipt = _create(handler, ("P-X", 1))

        product = product_repo.get_by_id(STORE, "P-X")
        product.update_price(Money.of("99.99"))
        product_repo.save(product)

        saved = order_repo.get_by_id(receipt.order_id)
        assert saved.total_amount == Money.of("50.00")
        assert saved.items[0].unit_price == Money.of("50.00")


class TestCreateOrderRejections:

    def test_insufficient_stock_names_product(self):
        handler, order_repo, _ = _setup()
        with pytest.raises(InsufficientStockError) as exc_info:
            _create(handler, ("P-X", 1), ("P-Y", 5))
        assert exc_info.value.product_ids == ["P-Y"]
        assert order_repo.count() == 0

    def test_repeated_product_lines_are_aggregated(self):
        handler, order_repo, _ = _setup()
        with pytest.raises(InsufficientStockError):
            _create(handler, ("P-Y", 2), ("P-Y", 2))
        assert order_repo.count() == 0

    def test_missing_product(self):
        handler, order_repo, _ = _setup()
        with pytest.raises(ProductNotFoundError, match="P-NOPE"):
            _create(handler, ("P-X", 1), ("P-NOPE", 1))
        assert order_repo.count() == 0

    def test_inactive_product_treated_as_missing(self):
        handler, _, _ = _setup()
        with pytest.raises(ProductNotFoundError):
            _create(handler, ("P-OLD", 1))

    def test_empty_cart(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="at least one item"):
            _create(handler)

    def test_zero_quantity(self):
        handler, _, product_repo = _setup()
        with pytest.raises(ValidationError):
            _create(handler, ("P-X", 0))
        assert product_repo.batch_reads == 0

    def test_missing_store(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="Store ID"):
            handler.handle(store_id="", tenant_id=TENANT, item_specs=[OrderItemSpec("P-X", 1)])

    def test_unknown_payment_method(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="payment method"):
            _create(handler, ("P-X", 1), payment_method="CHEQUE")

    def test_bad_delivery_fee(self):
        handler, order_repo, _ = _setup()
        with pytest.raises(ValidationError):
            _create(handler, ("P-X", 1), delivery_fee="-5")
        assert order_repo.count() == 0
