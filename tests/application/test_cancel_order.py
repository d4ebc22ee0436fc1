"""Integration tests for the CancelOrder use case."""

import pytest

from fulfillment.application.cancel_order import CancelOrderHandler
from fulfillment.domain.events import OrderCancelled
from fulfillment.domain.exceptions import OrderNotFoundError, ValidationError
from fulfillment.domain.model.order import OrderStatus
from fulfillment.domain.model.stock_deduction import StockLine
from tests.fakes import FakeEventPublisher, FakeOrderRepository, make_order


def _setup(order=None):
    order_repo = FakeOrderRepository([order or make_order()])
    publisher = FakeEventPublisher()
    return CancelOrderHandler(order_repo, publisher), order_repo, publisher


class TestCancelOrder:

    def test_cancels_and_publishes_items(self):
        handler, order_repo, publisher = _setup()

        handler.handle("order-1")

        assert order_repo.get_by_id("order-1").status == OrderStatus.CANCELLED
        [event] = publisher.of_type(OrderCancelled)
        assert event.order_id == "order-1"
        assert event.items == (StockLine("P-1", 2),)

    def test_paid_order_can_be_cancelled(self):
        order = make_order()
        order.mark_paid("pay_1")
        handler, order_repo, _ = _setup(order)
        handler.handle("order-1")
        assert order_repo.get_by_id("order-1").status == OrderStatus.CANCELLED

    def test_delivered_order_cannot_be_cancelled(self):
        order = make_order()
        order.mirror_delivery_status(OrderStatus.DELIVERED)
        handler, order_repo, publisher = _setup(order)

        with pytest.raises(ValidationError):
            handler.handle("order-1")

        assert order_repo.get_by_id("order-1").status == OrderStatus.DELIVERED
        assert publisher.events == []

    def test_unknown_order(self):
        handler, _, _ = _setup()
        with pytest.raises(OrderNotFoundError):
            handler.handle("order-404")
