"""Unit tests for the Delivery state machine and cash ledger."""

from decimal import Decimal

import pytest

from fulfillment.domain.exceptions import (
    AlreadyCollectedError,
    InvalidTransitionError,
    NotCODError,
)
from fulfillment.domain.model.delivery import (
    Delivery,
    DeliveryStatus,
    VarianceStatus,
    order_status_for,
)
from fulfillment.domain.model.order import OrderStatus, PaymentMethod
from fulfillment.domain.model.value_objects import Money
from tests.fakes import make_order


def _delivery(cod: bool = False) -> Delivery:
    method = PaymentMethod.COD if cod else PaymentMethod.ONLINE
    order = make_order(lines=[("P-1", 2, "50.00")], payment_method=method)
    return Delivery.assign("d-1", order, "agent-1")


def _advance(delivery: Delivery, *statuses: DeliveryStatus) -> None:
    for status in statuses:
        delivery.transition_to(status)


class TestAssign:

    def test_snapshot_copied_from_order(self):
        d = _delivery(cod=True)
        assert d.status == DeliveryStatus.PENDING
        assert d.order_id == "order-1"
        assert d.customer.address == "12 MG Road"
        assert d.is_cod is True
        assert d.cod_amount == Money.of("100.00")

    def test_online_order_has_zero_cod_amount(self):
        d = _delivery(cod=False)
        assert d.is_cod is False
        assert d.cod_amount == Money.zero()


class TestTransitions:

    def test_happy_path(self):
        d = _delivery()
        _advance(d, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED)
        assert d.status == DeliveryStatus.DELIVERED
        assert d.picked_up_at is not None
        assert d.delivered_at is not None

    def test_skipping_a_step_rejected_with_allowed_set(self):
        d = _delivery()
        with pytest.raises(InvalidTransitionError) as exc_info:
            d.transition_to(DeliveryStatus.DELIVERED)
        assert exc_info.value.allowed == ["PICKED_UP"]
        assert d.status == DeliveryStatus.PENDING

    def test_delivered_is_terminal(self):
        d = _delivery()
        _advance(d, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED)
        with pytest.raises(InvalidTransitionError) as exc_info:
            d.transition_to(DeliveryStatus.PENDING)
        assert exc_info.value.allowed == []

    def test_failed_can_retry(self):
        d = _delivery()
        _advance(d, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT, DeliveryStatus.FAILED)
        d.transition_to(DeliveryStatus.PENDING)
        assert d.status == DeliveryStatus.PENDING
        assert d.is_active

    def test_notes_and_location_recorded(self):
        d = _delivery()
        d.transition_to(DeliveryStatus.PICKED_UP, location="Store gate", notes="Collected 2 bags")
        d.transition_to(DeliveryStatus.IN_TRANSIT, notes="Left store")
        assert d.last_location == "Store gate"
        assert [n.text for n in d.notes] == ["Collected 2 bags", "Left store"]

    @pytest.mark.parametrize(
        "status, expected",
        [
            (DeliveryStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY),
            (DeliveryStatus.IN_TRANSIT, OrderStatus.OUT_FOR_DELIVERY),
            (DeliveryStatus.DELIVERED, OrderStatus.DELIVERED),
            (DeliveryStatus.FAILED, OrderStatus.DELIVERY_FAILED),
        ],
    )
    def test_order_status_mirroring(self, status, expected):
        assert order_status_for(status) == expected


class TestCashCollection:

    @pytest.mark.parametrize(
        "collected, variance, status",
        [
            ("100", "0", VarianceStatus.MATCHED),
            ("120", "20", VarianceStatus.OVER_COLLECTED),
            ("80", "-20", VarianceStatus.SHORT),
        ],
    )
    def test_variance_classification(self, collected, variance, status):
        d = _delivery(cod=True)
        result = d.collect_cash(Money.of(collected))
        assert result.variance == Decimal(variance)
        assert result.status == status
        assert d.cod_collected is True
        assert d.cod_variance == Decimal(variance)

    def test_second_collection_rejected(self):
        d = _delivery(cod=True)
        d.collect_cash(Money.of("100"))
        with pytest.raises(AlreadyCollectedError):
            d.collect_cash(Money.of("50"))
        assert d.cod_collected_amount == Money.of("100")

    def test_non_cod_rejected(self):
        with pytest.raises(NotCODError):
            _delivery(cod=False).collect_cash(Money.of("100"))
