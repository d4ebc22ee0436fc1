"""End-to-end CLI tests with the bootstrap wiring swapped for in-memory fakes."""

import re
from types import SimpleNamespace

import pytest
from click.testing import CliRunner
from structlog.testing import capture_logs

from fulfillment.infrastructure.cli import (
    cash_commands,
    delivery_commands,
    main,
    order_commands,
    payment_commands,
    stock_commands,
)
from tests.fakes import (
    FakeCallbackVerifier,
    FakeDeliveryRepository,
    FakeEventPublisher,
    FakeNotifier,
    FakeOrderRepository,
    FakePaymentGateway,
    FakeProductRepository,
    make_product,
)


@pytest.fixture
def env(monkeypatch):
    wiring = SimpleNamespace(
        products=FakeProductRepository([make_product("A", stock=20, price="50.00")]),
        orders=FakeOrderRepository(),
        publisher=FakeEventPublisher(),
        notifier=FakeNotifier(),
        gateway=FakePaymentGateway(),
    )
    wiring.deliveries = FakeDeliveryRepository(wiring.orders)
    monkeypatch.setattr(main, "init_logging", lambda: None)
    for module in (order_commands, delivery_commands, payment_commands):
        monkeypatch.setattr(module, "order_repository", lambda: wiring.orders)
    for module in (order_commands, payment_commands):
        monkeypatch.setattr(module, "event_publisher", lambda: wiring.publisher)
    for module in (order_commands, stock_commands):
        monkeypatch.setattr(module, "product_repository", lambda: wiring.products)
    for module in (delivery_commands, cash_commands):
        monkeypatch.setattr(module, "delivery_repository", lambda: wiring.deliveries)
    monkeypatch.setattr(delivery_commands, "notifier", lambda: wiring.notifier)
    monkeypatch.setattr(cash_commands, "payment_repository", lambda: wiring.deliveries.payments)
    monkeypatch.setattr(payment_commands, "payment_gateway", lambda: wiring.gateway)
    monkeypatch.setattr(payment_commands, "callback_verifier", lambda: FakeCallbackVerifier())
    # Keep log lines out of the command output the tests parse.
    with capture_logs():
        yield wiring


def run(*args):
    return CliRunner().invoke(main.cli, list(args))


def _order_id(output: str) -> str:
    return re.search(r"^Order (\S+) created", output, re.MULTILINE).group(1)


def _create_cod_order() -> str:
    result = run(
        "order", "create", "--store", "store-1", "--tenant", "tenant-1",
        "--items", "A:2", "--phone", "+919800000000", "--payment-method", "cod",
    )
    assert result.exit_code == 0, result.output
    return _order_id(result.output)


def _confirmed_cod_order() -> str:
    order_id = _create_cod_order()
    result = run("order", "confirm-cod", order_id)
    assert result.exit_code == 0, result.output
    return order_id


class TestOrderCommands:

    def test_create_and_show(self, env):
        order_id = _create_cod_order()

        result = run("order", "show", order_id)

        assert result.exit_code == 0
        assert "PENDING_PAYMENT" in result.output
        assert "100.00" in result.output

    def test_bad_items_format(self, env):
        result = run("order", "create", "--store", "store-1", "--tenant", "tenant-1", "--items", "A")
        assert result.exit_code != 0
        assert "Expected 'ProductID:Quantity'" in result.output
        assert env.orders.count() == 0

    def test_insufficient_stock_is_reported(self, env):
        result = run(
            "order", "create", "--store", "store-1", "--tenant", "tenant-1", "--items", "A:21",
        )
        assert result.exit_code == 1
        assert "Insufficient stock for A" in result.output

    def test_confirm_cod_twice(self, env):
        order_id = _create_cod_order()
        assert "confirmed for cash on delivery" in run("order", "confirm-cod", order_id).output
        assert "already confirmed" in run("order", "confirm-cod", order_id).output


class TestPaymentCommands:

    def test_initiate(self, env):
        result = run("order", "create", "--store", "store-1", "--tenant", "tenant-1", "--items", "A:1")
        assert result.exit_code == 0, result.output
        order_id = _order_id(result.output)

        result = run("payment", "initiate", order_id)

        assert result.exit_code == 0
        assert f"pay_ref_{order_id}" in result.output
        assert env.gateway.registered == [order_id]

    def test_callback_with_bad_signature(self, env, tmp_path):
        body = tmp_path / "callback.json"
        body.write_text('{"order_id": "order-1", "payment_id": "pay_1"}')

        result = run("payment", "callback", str(body), "--signature", "forged")

        assert result.exit_code == 1


class TestDeliveryAndCashCommands:

    def test_assign_then_invalid_jump_lists_allowed_statuses(self, env):
        order_id = _confirmed_cod_order()
        result = run("delivery", "assign", order_id, "--agent", "agent-7", "--eta", "30 mins")
        assert result.exit_code == 0, result.output

        result = run("delivery", "status", "delivery-1", "DELIVERED")

        assert result.exit_code == 1
        assert "Allowed next: PICKED_UP" in result.output

    def test_pickup_notifies_customer(self, env):
        order_id = _confirmed_cod_order()
        run("delivery", "assign", order_id, "--agent", "agent-7")

        result = run("delivery", "status", "delivery-1", "picked_up", "--location", "Hub")

        assert result.exit_code == 0, result.output
        assert "PICKED_UP" in result.output
        assert env.notifier.sent[0][0] == "+919800000000"

    def test_record_cash_and_reject_second_collection(self, env):
        order_id = _confirmed_cod_order()
        run("delivery", "assign", order_id, "--agent", "agent-7")

        first = run("cash", "record", "delivery-1", "90")
        second = run("cash", "record", "delivery-1", "100")

        assert first.exit_code == 0, first.output
        assert "SHORT" in first.output
        assert "-10.00" in first.output
        assert second.exit_code == 1
        assert "already collected" in second.output
        assert env.deliveries.payments.count() == 1

        receipt = run("cash", "receipt", "delivery-1")
        assert receipt.exit_code == 0, receipt.output
        assert "COD-delivery-1" in receipt.output
        assert "VARIANCE" in receipt.output

    def test_cash_summary_bad_date(self, env):
        result = run("cash", "summary", "agent-7", "--date", "19/10/2026")
        assert result.exit_code == 1
        assert "expected YYYY-MM-DD" in result.output


class TestStockCommands:

    def test_adjust_warns_at_threshold(self, env):
        result = run("stock", "adjust", "--store", "store-1", "--product", "A", "--delta", "-10")

        assert result.exit_code == 0, result.output
        assert "stock now 10" in result.output
        assert "at or below threshold 10" in result.output
