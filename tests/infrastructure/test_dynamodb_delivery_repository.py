"""Tests for the order, delivery and payment DynamoDB repositories."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from fulfillment.domain.exceptions import AlreadyCollectedError, ConcurrencyConflictError
from fulfillment.domain.model.delivery import Delivery, DeliveryStatus
from fulfillment.domain.model.order import PaymentMethod
from fulfillment.domain.model.payment import PaymentRecord
from fulfillment.domain.model.value_objects import Money
from fulfillment.infrastructure.persistence.dynamodb_delivery_repository import (
    AGENT_INDEX,
    DynamoDBDeliveryRepository,
    DynamoDBPaymentRepository,
    delivery_from_item,
    delivery_to_item,
    payment_to_item,
)
from fulfillment.infrastructure.persistence.dynamodb_order_repository import (
    DynamoDBOrderRepository,
    order_from_item,
    order_to_item,
)
from tests.fakes import TENANT, make_order

NONE = {"Code": "None"}


def _conditional_failure(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "failed"}}, operation
    )


def _cancelled(*reasons) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": "TransactionCanceledException", "Message": "cancelled"},
            "CancellationReasons": list(reasons),
        },
        "TransactWriteItems",
    )


def _cod_delivery(version: int = 3) -> Delivery:
    order = make_order("o-1", payment_method=PaymentMethod.COD)
    delivery = Delivery.assign("d-1", order, "agent-7", "30 mins")
    delivery.version = version
    return delivery


def _collect(delivery: Delivery, amount: str = "100.00") -> PaymentRecord:
    collection = delivery.collect_cash(Money.of(amount), notes="exact change")
    return PaymentRecord.for_cash_collection(delivery, collection)


@pytest.fixture
def client():
    return MagicMock()


class TestOrderRepository:

    def test_first_save_requires_new_item(self, client):
        repo = DynamoDBOrderRepository(client, "test-orders")
        order = make_order()

        repo.save(order)

        kwargs = client.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_not_exists(order_id)"
        assert kwargs["Item"]["version"] == {"N": "1"}
        assert order.version == 1

    def test_update_is_guarded_by_version(self, client):
        repo = DynamoDBOrderRepository(client, "test-orders")
        order = make_order()
        order.version = 4
        client.put_item.side_effect = _conditional_failure("PutItem")

        with pytest.raises(ConcurrencyConflictError):
            repo.save(order)

        kwargs = client.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "version = :expected"
        assert kwargs["ExpressionAttributeValues"] == {":expected": {"N": "4"}}
        assert order.version == 4

    def test_item_mapping_keeps_money_and_customer(self):
        order = make_order(lines=[("A", 2, "49.99"), ("B", 1, "10.00")], delivery_fee="25")
        order.mark_paid("pay_123")

        loaded = order_from_item(order_to_item(order, 2))

        assert loaded.total_amount == Money.of("134.98")
        assert loaded.items[0].unit_price == Money.of("49.99")
        assert loaded.customer == order.customer
        assert loaded.payment_id == "pay_123"
        assert loaded.status == order.status
        assert loaded.version == 2

    def test_list_by_store_uses_index(self, client):
        client.get_paginator.return_value.paginate.return_value = [
            {"Items": [order_to_item(make_order("o-1"), 1)]},
        ]
        repo = DynamoDBOrderRepository(client, "test-orders")

        orders = repo.list_by_store("store-1")

        assert [o.order_id for o in orders] == ["o-1"]
        kwargs = client.get_paginator.return_value.paginate.call_args.kwargs
        assert kwargs["IndexName"] == "store-index"


class TestDeliveryRepository:

    def test_save_and_reload(self, client):
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")
        delivery = _cod_delivery(version=0)

        repo.save(delivery)
        client.get_item.return_value = {"Item": client.put_item.call_args.kwargs["Item"]}
        loaded = repo.get_by_id("d-1")

        assert loaded.status == DeliveryStatus.PENDING
        assert loaded.is_cod is True
        assert loaded.cod_amount == Money.of("100.00")
        assert loaded.customer.phone == "+919800000000"
        assert loaded.version == 1

    def test_list_by_agent_uses_index(self, client):
        client.get_paginator.return_value.paginate.return_value = [
            {"Items": [delivery_to_item(_cod_delivery(), 3)]},
        ]
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")

        assert [d.delivery_id for d in repo.list_by_agent("agent-7")] == ["d-1"]
        kwargs = client.get_paginator.return_value.paginate.call_args.kwargs
        assert kwargs["IndexName"] == AGENT_INDEX

    def test_collected_fields_survive_mapping(self):
        delivery = _cod_delivery()
        delivery.transition_to(DeliveryStatus.PICKED_UP, location="Hub", notes="On the way")
        _collect(delivery, "90.00")

        loaded = delivery_from_item(delivery_to_item(delivery, 3))

        assert loaded.cod_collected is True
        assert loaded.cod_collected_amount == Money.of("90.00")
        assert loaded.cod_variance == Decimal("-10.00")
        assert loaded.notes[0].text == "On the way"
        assert loaded.picked_up_at == delivery.picked_up_at


class TestSaveWithOrder:

    def test_delivery_and_order_in_one_transaction(self, client):
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")
        delivery = _cod_delivery(version=0)
        order = make_order("o-1", payment_method=PaymentMethod.COD)
        order.version = 2

        repo.save_with_order(delivery, order)

        [call] = client.transact_write_items.call_args_list
        delivery_put, order_put = [a["Put"] for a in call.kwargs["TransactItems"]]
        assert delivery_put["TableName"] == "test-deliveries"
        assert delivery_put["ConditionExpression"] == "attribute_not_exists(delivery_id)"
        assert order_put["TableName"] == "test-orders"
        assert order_put["ConditionExpression"] == "version = :expected"
        assert order_put["ExpressionAttributeValues"][":expected"] == {"N": "2"}
        client.put_item.assert_not_called()
        assert (delivery.version, order.version) == (1, 3)

    def test_cancelled_transaction_is_a_conflict(self, client):
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")
        delivery = _cod_delivery(version=1)
        order = make_order("o-1", payment_method=PaymentMethod.COD)
        order.version = 2
        client.transact_write_items.side_effect = _cancelled(
            NONE, {"Code": "ConditionalCheckFailed"}
        )

        with pytest.raises(ConcurrencyConflictError):
            repo.save_with_order(delivery, order)
        assert (delivery.version, order.version) == (1, 2)


class TestRecordCashCollection:

    def test_delivery_and_payment_in_one_transaction(self, client):
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")
        delivery = _cod_delivery(version=3)
        payment = _collect(delivery)

        repo.record_cash_collection(delivery, payment)

        [call] = client.transact_write_items.call_args_list
        delivery_put, payment_put = [a["Put"] for a in call.kwargs["TransactItems"]]
        assert delivery_put["TableName"] == "test-deliveries"
        assert "cod_collected = :false" in delivery_put["ConditionExpression"]
        assert delivery_put["ExpressionAttributeValues"][":expected"] == {"N": "3"}
        assert payment_put["TableName"] == "test-payments"
        assert payment_put["ConditionExpression"] == "attribute_not_exists(payment_id)"
        assert delivery.version == 4

    def test_existing_payment_means_already_collected(self, client):
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")
        delivery = _cod_delivery()
        client.transact_write_items.side_effect = _cancelled(
            NONE, {"Code": "ConditionalCheckFailed"}
        )

        with pytest.raises(AlreadyCollectedError):
            repo.record_cash_collection(delivery, _collect(delivery))
        assert delivery.version == 3

    def test_collected_flag_on_stored_delivery_means_already_collected(self, client):
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")
        stored = _cod_delivery()
        _collect(stored)
        delivery = _cod_delivery()
        client.transact_write_items.side_effect = _cancelled(
            {"Code": "ConditionalCheckFailed", "Item": delivery_to_item(stored, 4)}, NONE
        )

        with pytest.raises(AlreadyCollectedError):
            repo.record_cash_collection(delivery, _collect(delivery))

    def test_stale_version_is_a_conflict(self, client):
        repo = DynamoDBDeliveryRepository(client, "test-deliveries", "test-payments", "test-orders")
        stored = _cod_delivery()
        stored.transition_to(DeliveryStatus.PICKED_UP)
        delivery = _cod_delivery()
        client.transact_write_items.side_effect = _cancelled(
            {"Code": "ConditionalCheckFailed", "Item": delivery_to_item(stored, 4)}, NONE
        )

        with pytest.raises(ConcurrencyConflictError):
            repo.record_cash_collection(delivery, _collect(delivery))


class TestPaymentRepository:

    def test_get(self, client):
        delivery = _cod_delivery()
        payment = _collect(delivery, "120.00")
        client.get_item.return_value = {"Item": payment_to_item(payment)}

        loaded = DynamoDBPaymentRepository(client, "test-payments").get(TENANT, payment.payment_id)

        assert loaded.amount == Money.of("120.00")
        assert loaded.variance == Decimal("20.00")
        assert loaded.status == payment.status
        client.get_item.assert_called_once_with(
            TableName="test-payments",
            Key={"tenant_id": {"S": TENANT}, "payment_id": {"S": payment.payment_id}},
        )

    def test_get_missing(self, client):
        client.get_item.return_value = {}
        assert DynamoDBPaymentRepository(client, "test-payments").get(TENANT, "nope") is None
