"""Tests for the DynamoDB product repository against a mocked client."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from fulfillment.domain.exceptions import (
    ExternalCollaboratorError,
    InsufficientStockError,
    ProductNotFoundError,
)
from fulfillment.domain.model.value_objects import Money
from fulfillment.infrastructure.persistence import dynamodb_product_repository
from fulfillment.infrastructure.persistence.dynamodb_product_repository import (
    BATCH_GET_MAX_ATTEMPTS,
    DynamoDBProductRepository,
    product_to_item,
)
from tests.fakes import STORE, make_product

TABLE = "test-products"


def _conditional_failure(old_item=None) -> ClientError:
    response = {"Error": {"Code": "ConditionalCheckFailedException", "Message": "failed"}}
    if old_item is not None:
        response["Item"] = old_item
    return ClientError(response, "UpdateItem")


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def repo(client):
    return DynamoDBProductRepository(client, TABLE)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(dynamodb_product_repository.time, "sleep", recorded.append)
    return recorded


class TestReads:

    def test_get_by_id(self, client, repo):
        client.get_item.return_value = {"Item": product_to_item(make_product("A", 7, price="49.50"))}

        product = repo.get_by_id(STORE, "A")

        assert product.stock_quantity == 7
        assert product.price == Money.of("49.50")
        client.get_item.assert_called_once_with(
            TableName=TABLE,
            Key={"store_id": {"S": STORE}, "product_id": {"S": "A"}},
            ConsistentRead=True,
        )

    def test_get_by_id_missing(self, client, repo):
        client.get_item.return_value = {}
        assert repo.get_by_id(STORE, "A") is None

    def test_get_many_is_one_batch_and_follows_unprocessed_keys(self, client, repo, sleeps):
        unprocessed = {TABLE: {"Keys": [{"store_id": {"S": STORE}, "product_id": {"S": "B"}}]}}
        client.batch_get_item.side_effect = [
            {"Responses": {TABLE: [product_to_item(make_product("A", 1))]}, "UnprocessedKeys": unprocessed},
            {"Responses": {TABLE: [product_to_item(make_product("B", 2))]}, "UnprocessedKeys": {}},
        ]

        products = repo.get_many(STORE, ["A", "B", "A", "MISSING"])

        assert set(products) == {"A", "B"}
        first_request = client.batch_get_item.call_args_list[0].kwargs["RequestItems"]
        assert len(first_request[TABLE]["Keys"]) == 3
        assert client.batch_get_item.call_args_list[1].kwargs["RequestItems"] == unprocessed
        assert sleeps == [0.1]

    def test_get_many_backs_off_then_gives_up(self, client, repo, sleeps):
        unprocessed = {TABLE: {"Keys": [{"store_id": {"S": STORE}, "product_id": {"S": "B"}}]}}
        client.batch_get_item.return_value = {"Responses": {}, "UnprocessedKeys": unprocessed}

        with pytest.raises(ExternalCollaboratorError, match="1 product keys unprocessed"):
            repo.get_many(STORE, ["B"])

        assert client.batch_get_item.call_count == BATCH_GET_MAX_ATTEMPTS
        assert sleeps == [0.1, 0.2, 0.4, 0.8]

    def test_list_by_store_pages(self, client, repo):
        client.get_paginator.return_value.paginate.return_value = [
            {"Items": [product_to_item(make_product("A", 1))]},
            {"Items": [product_to_item(make_product("B", 2))]},
        ]
        assert [p.product_id for p in repo.list_by_store(STORE)] == ["A", "B"]
        client.get_paginator.assert_called_once_with("query")


class TestSave:

    def test_never_overwrites_existing_stock(self, client, repo):
        repo.save(make_product("A", 5))

        kwargs = client.update_item.call_args.kwargs
        assert "stock_quantity = if_not_exists(stock_quantity, :stock)" in kwargs["UpdateExpression"]
        assert kwargs["ExpressionAttributeNames"] == {"#name": "name"}
        client.put_item.assert_not_called()


class TestAdjustStock:

    def test_conditional_delta_update(self, client, repo):
        client.update_item.return_value = {"Attributes": product_to_item(make_product("A", 3))}

        product = repo.adjust_stock(STORE, "A", -2)

        assert product.stock_quantity == 3
        kwargs = client.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"].startswith("SET stock_quantity = stock_quantity + :delta")
        assert kwargs["ConditionExpression"] == "attribute_exists(product_id) AND stock_quantity >= :needed"
        assert kwargs["ExpressionAttributeValues"][":delta"] == {"N": "-2"}
        assert kwargs["ExpressionAttributeValues"][":needed"] == {"N": "2"}

    def test_insufficient_stock(self, client, repo):
        client.update_item.side_effect = _conditional_failure(product_to_item(make_product("A", 1)))
        with pytest.raises(InsufficientStockError) as exc_info:
            repo.adjust_stock(STORE, "A", -2)
        assert exc_info.value.product_ids == ["A"]

    def test_missing_product(self, client, repo):
        client.update_item.side_effect = _conditional_failure()
        with pytest.raises(ProductNotFoundError):
            repo.adjust_stock(STORE, "A", 5)

    def test_other_errors_propagate(self, client, repo):
        client.update_item.side_effect = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
            "UpdateItem",
        )
        with pytest.raises(ClientError):
            repo.adjust_stock(STORE, "A", 5)
