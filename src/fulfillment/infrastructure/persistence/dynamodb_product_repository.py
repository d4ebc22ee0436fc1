"""DynamoDB implementation of ProductRepository.

Table key: ``store_id`` (partition) + ``product_id`` (sort).
"""

from __future__ import annotations

import time
from decimal import Decimal

import structlog
from botocore.exceptions import ClientError

from fulfillment.domain.exceptions import (
    ExternalCollaboratorError,
    InsufficientStockError,
    ProductNotFoundError,
)
from fulfillment.domain.model.product import DEFAULT_LOW_STOCK_THRESHOLD, Product
from fulfillment.domain.model.value_objects import DEFAULT_CURRENCY, Money, utc_now
from fulfillment.domain.repository.product_repository import ProductRepository
from fulfillment.infrastructure.persistence.dynamodb import (
    CONDITIONAL_CHECK_FAILED,
    error_code,
    from_item,
    iso,
    parse_dt,
    to_item,
    values,
)

logger = structlog.get_logger(__name__)

# BatchGetItem accepts at most 100 keys per request.
BATCH_GET_LIMIT = 100

# Unprocessed keys are retried with exponential backoff: 0.1s, 0.2s, 0.4s, 0.8s.
BATCH_GET_MAX_ATTEMPTS = 5
BATCH_GET_BACKOFF_SECONDS = 0.1


class DynamoDBProductRepository(ProductRepository):

    def __init__(self, client, table_name: str) -> None:
        self._client = client
        self._table = table_name

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, store_id: str, product_id: str) -> Product | None:
        response = self._client.get_item(
            TableName=self._table,
            Key=self._key(store_id, product_id),
            ConsistentRead=True,
        )
        item = response.get("Item")
        return product_from_item(item) if item else None

    def get_many(self, store_id: str, product_ids: list[str]) -> dict[str, Product]:
        products: dict[str, Product] = {}
        unique_ids = list(dict.fromkeys(product_ids))
        for start in range(0, len(unique_ids), BATCH_GET_LIMIT):
            chunk = unique_ids[start:start + BATCH_GET_LIMIT]
            request = {
                self._table: {
                    "Keys": [self._key(store_id, pid) for pid in chunk],
                    "ConsistentRead": True,
                }
            }
            attempt = 0
            while request:
                if attempt:
                    if attempt >= BATCH_GET_MAX_ATTEMPTS:
                        left = len(request[self._table]["Keys"])
                        logger.error(
                            "product_batch_get_exhausted", store_id=store_id, unprocessed=left
                        )
                        raise ExternalCollaboratorError(
                            f"DynamoDB left {left} product keys unprocessed "
                            f"after {attempt} attempts"
                        )
                    time.sleep(BATCH_GET_BACKOFF_SECONDS * 2 ** (attempt - 1))
                response = self._client.batch_get_item(RequestItems=request)
                for item in response.get("Responses", {}).get(self._table, []):
                    product = product_from_item(item)
                    products[product.product_id] = product
                request = response.get("UnprocessedKeys") or None
                attempt += 1
        return products

    def list_by_store(self, store_id: str) -> list[Product]:
        paginator = self._client.get_paginator("query")
        pages = paginator.paginate(
            TableName=self._table,
            KeyConditionExpression="store_id = :store_id",
            ExpressionAttributeValues=values(store_id=store_id),
        )
        return [product_from_item(item) for page in pages for item in page.get("Items", [])]

    def save(self, product: Product) -> None:
        # Stock is only written on first insert; afterwards it belongs to
        # adjust_stock and the debit transaction.
        self._client.update_item(
            TableName=self._table,
            Key=self._key(product.store_id, product.product_id),
            UpdateExpression=(
                "SET #name = :name, price = :price, currency = :currency, "
                "low_stock_threshold = :threshold, is_active = :active, "
                "category = :category, tenant_id = :tenant_id, updated_at = :now, "
                "stock_quantity = if_not_exists(stock_quantity, :stock)"
            ),
            ExpressionAttributeNames={"#name": "name"},
            ExpressionAttributeValues=values(
                name=product.name,
                price=product.price.amount,
                currency=product.price.currency,
                threshold=product.low_stock_threshold,
                active=product.is_active,
                category=product.category,
                tenant_id=product.tenant_id,
                now=iso(product.updated_at),
                stock=product.stock_quantity,
            ),
        )

    def adjust_stock(
        self,
        store_id: str,
        product_id: str,
        delta: int,
        minimum: int = 0,
    ) -> Product:
        try:
            response = self._client.update_item(
                TableName=self._table,
                Key=self._key(store_id, product_id),
                UpdateExpression="SET stock_quantity = stock_quantity + :delta, updated_at = :now",
                ConditionExpression="attribute_exists(product_id) AND stock_quantity >= :needed",
                ExpressionAttributeValues=values(
                    delta=delta,
                    needed=minimum - delta,
                    now=iso(utc_now()),
                ),
                ReturnValues="ALL_NEW",
                ReturnValuesOnConditionCheckFailure="ALL_OLD",
            )
        except ClientError as exc:
            if error_code(exc) != CONDITIONAL_CHECK_FAILED:
                raise
            old = exc.response.get("Item")
            if not old:
                raise ProductNotFoundError(product_id) from exc
            current = int(from_item(old).get("stock_quantity", 0))
            logger.warning(
                "stock_adjust_rejected",
                store_id=store_id,
                product_id=product_id,
                delta=delta,
                current=current,
            )
            raise InsufficientStockError(
                [product_id], f"have {current}, change {delta:+d}"
            ) from exc

        return product_from_item(response["Attributes"])

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _key(store_id: str, product_id: str) -> dict:
        return {"store_id": {"S": store_id}, "product_id": {"S": product_id}}


def product_from_item(item: dict) -> Product:
    data = from_item(item)
    return Product(
        store_id=data["store_id"],
        product_id=data["product_id"],
        name=data.get("name", ""),
        price=Money(Decimal(data.get("price", 0)), data.get("currency", DEFAULT_CURRENCY)),
        stock_quantity=int(data.get("stock_quantity", 0)),
        low_stock_threshold=int(data.get("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD)),
        is_active=bool(data.get("is_active", True)),
        category=data.get("category", ""),
        tenant_id=data.get("tenant_id", ""),
        updated_at=parse_dt(data.get("updated_at")) or utc_now(),
    )


def product_to_item(product: Product) -> dict:
    """Full item form, used for provisioning and by tests."""
    return to_item({
        "store_id": product.store_id,
        "product_id": product.product_id,
        "name": product.name,
        "price": product.price.amount,
        "currency": product.price.currency,
        "stock_quantity": product.stock_quantity,
        "low_stock_threshold": product.low_stock_threshold,
        "is_active": product.is_active,
        "category": product.category,
        "tenant_id": product.tenant_id,
        "updated_at": iso(product.updated_at),
    })
