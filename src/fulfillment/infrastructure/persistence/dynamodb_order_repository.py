"""DynamoDB implementation of OrderRepository.

Table key: ``order_id``.  A ``store-index`` GSI (``store_id``,
``created_at``) serves per-store listings.  Writes are full-item puts
guarded by the ``version`` attribute.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from botocore.exceptions import ClientError

from fulfillment.domain.exceptions import ConcurrencyConflictError
from fulfillment.domain.model.order import (
    CustomerDetails,
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
)
from fulfillment.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity
from fulfillment.domain.repository.order_repository import OrderRepository
from fulfillment.infrastructure.persistence.dynamodb import (
    CONDITIONAL_CHECK_FAILED,
    error_code,
    from_item,
    iso,
    parse_dt,
    to_item,
    values,
)

STORE_INDEX = "store-index"


class DynamoDBOrderRepository(OrderRepository):

    def __init__(self, client, table_name: str) -> None:
        self._client = client
        self._table = table_name

    def next_id(self) -> str:
        return str(uuid.uuid4())

    def get_by_id(self, order_id: str) -> Order | None:
        response = self._client.get_item(
            TableName=self._table,
            Key={"order_id": {"S": order_id}},
            ConsistentRead=True,
        )
        item = response.get("Item")
        return order_from_item(item) if item else None

    def list_by_store(self, store_id: str) -> list[Order]:
        paginator = self._client.get_paginator("query")
        pages = paginator.paginate(
            TableName=self._table,
            IndexName=STORE_INDEX,
            KeyConditionExpression="store_id = :store_id",
            ExpressionAttributeValues=values(store_id=store_id),
        )
        return [order_from_item(item) for page in pages for item in page.get("Items", [])]

    def save(self, order: Order) -> None:
        new_version = order.version + 1
        kwargs = {
            "TableName": self._table,
            "Item": order_to_item(order, new_version),
        }
        if order.version == 0:
            kwargs["ConditionExpression"] = "attribute_not_exists(order_id)"
        else:
            kwargs["ConditionExpression"] = "version = :expected"
            kwargs["ExpressionAttributeValues"] = values(expected=order.version)

        try:
            self._client.put_item(**kwargs)
        except ClientError as exc:
            if error_code(exc) == CONDITIONAL_CHECK_FAILED:
                raise ConcurrencyConflictError(
                    f"Order {order.order_id} was modified concurrently (version {order.version})"
                ) from exc
            raise
        order.version = new_version


def order_to_item(order: Order, version: int) -> dict:
    return to_item({
        "order_id": order.order_id,
        "store_id": order.store_id,
        "tenant_id": order.tenant_id,
        "status": order.status.value,
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity.value,
                "unit_price": item.unit_price.amount,
                "line_total": item.line_total.amount,
            }
            for item in order.items
        ],
        "currency": order.currency,
        "subtotal": order.subtotal.amount,
        "delivery_fee": order.delivery_fee.amount,
        "total_amount": order.total_amount.amount,
        "customer_name": order.customer.name,
        "customer_email": order.customer.email,
        "customer_phone": order.customer.phone,
        "delivery_address": order.customer.address,
        "payment_method": order.payment_method.value,
        "payment_id": order.payment_id,
        "paid_at": iso(order.paid_at),
        "delivery_agent_id": order.delivery_agent_id,
        "created_at": iso(order.created_at),
        "updated_at": iso(order.updated_at),
        "version": version,
    })


def order_from_item(item: dict) -> Order:
    data = from_item(item)
    currency = data.get("currency", DEFAULT_CURRENCY)
    return Order(
        order_id=data["order_id"],
        store_id=data["store_id"],
        tenant_id=data.get("tenant_id", ""),
        items=tuple(
            OrderLineItem(
                product_id=line["product_id"],
                product_name=line.get("product_name", ""),
                quantity=Quantity(int(line["quantity"])),
                unit_price=Money(Decimal(line["unit_price"]), currency),
            )
            for line in data.get("items", [])
        ),
        subtotal=Money(Decimal(data["subtotal"]), currency),
        delivery_fee=Money(Decimal(data.get("delivery_fee", 0)), currency),
        total_amount=Money(Decimal(data["total_amount"]), currency),
        customer=CustomerDetails(
            name=data.get("customer_name", ""),
            email=data.get("customer_email", ""),
            phone=data.get("customer_phone", ""),
            address=data.get("delivery_address", ""),
        ),
        payment_method=PaymentMethod(data.get("payment_method", PaymentMethod.ONLINE.value)),
        status=OrderStatus(data["status"]),
        payment_id=data.get("payment_id"),
        paid_at=parse_dt(data.get("paid_at")),
        delivery_agent_id=data.get("delivery_agent_id"),
        created_at=parse_dt(data["created_at"]),
        updated_at=parse_dt(data["updated_at"]),
        version=int(data.get("version", 0)),
    )
