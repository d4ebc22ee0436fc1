"""DynamoDB implementations of DeliveryRepository and PaymentRepository.

Deliveries are keyed by ``delivery_id`` with an ``agent-index`` GSI
(``agent_id``, ``created_at``).  Payment records are keyed by
``tenant_id`` + ``payment_id``.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import structlog
from botocore.exceptions import ClientError

from fulfillment.domain.exceptions import AlreadyCollectedError, ConcurrencyConflictError
from fulfillment.domain.model.delivery import Delivery, DeliveryNote, DeliveryStatus
from fulfillment.domain.model.order import CustomerDetails, Order
from fulfillment.domain.model.payment import PaymentRecord, PaymentRecordStatus
from fulfillment.domain.model.value_objects import DEFAULT_CURRENCY, Money
from fulfillment.domain.repository.delivery_repository import (
    DeliveryRepository,
    PaymentRepository,
)
from fulfillment.infrastructure.persistence.dynamodb import (
    CONDITIONAL_CHECK_FAILED,
    TRANSACTION_CANCELED,
    cancellation_reasons,
    error_code,
    from_item,
    iso,
    money,
    parse_dt,
    to_item,
    values,
    versioned_put,
)
from fulfillment.infrastructure.persistence.dynamodb_order_repository import order_to_item

logger = structlog.get_logger(__name__)

AGENT_INDEX = "agent-index"


class DynamoDBDeliveryRepository(DeliveryRepository):

    def __init__(
        self,
        client,
        table_name: str,
        payments_table: str,
        orders_table: str,
    ) -> None:
        self._client = client
        self._table = table_name
        self._payments_table = payments_table
        self._orders_table = orders_table

    def next_id(self) -> str:
        return str(uuid.uuid4())

    def get_by_id(self, delivery_id: str) -> Delivery | None:
        response = self._client.get_item(
            TableName=self._table,
            Key={"delivery_id": {"S": delivery_id}},
            ConsistentRead=True,
        )
        item = response.get("Item")
        return delivery_from_item(item) if item else None

    def list_by_agent(self, agent_id: str) -> list[Delivery]:
        paginator = self._client.get_paginator("query")
        pages = paginator.paginate(
            TableName=self._table,
            IndexName=AGENT_INDEX,
            KeyConditionExpression="agent_id = :agent_id",
            ExpressionAttributeValues=values(agent_id=agent_id),
        )
        return [delivery_from_item(item) for page in pages for item in page.get("Items", [])]

    def save(self, delivery: Delivery) -> None:
        new_version = delivery.version + 1
        put = versioned_put(
            self._table,
            delivery_to_item(delivery, new_version),
            "delivery_id",
            delivery.version,
        )
        try:
            self._client.put_item(**put)
        except ClientError as exc:
            if error_code(exc) == CONDITIONAL_CHECK_FAILED:
                raise ConcurrencyConflictError(
                    f"Delivery {delivery.delivery_id} was modified concurrently "
                    f"(version {delivery.version})"
                ) from exc
            raise
        delivery.version = new_version

    def save_with_order(self, delivery: Delivery, order: Order) -> None:
        delivery_version = delivery.version + 1
        order_version = order.version + 1
        actions = [
            {"Put": versioned_put(
                self._table,
                delivery_to_item(delivery, delivery_version),
                "delivery_id",
                delivery.version,
            )},
            {"Put": versioned_put(
                self._orders_table,
                order_to_item(order, order_version),
                "order_id",
                order.version,
            )},
        ]
        try:
            self._client.transact_write_items(TransactItems=actions)
        except ClientError as exc:
            if error_code(exc) != TRANSACTION_CANCELED:
                raise
            logger.warning(
                "delivery_order_write_rejected",
                delivery_id=delivery.delivery_id,
                order_id=order.order_id,
                reasons=[r.get("Code") for r in cancellation_reasons(exc)],
            )
            raise ConcurrencyConflictError(
                f"Delivery {delivery.delivery_id} or order {order.order_id} "
                f"was modified concurrently"
            ) from exc
        delivery.version = delivery_version
        order.version = order_version

    def record_cash_collection(self, delivery: Delivery, payment: PaymentRecord) -> None:
        new_version = delivery.version + 1
        actions = [
            {
                "Put": {
                    "TableName": self._table,
                    "Item": delivery_to_item(delivery, new_version),
                    "ConditionExpression": (
                        "attribute_exists(delivery_id) AND cod_collected = :false "
                        "AND version = :expected"
                    ),
                    "ExpressionAttributeValues": values(false=False, expected=delivery.version),
                    "ReturnValuesOnConditionCheckFailure": "ALL_OLD",
                }
            },
            {
                "Put": {
                    "TableName": self._payments_table,
                    "Item": payment_to_item(payment),
                    "ConditionExpression": "attribute_not_exists(payment_id)",
                }
            },
        ]
        try:
            self._client.transact_write_items(TransactItems=actions)
        except ClientError as exc:
            if error_code(exc) != TRANSACTION_CANCELED:
                raise
            reasons = cancellation_reasons(exc)
            delivery_reason = reasons[0] if reasons else {}
            payment_reason = reasons[1] if len(reasons) > 1 else {}
            old = delivery_reason.get("Item")
            already = (
                payment_reason.get("Code") == "ConditionalCheckFailed"
                or (old is not None and from_item(old).get("cod_collected") is True)
            )
            logger.warning(
                "cash_collection_rejected",
                delivery_id=delivery.delivery_id,
                already_collected=already,
            )
            if already:
                raise AlreadyCollectedError(
                    f"Cash already collected for delivery {delivery.delivery_id}"
                ) from exc
            raise ConcurrencyConflictError(
                f"Delivery {delivery.delivery_id} was modified concurrently "
                f"(version {delivery.version})"
            ) from exc
        delivery.version = new_version


class DynamoDBPaymentRepository(PaymentRepository):

    def __init__(self, client, table_name: str) -> None:
        self._client = client
        self._table = table_name

    def get(self, tenant_id: str, payment_id: str) -> PaymentRecord | None:
        response = self._client.get_item(
            TableName=self._table,
            Key={"tenant_id": {"S": tenant_id}, "payment_id": {"S": payment_id}},
        )
        item = response.get("Item")
        return payment_from_item(item) if item else None


# --- Item mapping -------------------------------------------------------------

def delivery_to_item(delivery: Delivery, version: int) -> dict:
    return to_item({
        "delivery_id": delivery.delivery_id,
        "order_id": delivery.order_id,
        "tenant_id": delivery.tenant_id,
        "store_id": delivery.store_id,
        "agent_id": delivery.agent_id,
        "status": delivery.status.value,
        "currency": delivery.order_total.currency,
        "order_total": delivery.order_total.amount,
        "customer_name": delivery.customer.name,
        "customer_email": delivery.customer.email,
        "customer_phone": delivery.customer.phone,
        "delivery_address": delivery.customer.address,
        "payment_method": delivery.payment_method,
        "is_cod": delivery.is_cod,
        "cod_amount": delivery.cod_amount.amount if delivery.cod_amount else None,
        "cod_collected": delivery.cod_collected,
        "cod_collected_amount": (
            delivery.cod_collected_amount.amount if delivery.cod_collected_amount else None
        ),
        "cod_variance": delivery.cod_variance,
        "cod_collected_at": iso(delivery.cod_collected_at),
        "cod_notes": delivery.cod_notes,
        "estimated_delivery_time": delivery.estimated_delivery_time,
        "last_location": delivery.last_location,
        "notes": [
            {"text": note.text, "timestamp": iso(note.timestamp)}
            for note in delivery.notes
        ],
        "picked_up_at": iso(delivery.picked_up_at),
        "delivered_at": iso(delivery.delivered_at),
        "created_at": iso(delivery.created_at),
        "updated_at": iso(delivery.updated_at),
        "version": version,
    })


def delivery_from_item(item: dict) -> Delivery:
    data = from_item(item)
    currency = data.get("currency", DEFAULT_CURRENCY)
    variance = data.get("cod_variance")
    return Delivery(
        delivery_id=data["delivery_id"],
        order_id=data["order_id"],
        tenant_id=data.get("tenant_id", ""),
        store_id=data.get("store_id", ""),
        agent_id=data["agent_id"],
        order_total=money(data.get("order_total", 0), currency),
        customer=CustomerDetails(
            name=data.get("customer_name", ""),
            email=data.get("customer_email", ""),
            phone=data.get("customer_phone", ""),
            address=data.get("delivery_address", ""),
        ),
        payment_method=data.get("payment_method", "ONLINE"),
        status=DeliveryStatus(data["status"]),
        is_cod=bool(data.get("is_cod", False)),
        cod_amount=money(data.get("cod_amount"), currency),
        cod_collected=bool(data.get("cod_collected", False)),
        cod_collected_amount=money(data.get("cod_collected_amount"), currency),
        cod_variance=Decimal(variance) if variance is not None else None,
        cod_collected_at=parse_dt(data.get("cod_collected_at")),
        cod_notes=data.get("cod_notes"),
        estimated_delivery_time=data.get("estimated_delivery_time"),
        last_location=data.get("last_location"),
        notes=tuple(
            DeliveryNote(text=note["text"], timestamp=parse_dt(note["timestamp"]))
            for note in data.get("notes", [])
        ),
        picked_up_at=parse_dt(data.get("picked_up_at")),
        delivered_at=parse_dt(data.get("delivered_at")),
        created_at=parse_dt(data["created_at"]),
        updated_at=parse_dt(data["updated_at"]),
        version=int(data.get("version", 0)),
    )


def payment_to_item(payment: PaymentRecord) -> dict:
    return to_item({
        "tenant_id": payment.tenant_id,
        "payment_id": payment.payment_id,
        "order_id": payment.order_id,
        "store_id": payment.store_id,
        "currency": payment.amount.currency,
        "amount": payment.amount.amount,
        "expected_amount": payment.expected_amount.amount,
        "variance": payment.variance,
        "payment_method": payment.payment_method,
        "collected_by": payment.collected_by,
        "collected_at": iso(payment.collected_at),
        "status": payment.status.value,
    })


def payment_from_item(item: dict) -> PaymentRecord:
    data = from_item(item)
    currency = data.get("currency", DEFAULT_CURRENCY)
    return PaymentRecord(
        tenant_id=data["tenant_id"],
        payment_id=data["payment_id"],
        order_id=data["order_id"],
        store_id=data.get("store_id", ""),
        amount=Money(Decimal(data["amount"]), currency),
        expected_amount=Money(Decimal(data["expected_amount"]), currency),
        variance=Decimal(data["variance"]),
        payment_method=data.get("payment_method", "COD"),
        collected_by=data.get("collected_by", ""),
        collected_at=parse_dt(data["collected_at"]),
        status=PaymentRecordStatus(data["status"]),
    )
