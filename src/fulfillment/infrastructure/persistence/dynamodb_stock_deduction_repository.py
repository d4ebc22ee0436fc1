"""DynamoDB implementation of StockDeductionRepository.

The debit is one ``TransactWriteItems`` call: action 0 creates the
deduction record (only if the order has none), actions 1..n decrement
each product (only if it exists and holds enough stock).  DynamoDB
either applies every action or none.
"""

from __future__ import annotations

import structlog
from botocore.exceptions import ClientError

from fulfillment.domain.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    ProductNotFoundError,
)
from fulfillment.domain.model.product import Product
from fulfillment.domain.model.stock_deduction import (
    DeductionStatus,
    StockDeduction,
    StockLine,
)
from fulfillment.domain.model.value_objects import utc_now
from fulfillment.domain.repository.product_repository import ProductRepository
from fulfillment.domain.repository.stock_deduction_repository import (
    DeductionAlreadyRecorded,
    StockDeductionRepository,
)
from fulfillment.infrastructure.persistence.dynamodb import (
    CONDITIONAL_CHECK_FAILED,
    TRANSACTION_CANCELED,
    cancellation_reasons,
    error_code,
    from_item,
    iso,
    parse_dt,
    to_item,
    values,
)

logger = structlog.get_logger(__name__)


class DynamoDBStockDeductionRepository(StockDeductionRepository):

    def __init__(
        self,
        client,
        table_name: str,
        products_table: str,
        product_repo: ProductRepository,
    ) -> None:
        self._client = client
        self._table = table_name
        self._products_table = products_table
        self._product_repo = product_repo

    def get(self, order_id: str) -> StockDeduction | None:
        response = self._client.get_item(
            TableName=self._table,
            Key={"order_id": {"S": order_id}},
            ConsistentRead=True,
        )
        item = response.get("Item")
        return deduction_from_item(item) if item else None

    def debit(self, deduction: StockDeduction) -> list[Product]:
        now = iso(utc_now())
        actions = [
            {
                "Put": {
                    "TableName": self._table,
                    "Item": deduction_to_item(deduction),
                    "ConditionExpression": "attribute_not_exists(order_id)",
                }
            }
        ]
        for line in deduction.lines:
            actions.append({
                "Update": {
                    "TableName": self._products_table,
                    "Key": {
                        "store_id": {"S": deduction.store_id},
                        "product_id": {"S": line.product_id},
                    },
                    "UpdateExpression": "SET stock_quantity = stock_quantity - :qty, updated_at = :now",
                    "ConditionExpression": "attribute_exists(product_id) AND stock_quantity >= :qty",
                    "ExpressionAttributeValues": values(qty=line.quantity, now=now),
                    "ReturnValuesOnConditionCheckFailure": "ALL_OLD",
                }
            })

        try:
            self._client.transact_write_items(TransactItems=actions)
        except ClientError as exc:
            if error_code(exc) != TRANSACTION_CANCELED:
                raise
            self._raise_for_cancellation(deduction, exc)

        products = self._product_repo.get_many(
            deduction.store_id, [line.product_id for line in deduction.lines]
        )
        return [products[line.product_id] for line in deduction.lines if line.product_id in products]

    def create_void(self, deduction: StockDeduction) -> bool:
        try:
            self._client.put_item(
                TableName=self._table,
                Item=deduction_to_item(deduction),
                ConditionExpression="attribute_not_exists(order_id)",
            )
        except ClientError as exc:
            if error_code(exc) == CONDITIONAL_CHECK_FAILED:
                return False
            raise
        return True

    def mark_restored(self, order_id: str) -> bool:
        try:
            self._client.update_item(
                TableName=self._table,
                Key={"order_id": {"S": order_id}},
                UpdateExpression="SET #status = :restored, updated_at = :now",
                ConditionExpression="#status = :debited",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues=values(
                    restored=DeductionStatus.RESTORED.value,
                    debited=DeductionStatus.DEBITED.value,
                    now=iso(utc_now()),
                ),
            )
        except ClientError as exc:
            if error_code(exc) == CONDITIONAL_CHECK_FAILED:
                return False
            raise
        return True

    # --- Internal helpers -----------------------------------------------------

    def _raise_for_cancellation(self, deduction: StockDeduction, exc: ClientError) -> None:
        reasons = cancellation_reasons(exc)
        if reasons and reasons[0].get("Code") == "ConditionalCheckFailed":
            raise DeductionAlreadyRecorded(deduction.order_id) from exc

        missing: list[str] = []
        short: list[str] = []
        other: list[str] = []
        for line, reason in zip(deduction.lines, reasons[1:]):
            code = reason.get("Code", "None")
            if code == "ConditionalCheckFailed":
                if reason.get("Item"):
                    short.append(line.product_id)
                else:
                    missing.append(line.product_id)
            elif code != "None":
                other.append(code)

        logger.warning(
            "stock_debit_cancelled",
            order_id=deduction.order_id,
            insufficient=short,
            missing=missing,
            other_reasons=other,
        )
        if missing:
            raise ProductNotFoundError(missing[0]) from exc
        if short:
            raise InsufficientStockError(short) from exc
        raise ConcurrencyConflictError(
            f"Stock debit for order {deduction.order_id} was cancelled: {', '.join(other) or 'unknown reason'}"
        ) from exc


def deduction_to_item(deduction: StockDeduction) -> dict:
    return to_item({
        "order_id": deduction.order_id,
        "store_id": deduction.store_id,
        "status": deduction.status.value,
        "lines": [
            {"product_id": line.product_id, "quantity": line.quantity}
            for line in deduction.lines
        ],
        "created_at": iso(deduction.created_at),
        "updated_at": iso(deduction.updated_at),
    })


def deduction_from_item(item: dict) -> StockDeduction:
    data = from_item(item)
    return StockDeduction(
        order_id=data["order_id"],
        store_id=data["store_id"],
        lines=tuple(
            StockLine(line["product_id"], int(line["quantity"]))
            for line in data.get("lines", [])
        ),
        status=DeductionStatus(data["status"]),
        created_at=parse_dt(data.get("created_at")) or utc_now(),
        updated_at=parse_dt(data.get("updated_at")) or utc_now(),
    )
