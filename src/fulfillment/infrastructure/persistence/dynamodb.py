"""Shared helpers for the DynamoDB repositories.

All repositories talk to the low-level ``boto3`` DynamoDB client so that
single-item conditional writes and ``transact_write_items`` share one
attribute-value format.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from fulfillment.domain.model.value_objects import Money

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
TRANSACTION_CANCELED = "TransactionCanceledException"


def create_client(region: str, endpoint_url: str | None = None):
    kwargs = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.client("dynamodb", **kwargs)


# --- Attribute values ---------------------------------------------------------

def to_item(data: dict[str, Any]) -> dict[str, dict]:
    """Serialize a plain dict, dropping None values."""
    return {k: _serializer.serialize(v) for k, v in data.items() if v is not None}


def from_item(item: dict[str, dict]) -> dict[str, Any]:
    return {k: _deserializer.deserialize(v) for k, v in item.items()}


def values(**kwargs: Any) -> dict[str, dict]:
    """Build ``ExpressionAttributeValues``: ``values(qty=2)`` -> ``{":qty": {"N": "2"}}``."""
    return {f":{k}": _serializer.serialize(v) for k, v in kwargs.items()}


def versioned_put(table: str, item: dict, key: str, expected_version: int) -> dict:
    """Put parameters conditional on the stored ``version`` (absent for 0)."""
    put = {"TableName": table, "Item": item}
    if expected_version == 0:
        put["ConditionExpression"] = f"attribute_not_exists({key})"
    else:
        put["ConditionExpression"] = "version = :expected"
        put["ExpressionAttributeValues"] = values(expected=expected_version)
    return put


# --- Errors -------------------------------------------------------------------

def error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def cancellation_reasons(exc: ClientError) -> list[dict]:
    """Per-action reasons of a cancelled transaction, in request order."""
    return exc.response.get("CancellationReasons", [])


# --- Field conversions --------------------------------------------------------

def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def money(amount: Decimal | None, currency: str) -> Money | None:
    if amount is None:
        return None
    return Money(Decimal(amount), currency)
