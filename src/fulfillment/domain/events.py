"""Domain events exchanged between services.

The set of events is closed: every event is one of the frozen dataclasses
below, and ``EVENT_TYPES`` lists them all.  The event router refuses to
start unless it has a handler for each one, so adding an event here forces
a decision in every consumer.

Wire format (one JSON message per event)::

    {"eventType": "ORDER_PLACED", "timestamp": "...", "data": {...}}

``data`` keys are camelCase to stay compatible with the other services
publishing on the same topic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Union

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.stock_deduction import StockLine
from fulfillment.domain.model.value_objects import utc_now


def _lines_to_wire(lines: tuple[StockLine, ...]) -> list[dict]:
    return [{"product_id": line.product_id, "quantity": line.quantity} for line in lines]


def _lines_from_wire(raw: list[dict]) -> tuple[StockLine, ...]:
    return tuple(
        StockLine(
            product_id=item.get("product_id") or item.get("productId"),
            quantity=item["quantity"],
        )
        for item in raw
    )


@dataclass(frozen=True)
class OrderPlaced:
    event_type: ClassVar[str] = "ORDER_PLACED"

    tenant_id: str
    store_id: str
    order_id: str
    items: tuple[StockLine, ...]
    occurred_at: datetime = field(default_factory=utc_now, compare=False)

    def to_data(self) -> dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "storeId": self.store_id,
            "orderId": self.order_id,
            "items": _lines_to_wire(self.items),
        }

    @classmethod
    def from_data(cls, data: dict, occurred_at: datetime) -> OrderPlaced:
        return cls(
            tenant_id=data["tenantId"],
            store_id=data["storeId"],
            order_id=data["orderId"],
            items=_lines_from_wire(data["items"]),
            occurred_at=occurred_at,
        )


@dataclass(frozen=True)
class OrderCancelled:
    event_type: ClassVar[str] = "ORDER_CANCELLED"

    tenant_id: str
    store_id: str
    order_id: str
    items: tuple[StockLine, ...]
    occurred_at: datetime = field(default_factory=utc_now, compare=False)

    def to_data(self) -> dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "storeId": self.store_id,
            "orderId": self.order_id,
            "items": _lines_to_wire(self.items),
        }

    @classmethod
    def from_data(cls, data: dict, occurred_at: datetime) -> OrderCancelled:
        return cls(
            tenant_id=data["tenantId"],
            store_id=data["storeId"],
            order_id=data["orderId"],
            items=_lines_from_wire(data.get("items", [])),
            occurred_at=occurred_at,
        )


@dataclass(frozen=True)
class LowStockAlert:
    event_type: ClassVar[str] = "LOW_STOCK_ALERT"

    tenant_id: str
    store_id: str
    product_ids: tuple[str, ...]
    occurred_at: datetime = field(default_factory=utc_now, compare=False)

    def to_data(self) -> dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "storeId": self.store_id,
            "productIds": list(self.product_ids),
            "timestamp": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_data(cls, data: dict, occurred_at: datetime) -> LowStockAlert:
        return cls(
            tenant_id=data["tenantId"],
            store_id=data["storeId"],
            product_ids=tuple(data["productIds"]),
            occurred_at=occurred_at,
        )


@dataclass(frozen=True)
class StockDeductionFailed:
    event_type: ClassVar[str] = "STOCK_DEDUCTION_FAILED"

    tenant_id: str
    store_id: str
    order_id: str
    product_id: str
    requested_quantity: int
    error: str
    occurred_at: datetime = field(default_factory=utc_now, compare=False)

    def to_data(self) -> dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "storeId": self.store_id,
            "orderId": self.order_id,
            "productId": self.product_id,
            "requestedQuantity": self.requested_quantity,
            "error": self.error,
        }

    @classmethod
    def from_data(cls, data: dict, occurred_at: datetime) -> StockDeductionFailed:
        return cls(
            tenant_id=data["tenantId"],
            store_id=data["storeId"],
            order_id=data["orderId"],
            product_id=data["productId"],
            requested_quantity=data["requestedQuantity"],
            error=data.get("error", ""),
            occurred_at=occurred_at,
        )


DomainEvent = Union[OrderPlaced, OrderCancelled, LowStockAlert, StockDeductionFailed]

EVENT_TYPES: tuple[type, ...] = (
    OrderPlaced,
    OrderCancelled,
    LowStockAlert,
    StockDeductionFailed,
)

_BY_WIRE_NAME = {cls.event_type: cls for cls in EVENT_TYPES}


class UnknownEventType(ValidationError):
    """The message names an event type this service does not know."""

    def __init__(self, event_type: str) -> None:
        super().__init__(f"Unhandled event type: {event_type}")
        self.event_type = event_type


# --- Codec --------------------------------------------------------------------

def encode(event: DomainEvent) -> str:
    return json.dumps({
        "eventType": event.event_type,
        "timestamp": event.occurred_at.isoformat(),
        "data": event.to_data(),
    })


def decode(message: str) -> DomainEvent:
    """Parse one wire message into its event dataclass.

    Raises UnknownEventType for event types outside ``EVENT_TYPES`` and
    ValidationError for anything malformed.
    """
    try:
        raw = json.loads(message)
        event_type = raw["eventType"]
        data = raw.get("data") or {}
    except (AttributeError, TypeError, ValueError, KeyError) as exc:
        raise ValidationError(f"Malformed event message: {exc}") from exc

    cls = _BY_WIRE_NAME.get(event_type)
    if cls is None:
        raise UnknownEventType(event_type)

    occurred_at = _parse_timestamp(raw.get("timestamp"))
    try:
        return cls.from_data(data, occurred_at)
    except (KeyError, TypeError) as exc:
        raise ValidationError(
            f"Malformed {event_type} event: missing or invalid {exc}"
        ) from exc


def _parse_timestamp(value: str | None) -> datetime:
    if not value:
        return utc_now()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return utc_now()
