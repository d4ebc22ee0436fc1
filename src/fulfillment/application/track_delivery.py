"""Application services: delivery tracking and agent assignment queries."""

from __future__ import annotations

from dataclasses import dataclass

from fulfillment.domain.exceptions import DeliveryNotFoundError, ValidationError
from fulfillment.domain.repository.delivery_repository import DeliveryRepository


@dataclass(frozen=True)
class TrackingUpdateDTO:
    message: str
    time: str


@dataclass(frozen=True)
class TrackingDTO:
    """Customer-facing view of a delivery."""

    delivery_id: str
    order_id: str
    status: str
    status_message: str
    estimated_delivery: str | None
    picked_up_at: str | None
    delivered_at: str | None
    last_location: str | None
    updates: list[TrackingUpdateDTO]


@dataclass(frozen=True)
class AssignmentDTO:
    delivery_id: str
    order_id: str
    status: str
    customer_name: str
    customer_phone: str
    delivery_address: str
    order_total: str
    payment_method: str
    is_cod: bool
    created_at: str


class GetTrackingHandler:

    def __init__(self, delivery_repo: DeliveryRepository) -> None:
        self._delivery_repo = delivery_repo

    def handle(self, delivery_id: str) -> TrackingDTO:
        delivery = self._delivery_repo.get_by_id(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(delivery_id)
        return TrackingDTO(
            delivery_id=delivery.delivery_id,
            order_id=delivery.order_id,
            status=delivery.status.value,
            status_message=delivery.status_message,
            estimated_delivery=delivery.estimated_delivery_time,
            picked_up_at=_iso(delivery.picked_up_at),
            delivered_at=_iso(delivery.delivered_at),
            last_location=delivery.last_location,
            updates=[
                TrackingUpdateDTO(message=note.text, time=note.timestamp.isoformat())
                for note in delivery.notes
            ],
        )


class ListAssignmentsHandler:
    """An agent's deliveries that are still in progress."""

    def __init__(self, delivery_repo: DeliveryRepository) -> None:
        self._delivery_repo = delivery_repo

    def handle(self, agent_id: str) -> list[AssignmentDTO]:
        if not agent_id:
            raise ValidationError("Agent ID is required")
        return [
            AssignmentDTO(
                delivery_id=d.delivery_id,
                order_id=d.order_id,
                status=d.status.value,
                customer_name=d.customer.name,
                customer_phone=d.customer.phone,
                delivery_address=d.customer.address,
                order_total=str(d.order_total),
                payment_method=d.payment_method,
                is_cod=d.is_cod,
                created_at=d.created_at.isoformat(),
            )
            for d in self._delivery_repo.list_by_agent(agent_id)
            if d.is_active
        ]


def _iso(value) -> str | None:
    return value.isoformat() if value else None
