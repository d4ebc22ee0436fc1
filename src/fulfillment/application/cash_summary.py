"""Application service: daily cash summary for a delivery agent.

Read-only.  Collections are bucketed by the UTC date on which cash was
recorded; deliveries completed that day but not yet settled count as
pending, and COD deliveries still on the road count as upcoming.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as Date
from decimal import Decimal

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.delivery import Delivery, DeliveryStatus, VarianceStatus
from fulfillment.domain.repository.delivery_repository import DeliveryRepository


@dataclass(frozen=True)
class CashSummaryLine:
    delivery_id: str
    order_id: str
    expected: Decimal
    collected: Decimal
    variance: Decimal
    status: str
    collected_at: str


@dataclass
class CashSummary:
    date: str
    agent_id: str
    total_deliveries: int = 0
    total_expected: Decimal = Decimal("0")
    total_collected: Decimal = Decimal("0")
    total_variance: Decimal = Decimal("0")
    pending_collection: Decimal = Decimal("0")
    upcoming_cod: Decimal = Decimal("0")
    deliveries: list[CashSummaryLine] = field(default_factory=list)

    @property
    def net_position(self) -> Decimal:
        return self.total_collected - self.total_expected


class CashSummaryHandler:

    def __init__(self, delivery_repo: DeliveryRepository) -> None:
        self._delivery_repo = delivery_repo

    def handle(self, agent_id: str, date: str | Date) -> CashSummary:
        if not agent_id:
            raise ValidationError("Agent ID is required")
        day = _parse_date(date)
        summary = CashSummary(date=day.isoformat(), agent_id=agent_id)

        for delivery in self._delivery_repo.list_by_agent(agent_id):
            if not delivery.is_cod:
                continue
            expected = _amount(delivery.cod_amount)

            if delivery.cod_collected and _on(delivery.cod_collected_at, day):
                variance = delivery.cod_variance or Decimal("0")
                summary.total_deliveries += 1
                summary.total_expected += expected
                summary.total_collected += _amount(delivery.cod_collected_amount)
                summary.total_variance += variance
                summary.deliveries.append(_line(delivery, expected, variance))
            elif (
                not delivery.cod_collected
                and delivery.status == DeliveryStatus.DELIVERED
                and _on(delivery.delivered_at, day)
            ):
                summary.pending_collection += expected
            elif delivery.is_active:
                summary.upcoming_cod += expected

        return summary


def _parse_date(value: str | Date) -> Date:
    if isinstance(value, Date):
        return value
    try:
        return Date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def _on(moment, day: Date) -> bool:
    return moment is not None and moment.date() == day


def _amount(money) -> Decimal:
    return money.amount if money is not None else Decimal("0")


def _line(delivery: Delivery, expected: Decimal, variance: Decimal) -> CashSummaryLine:
    return CashSummaryLine(
        delivery_id=delivery.delivery_id,
        order_id=delivery.order_id,
        expected=expected,
        collected=_amount(delivery.cod_collected_amount),
        variance=variance,
        status=VarianceStatus.classify(variance).value,
        collected_at=delivery.cod_collected_at.isoformat(),
    )
