"""Event Router: publishes domain events and dispatches consumed ones.

Dispatch is by event class, and the router must be built with a handler
for every class in ``EVENT_TYPES``: a service that does not care about an
event registers ``ignore`` for it explicitly.

Consumption is one record at a time.  A record that fails to decode or
whose handler raises is logged and counted, and the batch carries on;
the channel is at-least-once and unordered, so handlers are expected to
be idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

import structlog

from fulfillment.domain.events import (
    EVENT_TYPES,
    DomainEvent,
    UnknownEventType,
    decode,
)
from fulfillment.domain.ports import EventPublisher

logger = structlog.get_logger(__name__)

EventHandler = Callable[[Any], None]


def ignore(event: DomainEvent) -> None:
    """Handler for events a consumer does nothing with."""


@dataclass
class ConsumeReport:
    processed: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.skipped + len(self.failed)


class EventRouter(EventPublisher):

    def __init__(
        self,
        publisher: EventPublisher,
        handlers: Mapping[type, EventHandler],
    ) -> None:
        missing = [cls.__name__ for cls in EVENT_TYPES if cls not in handlers]
        if missing:
            raise ValueError(f"No handler registered for: {', '.join(missing)}")
        unknown = [cls for cls in handlers if cls not in EVENT_TYPES]
        if unknown:
            raise ValueError(f"Handlers registered for unknown events: {unknown}")
        self._publisher = publisher
        self._handlers = dict(handlers)

    def publish(self, event: DomainEvent) -> None:
        self._publisher.publish(event)

    def dispatch(self, event: DomainEvent) -> None:
        self._handlers[type(event)](event)

    def consume(self, records: Iterable[Mapping]) -> ConsumeReport:
        """Process a batch of SNS-style records, isolating failures.

        Each record is ``{"Sns": {"Message": "<json>"}}``; a bare
        ``{"Message": ...}`` or message string is also accepted.
        """
        report = ConsumeReport()
        for index, record in enumerate(records):
            record_id = _record_id(record, index)
            try:
                event = decode(_message_of(record))
            except UnknownEventType as exc:
                logger.info("event_unhandled", record_id=record_id, event_type=exc.event_type)
                report.skipped += 1
                continue
            except Exception:
                logger.exception("event_decode_failed", record_id=record_id)
                report.failed.append(record_id)
                continue

            try:
                self.dispatch(event)
            except Exception:
                # One bad record must not stop the rest of the batch.
                logger.exception(
                    "event_handler_failed",
                    record_id=record_id,
                    event_type=event.event_type,
                )
                report.failed.append(record_id)
            else:
                report.processed += 1

        logger.info(
            "event_batch_consumed",
            processed=report.processed,
            skipped=report.skipped,
            failed=len(report.failed),
        )
        return report


def _message_of(record: Mapping | str) -> str:
    if isinstance(record, str):
        return record
    sns = record.get("Sns", record)
    return sns["Message"]


def _record_id(record: Mapping | str, index: int) -> str:
    if isinstance(record, Mapping):
        sns = record.get("Sns", record)
        if isinstance(sns, Mapping) and sns.get("MessageId"):
            return str(sns["MessageId"])
    return f"record-{index}"
