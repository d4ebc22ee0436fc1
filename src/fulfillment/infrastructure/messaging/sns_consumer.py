"""Lambda-style entry point for SNS batches delivered to the inventory service."""

from __future__ import annotations

from typing import Any

from fulfillment.application.event_router import ConsumeReport
from fulfillment.infrastructure import bootstrap
from fulfillment.infrastructure.logging import bind_context, clear_context


def handle_sns_event(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Consume every record of an SNS notification batch.

    Failing records are reported back rather than raised, so one bad
    message never causes the whole batch to be redelivered.
    """
    bootstrap.init_logging()
    request_id = getattr(context, "aws_request_id", None)
    if request_id:
        bind_context(request_id=request_id)
    try:
        report = bootstrap.inventory_router().consume(event.get("Records", []))
    finally:
        clear_context()
    return _summary(report)


def _summary(report: ConsumeReport) -> dict[str, Any]:
    return {
        "processed": report.processed,
        "skipped": report.skipped,
        "failed": report.failed,
    }
