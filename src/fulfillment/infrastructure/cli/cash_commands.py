"""CLI commands for cash-on-delivery reconciliation."""

from __future__ import annotations

from datetime import datetime, timezone

import click

from fulfillment.application.cash_summary import CashSummaryHandler
from fulfillment.application.record_cash_collection import (
    RecordCashCollectionHandler,
    ShowCashReceiptHandler,
)
from fulfillment.domain.exceptions import DomainException
from fulfillment.infrastructure.bootstrap import delivery_repository, payment_repository


@click.command("record")
@click.argument("delivery_id")
@click.argument("amount")
@click.option("--notes", default=None, help="Free-text note about the collection.")
def cash_record(delivery_id: str, amount: str, notes: str | None) -> None:
    """Record the cash an agent collected for a COD delivery."""
    handler = RecordCashCollectionHandler(delivery_repo=delivery_repository())

    try:
        result = handler.handle(delivery_id=delivery_id, amount_collected=amount, notes=notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Payment {result.payment_id}: {result.status}")
    click.echo(f"  Expected:  {result.currency} {result.expected_amount:.2f}")
    click.echo(f"  Collected: {result.currency} {result.collected_amount:.2f}")
    click.echo(f"  Variance:  {result.currency} {result.variance:+.2f}")


@click.command("summary")
@click.argument("agent_id")
@click.option("--date", "day", default=None, help="YYYY-MM-DD (UTC); defaults to today.")
def cash_summary(agent_id: str, day: str | None) -> None:
    """Show an agent's cash position for one day."""
    handler = CashSummaryHandler(delivery_repo=delivery_repository())
    day = day or datetime.now(timezone.utc).date().isoformat()

    try:
        summary = handler.handle(agent_id=agent_id, date=day)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Cash summary for {summary.agent_id} on {summary.date}")
    click.echo(f"  Collections:        {summary.total_deliveries}")
    click.echo(f"  Expected:           {summary.total_expected:.2f}")
    click.echo(f"  Collected:          {summary.total_collected:.2f}")
    click.echo(f"  Variance:           {summary.total_variance:+.2f}")
    click.echo(f"  Pending collection: {summary.pending_collection:.2f}")
    click.echo(f"  Upcoming COD:       {summary.upcoming_cod:.2f}")
    click.echo(f"  Net position:       {summary.net_position:+.2f}")
    for line in summary.deliveries:
        click.echo(
            f"    {line.delivery_id}  {line.expected:.2f} -> {line.collected:.2f}  {line.status}"
        )


@click.command("receipt")
@click.argument("delivery_id")
def cash_receipt(delivery_id: str) -> None:
    """Show the payment record of a collected COD delivery."""
    handler = ShowCashReceiptHandler(
        delivery_repo=delivery_repository(),
        payment_repo=payment_repository(),
    )

    try:
        payment = handler.handle(delivery_id=delivery_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Payment {payment.payment_id}  (order {payment.order_id}, {payment.status.value})")
    click.echo(f"  Collected by: {payment.collected_by} at {payment.collected_at.isoformat()}")
    click.echo(f"  Amount:       {payment.amount}")
    click.echo(f"  Expected:     {payment.expected_amount}")
    click.echo(f"  Variance:     {payment.variance:+.2f}")
