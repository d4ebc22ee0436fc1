"""CLI commands for the Delivery aggregate."""

from __future__ import annotations

import click

from fulfillment.application.assign_order import AssignOrderHandler
from fulfillment.application.track_delivery import GetTrackingHandler, ListAssignmentsHandler
from fulfillment.application.update_delivery_status import UpdateDeliveryStatusHandler
from fulfillment.domain.exceptions import DomainException, InvalidTransitionError
from fulfillment.domain.model.delivery import DeliveryStatus
from fulfillment.infrastructure.bootstrap import (
    delivery_repository,
    notifier,
    order_repository,
)


@click.command("assign")
@click.argument("order_id")
@click.option("--agent", "agent_id", required=True, help="Delivery agent ID.")
@click.option("--eta", "estimated_delivery_time", default=None, help="Estimated delivery time.")
def delivery_assign(order_id: str, agent_id: str, estimated_delivery_time: str | None) -> None:
    """Assign an order to a delivery agent."""
    handler = AssignOrderHandler(
        order_repo=order_repository(),
        delivery_repo=delivery_repository(),
    )

    try:
        delivery_id = handler.handle(
            order_id=order_id,
            agent_id=agent_id,
            estimated_delivery_time=estimated_delivery_time,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery {delivery_id} created for order {order_id} (agent {agent_id})")


@click.command("status")
@click.argument("delivery_id")
@click.argument("status", type=click.Choice([s.value for s in DeliveryStatus], case_sensitive=False))
@click.option("--location", default=None, help="Agent's current location.")
@click.option("--notes", default=None, help="Note to append to the tracking history.")
def delivery_status(
    delivery_id: str,
    status: str,
    location: str | None,
    notes: str | None,
) -> None:
    """Move a delivery to its next status."""
    handler = UpdateDeliveryStatusHandler(
        delivery_repo=delivery_repository(),
        order_repo=order_repository(),
        notifier=notifier(),
    )

    try:
        update = handler.handle(
            delivery_id=delivery_id,
            status=status.upper(),
            location=location,
            notes=notes,
        )
    except InvalidTransitionError as exc:
        allowed = ", ".join(exc.allowed) or "none (terminal)"
        raise click.ClickException(f"{exc}. Allowed next: {allowed}")
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Delivery {update.delivery_id} is now {update.new_status} "
        f"(order {update.order_status})"
    )


@click.command("track")
@click.argument("delivery_id")
def delivery_track(delivery_id: str) -> None:
    """Show the customer-facing tracking view of a delivery."""
    handler = GetTrackingHandler(delivery_repo=delivery_repository())

    try:
        dto = handler.handle(delivery_id=delivery_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery {dto.delivery_id}  (order {dto.order_id})")
    click.echo(f"Status:   {dto.status} - {dto.status_message}")
    if dto.estimated_delivery:
        click.echo(f"ETA:      {dto.estimated_delivery}")
    if dto.last_location:
        click.echo(f"Location: {dto.last_location}")
    for update in dto.updates:
        click.echo(f"  {update.time}  {update.message}")


@click.command("assignments")
@click.argument("agent_id")
def delivery_assignments(agent_id: str) -> None:
    """List an agent's deliveries that are still in progress."""
    handler = ListAssignmentsHandler(delivery_repo=delivery_repository())

    try:
        assignments = handler.handle(agent_id=agent_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not assignments:
        click.echo("No active assignments.")
        return

    click.echo(f"{'Delivery':<38} {'Status':<12} {'COD':<4} {'Total':>14}  Address")
    click.echo("-" * 90)
    for a in assignments:
        cod = "yes" if a.is_cod else "no"
        click.echo(
            f"{a.delivery_id:<38} {a.status:<12} {cod:<4} {a.order_total:>14}  {a.delivery_address}"
        )
