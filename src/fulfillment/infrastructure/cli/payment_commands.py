"""CLI commands for online payment."""

from __future__ import annotations

import click

from fulfillment.application.confirm_payment import (
    ConfirmPaymentHandler,
    InitiatePaymentHandler,
)
from fulfillment.domain.exceptions import DomainException
from fulfillment.infrastructure.bootstrap import (
    callback_verifier,
    event_publisher,
    order_repository,
    payment_gateway,
)


@click.command("initiate")
@click.argument("order_id")
def payment_initiate(order_id: str) -> None:
    """Register an order with the payment gateway."""
    handler = InitiatePaymentHandler(
        order_repo=order_repository(),
        gateway=payment_gateway(),
    )

    try:
        reference = handler.handle(order_id=order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Gateway reference {reference.reference} for {reference.amount}")


@click.command("callback")
@click.argument("body_file", type=click.File("rb"))
@click.option("--signature", required=True, help="Value of the gateway's signature header.")
def payment_callback(body_file, signature: str) -> None:
    """Replay a gateway callback body (e.g. a stored webhook delivery)."""
    handler = ConfirmPaymentHandler(
        order_repo=order_repository(),
        verifier=callback_verifier(),
        publisher=event_publisher(),
    )

    try:
        order_id = handler.handle(body=body_file.read(), signature=signature)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if order_id:
        click.echo(f"Order {order_id} marked PAID.")
    else:
        click.echo("Callback acknowledged; nothing to change.")
