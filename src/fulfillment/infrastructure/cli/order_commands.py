"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from fulfillment.application.cancel_order import CancelOrderHandler
from fulfillment.application.confirm_payment import ConfirmCodOrderHandler
from fulfillment.application.create_order import CreateOrderHandler
from fulfillment.application.dto import OrderDTO, OrderItemSpec
from fulfillment.application.show_order import ListStoreOrdersHandler, ShowOrderHandler
from fulfillment.domain.exceptions import DomainException
from fulfillment.domain.model.order import CustomerDetails
from fulfillment.infrastructure.bootstrap import (
    event_publisher,
    order_repository,
    product_repository,
)


def _parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse 'P-1:3,P-2:5' into an OrderItemSpec list."""
    specs: list[OrderItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductID:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        specs.append(OrderItemSpec(product_id=product_id.strip(), quantity=qty))
    return specs


@click.command("create")
@click.option("--store", "store_id", required=True, help="Store ID.")
@click.option("--tenant", "tenant_id", required=True, help="Tenant ID.")
@click.option("--items", required=True, help="Items as 'ProductID:Qty,ProductID:Qty'.")
@click.option("--customer", "customer_name", default="", help="Customer name.")
@click.option("--phone", default="", help="Customer phone number.")
@click.option("--email", default="", help="Customer email.")
@click.option("--address", default="", help="Delivery address.")
@click.option("--delivery-fee", default="0", show_default=True, help="Delivery fee.")
@click.option(
    "--payment-method",
    type=click.Choice(["ONLINE", "COD"], case_sensitive=False),
    default="ONLINE",
    show_default=True,
)
def order_create(
    store_id: str,
    tenant_id: str,
    items: str,
    customer_name: str,
    phone: str,
    email: str,
    address: str,
    delivery_fee: str,
    payment_method: str,
) -> None:
    """Create a new order awaiting payment."""
    specs = _parse_items(items)

    handler = CreateOrderHandler(
        order_repo=order_repository(),
        product_repo=product_repository(),
    )

    try:
        receipt = handler.handle(
            store_id=store_id,
            tenant_id=tenant_id,
            item_specs=specs,
            customer=CustomerDetails(name=customer_name, email=email, phone=phone, address=address),
            delivery_fee=delivery_fee,
            payment_method=payment_method,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {receipt.order_id} created  (status=PENDING_PAYMENT)")
    click.echo(f"Total: {receipt.currency} {receipt.total_amount:.2f}")


def _display_order(dto: OrderDTO) -> None:
    click.echo(f"Order {dto.order_id}  (status={dto.status}, payment={dto.payment_method})")
    click.echo(f"Store:    {dto.store_id}")
    click.echo(f"Customer: {dto.customer_name or '-'}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.delivery_agent_id:
        click.echo(f"Agent:    {dto.delivery_agent_id}")
    click.echo()
    click.echo(f"  {'Product':<24} {'Qty':>5} {'Price':>14} {'Total':>14}")
    click.echo(f"  {'-'*60}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<24} {item.quantity:>5} {item.unit_price:>14} {item.line_total:>14}"
        )
    click.echo(f"  {'-'*60}")
    click.echo(f"  {'Subtotal':<30} {dto.subtotal:>29}")
    click.echo(f"  {'Delivery fee':<30} {dto.delivery_fee:>29}")
    click.echo(f"  {'Order Total':<30} {dto.total_amount:>29}")


@click.command("show")
@click.argument("order_id")
def order_show(order_id: str) -> None:
    """Show an order's details."""
    handler = ShowOrderHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_id=order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("list")
@click.option("--store", "store_id", required=True, help="Store ID.")
def order_list(store_id: str) -> None:
    """List a store's orders, newest first."""
    orders = ListStoreOrdersHandler(order_repo=order_repository()).handle(store_id=store_id)

    if not orders:
        click.echo("No orders found.")
        return

    click.echo(f"{'Order':<38} {'Status':<22} {'Total':>14}")
    click.echo("-" * 76)
    for dto in orders:
        click.echo(f"{dto.order_id:<38} {dto.status:<22} {dto.total_amount:>14}")


@click.command("cancel")
@click.argument("order_id")
def order_cancel(order_id: str) -> None:
    """Cancel an order; any stock already taken is given back."""
    handler = CancelOrderHandler(
        order_repo=order_repository(),
        publisher=event_publisher(),
    )

    try:
        handler.handle(order_id=order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id} cancelled.")


@click.command("confirm-cod")
@click.argument("order_id")
def order_confirm_cod(order_id: str) -> None:
    """Confirm a cash-on-delivery order."""
    handler = ConfirmCodOrderHandler(
        order_repo=order_repository(),
        publisher=event_publisher(),
    )

    try:
        changed = handler.handle(order_id=order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if changed:
        click.echo(f"Order {order_id} confirmed for cash on delivery.")
    else:
        click.echo(f"Order {order_id} was already confirmed.")
