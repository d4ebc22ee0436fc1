"""CLI commands for the Product ledger's stock."""

from __future__ import annotations

import click

from fulfillment.application.adjust_stock import AdjustStockHandler
from fulfillment.application.deactivate_product import DeactivateProductHandler
from fulfillment.application.show_low_stock import ShowLowStockHandler
from fulfillment.domain.exceptions import DomainException
from fulfillment.infrastructure.bootstrap import product_repository


@click.command("adjust")
@click.option("--store", "store_id", required=True, help="Store ID.")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--delta", type=int, required=True, help="Units to add (negative to remove).")
@click.option("--reason", default=None, help="Why the stock changed.")
def stock_adjust(store_id: str, product_id: str, delta: int, reason: str | None) -> None:
    """Add or remove stock for one product."""
    handler = AdjustStockHandler(product_repo=product_repository())

    try:
        product = handler.handle(
            store_id=store_id, product_id=product_id, delta=delta, reason=reason
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{product.name} ({product_id}): stock now {product.stock_quantity}")
    if product.is_low_stock:
        click.echo(f"Warning: at or below threshold {product.low_stock_threshold}")


@click.command("low")
@click.option("--store", "store_id", required=True, help="Store ID.")
def stock_low(store_id: str) -> None:
    """List active products at or below their low-stock threshold."""
    lines = ShowLowStockHandler(product_repo=product_repository()).handle(store_id=store_id)

    if not lines:
        click.echo("No low-stock products.")
        return

    click.echo(f"{'Product':<20} {'Name':<24} {'Stock':>6} {'Min':>5}  Urgency")
    click.echo("-" * 70)
    for line in lines:
        click.echo(
            f"{line.product_id:<20} {line.name:<24} {line.current_stock:>6} "
            f"{line.threshold:>5}  {line.urgency}"
        )


@click.command("deactivate")
@click.option("--store", "store_id", required=True, help="Store ID.")
@click.option("--product", "product_id", required=True, help="Product ID.")
def stock_deactivate(store_id: str, product_id: str) -> None:
    """Soft-delete a product so it can no longer be ordered."""
    handler = DeactivateProductHandler(product_repo=product_repository())

    try:
        handler.handle(store_id=store_id, product_id=product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product {product_id} deactivated.")
