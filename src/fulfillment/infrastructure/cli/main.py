import click

from fulfillment.infrastructure.bootstrap import init_logging
from fulfillment.infrastructure.cli.cash_commands import cash_receipt, cash_record, cash_summary
from fulfillment.infrastructure.cli.delivery_commands import (
    delivery_assign,
    delivery_assignments,
    delivery_status,
    delivery_track,
)
from fulfillment.infrastructure.cli.order_commands import (
    order_cancel,
    order_confirm_cod,
    order_create,
    order_list,
    order_show,
)
from fulfillment.infrastructure.cli.payment_commands import payment_callback, payment_initiate
from fulfillment.infrastructure.cli.stock_commands import (
    stock_adjust,
    stock_deactivate,
    stock_low,
)


@click.group()
def cli() -> None:
    """Fulfillment CLI: orders, stock, deliveries and cash."""
    init_logging()


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def payment() -> None:
    """Online payment."""


@cli.group()
def stock() -> None:
    """Manage product stock."""


@cli.group()
def delivery() -> None:
    """Manage deliveries."""


@cli.group()
def cash() -> None:
    """Cash-on-delivery reconciliation."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_confirm_cod)
order.add_command(order_create)
order.add_command(order_list)
order.add_command(order_show)
payment.add_command(payment_callback)
payment.add_command(payment_initiate)
stock.add_command(stock_adjust)
stock.add_command(stock_deactivate)
stock.add_command(stock_low)
delivery.add_command(delivery_assign)
delivery.add_command(delivery_assignments)
delivery.add_command(delivery_status)
delivery.add_command(delivery_track)
cash.add_command(cash_receipt)
cash.add_command(cash_record)
cash.add_command(cash_summary)
