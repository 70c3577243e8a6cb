# Overview: Flask CLI command groups for inspection and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Inventory inspection:
# - python -m flask inventory stats
#   Record counts per status (virtual incoming included in "incoming").
# - python -m flask inventory history 42
#   Quantity ledger for one inventory item, most recent first.
#
# Order status repair:
# - python -m flask orders recalc-status 7
#   Recompute one order's status from its products.
# - python -m flask orders recalc-all
#   Recompute every order's status.
#
# Maintenance:
# - python -m flask notifications prune --retention-days 30
#   Delete dismissed arrival notifications older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import NotFoundError
from .services import incoming_service, ledger_service, notification_service, order_status_service
from .extensions import db


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('stats')
@with_appcontext
def inventory_stats_cli():
    """Show record counts per status."""
    stats = incoming_service.get_inventory_stats()
    click.echo(f"Incoming:  {stats['incoming']} ({stats['virtual_incoming']} virtual)")
    click.echo(f"In stock:  {stats['in_stock']}")
    click.echo(f"Archived:  {stats['archived']}")


@inventory_group.command('history')
@click.argument('item_id', type=int)
@with_appcontext
def inventory_history_cli(item_id):
    """Show the quantity ledger of one inventory item."""
    try:
        history = ledger_service.get_history(item_id)
    except NotFoundError as e:
        raise click.ClickException(str(e))

    if not history:
        click.echo(f"No transactions for item {item_id}.")
        return
    click.echo(f"{'When':<22} {'Type':<11} {'Change':>7} {'Before':>7} {'After':>7}  By")
    for tx in history:
        when = tx.created_at.strftime("%Y-%m-%d %H:%M:%S") if tx.created_at else "-"
        click.echo(
            f"{when:<22} {tx.transaction_type:<11} {tx.quantity_change:>7} "
            f"{tx.quantity_before:>7} {tx.quantity_after:>7}  {tx.created_by_name or '-'}"
        )


@click.group('orders')
def orders_group():
    """Order status repair commands."""


@orders_group.command('recalc-status')
@click.argument('order_id', type=int)
@with_appcontext
def recalc_status_cli(order_id):
    """Recompute one order's status."""
    try:
        status = order_status_service.recalculate_order_status(order_id)
    except NotFoundError as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    db.session.commit()
    if status is None:
        click.echo(f"Order {order_id} has no active products; status unchanged.")
    else:
        click.echo(f"Order {order_id} status: {status.value}")


@orders_group.command('recalc-all')
@with_appcontext
def recalc_all_cli():
    """Recompute the status of every order."""
    count = order_status_service.recalculate_all_order_statuses()
    click.echo(f"Recomputed {count} order statuses.")


@click.group('notifications')
def notifications_group():
    """Arrival notification maintenance."""


@notifications_group.command('prune')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def prune_notifications_cli(retention_days):
    """
    Delete dismissed notifications.

    Default retention: 30 days.
    """
    deleted = notification_service.prune_dismissed(retention_days)
    click.echo(f"Deleted {deleted} dismissed notifications older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(inventory_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(notifications_group)
