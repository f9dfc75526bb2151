# Overview: Flask CLI command group for database setup, CSV import/export and status changes.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask stock <command> [options]
#
# - python -m flask stock init-db [--reset --yes]
#   Create all tables (--reset drops them first; deletes all data).
# - python -m flask stock import-products products.csv
#   Insert one product per CSV row (current or legacy layout).
# - python -m flask stock import-transactions transactions.csv
#   Import transactions; lines with unknown products are listed as warnings.
# - python -m flask stock export products|transactions|inventory|template [--out DIR]
#   Write a dated CSV (UTF-8 with BOM) into DIR (default: current directory).
# - python -m flask stock complete TX_ID / python -m flask stock revert TX_ID
#   Move a transaction's status and apply / reverse its stock effects.

import os

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.export_service import (
    export_stock_report_csv,
    export_template_csv,
    export_transactions_csv,
)
from .services.product_import_service import export_products_csv, import_products_csv
from .services.transaction_import_service import TransactionImportError, import_transactions_csv
from .services.transactions_service import complete_transaction, revert_transaction
from .validation import ConflictError, NotFoundError, ValidationError

EXPORTERS = {
    "products": export_products_csv,
    "transactions": export_transactions_csv,
    "inventory": export_stock_report_csv,
    "template": export_template_csv,
}


@click.group('stock')
def stock_group():
    """Inventory bookkeeping commands."""


def _read_text(path: str) -> str:
    with open(path, encoding="utf-8") as fh:
        return fh.read()


def _echo_reconcile(result: dict) -> None:
    reconcile = result.get("reconcile") or {}
    click.echo(
        f"   stock updates: {reconcile.get('stock_updates', 0)}, "
        f"items created: {reconcile.get('items_created', 0)}, "
        f"shipped: {reconcile.get('items_shipped', 0)}, "
        f"deleted: {reconcile.get('items_deleted', 0)}, "
        f"restocked: {reconcile.get('items_restocked', 0)}"
    )
    for skipped in reconcile.get("skipped", []):
        click.echo(f"WARN  skipped product {skipped['product_id']}: {skipped['reason']}")
    for short in reconcile.get("shortfalls", []):
        click.echo(
            f"WARN  product {short['product_id']}: shipped {short['shipped']} of {short['requested']}"
        )


@stock_group.command('init-db')
@click.option('--reset', is_flag=True, help='Drop all tables first')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def init_db(reset, yes):
    """Create the schema (optionally dropping everything first)."""
    if reset:
        if not yes:
            click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)
        click.echo("DELETE  Dropping all tables...")
        db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("PASS Database ready.")


@stock_group.command('import-products')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_products(path):
    """Import products from a CSV file."""
    try:
        count = import_products_csv(_read_text(path))
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Imported {count} products")


@stock_group.command('import-transactions')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_transactions(path):
    """Import transactions from a CSV file."""
    try:
        result = import_transactions_csv(_read_text(path))
    except TransactionImportError as e:
        for line in e.skipped:
            click.echo(f"FAIL {line.describe()}")
        raise click.ClickException(str(e))
    except ValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Imported {result.count} transactions" + (" (legacy layout)" if result.legacy_format else ""))
    for line in result.skipped:
        click.echo(f"WARN  {line.describe()}")


@stock_group.command('export')
@click.argument('kind', type=click.Choice(sorted(EXPORTERS)))
@click.option('--out', 'out_dir', default='.', show_default=True, type=click.Path(file_okay=False), help='Output directory')
@with_appcontext
def export(kind, out_dir):
    """Write an export CSV into OUT_DIR."""
    download = EXPORTERS[kind]()
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, download.filename)
    with open(path, "wb") as fh:
        fh.write(download.as_bytes())
    click.echo(f"PASS Wrote {path}")


@stock_group.command('complete')
@click.argument('tx_id')
@with_appcontext
def complete(tx_id):
    """Mark a scheduled transaction completed and apply its stock effects."""
    try:
        result = complete_transaction(tx_id)
    except (NotFoundError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Transaction {tx_id} completed")
    _echo_reconcile(result)


@stock_group.command('revert')
@click.argument('tx_id')
@with_appcontext
def revert(tx_id):
    """Return a completed transaction to scheduled and reverse its stock effects."""
    try:
        result = revert_transaction(tx_id)
    except (NotFoundError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Transaction {tx_id} reverted")
    _echo_reconcile(result)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(stock_group)
