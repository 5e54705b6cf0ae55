# Overview: Flask CLI command groups for tenant bootstrap and ledger inspection.

# backend/salepilot/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Store (tenant) management:
# - python -m flask stores list
#   List all stores.
# - python -m flask stores create --name "Main Street" --code "MAIN" [--with-accounts]
#   Create a new store (tenant), optionally with the default chart of accounts.
#
# Accounting:
# - python -m flask accounts init --store-id 1
#   Create the default chart of accounts (no-op if the store has accounts).
# - python -m flask accounts list --store-id 1
#   List accounts with balances.
# - python -m flask accounts trial-balance --store-id 1
#   Print the trial balance from current account balances.
#
# Inventory:
# - python -m flask inventory low-stock --store-id 1
#   List active products at or below their reorder point.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import CommerceError
from .extensions import db
from .models import Store
from .services import accounting_service, stock_service
from .services.tenant_service import tenant_scope


def _fail(exc: CommerceError) -> None:
    click.echo(f"FAIL {exc.message}")
    raise SystemExit(1)


@click.group('stores')
def stores_group():
    """Store (tenant) management commands."""


@stores_group.command('list')
@with_appcontext
def list_stores():
    """List all stores."""
    stores = db.session.query(Store).order_by(Store.id).all()

    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active'}")
    click.echo("="*60)

    for store in stores:
        active_str = "Yes" if store.is_active else "No"
        click.echo(f"{store.id:<5} {store.name:<30} {store.code or '-':<15} {active_str}")

    click.echo("="*60 + "\n")


@stores_group.command('create')
@click.option('--name', required=True, help='Store name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--with-accounts', is_flag=True, help='Also create the default chart of accounts')
@with_appcontext
def create_store_cli(name, code, with_accounts):
    """Create a new store (tenant)."""
    existing = db.session.query(Store).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Store with code '{code}' already exists")
        return

    store = Store(name=name, code=code, is_active=True)
    db.session.add(store)
    db.session.commit()
    current_app.logger.info("Created store %s (%s)", store.id, store.code)
    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, Code: {store.code})")

    if with_accounts:
        with tenant_scope(store.id) as scope:
            created = accounting_service.initialize_default_accounts(scope)
        click.echo(f"PASS Created {len(created)} default accounts")


@click.group('accounts')
def accounts_group():
    """Chart of accounts and trial balance commands."""


@accounts_group.command('init')
@click.option('--store-id', type=int, required=True, help='Store (tenant) ID')
@with_appcontext
def init_accounts_cli(store_id):
    """Create the default chart of accounts for a store."""
    try:
        with tenant_scope(store_id) as scope:
            created = accounting_service.initialize_default_accounts(scope)
    except CommerceError as exc:
        _fail(exc)
    if not created:
        click.echo("SKIP Store already has accounts")
        return
    click.echo(f"PASS Created {len(created)} default accounts")


@accounts_group.command('list')
@click.option('--store-id', type=int, required=True, help='Store (tenant) ID')
@with_appcontext
def list_accounts_cli(store_id):
    """List accounts with balances."""
    with tenant_scope(store_id) as scope:
        accounts = accounting_service.list_accounts(scope)

    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo(f"{'Number':<8} {'Name':<30} {'Type':<10} {'Normal':<7} {'Balance':>14}")
    for account in accounts:
        normal = "DR" if account.is_debit_normal else "CR"
        click.echo(
            f"{account.account_number:<8} {account.name:<30} {account.account_type:<10} "
            f"{normal:<7} {account.balance:>14}"
        )


@accounts_group.command('trial-balance')
@click.option('--store-id', type=int, required=True, help='Store (tenant) ID')
@with_appcontext
def trial_balance_cli(store_id):
    """Print the trial balance."""
    try:
        with tenant_scope(store_id) as scope:
            tb = accounting_service.get_trial_balance(scope)
    except CommerceError as exc:
        _fail(exc)

    click.echo("\n" + "="*70)
    click.echo(f"{'Number':<8} {'Account':<30} {'Debit':>14} {'Credit':>14}")
    click.echo("="*70)
    for row in tb["accounts"]:
        click.echo(
            f"{row['account_number']:<8} {row['account_name']:<30} "
            f"{row['debit']:>14} {row['credit']:>14}"
        )
    click.echo("-"*70)
    click.echo(f"{'':<8} {'TOTAL':<30} {tb['total_debit']:>14} {tb['total_credit']:>14}")
    click.echo("="*70)
    click.echo("PASS Balanced" if tb["is_balanced"] else "FAIL Not balanced")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@click.option('--store-id', type=int, required=True, help='Store (tenant) ID')
@with_appcontext
def low_stock_cli(store_id):
    """List products at or below their reorder point."""
    with tenant_scope(store_id) as scope:
        products = stock_service.list_low_stock(scope)

    if not products:
        click.echo("No low-stock products.")
        return

    click.echo(f"{'SKU':<16} {'Name':<30} {'Stock':>10} {'Reorder':>10}")
    for product in products:
        click.echo(f"{product.sku:<16} {product.name:<30} {product.stock:>10} {product.reorder_point:>10}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(stores_group)
    app.cli.add_command(accounts_group)
    app.cli.add_command(inventory_group)
