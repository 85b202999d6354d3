# Overview: Flask CLI command groups for bootstrap, inspection, and operator tasks.

# Commands Legend:
# Prereqs:
# - Set FLASK_APP (e.g. FLASK_APP="shopledger:create_app").
# - Use: flask <group> <command> [options]
#
# System bootstrap/repair:
# - flask system init-db
#   Create all tables on an empty database (use `flask db upgrade` for migrations).
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shops (tenants):
# - flask shops list
# - flask shops create --name "Corner Shop" --code "CORNER"
#
# Customers and catalog:
# - flask customers create --shop-id 1 --name "Amina" --phone "0612345678" [--user-id cust-1]
# - flask items create --shop-id 1 --name "Sugar 1kg" --price-cents 400 [--tag groceries]
#
# Ledger inspection:
# - flask ledger balance --customer-id 1
# - flask ledger shop-balance --shop-id 1

import click
from flask.cli import with_appcontext

from .context import CallerContext, Role
from .extensions import db
from .models import Customer
from .services import balance_service, catalog_service, customer_service, ledger_service, shop_service
from .validation import DomainError


# Operator actions run with owner rights; audit rows show actor "cli"
CLI_ACTOR = CallerContext(actor_id="cli", role=Role.OWNER)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'flask shops create' to add a shop.")


# =============================================================================
# SHOP MANAGEMENT COMMANDS
# =============================================================================

@click.group('shops')
def shops_group():
    """Shop (tenant) management commands."""


@shops_group.command('list')
@with_appcontext
def list_shops_cli():
    """List all shops."""
    shops = shop_service.list_shops()

    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Status':<10} {'Customers'}")
    click.echo("="*80)

    for shop in shops:
        customer_count = db.session.query(Customer).filter_by(shop_id=shop.id).count()
        click.echo(f"{shop.id:<5} {shop.name:<30} {shop.code or '-':<15} {shop.status:<10} {customer_count}")

    click.echo("="*80 + "\n")


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--code', help='Short code (unique)')
@click.option('--phone', help='Contact phone')
@click.option('--location', help='Location / address')
@with_appcontext
def create_shop_cli(name, code, phone, location):
    """Create a new shop (tenant)."""
    try:
        shop = shop_service.create_shop(name, code=code, phone=phone, location=location)
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id}, Code: {shop.code or '-'})")


# =============================================================================
# CUSTOMER AND CATALOG COMMANDS
# =============================================================================

@click.group('customers')
def customers_group():
    """Customer management commands."""


@customers_group.command('create')
@click.option('--shop-id', type=int, help='Shop ID (omit for an unaffiliated customer)')
@click.option('--name', required=True, help='Customer name')
@click.option('--phone', help='Phone number')
@click.option('--user-id', help='Actor id of the customer login, if any')
@with_appcontext
def create_customer_cli(shop_id, name, phone, user_id):
    """Create a customer."""
    try:
        customer = customer_service.create_customer(
            CLI_ACTOR, shop_id=shop_id, name=name, phone=phone, user_id=user_id,
        )
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created customer: {customer.name} (ID: {customer.id})")


@click.group('items')
def items_group():
    """Catalog commands."""


@items_group.command('create')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--name', required=True, help='Item name')
@click.option('--price-cents', type=int, required=True, help='Unit price in cents')
@click.option('--tag', help='Optional tag/category')
@click.option('--description', help='Optional description')
@with_appcontext
def create_item_cli(shop_id, name, price_cents, tag, description):
    """Add an item to a shop's catalog."""
    try:
        item = catalog_service.create_item(
            CLI_ACTOR,
            shop_id=shop_id,
            name=name,
            unit_price_cents=price_cents,
            tag=tag,
            description=description,
        )
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created item: {item.name} @ {item.unit_price_cents} (ID: {item.id})")


# =============================================================================
# LEDGER INSPECTION COMMANDS
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Debt ledger inspection commands."""


@ledger_group.command('balance')
@click.option('--customer-id', type=int, required=True, help='Customer ID')
@click.option('--limit', type=int, default=20, show_default=True, help='Recent entries to show')
@with_appcontext
def customer_balance_cli(customer_id, limit):
    """Show a customer's balance and recent entries."""
    customer = db.session.get(Customer, customer_id)
    if not customer:
        click.echo(f"FAIL Customer ID {customer_id} not found")
        return

    balance = balance_service.current_balance(customer_id)
    click.echo(f"Customer {customer.name} (ID: {customer.id}) balance: {balance}")

    for entry in ledger_service.list_for_customer(customer_id, limit=limit):
        click.echo(
            f"  {entry.id:<6} {entry.transaction_type:<11} {entry.signed_amount_cents:>12} "
            f"{entry.notes or ''}"
        )


@ledger_group.command('shop-balance')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@with_appcontext
def shop_balance_cli(shop_id):
    """Show total outstanding debt for a shop."""
    try:
        summary = shop_service.get_shop_balance(CLI_ACTOR, shop_id)
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"Shop {shop_id} balance: {summary['balance_cents']}")
    for row in summary["customers"]:
        click.echo(f"  customer {row['customer_id']:<6} {row['balance_cents']:>12}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(customers_group)
    app.cli.add_command(items_group)
    app.cli.add_command(ledger_group)
