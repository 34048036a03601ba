# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/marketease/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP (PowerShell: $env:FLASK_APP="marketease").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@marketease.com --admin-password "secret1"]
#   Idempotent bootstrap: creates tables and the admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalogue:
# - python -m flask products seed
#   Insert a demo catalogue when the products table is empty.
# - python -m flask products low-stock [--threshold 50]
#   List products below the low stock threshold.
#
# Users:
# - python -m flask users create --name "Ana" --email ana@example.com --password "secret1" --role USER
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db, view_cache
from .models import Product, User, ROLE_ADMIN, ROLES
from .services.auth_service import create_user
from .services import products_service
from .services import reporting_service
from .validation import ValidationError

DEMO_PRODUCTS = [
    # name, price_cents, cost_cents, quantity
    ("Eggs (dozen)", 499, 250, 60),
    ("Apples (kg)", 329, 180, 150),
    ("Whole Milk 1L", 219, 120, 40),
    ("Sourdough Bread", 450, 200, 25),
    ("Coffee Beans 500g", 1299, 700, 18),
    ("Bananas (kg)", 199, 90, 120),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@marketease.com', help='Admin email')
@click.option('--admin-password', default='admin123', help='Admin password')
@click.option('--admin-name', default='Administrator', help='Admin display name')
@with_appcontext
def init_system(admin_email, admin_password, admin_name):
    """
    Create all tables and the admin user.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing MarketEase...")

    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(email=admin_email.strip().lower()).first()
    if existing:
        click.echo(f"WARN  User '{existing.email}' already exists, skipping...")
    else:
        try:
            user = create_user(name=admin_name, email=admin_email, password=admin_password, role=ROLE_ADMIN)
            click.echo(f"PASS Created admin user: {user.email}")
        except ValueError as e:
            click.echo(f"FAIL Failed to create admin user: {str(e)}")

    click.echo("DONE MarketEase initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)

    db.drop_all()
    db.create_all()
    view_cache.invalidate()
    click.echo("PASS Database reset")


@click.group('products')
def products_group():
    """Catalogue commands."""


@products_group.command('seed')
@with_appcontext
def seed_products():
    """Insert the demo catalogue if no products exist."""
    if db.session.query(Product).count() > 0:
        click.echo("WARN  Products already present, skipping seed")
        return

    for name, price_cents, cost_cents, quantity in DEMO_PRODUCTS:
        try:
            products_service.create_product({
                "name": name,
                "price_cents": price_cents,
                "cost_cents": cost_cents,
                "quantity": quantity,
            })
            click.echo(f"PASS {name}")
        except ValidationError as e:
            click.echo(f"FAIL {name}: {e} {e.field_errors}")

    click.echo(f"DONE Seeded {db.session.query(Product).count()} products")


@products_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Override LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock(threshold):
    """List products below the low stock threshold."""
    items = reporting_service.low_stock_items(threshold)
    if not items:
        click.echo("No low stock items")
        return
    for item in items:
        click.echo(f"{item['quantity']:>6}  {item['name']}  ({item['id']})")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(sorted(ROLES)), default='USER', show_default=True)
@with_appcontext
def create_user_command(name, email, password, role):
    """Create a user."""
    if len(password) < 6:
        click.echo("FAIL Password must be at least 6 characters")
        raise SystemExit(1)
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.email} ({user.role}) id={user.id}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(users_group)
