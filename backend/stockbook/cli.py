# Overview: Flask CLI command groups for bootstrap, inspection, and seeding.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Database bootstrap:
# - python -m flask db-init
#   Create all tables that do not exist yet (dev shortcut for `flask db upgrade`).
#
# Users:
# - python -m flask users create --email admin@stockbook.local --first-name Ada --last-name Obi --role SUPER-ADMIN
#   Create a staff account (prompts for the password).
# - python -m flask users list
#   List all users with role and active status.
#
# Catalog:
# - python -m flask catalog seed [--created-by 1]
#   Insert the starter catalog. Products whose name already exists are skipped.
#
# Inventory:
# - python -m flask inventory low-stock
#   Print active products at or below their minimum stock level.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, User
from .models.auth import ROLES, ROLE_STAFF
from .services.auth_service import create_user
from .services import inventory_service
from .validation import ConflictError, ValidationError

# name, description, category, measurement_type, container_size, price, cost, stock, min_stock, supplier
SEED_PRODUCTS = [
    ("Chicken (Whole)", "Fresh whole chicken", "protein", "scale", None, 2500, 2000, 50, 10, "Local Poultry Farm"),
    ("Turkey (Whole)", "Fresh whole turkey", "protein", "scale", None, 3500, 2800, 20, 5, "Local Poultry Farm"),
    ("Fish (Tilapia)", "Fresh tilapia fish", "protein", "scale", None, 1500, 1200, 100, 20, "Local Fishery"),
    ("Goat Meat", "Fresh goat meat", "protein", "scale", None, 3000, 2400, 30, 8, "Local Butcher"),
    ("Tomatoes", "Fresh red tomatoes", "vegetable", "container", "medium", 500, 350, 100, 20, "Local Market"),
    ("Peppers", "Fresh peppers (mix)", "vegetable", "container", "small", 300, 200, 80, 15, "Local Market"),
    ("Onions", "Fresh onions", "vegetable", "container", "large", 800, 600, 120, 30, "Local Market"),
    ("Carrots", "Fresh carrots", "vegetable", "container", "medium", 400, 280, 60, 12, "Local Market"),
    ("Rice (Local)", "Local rice", "grain", "container", "medium", 400, 300, 200, 50, "Grain Supplier"),
    ("Beans (Brown)", "Brown beans", "grain", "container", "medium", 450, 350, 150, 40, "Grain Supplier"),
    ("Garri (Yellow)", "Yellow garri", "grain", "container", "large", 300, 220, 180, 45, "Grain Supplier"),
    ("Maize", "Dry maize grains", "grain", "container", "medium", 350, 250, 120, 30, "Grain Supplier"),
    ("Salt", "Table salt", "spice", "scale", None, 100, 70, 50, 10, "Spice Supplier"),
    ("Maggi Cubes", "Seasoning cubes, packet of 12", "spice", "scale", None, 1200, 900, 100, 20, "Spice Supplier"),
    ("Curry Powder", "Curry powder", "spice", "scale", None, 800, 600, 25, 5, "Spice Supplier"),
    ("Indomie Noodles", "Instant noodles", "other", "scale", None, 700, 550, 100, 20, "Distributor"),
    ("Coca Cola (50cl)", "Soft drink, 50cl bottle", "other", "scale", None, 200, 150, 200, 50, "Beverage Distributor"),
    ("Bread (Sliced)", "Sliced bread loaf", "other", "scale", None, 500, 350, 30, 10, "Local Bakery"),
    ("Eggs (Tray)", "Tray of eggs", "other", "scale", None, 1500, 1200, 40, 8, "Poultry Farm"),
]


@click.command("db-init")
@with_appcontext
def db_init():
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401
    db.create_all()
    click.echo("PASS Database tables created")


@click.group("users")
def users_group():
    """User inspection and bootstrap."""


@users_group.command("create")
@click.option("--email", prompt=True)
@click.option("--first-name", prompt=True)
@click.option("--last-name", prompt=True)
@click.option("--role", type=click.Choice(ROLES), default=ROLE_STAFF, show_default=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_cmd(email, first_name, last_name, role, password):
    """Create a staff account."""
    try:
        user = create_user(email, password, first_name, last_name, role=role)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command("list")
@with_appcontext
def list_users_cmd():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for u in users:
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.email:<40} {u.role:<12} {status}")


@click.group("catalog")
def catalog_group():
    """Catalog seeding."""


@catalog_group.command("seed")
@click.option("--created-by", "created_by", type=int, default=None, help="User id stamped on seeded products")
@with_appcontext
def seed_catalog(created_by):
    """Insert the starter catalog, skipping names that already exist."""
    existing = {name for (name,) in db.session.query(Product.name).all()}

    created = 0
    for name, description, category, mtype, size, price, cost, stock, min_stock, supplier in SEED_PRODUCTS:
        if name in existing:
            continue
        db.session.add(Product(
            name=name,
            description=description,
            category=category,
            measurement_type=mtype,
            container_size=size,
            price_per_unit=Decimal(price),
            cost_price=Decimal(cost),
            current_stock=Decimal(stock),
            min_stock_level=Decimal(min_stock),
            supplier=supplier,
            created_by_user_id=created_by,
        ))
        created += 1

    db.session.commit()
    click.echo(f"PASS Seeded {created} product(s), skipped {len(SEED_PRODUCTS) - created}")


@click.group("inventory")
def inventory_group():
    """Inventory inspection."""


@inventory_group.command("low-stock")
@with_appcontext
def low_stock_cmd():
    products = inventory_service.list_low_stock()
    if not products:
        click.echo("No low stock products")
        return
    for p in products:
        click.echo(f"{p.id:>4}  {p.name:<30} stock={p.current_stock} min={p.min_stock_level}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(db_init)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(inventory_group)
