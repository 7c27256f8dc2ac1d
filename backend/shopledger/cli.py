# Overview: Flask CLI command groups for bootstrap, demo data, users and ledger audits.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Bootstrap:
# - python -m flask shop init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask shop reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask shop seed-demo
#   Idempotent demo data: admin + seller users, a supplier, products, a customer.
#
# Users:
# - python -m flask users create --username admin --full-name "Store Admin" --role admin
#   Create a staff user (prompts if options are omitted).
# - python -m flask users list
#   List users with roles and active status.
#
# Ledger:
# - python -m flask ledger audit
#   Compare customer debt with open sale balances; exits 1 on discrepancies.

import sys

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .models import Category, Customer, Product, StoreSettings, Supplier, User
from .models.auth import ROLE_ADMIN, ROLE_SELLER, VALID_ROLES
from .services.audit_service import audit_customer_debt


@click.group('shop')
def shop_group():
    """Database bootstrap and demo data."""


@shop_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created")


@shop_group.command('reset-db')
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

    click.echo("PASS Database reset complete")


DEMO_PRODUCTS = [
    # (name, barcode, cost_cents, sell_cents, stock, min_stock)
    ("Samsung Galaxy A15", "8806095312345", 28000, 34900, 12, 3),
    ("iPhone 13 Case", "1900000000011", 400, 1500, 40, 10),
    ("USB-C Charger 25W", "1900000000028", 900, 2500, 4, 5),
    ("Screen Protector", "1900000000035", 150, 800, 100, 20),
]


@shop_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert demo users, a supplier, products and a customer (idempotent)."""
    created = 0

    for username, full_name, role in (
        ("admin", "Store Admin", ROLE_ADMIN),
        ("seller", "Front Counter", ROLE_SELLER),
    ):
        if not db.session.query(User).filter_by(username=username).first():
            db.session.add(User(username=username, full_name=full_name, role=role))
            created += 1

    category = db.session.query(Category).filter_by(name="Phones & Accessories").first()
    if not category:
        category = Category(name="Phones & Accessories")
        db.session.add(category)

    supplier = db.session.query(Supplier).filter_by(name="Demo Distribution LLC").first()
    if not supplier:
        supplier = Supplier(name="Demo Distribution LLC", contact_person="Orders Desk", phone="+994 12 000 00 00")
        db.session.add(supplier)
    db.session.flush()

    for name, barcode, cost, sell, stock, min_stock in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(barcode=barcode).first():
            continue
        db.session.add(Product(
            name=name,
            barcode=barcode,
            category_id=category.id,
            supplier_id=supplier.id,
            cost_price_cents=cost,
            sell_price_cents=sell,
            stock=stock,
            min_stock=min_stock,
        ))
        created += 1

    if not db.session.query(Customer).filter_by(name="Walk-in Regular").first():
        db.session.add(Customer(name="Walk-in Regular", phone="+994 50 000 00 00"))
        created += 1

    if not db.session.query(StoreSettings).first():
        db.session.add(StoreSettings(store_name="Demo Store", currency="AZN"))

    db.session.commit()
    click.echo(f"PASS Demo data ready ({created} new records)")


@click.group('users')
def users_group():
    """Staff user commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Display name')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, full_name, role):
    """Create a staff user. Credentials are managed by the session layer."""
    user = User(username=username.strip(), full_name=full_name.strip(), role=role)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        click.echo(f"FAIL Username already exists: {username}")
        sys.exit(1)

    click.echo(f"PASS Created user: {user.username} (id={user.id}) with role '{role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return

    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<8} {status}")


@click.group('ledger')
def ledger_group():
    """Ledger consistency commands."""


@ledger_group.command('audit')
@with_appcontext
def audit_ledger():
    """Verify customer debt against open sale balances."""
    discrepancies = audit_customer_debt()
    if not discrepancies:
        click.echo("PASS Ledger consistent")
        return

    for item in discrepancies:
        if item["kind"] == "customer_debt":
            click.echo(
                f"FAIL customer {item['customer_id']} ({item['customer_name']}): "
                f"stored {item['stored_debt']}, expected {item['expected_debt']}"
            )
        else:
            click.echo(
                f"FAIL sale {item['sale_number']}: total {item['total']}, "
                f"paid {item['paid_amount']} + remaining {item['remaining_amount']}"
            )
    click.echo(f"{len(discrepancies)} discrepancies found")
    sys.exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(shop_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
