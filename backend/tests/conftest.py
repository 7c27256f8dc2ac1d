"""
Pytest fixtures for shop ledger tests.

Provides the application on an in-memory database, a per-test table wipe,
the test client and small factories for ledger master data.
"""

import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Customer, Product, Supplier, User
from shopledger.models.auth import ROLE_ADMIN, ROLE_SELLER


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'STOCK_POLICY': 'strict',
        'OVERPAYMENT_POLICY': 'strict',
        'STORE_TIMEZONE': 'UTC',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def seller(db_session):
    user = User(username="seller", full_name="Front Counter", role=ROLE_SELLER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    user = User(username="admin", full_name="Store Admin", role=ROLE_ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Demo Distribution LLC")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(sell=1000, stock=10, ...) -> Product"""
    counter = {"n": 0}

    def _make(*, sell=1000, cost=600, stock=10, min_stock=5, barcode=None, is_active=True, name=None):
        counter["n"] += 1
        product = Product(
            name=name or f"Product {counter['n']}",
            barcode=barcode,
            cost_price_cents=cost,
            sell_price_cents=sell,
            stock=stock,
            min_stock=min_stock,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: make_customer(name="...") -> Customer with zero debt"""
    def _make(name="Customer", debt=0):
        customer = Customer(name=name, total_debt_cents=debt)
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make

