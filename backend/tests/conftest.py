"""
Pytest fixtures for SalePilot commerce core tests.

Provides test database setup, two-tenant fixtures and bound tenant scopes.
"""

from decimal import Decimal

import pytest
from salepilot import create_app
from salepilot.extensions import db
from salepilot.models import Store, Product, Customer, Supplier
from salepilot.services.tenant_service import TenantScope


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TX_RETRY_ATTEMPTS': 1,
        'LOG_LEVEL': 'DEBUG',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def store_a(db_session):
    """Create Store A (first tenant)."""
    store = Store(name="Store A - Acme Corner", code="ACME", is_active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session):
    """Create Store B (second tenant)."""
    store = Store(name="Store B - Beta Market", code="BETA", is_active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def scope_a(store_a):
    """Unrestricted scope bound to Store A."""
    scope = TenantScope(store_a.id, user_id=1)
    yield scope
    scope.clear()


@pytest.fixture(scope='function')
def scope_b(store_b):
    """Unrestricted scope bound to Store B."""
    scope = TenantScope(store_b.id, user_id=2)
    yield scope
    scope.clear()


def _make_product(db_session, store, sku, *, price="10.00", cost="6.00", stock="50", reorder_point=None):
    product = Product(
        tenant_id=store.id,
        sku=sku,
        name=f"Product {sku}",
        price=Decimal(price),
        cost_price=Decimal(cost) if cost is not None else None,
        stock=Decimal(stock),
        reorder_point=Decimal(reorder_point) if reorder_point is not None else None,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for products: make_product(store, sku, price=..., cost=..., stock=...)."""
    def _factory(store, sku, **kwargs):
        return _make_product(db_session, store, sku, **kwargs)
    return _factory


@pytest.fixture(scope='function')
def product_a(db_session, store_a):
    """Product in Store A: price 10.00, cost 6.00, 50 on hand."""
    return _make_product(db_session, store_a, "WIDGET-A")


@pytest.fixture(scope='function')
def product_b(db_session, store_b):
    """Product in Store B."""
    return _make_product(db_session, store_b, "WIDGET-B")


@pytest.fixture(scope='function')
def customer_a(db_session, store_a):
    """Customer in Store A with no balances."""
    customer = Customer(
        tenant_id=store_a.id,
        name="Alice Anders",
        email="alice@example.com",
        store_credit=Decimal("0.00"),
        account_balance=Decimal("0.00"),
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_b(db_session, store_b):
    """Customer in Store B with store credit."""
    customer = Customer(
        tenant_id=store_b.id,
        name="Bob Baker",
        email="bob@example.com",
        store_credit=Decimal("25.00"),
        account_balance=Decimal("0.00"),
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier_a(db_session, store_a):
    supplier = Supplier(tenant_id=store_a.id, name="Acme Wholesale")
    db_session.add(supplier)
    db_session.commit()
    return supplier
