"""
Pytest fixtures for stock ledger backend tests.

Provides the in-memory test database, per-test table cleanup, the test
client and factories for locations, customers and products.
"""

import pytest
from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Customer, Location, Product
from stockledger.models.catalog import (
    CUSTOMER_TYPE_B2B,
    CUSTOMER_TYPE_B2C,
    LOCATION_TYPE_RETAIL,
    LOCATION_TYPE_WAREHOUSE,
)
from stockledger.services import move_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POS_USE_DOCUMENT_SERIES': True,
        'LEDGER_LOCK_STOCK_GUARD': False,
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


def make_location(name: str, location_type: str, active: bool = True) -> Location:
    location = Location(name=name, type=location_type, active=active)
    db.session.add(location)
    db.session.commit()
    return location


def make_product(sku: str, name: str = None, cost_cents: int = None, b2b_price_cents: int = None) -> Product:
    product = Product(
        sku=sku,
        name=name or sku,
        cost_cents=cost_cents,
        b2b_price_cents=b2b_price_cents,
        active=True,
    )
    db.session.add(product)
    db.session.commit()
    return product


def receive(location_id: int, sku: str, quantity: int, **line_fields):
    """Purchase helper: put quantity units of sku into a warehouse."""
    line = {"sku": sku, "quantity": quantity, **line_fields}
    return move_service.create_purchase(to_id=location_id, lines=[line])


@pytest.fixture(scope='function')
def warehouse(db_session):
    return make_location("Almacen Central", LOCATION_TYPE_WAREHOUSE)


@pytest.fixture(scope='function')
def warehouse_b(db_session):
    return make_location("Almacen Norte", LOCATION_TYPE_WAREHOUSE)


@pytest.fixture(scope='function')
def retail(db_session):
    return make_location("Tienda Centro", LOCATION_TYPE_RETAIL)


@pytest.fixture(scope='function')
def retail_b(db_session):
    return make_location("Tienda Playa", LOCATION_TYPE_RETAIL)


@pytest.fixture(scope='function')
def b2b_customer(db_session):
    customer = Customer(name="Joyeria Lopez", type=CUSTOMER_TYPE_B2B, active=True)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def b2c_customer(db_session):
    customer = Customer(name="Ana Garcia", type=CUSTOMER_TYPE_B2C, active=True)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def product(db_session):
    return make_product("RING-001", "Silver ring", cost_cents=1200, b2b_price_cents=2500)


@pytest.fixture(scope='function')
def product_b(db_session):
    return make_product("NECK-001", "Gold necklace", cost_cents=4000, b2b_price_cents=7000)
