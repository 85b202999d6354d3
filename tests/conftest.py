"""
Pytest fixtures for shop ledger tests.

Provides test database setup, shop/customer/catalog fixtures, caller
contexts for every role, and a test client with identity headers.
"""

import pytest

from shopledger import create_app
from shopledger.config import TestConfig
from shopledger.context import CallerContext, Role
from shopledger.extensions import db
from shopledger.models import Customer, Item, Shop


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
    app.config["ITEM_LEDGER_BEST_EFFORT"] = False
    app.config["OPERATION_TIMEOUT_SECONDS"] = None
    app.config["AUDIT_ENABLED"] = True

    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# TENANTS
# =============================================================================

@pytest.fixture(scope='function')
def shop(db_session):
    """Shop A (first tenant)."""
    shop = Shop(name="Shop A - Corner Store", code="SHOPA", status="ACTIVE")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def other_shop(db_session):
    """Shop B (second tenant)."""
    shop = Shop(name="Shop B - Market Stall", code="SHOPB", status="ACTIVE")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def customer(db_session, shop):
    """Customer of Shop A with a linked login (actor id cust-1)."""
    customer = Customer(shop_id=shop.id, user_id="cust-1", name="Amina", phone="0611111111", status="ACTIVE")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def other_customer(db_session, other_shop):
    """Customer of Shop B."""
    customer = Customer(shop_id=other_shop.id, user_id="cust-2", name="Bashir", status="ACTIVE")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def item_sugar(db_session, shop):
    item = Item(shop_id=shop.id, name="Sugar 1kg", unit_price_cents=1000, status="ACTIVE")
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def item_tea(db_session, shop):
    item = Item(shop_id=shop.id, name="Tea 250g", unit_price_cents=500, status="ACTIVE")
    db_session.add(item)
    db_session.commit()
    return item


# =============================================================================
# CALLER CONTEXTS
# =============================================================================

@pytest.fixture
def admin_ctx(shop):
    return CallerContext(actor_id="admin-1", role=Role.ADMIN, shop_id=shop.id)


@pytest.fixture
def staff_ctx(shop):
    return CallerContext(actor_id="staff-1", role=Role.STAFF, shop_id=shop.id)


@pytest.fixture
def customer_ctx(shop, customer):
    return CallerContext(actor_id="cust-1", role=Role.CUSTOMER, shop_id=shop.id)


@pytest.fixture
def owner_ctx():
    return CallerContext(actor_id="owner-1", role=Role.OWNER)


@pytest.fixture
def other_admin_ctx(other_shop):
    return CallerContext(actor_id="admin-2", role=Role.ADMIN, shop_id=other_shop.id)


def headers_for(ctx: CallerContext) -> dict:
    """Identity headers the auth gateway forwards for a caller."""
    headers = {"X-Actor-Id": ctx.actor_id, "X-Actor-Role": ctx.role.value}
    if ctx.shop_id is not None:
        headers["X-Shop-Id"] = str(ctx.shop_id)
    return headers


@pytest.fixture
def auth_headers():
    return headers_for
