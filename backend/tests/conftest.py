"""
Pytest fixtures for back office tests.

Provides an in-memory database, staff/session fixtures and the test client.
"""

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Role, Item, Tab, Order, OrderLine, Discount
from backoffice.services import sales_service, session_service, staff_service
from backoffice.services.sales_service import CartLine


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRANSACTION_RETRY_ATTEMPTS': 1,
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
        db.session.remove()
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def roles(db_session):
    """Default roles: admin, owner, manager, staff."""
    staff_service.create_default_roles()
    return {role.name: role for role in db_session.query(Role).all()}


@pytest.fixture(scope='function')
def manager(db_session, roles):
    return staff_service.create_staff(name="Morgan Manager", username="manager", role_name="manager")


@pytest.fixture(scope='function')
def cashier(db_session, roles):
    return staff_service.create_staff(name="Casey Cashier", username="cashier", role_name="staff")


@pytest.fixture(scope='function')
def manager_headers(manager):
    _, token = session_service.create_session(manager.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    _, token = session_service.create_session(cashier.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def item(db_session):
    """Item 1 style fixture: price 500 cents, 10 on hand."""
    item = Item(name="Brake pads", price_cents=500, stock=10, is_active=True)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def second_item(db_session):
    item = Item(name="Wiper blades", price_cents=1000, stock=5, is_active=True)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def tab(db_session):
    tab = Tab(name="Garage tab", amount_cents=10000, active=True)
    db_session.add(tab)
    db_session.commit()
    return tab


@pytest.fixture(scope='function')
def discount(db_session):
    discount = Discount(name="Staff", percent=10)
    db_session.add(discount)
    db_session.commit()
    return discount


@pytest.fixture(scope='function')
def make_sale(db_session, cashier):
    """Record a sale through the service; lines are (item, quantity, price_cents)."""
    def _make(lines, *, final_total_cents=None, payment_method="cash", tab_id=None):
        cart = [CartLine(item_id=i.id, quantity=q, price_cents=p) for i, q, p in lines]
        total = sum(q * p for _, q, p in lines)
        return sales_service.record_sale(
            staff_id=cashier.id,
            cart=cart,
            original_total_cents=total,
            final_total_cents=total if final_total_cents is None else final_total_cents,
            payment_method=payment_method,
            tab_id=tab_id,
        )
    return _make


@pytest.fixture(scope='function')
def order_with_lines(db_session, manager):
    """Paid order with three active lines."""
    order = Order(
        status="paid",
        staff_id=manager.id,
        subtotal_cents=6000,
        discount_amount_cents=0,
        total_cents=6000,
    )
    db_session.add(order)
    db_session.flush()
    for name, price in (("Spoiler", 1000), ("Tint", 2000), ("Exhaust", 3000)):
        db_session.add(OrderLine(order_id=order.id, name=name, quantity=1, unit_price_cents=price))
    db_session.commit()
    return order


@pytest.fixture(scope='function')
def fetch(db_session):
    """Fresh read of a row, bypassing anything cached in the session."""
    def _fetch(model, pk):
        db_session.expire_all()
        return db_session.get(model, pk)
    return _fetch


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
