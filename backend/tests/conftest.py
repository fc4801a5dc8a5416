"""
Pytest fixtures for PrintMarket backend tests.

Provides test database setup, marketplace record factories, and test client.
"""

from datetime import datetime

import pytest
from printmarket import create_app
from printmarket.extensions import db
from printmarket.models import (
    CustomizationRequest,
    DesignerEarning,
    DesignerProfile,
    Order,
    OrderItem,
    PaymentRecord,
    Product,
    ShopProfile,
)


# Fixed clock for finance tests; month_start(NOW) is 2026-10-01.
NOW = datetime(2026, 10, 16, 12, 0, 0)

DESIGNER_USER = "designer-user-1"
DESIGNER_PROFILE = "designer-profile-1"
SHOP_USER = "shop-user-1"
SHOP_PROFILE = "shop-1"
CUSTOMER = "customer-1"
OPERATOR = "ops-admin"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        # In-memory SQLite is one shared connection; keep ledger reads on the calling thread
        'LEDGER_PARALLEL_READS': False,
        'CURRENCY': 'PHP',
        'DESIGNER_PAYOUT_PERCENT': 100,
        'MAX_DESIGN_REVISIONS': 3,
        'ESCROW_OPERATOR_USERS': (OPERATOR,),
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
def designer_profile(db_session):
    """Designer profile for DESIGNER_USER."""
    profile = DesignerProfile(id=DESIGNER_PROFILE, user_id=DESIGNER_USER, display_name="Dana Designs")
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture(scope='function')
def shop_profile(db_session):
    """Printing shop profile for SHOP_USER."""
    shop = ShopProfile(id=SHOP_PROFILE, user_id=SHOP_USER, shop_name="Print Hub")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def make_request(db_session):
    """
    Factory for customization requests.

    Pricing is set when design_fee_cents is given; payments is a list of
    PaymentRecord keyword dicts.
    """
    def _make(
        *,
        customer_id=CUSTOMER,
        designer_id=DESIGNER_USER,
        printing_shop_id=None,
        status="customer_approved",
        product_name="Classic Tee",
        design_fee_cents=None,
        product_cost_cents=0,
        printing_cost_cents=0,
        payment_status=None,
        paid_amount_cents=0,
        escrow_status=None,
        requested_at=datetime(2026, 9, 1, 9, 0, 0),
        payments=(),
        **extra,
    ):
        req = CustomizationRequest(
            customer_id=customer_id,
            customer_name="Casey Customer",
            designer_id=designer_id,
            printing_shop_id=printing_shop_id,
            product_name=product_name,
            status=status,
            revision_count=0,
            payment_status=payment_status,
            paid_amount_cents=paid_amount_cents,
            escrow_status=escrow_status,
            requested_at=requested_at,
            updated_at=requested_at,
            **extra,
        )
        if design_fee_cents is not None:
            req.set_pricing(
                design_fee_cents=design_fee_cents,
                product_cost_cents=product_cost_cents,
                printing_cost_cents=printing_cost_cents,
            )
        for payment in payments:
            req.payments.append(PaymentRecord(**payment))
        db_session.add(req)
        db_session.commit()
        return req

    return _make


@pytest.fixture(scope='function')
def make_order(db_session):
    """Factory for orders; items is a list of OrderItem keyword dicts."""
    def _make(
        order_id,
        *,
        business_owner_id=DESIGNER_USER,
        customer_id=CUSTOMER,
        status="delivered",
        payment_status="paid",
        total_amount_cents=0,
        created_at=datetime(2026, 10, 5, 10, 0, 0),
        items=(),
    ):
        order = Order(
            id=order_id,
            business_owner_id=business_owner_id,
            customer_id=customer_id,
            status=status,
            payment_status=payment_status,
            total_amount_cents=total_amount_cents,
            created_at=created_at,
        )
        for item in items:
            order.items.append(OrderItem(**item))
        db_session.add(order)
        db_session.commit()
        return order

    return _make


@pytest.fixture(scope='function')
def make_design_order(make_order):
    """Factory for design-only orders owned by DESIGNER_USER."""
    def _make(order_id, total_amount_cents, **kwargs):
        kwargs.setdefault("items", [{
            "item_type": "design",
            "design_id": f"design-{order_id}",
            "design_name": "Sunset Logo",
            "quantity": 1,
            "price_cents": total_amount_cents,
        }])
        return make_order(order_id, total_amount_cents=total_amount_cents, **kwargs)

    return _make


@pytest.fixture(scope='function')
def make_earning(db_session):
    """Factory for designer earnings records."""
    def _make(order_id, amount_cents, *, designer_id=DESIGNER_PROFILE, paid_at=datetime(2026, 10, 6, 8, 0, 0)):
        earning = DesignerEarning(
            designer_id=designer_id,
            order_id=order_id,
            amount_cents=amount_cents,
            paid_at=paid_at,
        )
        db_session.add(earning)
        db_session.commit()
        return earning

    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for catalog products."""
    def _make(product_id, name):
        product = Product(id=product_id, name=name)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


def user_headers(user_id: str) -> dict:
    """Helper to create caller identity headers."""
    return {'X-User-Id': user_id}
