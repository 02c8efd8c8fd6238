import pytest
from datetime import datetime, timedelta, timezone
import uuid

import jwt

from config import TestingConfig
from shop import create_app
from shop import database
from shop.database import get_session
from shop.models import Coupon, GiftCode, PendingOrder, PendingGift
from shop.services.cart_snapshot import CartLine, CartSnapshot
from shop.services.paypal_client import ProviderOrder, CaptureResult


class FakeGateway:
    """In-memory stand-in for PayPalClient."""

    def __init__(self):
        self.capture_status = 'COMPLETED'
        self.create_error = None
        self.capture_error = None
        self.approval = True
        self.created = []
        self.captured = []

    def create_order(self, amount_cents, currency, return_path, cancel_path, description=None):
        if self.create_error:
            raise self.create_error
        order_id = f'PAYPAL-{uuid.uuid4().hex[:12].upper()}'
        self.created.append({
            'id': order_id,
            'amount_cents': amount_cents,
            'currency': currency,
            'return_path': return_path,
            'cancel_path': cancel_path,
            'description': description,
        })
        url = f'https://paypal.test/checkoutnow?token={order_id}' if self.approval else None
        return ProviderOrder(id=order_id, approval_url=url)

    def capture_order(self, provider_order_id):
        self.captured.append(provider_order_id)
        if self.capture_error:
            raise self.capture_error
        return CaptureResult(id=provider_order_id, status=self.capture_status)


def _file_db_config(path):
    class FileDbTestingConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{path}'
    return FileDbTestingConfig


@pytest.fixture(scope='function')
def app(request, tmp_path):
    """
    Application on a fresh in-memory database.

    Tests marked file_db get a SQLite file instead, so each thread has its own connection.
    """
    config = TestingConfig
    if request.node.get_closest_marker('file_db'):
        config = _file_db_config(tmp_path / 'shop.db')
    app = create_app(config)
    ctx = app.app_context()
    ctx.push()
    database.create_all()
    yield app
    get_session().remove()
    database.drop_all()
    database.engine.dispose()
    ctx.pop()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def gateway(app):
    """Fake PayPal registered on the app."""
    fake = FakeGateway()
    app.extensions['payment_gateway'] = fake
    return fake


@pytest.fixture
def make_coupon(session):
    def _make(code='SAVE10', percent_off=None, amount_off=None, remaining_uses=1):
        coupon = Coupon(code=code, percent_off=percent_off, amount_off=amount_off,
                        remaining_uses=remaining_uses)
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        session.expunge(coupon)
        return coupon
    return _make


@pytest.fixture
def make_gift_code(session):
    def _make(value_cents=1000, remaining_cents=None, code=None, email='gift@test.com'):
        gift = GiftCode(
            code=code or uuid.uuid4().hex,
            value_cents=value_cents,
            remaining_cents=value_cents if remaining_cents is None else remaining_cents,
            customer_email=email,
        )
        session.add(gift)
        session.commit()
        session.refresh(gift)
        session.expunge(gift)
        return gift
    return _make


def burger_line(quantity=2):
    return CartLine(product_id='burger', name='Burger', unit_amount=1250, quantity=quantity)


@pytest.fixture
def make_pending_order(session):
    def _make(order_id=None, lines=None, coupon_code=None, discount_cents=0,
              discount_source=None, email='buyer@test.com', amount_cents=None,
              created_at=None, user_id=None):
        lines = lines if lines is not None else [burger_line()]
        snapshot = CartSnapshot(lines=lines, coupon_code=coupon_code,
                                discount_cents=discount_cents, discount_source=discount_source)
        if amount_cents is None:
            amount_cents = max(0, snapshot.subtotal_cents - discount_cents)
        pending = PendingOrder(
            order_id=order_id or f'PAYPAL-{uuid.uuid4().hex[:12].upper()}',
            user_id=user_id,
            email=email,
            amount_cents=amount_cents,
            items_json=snapshot.to_json(),
        )
        if created_at is not None:
            pending.created_at = created_at
        session.add(pending)
        session.commit()
        # Detached copy: finalization deletes the row underneath it
        session.refresh(pending)
        session.expunge(pending)
        return pending
    return _make


@pytest.fixture
def make_pending_gift(session):
    def _make(order_id=None, amount_cents=5000, email='giver@test.com', created_at=None):
        pending = PendingGift(
            order_id=order_id or f'PAYPAL-{uuid.uuid4().hex[:12].upper()}',
            email=email,
            amount_cents=amount_cents,
        )
        if created_at is not None:
            pending.created_at = created_at
        session.add(pending)
        session.commit()
        # Detached copy: finalization deletes the row underneath it
        session.refresh(pending)
        session.expunge(pending)
        return pending
    return _make


@pytest.fixture
def make_token():
    def _make(sub='user-1', email='member@test.com', secret='test-jwt-secret', expires_in=3600):
        payload = {
            'sub': sub,
            'email': email,
            'exp': datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        }
        return jwt.encode(payload, secret, algorithm='HS256')
    return _make
