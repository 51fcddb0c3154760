from decimal import Decimal
from uuid import uuid4

import pytest

from storecore.config import load_env
from storecore.db.session import build_engine, build_session_factory, init_db
from storecore.models import Product
from storecore.models.base import utcnow
from storecore.services.cart_service import CartService
from storecore.services.errors import IdentityError
from storecore.services.identity import IdentityClaims
from storecore.services.notifications import OrderNotificationHub
from storecore.services.order_service import OrderService
from storecore.services.shipping import ShippingTable


TEST_ENV = {
    "SECRET_KEY": "test-secret",
    "GOOGLE_CLIENT_ID": "client-123",
    "SUPER_ADMIN_EMAIL": "owner@example.com",
    "TAP_SECRET_KEY": "sk_test_123",
    "TAP_WEBHOOK_SECRET": "tap-webhook-secret",
    "TAP_REDIRECT_URL": "https://shop.example.com/payment-redirect",
    "TELR_STORE_ID": "12345",
    "TELR_AUTH_KEY": "telr-auth",
    "TELR_API_URL": "https://telr.example.com/gateway/order.json",
    "TELR_MODE": "live",
    "TELR_WEBHOOK_SECRET": "telr-secret",
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeHttp:
    """Records calls and answers with queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _answer(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self._answer("get", url, **kwargs)

    def post(self, url, **kwargs):
        return self._answer("post", url, **kwargs)


class FakeVerifier:
    def __init__(self):
        self.identities = {}

    def add(self, token, subject_id, email, name=None):
        self.identities[token] = IdentityClaims(subject_id=subject_id, email=email, display_name=name)

    def verify(self, token):
        try:
            return self.identities[token]
        except KeyError:
            raise IdentityError("invalid or revoked id token")


@pytest.fixture
def config(tmp_path):
    env = dict(TEST_ENV, DATABASE_URL=f"sqlite:///{tmp_path / 'store.db'}")
    return load_env(settings_path=tmp_path / "settings.json", environ=env)


@pytest.fixture
def engine(config):
    engine = build_engine(config.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def hub():
    return OrderNotificationHub()


@pytest.fixture
def cart_service(session_factory):
    return CartService(session_factory)


@pytest.fixture
def order_service(session_factory, hub):
    return OrderService(session_factory, shipping=ShippingTable(30, 30), notifier=hub)


@pytest.fixture
def make_product(session_factory):
    def _make(name="Knife", price="10", weight="1", stock=5, regular_price=None):
        product_id = str(uuid4())
        with session_factory() as session:
            session.add(
                Product(
                    id=product_id,
                    name_en=name,
                    name_ar=name + " ar",
                    sale_price=Decimal(price),
                    regular_price=Decimal(regular_price or price),
                    weight=Decimal(weight),
                    stock=stock,
                    created_at=utcnow(),
                )
            )
        return product_id

    return _make


@pytest.fixture
def product_stock(session_factory):
    def _stock(product_id):
        with session_factory() as session:
            return session.query(Product.stock).filter(Product.id == product_id).scalar()

    return _stock
