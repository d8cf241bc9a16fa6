import pytest

from shantea import create_app
from shantea.extensions import db as _db
from shantea.models import Order, PaymentStatus, User
from shantea.realtime import get_realtime
from shantea.utils.jwt_utils import create_access_token

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SECRET_KEY": "test-secret-key-0123456789-abcdefghijklmnop",
    "SEPAY_API_KEY": "",
    "SEPAY_API_TOKEN": "sepay-token",
    "SEPAY_API_URL": "https://sepay.test/userapi/transactions/list",
    "SEPAY_TIMEOUT_SECONDS": 7,
    "BANK_BIN": "970415",
    "BANK_NAME": "VietinBank",
    "BANK_ACCOUNT_NUMBER": "100872918542",
    "BANK_ACCOUNT_NAME": "SHAN TEA",
    "PAYMENT_REFERENCE_PREFIX": "DH",
    "PAYMENT_SCHEME_TAG": "SEVQR TKPLAM",
    "PAYMENT_AMOUNT_TOLERANCE": 1000,
    "NOTIFY_DISPATCHER_ENABLED": False,
    "SSE_KEEPALIVE_SECONDS": 1,
    "BANK_SYNC_INTERVAL_MINUTES": 0,
}


@pytest.fixture
def app():
    app = create_app(dict(TEST_CONFIG))
    with app.app_context():
        _db.create_all()
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()
        get_realtime().dispatcher.stop()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def realtime(app):
    with app.app_context():
        return get_realtime()


@pytest.fixture
def make_user(app):
    def _make(email="buyer@shantea.vn", role="customer"):
        with app.app_context():
            u = User(full_name=email.split("@")[0], email=email, role=role)
            u.set_password("secret123")
            _db.session.add(u)
            _db.session.commit()
            return u.id
    return _make


@pytest.fixture
def make_order(app):
    def _make(total_money, *, order_id=None, user_id=None, payment_status=PaymentStatus.UNPAID):
        with app.app_context():
            o = Order(total_money=total_money, user_id=user_id, payment_status=payment_status)
            if order_id:
                o.id = order_id
            _db.session.add(o)
            _db.session.commit()
            return o.id
    return _make


@pytest.fixture
def auth_header(app):
    def _header(user_id):
        with app.app_context():
            return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return _header


@pytest.fixture
def token_for(app):
    def _token(user_id):
        with app.app_context():
            return create_access_token(user_id)
    return _token
