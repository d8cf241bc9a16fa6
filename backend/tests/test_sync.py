import pytest
import requests

from shantea.extensions import db
from shantea.models import Order, PaymentStatus, Transaction
from shantea.payments.errors import UpstreamUnavailable
from shantea.payments.reconciliation import ReconciliationEngine
from shantea.payments.sync import sync_recent
from shantea.utils.sepay_client import SePayClient

from fakes import FakeResponse, api_row


@pytest.fixture
def gateway(monkeypatch):
    calls = []
    state = {"response": FakeResponse(payload={"status": 200, "transactions": []})}

    def _get(url, headers=None, params=None, timeout=None):
        calls.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        if isinstance(state["response"], Exception):
            raise state["response"]
        return state["response"]

    monkeypatch.setattr("shantea.utils.sepay_client.requests.get", _get)

    def _set(response=None, rows=None):
        state["response"] = response if response is not None else FakeResponse(payload={"status": 200, "transactions": rows})

    _set.calls = calls
    return _set


def test_sync_settles_matching_rows(ctx, gateway, make_order):
    paid = make_order(120000, order_id="0e1d2c3b4a5f60718293a4b5deadbeef")
    untouched = make_order(45000)
    gateway(rows=[
        api_row(1, amount_in=120000, content="SEVQR TKPLAM DHDEADBEEF"),
        api_row(2, amount_out=30000, content="rut tien"),
        api_row(3, amount_in=9999, content="khong lien quan"),
    ])

    res = sync_recent(20)

    assert res["success"] is True
    assert res["details"]["fetched"] == 3
    assert res["details"]["processed"] == 1
    assert res["details"]["errors"] == []
    db.session.expire_all()
    assert db.session.get(Order, paid).payment_status is PaymentStatus.PAID
    assert db.session.get(Order, untouched).payment_status is PaymentStatus.UNPAID


def test_sync_sends_account_limit_and_timeout(ctx, gateway):
    gateway(rows=[])
    sync_recent(5)

    call = gateway.calls[0]
    assert call["url"] == "https://sepay.test/userapi/transactions/list"
    assert call["params"] == {"account_number": "100872918542", "limit": 5}
    assert call["headers"]["Authorization"] == "Bearer sepay-token"
    assert call["timeout"] == 7


def test_sync_limit_is_clamped(ctx, gateway):
    gateway(rows=[])
    sync_recent(10_000)
    assert gateway.calls[0]["params"]["limit"] == 100


def test_sync_twice_is_idempotent(ctx, gateway, make_order):
    make_order(120000, order_id="0e1d2c3b4a5f60718293a4b5deadbeef")
    gateway(rows=[api_row(1, amount_in=120000, content="DHDEADBEEF")])

    first = sync_recent(20)
    second = sync_recent(20)

    assert first["details"]["processed"] == 1
    assert second["details"]["processed"] == 0
    assert Transaction.query.count() == 1


def test_one_bad_row_does_not_abort_batch(ctx, gateway, make_order):
    oid = make_order(120000, order_id="0e1d2c3b4a5f60718293a4b5deadbeef")
    gateway(rows=[
        {"id": "bad", "amount_in": "not-a-number", "reference_number": "FTBAD"},
        api_row(2, amount_in=120000, content="DHDEADBEEF"),
    ])

    res = sync_recent(20)

    assert res["details"]["processed"] == 1
    assert len(res["details"]["errors"]) == 1
    assert res["details"]["errors"][0]["gatewayTransactionId"] == "bad"
    db.session.expire_all()
    assert db.session.get(Order, oid).payment_status is PaymentStatus.PAID


def test_engine_exception_is_recorded_per_item(ctx, gateway, make_order):
    make_order(120000, order_id="0e1d2c3b4a5f60718293a4b5deadbeef")
    gateway(rows=[api_row(1, amount_in=5000, content="x"), api_row(2, amount_in=120000, content="DHDEADBEEF")])
    engine = ReconciliationEngine.from_config()
    real_settle = engine.settle

    def _flaky(event):
        if event.gateway_transaction_id == "1":
            raise ConnectionError("db hiccup")
        return real_settle(event)

    engine.settle = _flaky
    res = sync_recent(20, engine=engine)

    assert res["details"]["processed"] == 1
    assert res["details"]["errors"] == [{"gatewayTransactionId": "1", "error": "db hiccup"}]


@pytest.mark.parametrize("failure", [
    requests.Timeout("read timed out"),
    requests.ConnectionError("dns"),
    FakeResponse(status_code=503, payload={"error": "maintenance"}),
    FakeResponse(raw=b"<html>oops</html>"),
])
def test_gateway_failure_aborts_without_writes(ctx, gateway, make_order, failure):
    oid = make_order(120000)
    gateway(response=failure)

    with pytest.raises(UpstreamUnavailable):
        sync_recent(20)

    assert Transaction.query.count() == 0
    db.session.expire_all()
    assert db.session.get(Order, oid).payment_status is PaymentStatus.UNPAID


def test_client_requires_credentials(ctx):
    client = SePayClient(api_token="", account_number="123", api_url="https://sepay.test")
    with pytest.raises(UpstreamUnavailable):
        client.list_transactions()
