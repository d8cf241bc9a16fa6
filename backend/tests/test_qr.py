from urllib.parse import parse_qs, urlparse

import pytest

from shantea.models import PaymentStatus
from shantea.payments.errors import AlreadySettled, OrderNotFound
from shantea.payments.qr import build_payment_request, derive_reference
from shantea.payments.reconciliation import ReconciliationEngine


def test_reference_is_deterministic():
    oid = "clx9a8b7c6d5e4f3g2h1k0abcd1234"
    assert derive_reference(oid) == derive_reference(oid) == "DHABCD1234"


def test_ids_sharing_last_eight_chars_collide():
    # Known limitation: only the id suffix feeds the reference
    assert derive_reference("1111111111111111aaaabbbb") == derive_reference("22222222aaaabbbb")


def test_short_id_uses_whole_id():
    assert derive_reference("ab12") == "DHAB12"


def test_custom_prefix():
    assert derive_reference("0123456789abcdef", prefix="ST") == "ST89ABCDEF"


def test_engine_parses_what_generator_emits(ctx):
    oid = "9e107d9d372bb6826bd81d3542a419d6"
    engine = ReconciliationEngine.from_config()
    narration = f"SEVQR TKPLAM {derive_reference(oid)}"
    assert engine.reference_suffixes(narration) == [oid[-8:].upper()]


def test_build_payment_request(ctx, make_order):
    oid = make_order(150000, order_id="5f2b9c0e7d1a4e6b8c3f0a9dabcd1234")

    req = build_payment_request(oid)

    assert req["reference"] == "DHABCD1234"
    assert req["amount"] == 150000
    assert req["payeeInfo"] == {
        "bankName": "VietinBank",
        "accountNumber": "100872918542",
        "accountName": "SHAN TEA",
        "content": "SEVQR TKPLAM DHABCD1234",
    }
    url = urlparse(req["imageUrl"])
    assert url.netloc == "img.vietqr.io"
    assert url.path == "/image/970415-100872918542-compact2.png"
    qs = parse_qs(url.query)
    assert qs["amount"] == ["150000"]
    assert qs["addInfo"] == ["SEVQR TKPLAM DHABCD1234"]
    assert qs["accountName"] == ["SHAN TEA"]


def test_build_payment_request_missing_order(ctx):
    with pytest.raises(OrderNotFound):
        build_payment_request("does-not-exist")


@pytest.mark.parametrize("status", [PaymentStatus.PAID, PaymentStatus.REFUNDED])
def test_build_payment_request_settled_order(ctx, make_order, status):
    oid = make_order(150000, payment_status=status)
    with pytest.raises(AlreadySettled):
        build_payment_request(oid)
