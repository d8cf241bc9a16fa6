"""VietQR payment requests for bank-transfer checkout.

The reference embedded in the transfer narration is the key the
reconciliation engine later parses back out of incoming transactions, so
both sides must use :func:`derive_reference` with the same prefix.
"""

from __future__ import annotations

from urllib.parse import urlencode

from flask import current_app

from shantea.extensions import db
from shantea.models import Order, PaymentStatus
from shantea.payments.errors import AlreadySettled, OrderNotFound

DEFAULT_PREFIX = "DH"
REFERENCE_SUFFIX_LEN = 8


def reference_prefix() -> str:
    return (current_app.config.get("PAYMENT_REFERENCE_PREFIX") or DEFAULT_PREFIX).upper()


def derive_reference(order_id: str, prefix: str = DEFAULT_PREFIX) -> str:
    """``prefix`` + the upper-cased last 8 characters of ``order_id``.

    Ids shorter than 8 characters use the whole id. Two ids sharing the same
    last 8 characters yield the same reference.
    """
    oid = (order_id or "").strip()
    return f"{prefix}{oid[-REFERENCE_SUFFIX_LEN:].upper()}"


def build_qr_image_url(*, bank_bin: str, account_number: str, template: str, amount: int, narration: str, account_name: str) -> str:
    base = f"https://img.vietqr.io/image/{bank_bin}-{account_number}-{template}.png"
    query = urlencode({"amount": str(int(amount)), "addInfo": narration, "accountName": account_name})
    return f"{base}?{query}"


def build_payment_request(order_id: str) -> dict:
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    if order.payment_status != PaymentStatus.UNPAID:
        raise AlreadySettled()

    cfg = current_app.config
    reference = derive_reference(order.id, reference_prefix())
    amount = int(order.total_money or 0)
    narration = f"{cfg.get('PAYMENT_SCHEME_TAG', '')} {reference}".strip()

    image_url = build_qr_image_url(
        bank_bin=cfg.get("BANK_BIN", ""),
        account_number=cfg.get("BANK_ACCOUNT_NUMBER", ""),
        template=cfg.get("VIETQR_TEMPLATE", "compact2"),
        amount=amount,
        narration=narration,
        account_name=cfg.get("BANK_ACCOUNT_NAME", ""),
    )

    return {
        "imageUrl": image_url,
        "reference": reference,
        "amount": amount,
        "payeeInfo": {
            "bankName": cfg.get("BANK_NAME", ""),
            "accountNumber": cfg.get("BANK_ACCOUNT_NUMBER", ""),
            "accountName": cfg.get("BANK_ACCOUNT_NAME", ""),
            "content": narration,
        },
    }
