from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from shantea.auth import admin_required
from shantea.extensions import db
from shantea.models import Order, Transaction, TransactionStatus
from shantea.payments.errors import AuthenticationFailed, OrderNotFound, PaymentError
from shantea.payments.qr import build_payment_request
from shantea.payments.reconciliation import InvalidEvent, ReconciliationEngine, TransactionEvent
from shantea.payments.sync import sync_recent
from shantea.utils.sepay_client import SePayClient, to_history_item, verify_api_key

payments_bp = Blueprint("payments_bp", __name__, url_prefix="/api/payment")

_INIT = False


@payments_bp.before_app_request
def _ensure_tables_once():
    global _INIT
    if _INIT:
        return
    try:
        db.create_all()
    except Exception as e:
        current_app.logger.warning("create_all skipped: %s", e)
    _INIT = True


@payments_bp.errorhandler(PaymentError)
def _payment_error(e: PaymentError):
    return jsonify(e.to_dict()), e.status_code


def _int_arg(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@payments_bp.post("/sepay-webhook")
def sepay_webhook():
    """SePay IPN. Always answers 200 once authenticated so SePay does not retry-storm."""
    log = current_app.logger
    expected = (current_app.config.get("SEPAY_API_KEY") or "").strip()
    if expected:
        if not verify_api_key(request.headers.get("Authorization"), expected):
            log.warning("[SePay Webhook] Invalid API Key from %s", request.remote_addr)
            err = AuthenticationFailed()
            return jsonify(err.to_dict()), err.status_code
    else:
        log.warning("[SePay Webhook] SEPAY_API_KEY not configured, skipping verification")

    payload = request.get_json(silent=True) or {}
    try:
        event = TransactionEvent.from_webhook(payload)
    except InvalidEvent as e:
        log.warning("[SePay Webhook] Invalid payload: %s", e)
        return jsonify({"success": False, "message": f"Invalid payload: {e}"}), 200

    log.info(
        "[SePay Webhook] Received id=%s gateway=%s amount=%s content=%r",
        event.gateway_transaction_id, event.gateway, event.amount, event.narration,
    )

    try:
        outcome = ReconciliationEngine.from_config().settle(event)
    except Exception:
        db.session.rollback()
        log.exception("[SePay Webhook] Error while settling %s", event.reference_code)
        return jsonify({"success": False, "message": "Internal error"}), 200

    return jsonify(outcome.to_dict()), 200


@payments_bp.post("/sync")
@login_required
@admin_required
def sync_transactions():
    data = request.get_json(silent=True) or {}
    limit = _int_arg(data.get("limit"), current_app.config.get("BANK_SYNC_LIMIT", 20))
    return jsonify(sync_recent(limit)), 200


@payments_bp.get("/qr/<order_id>")
@login_required
def generate_qr(order_id: str):
    return jsonify({"success": True, "data": build_payment_request(order_id)}), 200


@payments_bp.get("/status/<order_id>")
@login_required
def payment_status(order_id: str):
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    paid = (
        Transaction.query.filter_by(order_id=order.id, status=TransactionStatus.SUCCESS)
        .order_by(Transaction.paid_at.desc())
        .first()
    )
    return jsonify({
        "success": True,
        "data": {
            "orderId": order.id,
            "paymentStatus": order.payment_status.value,
            "paidAt": paid.paid_at.isoformat() if paid and paid.paid_at else None,
        },
    }), 200


@payments_bp.get("/transactions")
@login_required
@admin_required
def list_transactions():
    page = max(1, _int_arg(request.args.get("page"), 1))
    limit = max(1, min(_int_arg(request.args.get("limit"), 20), 100))

    q = Transaction.query.order_by(Transaction.paid_at.desc(), Transaction.id.desc())
    total = q.count()
    rows = q.offset((page - 1) * limit).limit(limit).all()

    return jsonify({
        "success": True,
        "data": [t.to_dict(include_order=True) for t in rows],
        "meta": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": (total + limit - 1) // limit,
        },
    }), 200


@payments_bp.get("/sepay-history")
@login_required
@admin_required
def sepay_history():
    """Recent gateway transactions for manual review; nothing is persisted."""
    limit = max(1, min(_int_arg(request.args.get("limit"), 50), 100))
    client = SePayClient.from_config()
    items = [to_history_item(t) for t in client.list_transactions(limit=limit) if isinstance(t, dict)]
    return jsonify({
        "success": True,
        "data": items,
        "total": len(items),
        "bankAccount": client.account_number,
    }), 200
