"""Bank-transfer reconciliation: match one incoming gateway transaction to an
UNPAID order and settle it exactly once.

Matching order:

1. outgoing transfers and transfers without an amount are ignored
2. a transaction code that already has a settlement record is ignored
3. the payment reference (``DH`` + 8 chars) parsed from the narration; with
   several references the first one naming exactly one UNPAID order wins,
   and the event is ambiguous only when none does but some name several
4. otherwise a unique UNPAID order with exactly the transferred amount
5. the matched order's amount must be within the configured tolerance

Settlement flips the order to PAID and inserts the ``Transaction`` row in one
database transaction. The UPDATE is conditional on the order still being
UNPAID and ``transaction_code`` is unique, so a racing duplicate cannot settle
twice.
"""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from shantea.extensions import db
from shantea.models import AuditLog, Order, PaymentMethod, PaymentStatus, Transaction, TransactionStatus
from shantea.payments.qr import DEFAULT_PREFIX, REFERENCE_SUFFIX_LEN
from shantea.utils.notify import notify_payment_received

DEFAULT_TOLERANCE = 1000


class TransferDirection(str, enum.Enum):
    IN = "in"
    OUT = "out"


class InvalidEvent(ValueError):
    pass


def _parse_amount(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidEvent(f"invalid amount: {value!r}")
    if amount < 0:
        raise InvalidEvent(f"negative amount: {value!r}")
    return int(round(amount))


@dataclass(frozen=True)
class TransactionEvent:
    gateway_transaction_id: str
    direction: TransferDirection
    amount: int
    narration: str
    reference_code: str
    gateway: str = ""

    @classmethod
    def from_webhook(cls, payload: Dict[str, Any]) -> "TransactionEvent":
        """Build from a SePay webhook body (camelCase keys)."""
        if not isinstance(payload, dict):
            raise InvalidEvent("payload must be a JSON object")
        gid = str(payload.get("id") or "").strip()
        raw_dir = str(payload.get("transferType") or "").strip().lower()
        try:
            direction = TransferDirection(raw_dir)
        except ValueError:
            raise InvalidEvent(f"unknown transferType: {raw_dir!r}")
        raw_amount = payload.get("transferAmount")
        if raw_amount is None or str(raw_amount).strip() == "":
            raise InvalidEvent("missing transferAmount")
        ref = str(payload.get("referenceCode") or "").strip()
        if not ref:
            if not gid:
                raise InvalidEvent("missing referenceCode and id")
            ref = f"sepay:{gid}"
        return cls(
            gateway_transaction_id=gid,
            direction=direction,
            amount=_parse_amount(raw_amount),
            narration=str(payload.get("content") or ""),
            reference_code=ref,
            gateway=str(payload.get("gateway") or ""),
        )

    @classmethod
    def from_sepay_api(cls, trans: Dict[str, Any]) -> "TransactionEvent":
        """Build from one row of the SePay transaction listing (snake_case keys)."""
        if not isinstance(trans, dict):
            raise InvalidEvent("transaction must be an object")
        gid = str(trans.get("id") or "").strip()
        amount_in = _parse_amount(trans.get("amount_in"))
        amount_out = _parse_amount(trans.get("amount_out"))
        direction = TransferDirection.IN if amount_in > 0 else TransferDirection.OUT
        ref = str(trans.get("reference_number") or "").strip()
        if not ref:
            if not gid:
                raise InvalidEvent("missing reference_number and id")
            ref = f"sepay:{gid}"
        return cls(
            gateway_transaction_id=gid,
            direction=direction,
            amount=amount_in if direction is TransferDirection.IN else amount_out,
            narration=str(trans.get("transaction_content") or ""),
            reference_code=ref,
            gateway=str(trans.get("bank_brand_name") or ""),
        )


class OutcomeKind(str, enum.Enum):
    MATCHED = "matched"
    IGNORED = "ignored"
    AMBIGUOUS = "ambiguous"


REASON_NOT_INCOMING = "not an incoming transfer"
REASON_NO_AMOUNT = "no amount"
REASON_DUPLICATE = "already processed"
REASON_NO_CANDIDATE = "no candidate"
REASON_AMOUNT_MISMATCH = "amount mismatch"


@dataclass(frozen=True)
class SettlementOutcome:
    kind: OutcomeKind
    order_id: Optional[str] = None
    reason: str = ""
    candidates: List[str] = field(default_factory=list)

    @classmethod
    def matched(cls, order_id: str) -> "SettlementOutcome":
        return cls(OutcomeKind.MATCHED, order_id=order_id)

    @classmethod
    def ignored(cls, reason: str, order_id: Optional[str] = None) -> "SettlementOutcome":
        return cls(OutcomeKind.IGNORED, order_id=order_id, reason=reason)

    @classmethod
    def ambiguous(cls, candidates: List[str]) -> "SettlementOutcome":
        return cls(OutcomeKind.AMBIGUOUS, reason="ambiguous match", candidates=list(candidates))

    @property
    def success(self) -> bool:
        return self.kind is OutcomeKind.MATCHED

    @property
    def message(self) -> str:
        if self.kind is OutcomeKind.MATCHED:
            return "Payment confirmed successfully"
        if self.kind is OutcomeKind.AMBIGUOUS:
            return f"Ignored: ambiguous match ({len(self.candidates)} candidate orders)"
        return f"Ignored: {self.reason}"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"success": self.success, "message": self.message, "outcome": self.kind.value}
        if self.order_id:
            d["orderId"] = self.order_id
        return d


class ReconciliationEngine:
    def __init__(
        self,
        *,
        prefix: str = DEFAULT_PREFIX,
        tolerance: int = DEFAULT_TOLERANCE,
        payment_method: PaymentMethod = PaymentMethod.SEPAY,
        notifier: Optional[Callable[[Order, int], None]] = None,
        logger=None,
    ):
        self.prefix = (prefix or DEFAULT_PREFIX).upper()
        self.tolerance = int(tolerance)
        self.payment_method = payment_method
        self.notifier = notifier or notify_payment_received
        self._logger = logger
        self._reference_re = re.compile(re.escape(self.prefix) + r"([A-Z0-9]{%d})" % REFERENCE_SUFFIX_LEN)

    @classmethod
    def from_config(cls, config=None, **kwargs) -> "ReconciliationEngine":
        cfg = config if config is not None else current_app.config
        return cls(
            prefix=cfg.get("PAYMENT_REFERENCE_PREFIX", DEFAULT_PREFIX),
            tolerance=int(cfg.get("PAYMENT_AMOUNT_TOLERANCE", DEFAULT_TOLERANCE)),
            **kwargs,
        )

    @property
    def logger(self):
        return self._logger or current_app.logger

    # -------------------------
    # Matching
    # -------------------------
    def reference_suffixes(self, narration: str) -> List[str]:
        seen: List[str] = []
        for m in self._reference_re.finditer((narration or "").upper()):
            suffix = m.group(1)
            if suffix not in seen:
                seen.append(suffix)
        return seen

    def _unpaid_by_suffix(self, suffix: str) -> List[Order]:
        return (
            Order.query.filter(
                func.lower(Order.id).endswith(suffix.lower()),
                Order.payment_status == PaymentStatus.UNPAID,
            )
            .limit(2)
            .all()
        )

    def _unpaid_by_amount(self, amount: int) -> List[Order]:
        return Order.query.filter(
            Order.total_money == int(amount),
            Order.payment_status == PaymentStatus.UNPAID,
        ).all()

    # -------------------------
    # Settlement
    # -------------------------
    def settle(self, event: TransactionEvent) -> SettlementOutcome:
        if event.direction is not TransferDirection.IN:
            return SettlementOutcome.ignored(REASON_NOT_INCOMING)

        if event.amount <= 0:
            return SettlementOutcome.ignored(REASON_NO_AMOUNT)

        if Transaction.query.filter_by(transaction_code=event.reference_code).first() is not None:
            return SettlementOutcome.ignored(REASON_DUPLICATE)

        order: Optional[Order] = None
        ambiguous_ids: List[str] = []
        for suffix in self.reference_suffixes(event.narration):
            found = self._unpaid_by_suffix(suffix)
            if len(found) == 1:
                order = found[0]
                break
            if found:
                ids = [o.id for o in found]
                self.logger.warning("[SePay] Reference %s%s matches several unpaid orders: %s", self.prefix, suffix, ids)
                ambiguous_ids.extend(i for i in ids if i not in ambiguous_ids)

        if order is None and ambiguous_ids:
            self._flag_for_review(event, "ambiguous_reference", ambiguous_ids)
            return SettlementOutcome.ambiguous(ambiguous_ids)

        if order is None:
            self.logger.info("[SePay] Code matching failed. Trying fallback by amount: %s", event.amount)
            found = self._unpaid_by_amount(event.amount)
            if not found:
                self.logger.info("[SePay] Order not found for content: %s", event.narration)
                return SettlementOutcome.ignored(REASON_NO_CANDIDATE)
            if len(found) > 1:
                ids = [o.id for o in found]
                self.logger.warning("[SePay] Ambiguous amount match: %d orders with amount %s", len(ids), event.amount)
                self._flag_for_review(event, "ambiguous_amount", ids)
                return SettlementOutcome.ambiguous(ids)
            order = found[0]

        expected = int(order.total_money or 0)
        if abs(expected - int(event.amount)) > self.tolerance:
            self.logger.warning(
                "[SePay] Amount mismatch for order %s: expected %s, received %s", order.id, expected, event.amount
            )
            self._flag_for_review(event, "amount_mismatch", [order.id], expected=expected)
            return SettlementOutcome.ignored(REASON_AMOUNT_MISMATCH, order_id=order.id)

        order_id = order.id
        if not self._commit_settlement(order, event):
            return SettlementOutcome.ignored(REASON_DUPLICATE, order_id=order_id)

        self.logger.info("[SePay] Payment confirmed for order: %s", order_id)
        self._notify(order, event)
        return SettlementOutcome.matched(order_id)

    def _settlement_record(self, order: Order, event: TransactionEvent, paid_at: datetime) -> Transaction:
        desc = f"SePay: {event.gateway} - {event.narration}" if event.gateway else f"SePay: {event.narration}"
        return Transaction(
            order_id=order.id,
            payment_method=self.payment_method,
            transaction_code=event.reference_code,
            amount=int(event.amount),
            status=TransactionStatus.SUCCESS,
            description=desc[:500],
            paid_at=paid_at,
        )

    def _commit_settlement(self, order: Order, event: TransactionEvent) -> bool:
        """Returns False when another writer settled the order or the code first."""
        now = datetime.utcnow()
        try:
            res = db.session.execute(
                update(Order)
                .where(Order.id == order.id, Order.payment_status == PaymentStatus.UNPAID)
                .values(payment_status=PaymentStatus.PAID, updated_at=now)
            )
            if res.rowcount != 1:
                db.session.rollback()
                return False
            db.session.add(self._settlement_record(order, event, now))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return False
        except Exception:
            db.session.rollback()
            raise
        return True

    def _notify(self, order: Order, event: TransactionEvent) -> None:
        try:
            self.notifier(order, int(event.amount))
        except Exception:
            db.session.rollback()
            self.logger.exception("[SePay] Notification failed for order %s", order.id)

    def _flag_for_review(self, event: TransactionEvent, issue: str, order_ids: List[str], **extra) -> None:
        meta = {
            "issue": issue,
            "reference_code": event.reference_code,
            "gateway_transaction_id": event.gateway_transaction_id,
            "amount": int(event.amount),
            "narration": event.narration,
            "orders": order_ids[:25],
            **extra,
        }
        try:
            db.session.add(AuditLog(
                actor_user_id=None,
                action="payment_unmatched",
                target_type="order",
                target_id=order_ids[0] if len(order_ids) == 1 else None,
                meta=json.dumps(meta),
            ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            self.logger.exception("[SePay] Could not write review audit entry")
