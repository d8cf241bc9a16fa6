from datetime import datetime

from shantea.extensions import db
from shantea.models.enums import PaymentMethod, TransactionStatus


class Transaction(db.Model):
    """Settlement record. ``transaction_code`` is the gateway's dedup key."""

    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)

    payment_method = db.Column(db.Enum(PaymentMethod, native_enum=False, length=16), nullable=False, default=PaymentMethod.SEPAY)
    transaction_code = db.Column(db.String(128), nullable=False, unique=True)

    amount = db.Column(db.BigInteger, nullable=False, default=0)
    status = db.Column(db.Enum(TransactionStatus, native_enum=False, length=16), nullable=False, default=TransactionStatus.PENDING)
    description = db.Column(db.String(500), nullable=True)

    paid_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    order = db.relationship("Order", back_populates="transactions")

    def to_dict(self, include_order: bool = False):
        d = {
            "id": int(self.id),
            "orderId": self.order_id,
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "transactionCode": self.transaction_code,
            "amount": int(self.amount or 0),
            "status": self.status.value if self.status else None,
            "description": self.description or "",
            "paidAt": self.paid_at.isoformat() if self.paid_at else None,
        }
        if include_order and self.order is not None:
            o = self.order
            d["order"] = {
                "id": o.id,
                "totalMoney": int(o.total_money or 0),
                "status": o.status.value if o.status else None,
                "userId": o.user_id,
            }
        return d
