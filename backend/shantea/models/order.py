import uuid
from datetime import datetime

from shantea.extensions import db
from shantea.models.enums import OrderStatus, PaymentMethod, PaymentStatus


def _new_order_id() -> str:
    return uuid.uuid4().hex


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.String(36), primary_key=True, default=_new_order_id)

    # Guest checkouts have no owner
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Minor currency unit (VND has no subunit, so this is dong)
    total_money = db.Column(db.BigInteger, nullable=False, default=0)

    status = db.Column(db.Enum(OrderStatus, native_enum=False, length=16), nullable=False, default=OrderStatus.PENDING)
    payment_method = db.Column(db.Enum(PaymentMethod, native_enum=False, length=16), nullable=False, default=PaymentMethod.SEPAY)
    payment_status = db.Column(
        db.Enum(PaymentStatus, native_enum=False, length=16),
        nullable=False,
        default=PaymentStatus.UNPAID,
        index=True,
    )

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    transactions = db.relationship("Transaction", back_populates="order", lazy="select")

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "totalMoney": int(self.total_money or 0),
            "status": self.status.value if self.status else None,
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "paymentStatus": self.payment_status.value if self.payment_status else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
