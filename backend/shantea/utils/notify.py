from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from shantea.extensions import db
from shantea.models import Notification, NotificationType, Order
from shantea.realtime import ADMIN_SCOPE, get_realtime, scope_for_user


def _scope(user_id: Optional[int]) -> str:
    return ADMIN_SCOPE if user_id is None else scope_for_user(user_id)


def create_notification(
    user_id: Optional[int],
    type: NotificationType,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Notification:
    """Persist a notification, then hand it to the broadcast dispatcher.

    ``user_id=None`` addresses admins.
    """
    n = Notification(
        user_id=user_id,
        type=type,
        title=title[:160] if title else "",
        message=message or "",
        data=json.dumps(data) if data is not None else None,
        is_read=False,
    )
    db.session.add(n)
    db.session.commit()

    get_realtime().dispatcher.publish(_scope(user_id), {"type": "notification", "data": n.to_dict()})
    return n


def notify_payment_received(order: Order, amount: int) -> None:
    data = {"orderId": order.id, "newStatus": "PAID", "amount": int(amount)}
    short_id = order.id[:8]
    if order.user_id is not None:
        create_notification(
            order.user_id,
            NotificationType.PAYMENT_RECEIVED,
            "Thanh toán thành công",
            f"Đơn hàng #{short_id} đã được thanh toán {int(amount):,}đ",
            data,
        )
    create_notification(
        None,
        NotificationType.PAYMENT_RECEIVED,
        "Đã nhận thanh toán",
        f"Đơn hàng #{short_id} đã nhận chuyển khoản {int(amount):,}đ",
        data,
    )


def list_for(
    user_id: Optional[int],
    *,
    limit: int = 50,
    offset: int = 0,
    is_read: Optional[bool] = None,
    type: Optional[NotificationType] = None,
):
    q = Notification.query.filter(Notification.user_id.is_(None) if user_id is None else Notification.user_id == user_id)
    if is_read is not None:
        q = q.filter(Notification.is_read.is_(is_read))
    if type is not None:
        q = q.filter(Notification.type == type)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit).all()


def unread_count(user_id: Optional[int]) -> int:
    q = Notification.query.filter(Notification.user_id.is_(None) if user_id is None else Notification.user_id == user_id)
    return q.filter(Notification.is_read.is_(False)).count()


def mark_read(notification_id: int, user_id: Optional[int]) -> bool:
    n = db.session.get(Notification, int(notification_id))
    if n is None or n.user_id != user_id:
        return False
    if not n.is_read:
        n.is_read = True
        n.read_at = datetime.utcnow()
        db.session.commit()
    return True


def mark_all_read(user_id: Optional[int]) -> int:
    q = Notification.query.filter(Notification.user_id.is_(None) if user_id is None else Notification.user_id == user_id)
    count = q.filter(Notification.is_read.is_(False)).update(
        {Notification.is_read: True, Notification.read_at: datetime.utcnow()},
        synchronize_session=False,
    )
    db.session.commit()
    return int(count or 0)


def delete_older_than(days: int = 30) -> int:
    """Delete notifications created more than ``days`` ago, read or not."""
    cutoff = datetime.utcnow() - timedelta(days=int(days))
    count = Notification.query.filter(Notification.created_at < cutoff).delete(synchronize_session=False)
    db.session.commit()
    return int(count or 0)
