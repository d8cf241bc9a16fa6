from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from shantea.models import NotificationType
from shantea.utils import notify

notifications_bp = Blueprint("notifications_bp", __name__, url_prefix="/api/notifications")


def _owner_id():
    # Admin notifications are stored with user_id NULL
    return None if current_user.is_admin else int(current_user.id)


@notifications_bp.get("")
@login_required
def list_notifications():
    try:
        limit = max(1, min(int(request.args.get("limit") or 50), 100))
        offset = max(0, int(request.args.get("offset") or 0))
    except ValueError:
        return jsonify({"success": False, "message": "limit and offset must be integers"}), 400
    raw = (request.args.get("isRead") or "").strip().lower()
    is_read = {"true": True, "false": False}.get(raw)
    raw_type = (request.args.get("type") or "").strip().upper()
    try:
        ntype = NotificationType(raw_type) if raw_type else None
    except ValueError:
        return jsonify({"success": False, "message": f"Unknown notification type: {raw_type}"}), 400
    rows = notify.list_for(_owner_id(), limit=limit, offset=offset, is_read=is_read, type=ntype)
    return jsonify({"success": True, "data": [n.to_dict() for n in rows]}), 200


@notifications_bp.get("/unread-count")
@login_required
def unread_count():
    return jsonify({"success": True, "data": {"count": notify.unread_count(_owner_id())}}), 200


@notifications_bp.post("/<int:notification_id>/read")
@login_required
def mark_read(notification_id: int):
    if not notify.mark_read(notification_id, _owner_id()):
        return jsonify({"success": False, "message": "Notification not found"}), 404
    return jsonify({"success": True}), 200


@notifications_bp.post("/read-all")
@login_required
def mark_all_read():
    return jsonify({"success": True, "data": {"updated": notify.mark_all_read(_owner_id())}}), 200
