from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import jsonify
from flask_login import current_user

from shantea.extensions import db, login_manager
from shantea.models import User
from shantea.utils.jwt_utils import decode_token, get_bearer_token


def user_from_token(token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.request_loader
def load_user_from_request(req):
    """Allow @login_required to work with Bearer tokens."""
    return user_from_token(get_bearer_token(req.headers.get("Authorization", "")))


@login_manager.unauthorized_handler
def _unauthorized():
    return jsonify({"success": False, "message": "Unauthorized"}), 401


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"success": False, "message": "Unauthorized"}), 401
        if not current_user.is_admin:
            return jsonify({"success": False, "message": "Admin required"}), 403
        return fn(*args, **kwargs)
    return wrapper
