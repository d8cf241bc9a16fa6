from __future__ import annotations

import json
import time
import uuid

from flask import Blueprint, Response, current_app, jsonify, request

from shantea.auth import user_from_token
from shantea.realtime import ADMIN_SCOPE, QueueSink, get_realtime, scope_for_user

sse_bp = Blueprint("sse_bp", __name__, url_prefix="/api/sse")


def _frame(payload: dict) -> str:
    return f"data: {json.dumps(payload, default=str)}\n\n"


@sse_bp.get("/subscribe")
def subscribe():
    """Server-Sent Events stream. EventSource cannot send headers, so the
    access token travels in ``?token=``."""
    token = (request.args.get("token") or "").strip()
    if not token:
        return jsonify({"success": False, "message": "Token required for SSE subscription"}), 401
    user = user_from_token(token)
    if user is None:
        return jsonify({"success": False, "message": "Invalid or expired token"}), 401

    scope = ADMIN_SCOPE if user.is_admin else scope_for_user(user.id)
    keepalive = max(1, int(current_app.config.get("SSE_KEEPALIVE_SECONDS", 30)))
    registry = get_realtime().registry
    sink = QueueSink(maxsize=int(current_app.config.get("SSE_CLIENT_QUEUE_SIZE", 100)))
    connection_id = str(uuid.uuid4())

    def stream():
        try:
            registry.register(connection_id, scope, sink)
            yield _frame({"type": "connected", "clientId": connection_id, "message": "SSE connection established"})
            while not sink.closed:
                item = sink.read(timeout=keepalive)
                if item is None:
                    yield _frame({"type": "ping", "timestamp": int(time.time() * 1000)})
                else:
                    yield _frame(item)
        finally:
            registry.unregister(connection_id)

    resp = Response(stream(), mimetype="text/event-stream")
    resp.headers["Cache-Control"] = "no-cache"
    resp.headers["X-Accel-Buffering"] = "no"  # nginx
    return resp
