from __future__ import annotations

from flask import current_app

from shantea.realtime.broadcast import (  # noqa: F401
    ADMIN_SCOPE,
    BroadcastClient,
    BroadcastRegistry,
    NotificationDispatcher,
    QueueSink,
    Realtime,
    SinkClosed,
    scope_for_user,
)

EXTENSION_KEY = "shantea.realtime"


def init_realtime(app) -> Realtime:
    registry = BroadcastRegistry(logger=app.logger)
    dispatcher = NotificationDispatcher(registry, maxsize=int(app.config.get("NOTIFY_QUEUE_SIZE", 1000)), logger=app.logger)
    if app.config.get("NOTIFY_DISPATCHER_ENABLED", True):
        dispatcher.start()
    rt = Realtime(registry, dispatcher)
    app.extensions[EXTENSION_KEY] = rt
    return rt


def get_realtime() -> Realtime:
    return current_app.extensions[EXTENSION_KEY]
