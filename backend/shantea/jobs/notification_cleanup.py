from __future__ import annotations

from shantea.utils.notify import delete_older_than


def run_notification_cleanup(app, days: int | None = None) -> int:
    with app.app_context():
        n = int(days or app.config.get("NOTIFICATION_RETENTION_DAYS", 30))
        deleted = delete_older_than(n)
        app.logger.info("Notification cleanup removed %s row(s) older than %s day(s)", deleted, n)
        return deleted
