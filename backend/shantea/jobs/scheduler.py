from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from shantea.jobs.bank_sync_runner import run_bank_sync
from shantea.jobs.notification_cleanup import run_notification_cleanup

BANK_SYNC_JOB_ID = "sepay-bank-sync"
NOTIFICATION_CLEANUP_JOB_ID = "notification-cleanup"


def start_scheduler(app) -> BackgroundScheduler | None:
    """Schedule the enabled background jobs. Returns None when none are enabled."""
    sync_minutes = int(app.config.get("BANK_SYNC_INTERVAL_MINUTES", 0) or 0)
    retention_days = int(app.config.get("NOTIFICATION_RETENTION_DAYS", 0) or 0)
    cleanup_hours = int(app.config.get("NOTIFICATION_CLEANUP_INTERVAL_HOURS", 0) or 0)
    cleanup_enabled = retention_days > 0 and cleanup_hours > 0

    if sync_minutes <= 0 and not cleanup_enabled:
        return None

    scheduler = BackgroundScheduler(daemon=True)
    if sync_minutes > 0:
        scheduler.add_job(
            run_bank_sync,
            "interval",
            minutes=sync_minutes,
            args=[app],
            id=BANK_SYNC_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        app.logger.info("Bank sync scheduled every %s minute(s)", sync_minutes)
    if cleanup_enabled:
        scheduler.add_job(
            run_notification_cleanup,
            "interval",
            hours=cleanup_hours,
            args=[app],
            id=NOTIFICATION_CLEANUP_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        app.logger.info("Notification cleanup scheduled every %s hour(s), keeping %s day(s)", cleanup_hours, retention_days)
    scheduler.start()
    return scheduler
