from __future__ import annotations

from shantea.payments.errors import UpstreamUnavailable
from shantea.payments.sync import sync_recent


def run_bank_sync(app, limit: int | None = None) -> dict:
    """One sync pass inside an app context. Gateway outages are logged, not raised."""
    with app.app_context():
        n = int(limit or app.config.get("BANK_SYNC_LIMIT", 20))
        try:
            return sync_recent(n)
        except UpstreamUnavailable as e:
            app.logger.warning("[SePay Sync] skipped: %s", e)
            return {"success": False, "message": str(e)}
