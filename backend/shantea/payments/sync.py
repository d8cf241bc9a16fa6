from __future__ import annotations

from typing import Any, Dict, Optional

from flask import current_app

from shantea.extensions import db
from shantea.payments.reconciliation import ReconciliationEngine, TransactionEvent
from shantea.utils.sepay_client import SePayClient

MAX_SYNC_LIMIT = 100


def sync_recent(limit: int = 20, *, client: Optional[SePayClient] = None, engine: Optional[ReconciliationEngine] = None) -> Dict[str, Any]:
    """Pull recent bank transactions and run each through the engine.

    A fetch failure raises ``UpstreamUnavailable`` before anything is
    written. Per-transaction failures are collected in ``errors``.
    """
    limit = max(1, min(int(limit or 20), MAX_SYNC_LIMIT))
    client = client or SePayClient.from_config()
    engine = engine or ReconciliationEngine.from_config()

    transactions = client.list_transactions(limit=limit)

    processed = 0
    ignored = 0
    errors = []
    for trans in transactions:
        gid = str(trans.get("id", "")) if isinstance(trans, dict) else ""
        try:
            event = TransactionEvent.from_sepay_api(trans)
            outcome = engine.settle(event)
        except Exception as e:
            db.session.rollback()
            current_app.logger.warning("[SePay Sync] Transaction %s failed: %s", gid, e)
            errors.append({"gatewayTransactionId": gid, "error": str(e)})
            continue
        if outcome.success:
            processed += 1
        else:
            ignored += 1

    fetched = len(transactions)
    current_app.logger.info("[SePay Sync] fetched=%s processed=%s errors=%s", fetched, processed, len(errors))
    return {
        "success": True,
        "message": f"Synced {fetched} transactions. Successfully processed {processed} new payments.",
        "details": {
            "fetched": fetched,
            "processed": processed,
            "ignored": ignored,
            "errors": errors,
        },
    }
