from __future__ import annotations

import hmac
from typing import Any

import requests
from flask import current_app

from shantea.payments.errors import UpstreamUnavailable


def extract_api_key(auth_header: str | None) -> str:
    """SePay sends ``Apikey <key>``; some setups send ``Bearer <key>`` or the bare key."""
    raw = (auth_header or "").strip()
    parts = raw.split(None, 1)
    if len(parts) == 2 and parts[0].lower() in ("apikey", "bearer"):
        return parts[1].strip()
    return raw


def verify_api_key(auth_header: str | None, expected: str) -> bool:
    provided = extract_api_key(auth_header)
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class SePayClient:
    """Read-only client for the SePay user API (bank transaction listing)."""

    def __init__(self, api_token: str, account_number: str, api_url: str, timeout: int = 15):
        self.api_token = (api_token or "").strip()
        self.account_number = (account_number or "").strip()
        self.api_url = api_url
        self.timeout = timeout

    @classmethod
    def from_config(cls, config=None) -> "SePayClient":
        cfg = config if config is not None else current_app.config
        return cls(
            api_token=cfg.get("SEPAY_API_TOKEN", ""),
            account_number=cfg.get("BANK_ACCOUNT_NUMBER", ""),
            api_url=cfg.get("SEPAY_API_URL", ""),
            timeout=int(cfg.get("SEPAY_TIMEOUT_SECONDS", 15)),
        )

    def list_transactions(self, limit: int = 20) -> list[dict[str, Any]]:
        if not self.api_token or not self.account_number:
            raise UpstreamUnavailable("Missing SEPAY_API_TOKEN or BANK_ACCOUNT_NUMBER")

        headers = {"Authorization": f"Bearer {self.api_token}", "Content-Type": "application/json"}
        params = {"account_number": self.account_number, "limit": int(limit)}
        try:
            r = requests.get(self.api_url, headers=headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"SePay request failed: {e}") from e

        if not 200 <= r.status_code < 300:
            raise UpstreamUnavailable(f"SePay responded HTTP {r.status_code}")
        try:
            j = r.json() if r.content else {}
        except ValueError as e:
            raise UpstreamUnavailable("SePay returned a non-JSON body") from e

        transactions = j.get("transactions") if isinstance(j, dict) else None
        if transactions is None:
            return []
        if not isinstance(transactions, list):
            raise UpstreamUnavailable("SePay returned an unexpected transactions payload")
        return transactions


def to_history_item(trans: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": trans.get("id"),
        "transactionDate": trans.get("transaction_date"),
        "bankBrand": trans.get("bank_brand_name"),
        "accountNumber": trans.get("account_number"),
        "amountIn": _to_number(trans.get("amount_in")),
        "amountOut": _to_number(trans.get("amount_out")),
        "accumulated": _to_number(trans.get("accumulated")),
        "content": trans.get("transaction_content"),
        "referenceNumber": trans.get("reference_number"),
        "description": trans.get("description") or trans.get("transaction_content"),
    }


def _to_number(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
