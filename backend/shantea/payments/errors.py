from __future__ import annotations


class PaymentError(Exception):
    """Base for payment failures that surface to API callers."""

    status_code = 400
    default_message = "Payment error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class OrderNotFound(PaymentError):
    status_code = 404
    default_message = "Order not found"


class AlreadySettled(PaymentError):
    status_code = 409
    default_message = "Order has already been paid"


class UpstreamUnavailable(PaymentError):
    status_code = 502
    default_message = "Payment gateway unavailable"


class AuthenticationFailed(PaymentError):
    status_code = 401
    default_message = "Invalid API Key"
