"""
Failure classes for the registration and payment pipeline.

Everything except StoreWriteError can be retried by the user from the start of
the flow. A StoreWriteError means money moved but no ledger row exists, so an
operator has to reconcile it by hand.
"""
from typing import Dict, List, Optional


class RegistrationError(Exception):
    code = "registration_error"
    status_code = 400
    # True when the provider may already hold the attendee's money
    payment_captured = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {"error": self.message, "code": self.code}


class EventNotFound(RegistrationError):
    code = "event_not_found"
    status_code = 404

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class RegistrationValidationError(RegistrationError):
    code = "invalid_registration"
    status_code = 422

    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__("Invalid registration")
        self.errors = errors

    def to_dict(self) -> Dict:
        out = super().to_dict()
        out["errors"] = self.errors
        return out


class OrderCreationError(RegistrationError):
    code = "order_creation_failed"
    status_code = 502


class InvalidTransition(RegistrationError):
    code = "invalid_transition"
    status_code = 409


class _PostCaptureError(RegistrationError):
    payment_captured = True

    def __init__(self, message: str, payment_id: Optional[str] = None, order_id: Optional[str] = None):
        super().__init__(message)
        self.payment_id = payment_id
        self.order_id = order_id

    def to_dict(self) -> Dict:
        out = super().to_dict()
        out["paymentId"] = self.payment_id
        out["orderId"] = self.order_id
        out["reconcile"] = True
        return out


class CheckoutTimeoutError(_PostCaptureError):
    """The widget never called back; whether the attendee paid is unknown."""

    code = "checkout_timeout"
    status_code = 504


class VerificationError(_PostCaptureError):
    code = "payment_verification_failed"
    status_code = 400


class StoreWriteError(_PostCaptureError):
    code = "registration_not_persisted"
    status_code = 500
