"""Error taxonomy for the purchase and payment confirmation flows.

Every failure the core can report is one of these variants. Each carries a
machine-readable ``code`` and a ``details`` dict so route handlers can turn
it into a response without inspecting message strings.
"""


class PaymentError(Exception):
    code = "payment_error"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(PaymentError):
    """Malformed or unacceptable caller input. Not retried."""
    code = "validation_error"


class CourseUnavailable(ValidationError):
    code = "course_unavailable"


class AuthFailure(PaymentError):
    code = "auth_failure"


class NotFoundError(PaymentError):
    code = "not_found"


class CourseNotFound(NotFoundError):
    code = "course_not_found"


class PurchaserContactUnresolved(NotFoundError):
    code = "purchaser_contact_unresolved"


class PaymentNotFound(NotFoundError):
    code = "payment_not_found"


class GatewayError(PaymentError):
    """The payment processor failed or could not be reached. Retryable."""
    code = "gateway_error"


class DataIntegrityError(PaymentError):
    """An approved payment that cannot be attributed. Needs manual reconciliation."""
    code = "data_integrity_error"


class StorageError(PaymentError):
    """The purchase ledger is unavailable. Retryable."""
    code = "storage_error"
