"""
Billing error taxonomy.

Validation errors (duplicate subtype, invalid amount, missing receipt, invalid
charge) describe caller mistakes and must never be retried. TransientIOError
is the only class a retry layer may re-attempt, and only for idempotent
operations.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BillingError(Exception):
    """Base exception for billing reconciliation errors"""

    code = "billing_error"
    retryable = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.message, "code": self.code}
        payload.update({k: str(v) for k, v in self.context.items()})
        return payload


class DuplicateSubtypeError(BillingError):
    """Raised when an active charge of the same (kind, subtype) already exists"""

    code = "duplicate_subtype"

    def __init__(self, kind: str, subtype: Optional[str], booking_id: Optional[int] = None):
        super().__init__(
            f"An active {kind} charge with subtype {subtype} already exists",
            kind=kind, subtype=subtype, booking_id=booking_id,
        )


class InvalidAmountError(BillingError):
    """Raised for non-positive or malformed monetary values"""

    code = "invalid_amount"


class InvalidChargeError(BillingError):
    """Raised for unknown charge kinds or subtypes"""

    code = "invalid_charge"


class MissingReceiptError(BillingError):
    """Raised when a GCASH payment is submitted without a receipt image"""

    code = "missing_receipt"


class AlreadyPaidError(BillingError):
    """Raised when an operation targets a settled receivable"""

    code = "already_paid"


class InvalidTransitionError(BillingError):
    """Raised when the payment state machine does not accept an event"""

    code = "invalid_transition"


class NotFoundError(BillingError):
    """Raised for unknown booking, charge or payment attempt ids"""

    code = "not_found"


class TransientIOError(BillingError):
    """Raised when the storage layer fails in a way that may succeed on retry"""

    code = "transient_io"
    retryable = True


class InvalidPaymentMethodError(BillingError):
    """Raised for payment methods other than COD and GCASH"""

    code = "invalid_payment_method"
