from __future__ import annotations

from enum import Enum


class ChargeKind(str, Enum):
    FREIGHT = "FREIGHT"
    TRUCKING = "TRUCKING"
    PORT = "PORT"
    MISC = "MISC"


class PaymentMethod(str, Enum):
    COD = "COD"
    GCASH = "GCASH"


class AttemptStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class PaymentState(str, Enum):
    NO_CHARGES = "NO_CHARGES"
    READY_FOR_PAYMENT = "READY_FOR_PAYMENT"
    PAYMENT_SENT = "PAYMENT_SENT"
    COD_PENDING = "COD_PENDING"
    GCASH_PENDING_VERIFICATION = "GCASH_PENDING_VERIFICATION"
    REJECTED = "REJECTED"
    PAID = "PAID"


# Subtype catalogue per kind; FREIGHT is a singleton without subtype.
CHARGE_SUBTYPES = {
    ChargeKind.FREIGHT: (),
    ChargeKind.TRUCKING: ("ORIGIN", "DESTINATION"),
    ChargeKind.PORT: (
        "CRAINAGE",
        "ARRASTRE_ORIGIN",
        "ARRASTRE_DEST",
        "WHARFAGE_ORIGIN",
        "WHARFAGE_DEST",
        "LABOR_ORIGIN",
        "LABOR_DEST",
    ),
    ChargeKind.MISC: ("REBATES", "STORAGE", "FACILITATION", "DENR"),
}

# Field that carries the subtype on raw charge records coming back from storage
SUBTYPE_FIELDS = {
    ChargeKind.TRUCKING: "type",
    ChargeKind.PORT: "charge_type",
    ChargeKind.MISC: "charge_type",
}

CHARGE_LABELS = {
    ChargeKind.FREIGHT: "Freight",
    ChargeKind.TRUCKING: "Trucking",
    ChargeKind.PORT: "Port Charges",
    ChargeKind.MISC: "Miscellaneous",
}

AGING_BUCKETS = ("current", "1-30", "31-60", "61-90", "over_90")

STATUS_LABELS = {
    PaymentState.NO_CHARGES: "No Charges",
    PaymentState.READY_FOR_PAYMENT: "Ready for Invoice",
    PaymentState.PAYMENT_SENT: "Invoice Sent",
    PaymentState.COD_PENDING: "COD Pending",
    PaymentState.GCASH_PENDING_VERIFICATION: "Pending Verification",
    PaymentState.REJECTED: "Payment Rejected",
    PaymentState.PAID: "Paid",
}


def choices(enum_cls):
    return [(member.value, member.value.replace("_", " ").title()) for member in enum_cls]
