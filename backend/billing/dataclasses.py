from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .constants import ChargeKind, PaymentState
from .services.utils import ZERO, q2

DELIVERED_STATUSES = {"DELIVERED", "COMPLETED"}


@dataclass
class ChargeData:
    kind: ChargeKind
    subtype: Optional[str] = None
    amount: Decimal = ZERO
    payee: Optional[str] = None
    check_date: Optional[date] = None
    voucher: Optional[str] = None
    is_paid: bool = False
    id: Optional[int] = None

    @property
    def key(self):
        return (self.kind, self.subtype)


@dataclass
class BookingSnapshot:
    id: int
    terms: int = 0
    preferred_delivery_date: Optional[date] = None
    actual_delivery_date: Optional[date] = None
    status: str = ""
    customer_id: Optional[int] = None

    @property
    def delivered(self) -> bool:
        return (self.status or "").upper() in DELIVERED_STATUSES


@dataclass
class PriceLine:
    description: str
    amount: Decimal
    markup: Decimal  # percent, e.g. 30
    markup_amount: Decimal
    total: Decimal
    kind: Optional[str] = None
    subtype: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "kind": self.kind,
            "subtype": self.subtype,
            "amount": str(self.amount),
            "markup": str(self.markup),
            "markup_amount": str(self.markup_amount),
            "total": str(self.total),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PriceLine":
        return cls(
            description=raw.get("description", ""),
            amount=q2(raw.get("amount")),
            markup=Decimal(str(raw.get("markup") or 0)),
            markup_amount=q2(raw.get("markup_amount")),
            total=q2(raw.get("total")),
            kind=raw.get("kind"),
            subtype=raw.get("subtype"),
        )


@dataclass
class ReceivableData:
    booking_id: int
    total_expenses: Decimal = ZERO
    total_payment: Decimal = ZERO
    amount_collected: Decimal = ZERO
    collectible_amount: Decimal = ZERO
    payment_method: Optional[str] = None
    is_paid: bool = False
    cod_pending: bool = False
    due_date: Optional[date] = None
    state: PaymentState = PaymentState.NO_CHARGES
    price_lines: List[PriceLine] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def has_invoice(self) -> bool:
        return self.total_payment > ZERO


@dataclass
class PaymentAttemptData:
    booking_id: int
    method: str
    amount: Decimal
    reference_number: Optional[str] = None
    receipt_image: Optional[str] = None
    status: str = "PENDING"
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class ChargeOutcome:
    kind: str
    subtype: Optional[str]
    ok: bool
    code: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "subtype": self.subtype,
            "ok": self.ok,
            "code": self.code,
            "error": self.error,
        }


@dataclass
class ViewState:
    """Display flags derived from a receivable; never persisted."""
    is_fully_paid: bool
    is_cod_pending: bool
    is_gcash_pending_verification: bool
    status_label: str


@dataclass
class ReceivableSummary:
    receivable_count: int = 0
    total_expenses: Decimal = ZERO
    total_billed: Decimal = ZERO
    total_collected: Decimal = ZERO
    total_collectible: Decimal = ZERO
    total_profit: Decimal = ZERO
    paid_count: int = 0
    overdue_count: int = 0
    undetermined_due_count: int = 0
    aging: Dict[str, int] = field(default_factory=dict)
    collectible_by_bucket: Dict[str, Decimal] = field(default_factory=dict)


@dataclass
class BillingView:
    booking_id: int
    charges: List[ChargeData]
    total_expenses: Decimal
    unpaid_total: Decimal
    unpaid_count: int
    receivable: Optional[ReceivableData]
    view: Optional[ViewState]
    attempts: List[PaymentAttemptData] = field(default_factory=list)
    aging_bucket: Optional[str] = None
    is_overdue: bool = False
    profit: Optional[Decimal] = None
    profit_margin: Optional[Decimal] = None
    breakdown: List[PriceLine] = field(default_factory=list)
