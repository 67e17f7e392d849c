"""
Payment state machine for one receivable.

    NO_CHARGES -> READY_FOR_PAYMENT -> PAYMENT_SENT -> COD_PENDING -> PAID
    PAYMENT_SENT -> GCASH_PENDING_VERIFICATION -> PAID
    GCASH_PENDING_VERIFICATION -> REJECTED -> PAYMENT_SENT

The `state` field changes only through `_move`, which checks every event
against TRANSITIONS. Once a receivable is PAID no further event is accepted.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, FrozenSet, Iterable, Optional

from django.utils import timezone

from ..constants import STATUS_LABELS, AttemptStatus, PaymentMethod, PaymentState
from ..dataclasses import PaymentAttemptData, ReceivableData, ViewState
from .errors import (
    AlreadyPaidError,
    InvalidAmountError,
    InvalidPaymentMethodError,
    InvalidTransitionError,
    MissingReceiptError,
)
from .receivables import collectible_amount
from .utils import ZERO, q2

logger = logging.getLogger(__name__)

S = PaymentState

# event -> {source state: allowed target states}
TRANSITIONS: Dict[str, Dict[PaymentState, FrozenSet[PaymentState]]] = {
    "charges_changed": {
        S.NO_CHARGES: frozenset({S.NO_CHARGES, S.READY_FOR_PAYMENT}),
        S.READY_FOR_PAYMENT: frozenset({S.NO_CHARGES, S.READY_FOR_PAYMENT}),
    },
    "send_payment": {
        S.NO_CHARGES: frozenset({S.PAYMENT_SENT}),
        S.READY_FOR_PAYMENT: frozenset({S.PAYMENT_SENT}),
        S.PAYMENT_SENT: frozenset({S.PAYMENT_SENT}),
        S.REJECTED: frozenset({S.PAYMENT_SENT}),
    },
    "choose_cod": {
        S.PAYMENT_SENT: frozenset({S.COD_PENDING}),
    },
    "submit_gcash": {
        S.PAYMENT_SENT: frozenset({S.GCASH_PENDING_VERIFICATION}),
    },
    "resubmit": {
        S.REJECTED: frozenset({S.PAYMENT_SENT}),
    },
    "verify": {
        S.GCASH_PENDING_VERIFICATION: frozenset({S.PAID, S.PAYMENT_SENT}),
    },
    "reject": {
        S.GCASH_PENDING_VERIFICATION: frozenset({S.REJECTED}),
    },
    "collect_cod": {
        S.COD_PENDING: frozenset({S.PAID}),
    },
}


def allowed_events(state: PaymentState) -> FrozenSet[str]:
    return frozenset(event for event, sources in TRANSITIONS.items() if S(state) in sources)


def _ensure_open(receivable: ReceivableData) -> None:
    if receivable.is_paid or receivable.state == S.PAID:
        raise AlreadyPaidError(
            f"Receivable for booking {receivable.booking_id} is already paid",
            booking_id=receivable.booking_id,
        )


def _move(receivable: ReceivableData, event: str, target: PaymentState) -> None:
    source = S(receivable.state)
    _ensure_open(receivable)
    targets = TRANSITIONS[event].get(source)
    if not targets or target not in targets:
        raise InvalidTransitionError(
            f"Cannot {event.replace('_', ' ')} while receivable is {source.value}",
            booking_id=receivable.booking_id, state=source.value, event=event,
        )
    if source != target:
        logger.info("Booking %s: %s -[%s]-> %s", receivable.booking_id, source.value, event, target.value)
    receivable.state = target


def _refresh_collectible(receivable: ReceivableData) -> None:
    receivable.collectible_amount = collectible_amount(receivable.total_payment, receivable.amount_collected)


def _positive(amount, what: str, **context) -> Decimal:
    try:
        value = q2(amount)
    except InvalidOperation:
        raise InvalidAmountError(f"Malformed {what}: {amount!r}", **context)
    if not value.is_finite() or value <= ZERO:
        raise InvalidAmountError(f"{what.capitalize()} must be greater than 0, got {amount}", **context)
    return value


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------

def charges_changed(receivable: ReceivableData, total_expenses) -> ReceivableData:
    """
    Record a new expense total. Only NO_CHARGES/READY_FOR_PAYMENT react;
    later states keep their state and just carry the new total.
    """
    receivable.total_expenses = q2(total_expenses)
    if S(receivable.state) in TRANSITIONS["charges_changed"] and not receivable.is_paid:
        ready = receivable.total_expenses > ZERO and not receivable.has_invoice
        _move(receivable, "charges_changed", S.READY_FOR_PAYMENT if ready else S.NO_CHARGES)
    return receivable


def send_payment(receivable: ReceivableData, total_payment) -> ReceivableData:
    """Bill the customer; the full billed amount becomes collectible."""
    _ensure_open(receivable)
    amount = _positive(total_payment, "total payment", booking_id=receivable.booking_id)
    if amount < receivable.amount_collected:
        raise InvalidAmountError(
            f"Total payment {amount} is below the {receivable.amount_collected} already collected",
            booking_id=receivable.booking_id,
        )
    _move(receivable, "send_payment", S.PAYMENT_SENT)
    receivable.total_payment = amount
    _refresh_collectible(receivable)
    return receivable


def submit_payment(receivable: ReceivableData, attempt: PaymentAttemptData) -> ReceivableData:
    """
    Route a customer payment attempt by method.

    COD parks the receivable in COD_PENDING without moving money. GCASH needs a
    receipt and waits for staff verification. A REJECTED receivable is first
    reopened to PAYMENT_SENT.
    """
    _ensure_open(receivable)
    try:
        method = PaymentMethod(str(attempt.method).upper())
    except ValueError:
        raise InvalidPaymentMethodError(f"Unsupported payment method: {attempt.method}",
                                        booking_id=receivable.booking_id)
    if method == PaymentMethod.GCASH and not attempt.receipt_image:
        raise MissingReceiptError("GCash payments require a receipt image",
                                  booking_id=receivable.booking_id)

    state = S(receivable.state)
    if state not in (S.PAYMENT_SENT, S.REJECTED):
        raise InvalidTransitionError(
            f"Cannot accept a payment while receivable is {state.value}",
            booking_id=receivable.booking_id, state=state.value,
        )

    attempt.amount = _positive(attempt.amount, "payment amount", booking_id=receivable.booking_id)
    if attempt.amount > receivable.collectible_amount:
        raise InvalidAmountError(
            f"Payment amount {attempt.amount} exceeds collectible amount {receivable.collectible_amount}",
            booking_id=receivable.booking_id,
        )

    if S(receivable.state) == S.REJECTED:
        _move(receivable, "resubmit", S.PAYMENT_SENT)

    attempt.method = method.value
    attempt.status = AttemptStatus.PENDING.value
    if method == PaymentMethod.COD:
        _move(receivable, "choose_cod", S.COD_PENDING)
        receivable.cod_pending = True
    else:
        _move(receivable, "submit_gcash", S.GCASH_PENDING_VERIFICATION)
        receivable.cod_pending = False
    receivable.payment_method = method.value
    return receivable


def _check_pending(attempt: PaymentAttemptData, receivable: ReceivableData) -> None:
    if attempt.method != PaymentMethod.GCASH.value:
        raise InvalidTransitionError(
            f"Payment attempt {attempt.id} is {attempt.method}; only GCash attempts are verified",
            attempt_id=attempt.id, booking_id=receivable.booking_id,
        )
    if attempt.status != AttemptStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Payment attempt {attempt.id} is already {attempt.status}",
            attempt_id=attempt.id, booking_id=receivable.booking_id,
        )


def verify(receivable: ReceivableData, attempt: PaymentAttemptData, notes: Optional[str] = None,
           now=None) -> ReceivableData:
    """Approve a GCash attempt. Partial amounts return the receivable to PAYMENT_SENT."""
    _ensure_open(receivable)
    _check_pending(attempt, receivable)

    credit = min(attempt.amount, receivable.collectible_amount)
    collected = receivable.amount_collected + credit
    settled = collected >= receivable.total_payment
    _move(receivable, "verify", S.PAID if settled else S.PAYMENT_SENT)

    receivable.amount_collected = min(collected, receivable.total_payment)
    _refresh_collectible(receivable)
    if settled:
        receivable.is_paid = True
        receivable.cod_pending = False

    attempt.status = AttemptStatus.VERIFIED.value
    attempt.admin_notes = notes or attempt.admin_notes
    attempt.verified_at = now or timezone.now()
    return receivable


def reject(receivable: ReceivableData, attempt: PaymentAttemptData, notes: Optional[str] = None,
           now=None) -> ReceivableData:
    """Reject a GCash attempt; nothing was counted as collected so nothing is undone."""
    _ensure_open(receivable)
    _check_pending(attempt, receivable)
    _move(receivable, "reject", S.REJECTED)
    attempt.status = AttemptStatus.REJECTED.value
    attempt.admin_notes = notes or attempt.admin_notes
    attempt.verified_at = now or timezone.now()
    return receivable


def collect_cod(receivable: ReceivableData, attempts: Iterable[PaymentAttemptData] = (),
                now=None) -> ReceivableData:
    """Cash was collected on delivery: settle the whole billed amount."""
    _move(receivable, "collect_cod", S.PAID)
    receivable.amount_collected = receivable.total_payment
    _refresh_collectible(receivable)
    receivable.is_paid = True
    receivable.cod_pending = False

    for attempt in attempts:
        if attempt.method == PaymentMethod.COD.value and attempt.status == AttemptStatus.PENDING.value:
            attempt.status = AttemptStatus.VERIFIED.value
            attempt.verified_at = now or timezone.now()
    return receivable


# ----------------------------------------------------------------------
# Derived display state
# ----------------------------------------------------------------------

def view_state(receivable: ReceivableData, latest_attempt: Optional[PaymentAttemptData] = None) -> ViewState:
    open_balance = not receivable.is_paid and receivable.collectible_amount > ZERO
    return ViewState(
        is_fully_paid=receivable.is_paid,
        is_cod_pending=receivable.payment_method == PaymentMethod.COD.value and open_balance,
        is_gcash_pending_verification=(
            receivable.payment_method == PaymentMethod.GCASH.value
            and open_balance
            and latest_attempt is not None
            and latest_attempt.status == AttemptStatus.PENDING.value
        ),
        status_label=STATUS_LABELS[S(receivable.state)],
    )
