"""
Receivable calculations (Accounts Receivable).

Pure functions over dates and Decimals: due dates, aging buckets, collectible
amount and profit. A receivable without a due date is "not yet determined":
it is never overdue and never lands in an aging bucket.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from django.utils import timezone

from ..constants import AGING_BUCKETS
from ..dataclasses import BookingSnapshot, ReceivableData, ReceivableSummary
from .utils import HUNDRED, ZERO, as_date, d, q2

logger = logging.getLogger(__name__)


def _today(now=None) -> date:
    if now is None:
        return timezone.localdate()
    if isinstance(now, datetime):
        if timezone.is_aware(now):
            return timezone.localtime(now).date()
        return now.date()
    return now


def compute_due_date(actual_delivery_date=None, preferred_delivery_date=None,
                     terms_days: Optional[int] = 0, delivered: bool = True) -> Optional[date]:
    """
    Due date = delivery date + terms.

    The actual delivery date counts only once cargo is marked delivered;
    otherwise the preferred delivery date is used. Returns None when neither
    date is available.
    """
    actual = as_date(actual_delivery_date)
    base = actual if (delivered and actual is not None) else as_date(preferred_delivery_date)
    if base is None:
        return None
    return base + timedelta(days=int(terms_days or 0))


def due_date_for_booking(booking: BookingSnapshot) -> Optional[date]:
    return compute_due_date(
        booking.actual_delivery_date,
        booking.preferred_delivery_date,
        booking.terms,
        delivered=booking.delivered,
    )


def is_overdue(due_date, now=None) -> bool:
    due = as_date(due_date)
    if due is None:
        return False
    return _today(now) > due


def days_past_due(due_date, now=None) -> Optional[int]:
    due = as_date(due_date)
    if due is None:
        return None
    return (_today(now) - due).days


def aging_bucket(due_date, now=None) -> Optional[str]:
    """Classify by days past due; None when the due date is not determined."""
    days = days_past_due(due_date, now)
    if days is None:
        return None
    if days <= 0:
        return "current"
    if days <= 30:
        return "1-30"
    if days <= 60:
        return "31-60"
    if days <= 90:
        return "61-90"
    return "over_90"


def collectible_amount(total_payment, amount_collected) -> Decimal:
    return max(ZERO, q2(d(total_payment) - d(amount_collected)))


def profit(total_payment, total_expenses) -> Decimal:
    return q2(d(total_payment) - d(total_expenses))


def profit_margin(total_payment, total_expenses) -> Optional[Decimal]:
    """Profit as a percentage of expenses; None (not applicable) without expenses."""
    expenses = d(total_expenses)
    if expenses <= ZERO:
        return None
    return q2(profit(total_payment, expenses) / expenses * HUNDRED)


def due_status(receivable: ReceivableData, now=None) -> str:
    if receivable.is_paid:
        return "paid"
    if is_overdue(receivable.due_date, now):
        return "overdue"
    return "pending"


def summarize(receivables: Iterable[ReceivableData], now=None) -> ReceivableSummary:
    """Roll receivables up into totals and an aging report."""
    summary = ReceivableSummary(
        aging={bucket: 0 for bucket in AGING_BUCKETS},
        collectible_by_bucket={bucket: ZERO for bucket in AGING_BUCKETS},
    )
    for ar in receivables:
        summary.receivable_count += 1
        summary.total_expenses += ar.total_expenses
        summary.total_billed += ar.total_payment
        summary.total_collected += ar.amount_collected
        summary.total_collectible += ar.collectible_amount
        if ar.has_invoice:
            summary.total_profit += profit(ar.total_payment, ar.total_expenses)

        if ar.is_paid:
            summary.paid_count += 1
            continue

        bucket = aging_bucket(ar.due_date, now)
        if bucket is None:
            summary.undetermined_due_count += 1
            continue
        summary.aging[bucket] += 1
        summary.collectible_by_bucket[bucket] += ar.collectible_amount
        if bucket != "current":
            summary.overdue_count += 1

    logger.debug("Summarized %s receivables", summary.receivable_count)
    return summary


STATUS_FILTERS = ("ready", "unpaid", "paid")


def matches_status(receivable: ReceivableData, status: Optional[str]) -> bool:
    """Status filter used by receivable listings; unknown or empty status matches all."""
    if status == "paid":
        return receivable.is_paid
    if status == "unpaid":
        return not receivable.is_paid
    if status == "ready":
        return (not receivable.is_paid
                and receivable.total_expenses > ZERO
                and not receivable.has_invoice)
    return True
