"""
Django ORM persistence for the billing engine.

Maps model rows to the engine dataclasses and back. Every service operation
runs inside `atomic()`, which also turns connection-level database failures
into TransientIOError so callers can tell retryable failures from validation
errors.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import List, Optional

from django.db import InterfaceError, OperationalError, transaction

from bookings.models import Booking
from ..conf import billing_setting
from ..constants import ChargeKind, PaymentState
from ..dataclasses import (
    BookingSnapshot,
    ChargeData,
    PaymentAttemptData,
    PriceLine,
    ReceivableData,
)
from ..models import Charge, PaymentAttempt, Receivable
from .errors import NotFoundError, TransientIOError
from .ledger import ChargeLedger
from .receivables import due_date_for_booking

logger = logging.getLogger(__name__)


def _booking_to_snapshot(row: Booking) -> BookingSnapshot:
    terms = row.terms if row.terms is not None else billing_setting("DEFAULT_TERMS_DAYS", 0)
    return BookingSnapshot(
        id=row.id,
        terms=int(terms),
        preferred_delivery_date=row.preferred_delivery_date,
        actual_delivery_date=row.actual_delivery_date,
        status=row.status,
        customer_id=row.customer_id,
    )


def _charge_to_data(row: Charge) -> ChargeData:
    return ChargeData(
        id=row.id,
        kind=ChargeKind(row.kind),
        subtype=row.subtype or None,
        amount=row.amount,
        payee=row.payee,
        check_date=row.check_date,
        voucher=row.voucher,
        is_paid=row.is_paid,
    )


def _receivable_to_data(row: Receivable) -> ReceivableData:
    return ReceivableData(
        id=row.id,
        booking_id=row.booking_id,
        total_expenses=row.total_expenses,
        total_payment=row.total_payment,
        amount_collected=row.amount_collected,
        collectible_amount=row.collectible_amount,
        payment_method=row.payment_method or None,
        is_paid=row.is_paid,
        cod_pending=row.cod_pending,
        due_date=row.due_date,
        state=PaymentState(row.state),
        price_lines=[PriceLine.from_dict(raw) for raw in (row.price_lines or [])],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _attempt_to_data(row: PaymentAttempt) -> PaymentAttemptData:
    return PaymentAttemptData(
        id=row.id,
        booking_id=row.booking_id,
        method=row.method,
        amount=row.amount,
        reference_number=row.reference_number,
        receipt_image=row.receipt_image,
        status=row.status,
        admin_notes=row.admin_notes,
        created_at=row.created_at,
        verified_at=row.verified_at,
    )


class DjangoBillingStore:
    @contextmanager
    def atomic(self):
        try:
            with transaction.atomic():
                yield
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Billing storage failure: %s", exc)
            raise TransientIOError(f"Storage temporarily unavailable: {exc}") from exc

    # ---- bookings ----

    def get_booking(self, booking_id: int) -> BookingSnapshot:
        row = Booking.objects.filter(pk=booking_id).first()
        if row is None:
            raise NotFoundError(f"Booking {booking_id} not found", booking_id=booking_id)
        return _booking_to_snapshot(row)

    # ---- charges ----

    def load_ledger(self, booking_id: int) -> ChargeLedger:
        rows = Charge.objects.filter(booking_id=booking_id).order_by("id")
        return ChargeLedger.from_charges(booking_id, [_charge_to_data(r) for r in rows])

    def save_charge(self, booking_id: int, charge: ChargeData) -> ChargeData:
        values = {
            "kind": ChargeKind(charge.kind).value,
            "subtype": charge.subtype,
            "amount": charge.amount,
            "payee": charge.payee,
            "check_date": charge.check_date,
            "voucher": charge.voucher,
            "is_paid": charge.is_paid,
        }
        if charge.id:
            updated = Charge.objects.filter(pk=charge.id, booking_id=booking_id).update(**values)
            if updated:
                return charge
        row = Charge.objects.create(booking_id=booking_id, **values)
        charge.id = row.id
        return charge

    def delete_charge(self, charge: ChargeData) -> None:
        if charge.id:
            Charge.objects.filter(pk=charge.id).delete()

    # ---- receivables ----

    def get_receivable(self, booking_id: int, lock: bool = False) -> Optional[ReceivableData]:
        qs = Receivable.objects.filter(booking_id=booking_id)
        if lock:
            qs = qs.select_for_update()
        row = qs.first()
        return _receivable_to_data(row) if row else None

    def save_receivable(self, receivable: ReceivableData) -> ReceivableData:
        row, _ = Receivable.objects.update_or_create(
            booking_id=receivable.booking_id,
            defaults={
                "total_expenses": receivable.total_expenses,
                "total_payment": receivable.total_payment,
                "amount_collected": receivable.amount_collected,
                "collectible_amount": receivable.collectible_amount,
                "payment_method": receivable.payment_method,
                "is_paid": receivable.is_paid,
                "cod_pending": receivable.cod_pending,
                "due_date": receivable.due_date,
                "state": PaymentState(receivable.state).value,
                "price_lines": [line.to_dict() for line in receivable.price_lines],
            },
        )
        receivable.id = row.id
        receivable.created_at = row.created_at
        receivable.updated_at = row.updated_at
        return receivable

    def list_receivables(self) -> List[ReceivableData]:
        """All receivables, with due dates derived from their bookings' current delivery data."""
        rows = Receivable.objects.select_related("booking").order_by("-created_at")
        result = []
        for row in rows:
            receivable = _receivable_to_data(row)
            receivable.due_date = due_date_for_booking(_booking_to_snapshot(row.booking))
            result.append(receivable)
        return result

    # ---- payment attempts ----

    def get_attempt(self, attempt_id: int) -> PaymentAttemptData:
        row = PaymentAttempt.objects.select_for_update().filter(pk=attempt_id).first()
        if row is None:
            raise NotFoundError(f"Payment attempt {attempt_id} not found", attempt_id=attempt_id)
        return _attempt_to_data(row)

    def list_attempts(self, booking_id: int) -> List[PaymentAttemptData]:
        rows = PaymentAttempt.objects.filter(booking_id=booking_id).order_by("-created_at", "-id")
        return [_attempt_to_data(r) for r in rows]

    def save_attempt(self, attempt: PaymentAttemptData, submitted_by=None) -> PaymentAttemptData:
        values = {
            "method": attempt.method,
            "amount": attempt.amount,
            "reference_number": attempt.reference_number,
            "receipt_image": attempt.receipt_image,
            "status": attempt.status,
            "admin_notes": attempt.admin_notes,
            "verified_at": attempt.verified_at,
        }
        if attempt.id:
            PaymentAttempt.objects.filter(pk=attempt.id).update(**values)
            return attempt
        row = PaymentAttempt.objects.create(booking_id=attempt.booking_id, submitted_by=submitted_by, **values)
        attempt.id = row.id
        attempt.created_at = row.created_at
        return attempt
