"""
Reconciliation service: the single entry point for billing mutations and reads.

Composes the charge ledger, receivable calculations, pricing advisor and
payment state machine. Each operation runs in one storage transaction and
announces the touched resource through `billing_changed` after commit.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..dataclasses import (
    BillingView,
    ChargeData,
    ChargeOutcome,
    PaymentAttemptData,
    PriceLine,
    ReceivableData,
    ReceivableSummary,
)
from ..signals import notify_changed
from . import payment_state, pricing_advisor, receivables
from .errors import BillingError, InvalidTransitionError
from .ledger import ChargeLedger
from .store import DjangoBillingStore

logger = logging.getLogger(__name__)


class ReconciliationService:
    def __init__(self, store=None):
        self.store = store or DjangoBillingStore()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _refresh(self, booking, ledger: ChargeLedger, receivable: Optional[ReceivableData]) -> ReceivableData:
        """Recompute expense total and due date on a receivable and persist it."""
        if receivable is None:
            receivable = ReceivableData(booking_id=booking.id)
        receivable.due_date = receivables.due_date_for_booking(booking)
        if receivable.is_paid:
            receivable.total_expenses = ledger.total_expenses()
        else:
            payment_state.charges_changed(receivable, ledger.total_expenses())
        logger.debug("Booking %s expenses recomputed: %s", booking.id, receivable.total_expenses)
        return self.store.save_receivable(receivable)

    def _require_receivable(self, booking_id: int) -> ReceivableData:
        receivable = self.store.get_receivable(booking_id, lock=True)
        if receivable is None:
            raise InvalidTransitionError(
                f"No invoice has been sent for booking {booking_id}", booking_id=booking_id,
            )
        return receivable

    # ------------------------------------------------------------------
    # Accounts payable
    # ------------------------------------------------------------------

    def record_charge(self, booking_id: int, charge) -> ChargeData:
        """Add a vendor charge and recompute the booking's receivable."""
        if isinstance(charge, ChargeData):
            kind, subtype = charge.kind, charge.subtype
            fields = {
                "amount": charge.amount, "payee": charge.payee, "check_date": charge.check_date,
                "voucher": charge.voucher, "is_paid": charge.is_paid,
            }
        else:
            fields = dict(charge)
            kind, subtype = fields.pop("kind", None), fields.pop("subtype", None)

        with self.store.atomic():
            booking = self.store.get_booking(booking_id)
            ledger = self.store.load_ledger(booking_id)
            added = ledger.add_charge(kind, subtype, fields)
            saved = self.store.save_charge(booking_id, added)
            self._refresh(booking, ledger, self.store.get_receivable(booking_id, lock=True))

        logger.info("Recorded %s %s charge %s on booking %s",
                    saved.kind.value, saved.subtype or "", saved.amount, booking_id)
        notify_changed(booking_id, "charges")
        return saved

    def remove_charge(self, booking_id: int, kind, subtype: Optional[str] = None) -> Optional[ChargeData]:
        with self.store.atomic():
            booking = self.store.get_booking(booking_id)
            ledger = self.store.load_ledger(booking_id)
            removed = ledger.remove_charge(kind, subtype)
            if removed is None:
                return None
            self.store.delete_charge(removed)
            receivable = self.store.get_receivable(booking_id, lock=True)
            if receivable is not None:
                self._refresh(booking, ledger, receivable)

        notify_changed(booking_id, "charges")
        return removed

    def mark_charge_paid(self, booking_id: int, kind, subtype: Optional[str] = None,
                         voucher: Optional[str] = None, check_date=None) -> ChargeData:
        """Mark one charge settled. Safe to repeat."""
        with self.store.atomic():
            self.store.get_booking(booking_id)
            ledger = self.store.load_ledger(booking_id)
            charge = ledger.set_paid(kind, subtype, True, voucher=voucher, check_date=check_date)
            self.store.save_charge(booking_id, charge)

        notify_changed(booking_id, "charges")
        return charge

    def mark_charges_paid(self, booking_id: int, pairs: Iterable[Tuple[str, Optional[str]]],
                          voucher: Optional[str] = None, check_date=None) -> List[ChargeOutcome]:
        """
        Mark several charges settled, one at a time.

        Charges already marked stay marked when a later pair fails; the result
        lists the outcome of every pair in input order.
        """
        with self.store.atomic():
            self.store.get_booking(booking_id)
        outcomes = []
        for kind, subtype in pairs:
            label = getattr(kind, "value", kind)
            try:
                self.mark_charge_paid(booking_id, kind, subtype, voucher=voucher, check_date=check_date)
            except BillingError as exc:
                logger.warning("Booking %s: could not mark %s %s paid: %s", booking_id, label, subtype, exc)
                outcomes.append(ChargeOutcome(label, subtype, ok=False, code=exc.code, error=exc.message))
            else:
                outcomes.append(ChargeOutcome(label, subtype, ok=True))
        failed = sum(1 for o in outcomes if not o.ok)
        if failed:
            logger.warning("Booking %s: %s of %s charges failed to settle", booking_id, failed, len(outcomes))
        return outcomes

    # ------------------------------------------------------------------
    # Accounts receivable
    # ------------------------------------------------------------------

    def send_payment(self, booking_id: int, total_payment, lines: Optional[Sequence] = None,
                     markup_ratio=None) -> ReceivableData:
        """
        Bill the customer for a booking.

        Args:
            booking_id: Booking being billed
            total_payment: Amount billed; must be > 0
            lines: Optional priced lines (PriceLine or dicts) explaining the bill
            markup_ratio: When no lines are given, derive them from the ledger at this markup

        Raises:
            InvalidAmountError: If total_payment is not positive
            AlreadyPaidError: If the receivable is settled
        """
        with self.store.atomic():
            booking = self.store.get_booking(booking_id)
            ledger = self.store.load_ledger(booking_id)
            receivable = self._refresh(booking, ledger, self.store.get_receivable(booking_id, lock=True))
            payment_state.send_payment(receivable, total_payment)

            if lines:
                receivable.price_lines = [
                    line if isinstance(line, PriceLine) else PriceLine.from_dict(line) for line in lines
                ]
            elif markup_ratio is not None:
                receivable.price_lines = pricing_advisor.suggest_lines(ledger, markup_ratio)
            else:
                receivable.price_lines = []
            receivable = self.store.save_receivable(receivable)

        logger.info("Booking %s billed %s", booking_id, receivable.total_payment)
        notify_changed(booking_id, "receivable")
        return receivable

    def submit_customer_payment(self, booking_id: int, method: str, amount=None,
                                reference: Optional[str] = None, receipt_image: Optional[str] = None,
                                submitted_by=None) -> PaymentAttemptData:
        """Record a customer payment attempt; the amount defaults to the collectible balance."""
        with self.store.atomic():
            self.store.get_booking(booking_id)
            receivable = self._require_receivable(booking_id)
            attempt = PaymentAttemptData(
                booking_id=booking_id,
                method=method,
                amount=receivable.collectible_amount if amount in (None, "") else amount,
                reference_number=reference or None,
                receipt_image=receipt_image or None,
            )
            payment_state.submit_payment(receivable, attempt)
            attempt = self.store.save_attempt(attempt, submitted_by=submitted_by)
            self.store.save_receivable(receivable)

        logger.info("Booking %s: %s payment attempt %s for %s", booking_id, attempt.method, attempt.id, attempt.amount)
        notify_changed(booking_id, "payment_attempt")
        return attempt

    def verify_payment(self, attempt_id: int, approve: bool, notes: Optional[str] = None) -> ReceivableData:
        """Approve or reject a pending GCash attempt."""
        with self.store.atomic():
            attempt = self.store.get_attempt(attempt_id)
            receivable = self._require_receivable(attempt.booking_id)
            if approve:
                payment_state.verify(receivable, attempt, notes=notes)
            else:
                payment_state.reject(receivable, attempt, notes=notes)
            self.store.save_attempt(attempt)
            receivable = self.store.save_receivable(receivable)

        logger.info("Payment attempt %s %s", attempt_id, attempt.status)
        notify_changed(attempt.booking_id, "payment_attempt")
        return receivable

    def mark_cod_collected(self, booking_id: int) -> ReceivableData:
        with self.store.atomic():
            self.store.get_booking(booking_id)
            receivable = self._require_receivable(booking_id)
            attempts = self.store.list_attempts(booking_id)
            payment_state.collect_cod(receivable, attempts)
            for attempt in attempts:
                self.store.save_attempt(attempt)
            receivable = self.store.save_receivable(receivable)

        logger.info("Booking %s: COD collected, %s settled", booking_id, receivable.amount_collected)
        notify_changed(booking_id, "receivable")
        return receivable

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_billing(self, booking_id: int, now=None) -> BillingView:
        """Everything a screen needs about one booking's billing, computed in one place."""
        booking = self.store.get_booking(booking_id)
        ledger = self.store.load_ledger(booking_id)
        receivable = self.store.get_receivable(booking_id)
        attempts = self.store.list_attempts(booking_id)

        billing = BillingView(
            booking_id=booking_id,
            charges=ledger.charges(),
            total_expenses=ledger.total_expenses(),
            unpaid_total=ledger.unpaid_total(),
            unpaid_count=ledger.unpaid_count(),
            receivable=receivable,
            view=None,
            attempts=attempts,
        )
        if receivable is None:
            return billing

        receivable.due_date = receivables.due_date_for_booking(booking)
        billing.view = payment_state.view_state(receivable, attempts[0] if attempts else None)
        if not receivable.is_paid:
            billing.aging_bucket = receivables.aging_bucket(receivable.due_date, now)
            billing.is_overdue = receivables.is_overdue(receivable.due_date, now)
        if receivable.has_invoice:
            billing.profit = receivables.profit(receivable.total_payment, receivable.total_expenses)
            billing.profit_margin = receivables.profit_margin(receivable.total_payment, receivable.total_expenses)
        billing.breakdown = pricing_advisor.breakdown(
            receivable.total_payment, receivable.total_expenses, receivable.price_lines,
        )
        return billing

    def list_receivables(self, status: Optional[str] = None, bucket: Optional[str] = None,
                         now=None) -> List[ReceivableData]:
        result = []
        for ar in self.store.list_receivables():
            if not receivables.matches_status(ar, status):
                continue
            if bucket and (ar.is_paid or receivables.aging_bucket(ar.due_date, now) != bucket):
                continue
            result.append(ar)
        return result

    def aging_summary(self, now=None) -> ReceivableSummary:
        return receivables.summarize(self.store.list_receivables(), now)
