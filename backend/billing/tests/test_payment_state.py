"""
Payment state machine: transition table, COD and GCash branches, partial
settlement and the derived display flags.
"""

from decimal import Decimal

import pytest

from ..constants import PaymentState as S
from ..dataclasses import PaymentAttemptData, ReceivableData
from ..services import payment_state as psm
from ..services.errors import (
    AlreadyPaidError,
    InvalidAmountError,
    InvalidPaymentMethodError,
    InvalidTransitionError,
    MissingReceiptError,
)


def _billed(amount="8840", expenses="6800"):
    ar = ReceivableData(booking_id=1)
    psm.charges_changed(ar, Decimal(expenses))
    psm.send_payment(ar, Decimal(amount))
    return ar


def _gcash(amount="8840", receipt="receipts/1.jpg"):
    return PaymentAttemptData(booking_id=1, method="GCASH", amount=Decimal(amount),
                              reference_number="GC-1", receipt_image=receipt, id=1)


class TestTransitions:
    def test_charges_move_to_ready_and_back(self):
        ar = ReceivableData(booking_id=1)
        psm.charges_changed(ar, Decimal("100"))
        assert ar.state == S.READY_FOR_PAYMENT
        psm.charges_changed(ar, Decimal("0"))
        assert ar.state == S.NO_CHARGES

    def test_charges_do_not_move_billed_receivable(self):
        ar = _billed()
        psm.charges_changed(ar, Decimal("7000"))
        assert ar.state == S.PAYMENT_SENT
        assert ar.total_expenses == Decimal("7000.00")

    def test_allowed_events(self):
        assert psm.allowed_events(S.PAYMENT_SENT) == {"send_payment", "choose_cod", "submit_gcash"}
        assert psm.allowed_events(S.PAID) == frozenset()

    def test_send_payment_makes_amount_collectible(self):
        ar = _billed()
        assert ar.state == S.PAYMENT_SENT
        assert ar.collectible_amount == Decimal("8840.00")

    @pytest.mark.parametrize("amount", ["0", "-10", "nope"])
    def test_send_payment_requires_positive_amount(self, amount):
        with pytest.raises(InvalidAmountError):
            psm.send_payment(ReceivableData(booking_id=1), amount)

    def test_send_payment_rejected_while_cod_pending(self):
        ar = _billed()
        psm.submit_payment(ar, PaymentAttemptData(booking_id=1, method="COD", amount=Decimal("8840")))
        with pytest.raises(InvalidTransitionError, match="while receivable is COD_PENDING"):
            psm.send_payment(ar, "9000")


class TestGcash:
    def test_scenario_c_submit(self):
        ar = _billed()
        psm.submit_payment(ar, _gcash())
        assert ar.state == S.GCASH_PENDING_VERIFICATION
        assert ar.collectible_amount == Decimal("8840.00")
        assert ar.payment_method == "GCASH"
        assert not ar.cod_pending

    def test_scenario_d_verify(self):
        ar = _billed()
        attempt = _gcash()
        psm.submit_payment(ar, attempt)
        psm.verify(ar, attempt, notes="ok")
        assert ar.state == S.PAID
        assert ar.is_paid
        assert ar.collectible_amount == Decimal("0")
        assert ar.amount_collected == Decimal("8840.00")
        assert attempt.status == "VERIFIED"
        assert attempt.verified_at is not None

    def test_missing_receipt(self):
        ar = _billed()
        with pytest.raises(MissingReceiptError):
            psm.submit_payment(ar, _gcash(receipt=None))
        assert ar.state == S.PAYMENT_SENT

    def test_partial_settlement_returns_to_payment_sent(self):
        ar = _billed()
        first = _gcash("5000")
        psm.submit_payment(ar, first)
        psm.verify(ar, first)
        assert ar.state == S.PAYMENT_SENT
        assert ar.collectible_amount == Decimal("3840.00")
        assert not ar.is_paid

        second = _gcash("3840")
        second.id = 2
        psm.submit_payment(ar, second)
        psm.verify(ar, second)
        assert ar.is_paid
        assert ar.collectible_amount == Decimal("0")

    def test_overpayment_rejected(self):
        with pytest.raises(InvalidAmountError, match="exceeds collectible amount"):
            psm.submit_payment(_billed(), _gcash("9000"))

    def test_reject_then_resubmit(self):
        ar = _billed()
        attempt = _gcash()
        psm.submit_payment(ar, attempt)
        psm.reject(ar, attempt, notes="blurry receipt")
        assert ar.state == S.REJECTED
        assert attempt.status == "REJECTED"
        assert ar.collectible_amount == Decimal("8840.00")

        retry = _gcash()
        retry.id = 2
        psm.submit_payment(ar, retry)
        assert ar.state == S.GCASH_PENDING_VERIFICATION

    def test_cannot_verify_twice(self):
        ar = _billed("100", "50")
        attempt = _gcash("60")
        psm.submit_payment(ar, attempt)
        psm.verify(ar, attempt)
        with pytest.raises(InvalidTransitionError, match="already VERIFIED"):
            psm.verify(ar, attempt)


class TestCod:
    def test_scenario_e(self):
        ar = _billed("5000", "4000")
        attempt = PaymentAttemptData(booking_id=1, method="cod", amount=Decimal("5000"))
        psm.submit_payment(ar, attempt)
        assert ar.state == S.COD_PENDING
        assert ar.cod_pending
        assert ar.collectible_amount == Decimal("5000.00")

        psm.collect_cod(ar, [attempt])
        assert ar.is_paid
        assert ar.state == S.PAID
        assert ar.collectible_amount == Decimal("0")
        assert attempt.status == "VERIFIED"

    def test_collect_requires_cod_pending(self):
        with pytest.raises(InvalidTransitionError):
            psm.collect_cod(_billed())

    def test_cod_attempt_is_not_verifiable(self):
        ar = _billed()
        attempt = PaymentAttemptData(booking_id=1, method="COD", amount=Decimal("8840"), id=5)
        psm.submit_payment(ar, attempt)
        with pytest.raises(InvalidTransitionError, match="only GCash attempts"):
            psm.verify(ar, attempt)


class TestGuards:
    def test_unknown_method(self):
        with pytest.raises(InvalidPaymentMethodError):
            psm.submit_payment(_billed(), PaymentAttemptData(booking_id=1, method="CHEQUE", amount=Decimal("1")))

    def test_payment_before_invoice(self):
        ar = ReceivableData(booking_id=1)
        psm.charges_changed(ar, Decimal("100"))
        with pytest.raises(InvalidTransitionError):
            psm.submit_payment(ar, PaymentAttemptData(booking_id=1, method="COD", amount=Decimal("1")))

    def test_paid_is_terminal(self):
        ar = _billed("100", "50")
        attempt = _gcash("100")
        psm.submit_payment(ar, attempt)
        psm.verify(ar, attempt)
        with pytest.raises(AlreadyPaidError):
            psm.send_payment(ar, "200")
        with pytest.raises(AlreadyPaidError):
            psm.submit_payment(ar, _gcash("1"))


class TestViewState:
    def test_gcash_pending_flags(self):
        ar = _billed()
        attempt = _gcash()
        psm.submit_payment(ar, attempt)
        view = psm.view_state(ar, attempt)
        assert view.is_gcash_pending_verification
        assert not view.is_cod_pending
        assert not view.is_fully_paid
        assert view.status_label == "Pending Verification"

    def test_cod_pending_flags(self):
        ar = _billed()
        psm.submit_payment(ar, PaymentAttemptData(booking_id=1, method="COD", amount=Decimal("8840")))
        view = psm.view_state(ar)
        assert view.is_cod_pending
        assert not view.is_gcash_pending_verification

    def test_paid_flags(self):
        ar = _billed()
        attempt = _gcash()
        psm.submit_payment(ar, attempt)
        psm.verify(ar, attempt)
        view = psm.view_state(ar, attempt)
        assert view.is_fully_paid
        assert not view.is_cod_pending
        assert not view.is_gcash_pending_verification
        assert view.status_label == "Paid"
