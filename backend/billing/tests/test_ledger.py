"""
Unit tests for the charge ledger: subtype uniqueness, dedupe on load,
totals and settlement flags.
"""

from decimal import Decimal

import pytest

from ..constants import ChargeKind
from ..dataclasses import ChargeData
from ..services.errors import (
    DuplicateSubtypeError,
    InvalidAmountError,
    InvalidChargeError,
    NotFoundError,
)
from ..services.ledger import ChargeLedger, parse_amount


def _scenario_a():
    ledger = ChargeLedger(booking_id=1)
    ledger.add_charge("FREIGHT", None, {"amount": "5000"})
    ledger.add_charge("TRUCKING", "ORIGIN", {"amount": "1000", "payee": "Trucker A"})
    ledger.add_charge("TRUCKING", "DESTINATION", {"amount": "800"})
    return ledger


class TestAddCharge:
    """Adding charges to a booking ledger"""

    def test_total_expenses_scenario_a(self):
        ledger = _scenario_a()
        assert ledger.total_expenses() == Decimal("6800.00")
        assert len(ledger) == 3

    def test_duplicate_subtype_rejected(self):
        ledger = _scenario_a()
        with pytest.raises(DuplicateSubtypeError, match="TRUCKING charge with subtype ORIGIN"):
            ledger.add_charge("TRUCKING", "origin", {"amount": "50"})
        assert ledger.total_expenses() == Decimal("6800.00")

    def test_same_subtype_allowed_across_kinds(self):
        ledger = ChargeLedger(booking_id=1)
        ledger.add_charge(ChargeKind.PORT, "ARRASTRE_ORIGIN", {"amount": "10"})
        ledger.add_charge(ChargeKind.PORT, "ARRASTRE_DEST", {"amount": "20"})
        ledger.add_charge(ChargeKind.MISC, "STORAGE", {"amount": "30"})
        assert ledger.total_expenses() == Decimal("60.00")

    def test_freight_is_replaced_not_duplicated(self):
        ledger = ChargeLedger(booking_id=1)
        first = ledger.add_charge("FREIGHT", None, {"amount": "5000"})
        first.id = 11
        second = ledger.add_charge("freight", None, {"amount": "5500"})
        assert ledger.freight is second
        assert second.id == 11
        assert ledger.total_expenses() == Decimal("5500.00")

    def test_freight_ignores_subtype(self):
        ledger = ChargeLedger(booking_id=1)
        charge = ledger.add_charge("FREIGHT", "ANYTHING", {"amount": "1"})
        assert charge.subtype is None

    def test_unknown_kind(self):
        with pytest.raises(InvalidChargeError, match="Unknown charge kind"):
            ChargeLedger(1).add_charge("CUSTOMS", None, {"amount": "1"})

    def test_unknown_subtype(self):
        with pytest.raises(InvalidChargeError, match="Unknown TRUCKING subtype"):
            ChargeLedger(1).add_charge("TRUCKING", "MIDWAY", {"amount": "1"})

    def test_missing_subtype(self):
        with pytest.raises(InvalidChargeError):
            ChargeLedger(1).add_charge("PORT", None, {"amount": "1"})

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidAmountError, match=">= 0"):
            ChargeLedger(1).add_charge("MISC", "DENR", {"amount": "-5"})

    def test_zero_amount_allowed(self):
        ledger = ChargeLedger(1)
        ledger.add_charge("MISC", "REBATES", {"amount": "0"})
        assert ledger.total_expenses() == Decimal("0")
        assert not ledger.is_empty()

    def test_voucher_number_alias(self):
        charge = ChargeLedger(1).add_charge("MISC", "STORAGE", {"amount": "5", "voucher_number": "V-9"})
        assert charge.voucher == "V-9"


class TestParseAmount:
    def test_rounds_half_up(self):
        assert parse_amount("10.005") == Decimal("10.01")

    def test_empty_is_zero(self):
        assert parse_amount("") == Decimal("0.00")

    def test_malformed(self):
        with pytest.raises(InvalidAmountError, match="Malformed amount"):
            parse_amount("ten")


class TestDedupe:
    """Duplicates coming back from storage keep the first record"""

    def test_scenario_f_two_trucking_origin(self):
        raw = [
            {"type": "ORIGIN", "amount": "1000"},
            {"type": "ORIGIN", "amount": "1200"},
        ]
        kept = ChargeLedger.dedupe(raw, "type")
        assert kept == [{"type": "ORIGIN", "amount": "1000"}]

    def test_idempotent(self):
        raw = [
            {"charge_type": "CRAINAGE"},
            {"charge_type": "crainage"},
            {"charge_type": "WHARFAGE_DEST"},
            {"charge_type": "WHARFAGE_DEST"},
        ]
        once = ChargeLedger.dedupe(raw, "charge_type")
        assert ChargeLedger.dedupe(once, "charge_type") == once
        assert [r["charge_type"] for r in once] == ["CRAINAGE", "WHARFAGE_DEST"]

    def test_from_charges_drops_duplicates(self):
        charges = [
            ChargeData(ChargeKind.TRUCKING, "ORIGIN", Decimal("1000"), id=1),
            ChargeData(ChargeKind.TRUCKING, "ORIGIN", Decimal("1200"), id=2),
            ChargeData(ChargeKind.FREIGHT, None, Decimal("5000"), id=3),
        ]
        ledger = ChargeLedger.from_charges(7, charges)
        assert [c.id for c in ledger.trucking] == [1]
        assert ledger.total_expenses() == Decimal("6000")

    def test_from_payload_record_shape(self):
        payload = {
            "freight_charge": {"amount": "5000", "payee": "Lines Inc", "voucher_number": "FV-1"},
            "trucking_charges": [
                {"type": "ORIGIN", "amount": "1000"},
                {"type": "ORIGIN", "amount": "999"},
                {"type": "DESTINATION", "amount": "800"},
            ],
            "port_charges": [{"charge_type": "CRAINAGE", "amount": "150.50"}],
            "misc_charges": [],
        }
        ledger = ChargeLedger.from_payload(3, payload)
        assert ledger.freight.voucher == "FV-1"
        assert ledger.total_expenses() == Decimal("6950.50")
        assert ledger.keys() == [
            (ChargeKind.FREIGHT, None),
            (ChargeKind.TRUCKING, "ORIGIN"),
            (ChargeKind.TRUCKING, "DESTINATION"),
            (ChargeKind.PORT, "CRAINAGE"),
        ]

    def test_from_payload_skips_zero_freight(self):
        ledger = ChargeLedger.from_payload(3, {"freight_charge": {"amount": "0"}})
        assert ledger.freight is None
        assert ledger.is_empty()


class TestSettlement:
    def test_total_includes_paid_charges(self):
        ledger = _scenario_a()
        ledger.set_paid("TRUCKING", "ORIGIN", True, voucher="CV-1", check_date="2025-03-01")
        assert ledger.total_expenses() == Decimal("6800.00")
        assert ledger.unpaid_total() == Decimal("5800.00")
        assert ledger.unpaid_count() == 2

    def test_set_paid_is_idempotent(self):
        ledger = _scenario_a()
        first = ledger.set_paid("FREIGHT", None, True)
        again = ledger.set_paid("FREIGHT", None, True)
        assert first is again
        assert again.is_paid

    def test_set_paid_missing_charge(self):
        with pytest.raises(NotFoundError, match="No PORT CRAINAGE charge"):
            _scenario_a().set_paid("PORT", "CRAINAGE", True)

    def test_remove_and_clear(self):
        ledger = _scenario_a()
        removed = ledger.remove_charge("TRUCKING", "DESTINATION")
        assert removed.amount == Decimal("800.00")
        assert ledger.remove_charge("TRUCKING", "DESTINATION") is None
        ledger.clear()
        assert ledger.is_empty()
        assert ledger.total_expenses() == Decimal("0")
