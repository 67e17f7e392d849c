from decimal import Decimal

import pytest

from ..dataclasses import PriceLine
from ..services import pricing_advisor
from ..services.errors import InvalidAmountError
from ..services.ledger import ChargeLedger


def test_scenario_b_suggest():
    assert pricing_advisor.suggest(Decimal("6800"), Decimal("0.30")) == Decimal("8840.00")


def test_suggest_zero_expenses():
    assert pricing_advisor.suggest(0, "0.50") == Decimal("0.00")


def test_suggest_uses_configured_default(settings):
    settings.BILLING = {"DEFAULT_MARKUP": "0.20"}
    assert pricing_advisor.default_markup() == Decimal("0.20")
    assert pricing_advisor.suggest("1000") == Decimal("1200.00")


def test_presets_fall_back_to_defaults(settings):
    settings.BILLING = {}
    assert pricing_advisor.markup_presets() == [Decimal("0.20"), Decimal("0.30"), Decimal("0.50")]


@pytest.mark.parametrize("expenses, ratio", [("-1", "0.3"), ("100", "-0.1"), ("abc", "0.3")])
def test_suggest_rejects_bad_input(expenses, ratio):
    with pytest.raises(InvalidAmountError):
        pricing_advisor.suggest(expenses, ratio)


class TestSuggestLines:
    def _ledger(self):
        ledger = ChargeLedger(booking_id=1)
        ledger.add_charge("FREIGHT", None, {"amount": "5000"})
        ledger.add_charge("TRUCKING", "ORIGIN", {"amount": "1000"})
        ledger.add_charge("PORT", "ARRASTRE_DEST", {"amount": "800"})
        ledger.add_charge("MISC", "REBATES", {"amount": "0"})
        return ledger

    def test_one_line_per_priced_charge(self):
        lines = pricing_advisor.suggest_lines(self._ledger(), "0.30")
        assert [line.description for line in lines] == [
            "Freight", "Trucking (Origin)", "Port Charges (Arrastre Dest)",
        ]
        assert lines[0].markup == Decimal("30.00")
        assert lines[0].markup_amount == Decimal("1500.00")
        assert lines[0].total == Decimal("6500.00")

    def test_lines_total_matches_suggest(self):
        lines = pricing_advisor.suggest_lines(self._ledger(), "0.30")
        assert pricing_advisor.lines_total(lines) == pricing_advisor.suggest("6800", "0.30")


class TestBreakdown:
    def test_saved_lines_win(self):
        saved = [PriceLine("Freight", Decimal("10"), Decimal("30"), Decimal("3"), Decimal("13"))]
        assert pricing_advisor.breakdown("13", "10", saved) == saved

    def test_fallback_expenses_plus_fee(self):
        lines = pricing_advisor.breakdown("8840", "6800")
        assert [line.description for line in lines] == ["Total Expenses", "Service Fee"]
        assert lines[1].total == Decimal("2040.00")
        assert lines[1].markup == Decimal("30.00")

    def test_nothing_billed(self):
        assert pricing_advisor.breakdown("0", "6800") == []
