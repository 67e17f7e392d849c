from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence

from ..conf import billing_setting
from ..constants import CHARGE_LABELS, ChargeKind
from ..dataclasses import PriceLine
from .errors import InvalidAmountError
from .utils import HUNDRED, ZERO, d, q2

logger = logging.getLogger(__name__)

DEFAULT_MARKUP = Decimal("0.30")
MARKUP_PRESETS = (Decimal("0.20"), Decimal("0.30"), Decimal("0.50"))


def _ratio(value, name: str) -> Decimal:
    try:
        ratio = d(value)
    except InvalidOperation:
        raise InvalidAmountError(f"Malformed {name}: {value!r}")
    if not ratio.is_finite() or ratio < ZERO:
        raise InvalidAmountError(f"{name} must be >= 0, got {value}")
    return ratio


def default_markup() -> Decimal:
    return d(billing_setting("DEFAULT_MARKUP", DEFAULT_MARKUP))


def markup_presets() -> List[Decimal]:
    return [d(p) for p in billing_setting("MARKUP_PRESETS", MARKUP_PRESETS)]


def suggest(total_expenses, markup_ratio=None) -> Decimal:
    """Suggested billed amount: expenses * (1 + markup). Zero expenses suggest zero."""
    expenses = _ratio(total_expenses, "total_expenses")
    ratio = _ratio(default_markup() if markup_ratio is None else markup_ratio, "markup_ratio")
    return q2(expenses * (Decimal("1") + ratio))


def _describe(charge) -> str:
    label = CHARGE_LABELS[ChargeKind(charge.kind)]
    if charge.subtype:
        return f"{label} ({charge.subtype.replace('_', ' ').title()})"
    return label


def suggest_lines(ledger, markup_ratio=None) -> List[PriceLine]:
    """One priced line per non-zero charge, each carrying the same markup."""
    ratio = _ratio(default_markup() if markup_ratio is None else markup_ratio, "markup_ratio")
    lines = []
    for charge in ledger.charges():
        if charge.amount <= ZERO:
            continue
        markup_amount = q2(charge.amount * ratio)
        lines.append(PriceLine(
            description=_describe(charge),
            kind=ChargeKind(charge.kind).value,
            subtype=charge.subtype,
            amount=charge.amount,
            markup=q2(ratio * HUNDRED),
            markup_amount=markup_amount,
            total=charge.amount + markup_amount,
        ))
    return lines


def lines_total(lines: Iterable[PriceLine]) -> Decimal:
    return sum((line.total for line in lines), ZERO)


def breakdown(total_payment, total_expenses, lines: Optional[Sequence[PriceLine]] = None) -> List[PriceLine]:
    """
    Lines explaining a billed amount.

    Saved lines win; otherwise the bill is split into expenses plus a service fee.
    Nothing billed yields no lines.
    """
    if lines:
        return list(lines)

    billed, expenses = d(total_payment), d(total_expenses)
    if billed <= ZERO or expenses <= ZERO:
        return []

    fee = q2(billed - expenses)
    return [
        PriceLine("Total Expenses", amount=q2(expenses), markup=ZERO, markup_amount=ZERO, total=q2(expenses)),
        PriceLine("Service Fee", amount=fee, markup=q2(fee / expenses * HUNDRED), markup_amount=fee, total=fee),
    ]
