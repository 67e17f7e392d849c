"""
Charge ledger (Accounts Payable) for a single booking.

Holds one optional FREIGHT charge and ordered TRUCKING, PORT and MISC
collections. At most one charge per (kind, subtype) is active; duplicates
coming back from storage are dropped by `dedupe`, keeping the first one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..constants import CHARGE_SUBTYPES, SUBTYPE_FIELDS, ChargeKind
from ..dataclasses import ChargeData
from .errors import DuplicateSubtypeError, InvalidAmountError, InvalidChargeError, NotFoundError
from .utils import ZERO, as_date, d, q2

logger = logging.getLogger(__name__)

CHARGE_FIELDS = ("amount", "payee", "check_date", "voucher", "is_paid", "id")


def normalize_kind(kind) -> ChargeKind:
    try:
        return ChargeKind(str(getattr(kind, "value", kind)).upper())
    except ValueError:
        raise InvalidChargeError(f"Unknown charge kind: {kind}", kind=kind)


def normalize_subtype(kind: ChargeKind, subtype: Optional[str]) -> Optional[str]:
    if kind == ChargeKind.FREIGHT:
        return None
    value = (subtype or "").strip().upper()
    if value not in CHARGE_SUBTYPES[kind]:
        raise InvalidChargeError(
            f"Unknown {kind.value} subtype: {subtype!r}",
            kind=kind.value, subtype=subtype,
        )
    return value


def parse_amount(value) -> Decimal:
    """Validate a non-negative charge amount."""
    try:
        amount = d(value)
    except InvalidOperation:
        raise InvalidAmountError(f"Malformed amount: {value!r}", amount=value)
    if not amount.is_finite() or amount < ZERO:
        raise InvalidAmountError(f"Charge amount must be >= 0, got {value}", amount=value)
    return q2(amount)


def _field(raw, name: str, default=None):
    if isinstance(raw, Mapping):
        return raw.get(name, default)
    return getattr(raw, name, default)


class ChargeLedger:
    def __init__(self, booking_id: Optional[int] = None):
        self.booking_id = booking_id
        self.freight: Optional[ChargeData] = None
        self.trucking: List[ChargeData] = []
        self.port: List[ChargeData] = []
        self.misc: List[ChargeData] = []

    # ------------------------------------------------------------------
    # Rehydration
    # ------------------------------------------------------------------

    @staticmethod
    def dedupe(raw_charges: Iterable[Any], subtype_field: str) -> List[Any]:
        """
        Keep only the first charge per subtype value.

        Args:
            raw_charges: Charge records (mappings or objects) in storage order
            subtype_field: Name of the attribute/key carrying the subtype

        Returns:
            List[Any]: The surviving records, order preserved
        """
        seen = set()
        kept = []
        for raw in raw_charges or []:
            value = _field(raw, subtype_field)
            if isinstance(value, str):
                value = value.upper()
            if value in seen:
                logger.debug("Dropping duplicate charge with %s=%s", subtype_field, value)
                continue
            seen.add(value)
            kept.append(raw)
        return kept

    @classmethod
    def from_charges(cls, booking_id: Optional[int], charges: Iterable[ChargeData]) -> "ChargeLedger":
        """Build a ledger from stored charges, dropping duplicate subtypes."""
        ledger = cls(booking_id)
        grouped: Dict[ChargeKind, List[ChargeData]] = {kind: [] for kind in ChargeKind}
        for charge in charges:
            grouped[normalize_kind(charge.kind)].append(charge)

        freight = grouped[ChargeKind.FREIGHT]
        ledger.freight = freight[0] if freight else None
        ledger.trucking = cls.dedupe(grouped[ChargeKind.TRUCKING], "subtype")
        ledger.port = cls.dedupe(grouped[ChargeKind.PORT], "subtype")
        ledger.misc = cls.dedupe(grouped[ChargeKind.MISC], "subtype")
        return ledger

    @classmethod
    def from_payload(cls, booking_id: Optional[int], payload: Mapping) -> "ChargeLedger":
        """
        Build a ledger from the accounts-payable record shape:
        ``freight_charge``, ``trucking_charges``, ``port_charges``, ``misc_charges``.
        """
        ledger = cls(booking_id)
        freight = payload.get("freight_charge")
        if freight and d(_field(freight, "amount", 0)) > ZERO:
            ledger.add_charge(ChargeKind.FREIGHT, None, dict(freight))

        sources = (
            (ChargeKind.TRUCKING, payload.get("trucking_charges")),
            (ChargeKind.PORT, payload.get("port_charges")),
            (ChargeKind.MISC, payload.get("misc_charges")),
        )
        for kind, raw_list in sources:
            subtype_field = SUBTYPE_FIELDS[kind]
            for raw in cls.dedupe(raw_list or [], subtype_field):
                ledger.add_charge(kind, _field(raw, subtype_field), dict(raw))
        return ledger

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _bucket(self, kind: ChargeKind) -> List[ChargeData]:
        return {
            ChargeKind.TRUCKING: self.trucking,
            ChargeKind.PORT: self.port,
            ChargeKind.MISC: self.misc,
        }[kind]

    def find(self, kind, subtype: Optional[str] = None) -> Optional[ChargeData]:
        kind = normalize_kind(kind)
        if kind == ChargeKind.FREIGHT:
            return self.freight
        subtype = normalize_subtype(kind, subtype)
        return next((c for c in self._bucket(kind) if c.subtype == subtype), None)

    def get(self, kind, subtype: Optional[str] = None) -> ChargeData:
        charge = self.find(kind, subtype)
        if charge is None:
            kind = normalize_kind(kind)
            label = f"{kind.value} {subtype}" if subtype else kind.value
            raise NotFoundError(
                f"No {label} charge on booking {self.booking_id}",
                booking_id=self.booking_id, kind=kind.value, subtype=subtype,
            )
        return charge

    def add_charge(self, kind, subtype: Optional[str] = None, fields: Optional[Mapping] = None) -> ChargeData:
        """
        Add a charge to the ledger.

        FREIGHT is a singleton: a second call replaces the existing charge.

        Raises:
            DuplicateSubtypeError: If TRUCKING/PORT/MISC already holds that subtype
            InvalidChargeError: For unknown kinds or subtypes
            InvalidAmountError: For negative or malformed amounts
        """
        kind = normalize_kind(kind)
        subtype = normalize_subtype(kind, subtype)
        fields = dict(fields or {})

        charge = ChargeData(
            kind=kind,
            subtype=subtype,
            amount=parse_amount(fields.get("amount", 0)),
            payee=fields.get("payee") or None,
            check_date=as_date(fields.get("check_date")),
            voucher=fields.get("voucher") or fields.get("voucher_number") or None,
            is_paid=bool(fields.get("is_paid", False)),
            id=fields.get("id"),
        )

        if kind == ChargeKind.FREIGHT:
            if self.freight is not None:
                logger.info("Replacing freight charge on booking %s", self.booking_id)
                charge.id = charge.id or self.freight.id
            self.freight = charge
            return charge

        if self.find(kind, subtype) is not None:
            raise DuplicateSubtypeError(kind.value, subtype, booking_id=self.booking_id)
        self._bucket(kind).append(charge)
        return charge

    def remove_charge(self, kind, subtype: Optional[str] = None) -> Optional[ChargeData]:
        """Remove a charge; returns the removed charge or None when absent."""
        kind = normalize_kind(kind)
        if kind == ChargeKind.FREIGHT:
            removed, self.freight = self.freight, None
            return removed
        charge = self.find(kind, subtype)
        if charge is not None:
            self._bucket(kind).remove(charge)
        return charge

    def set_paid(self, kind, subtype: Optional[str], paid: bool,
                 voucher: Optional[str] = None, check_date=None) -> ChargeData:
        """Toggle settlement of one charge. Setting the same value twice is a no-op."""
        charge = self.get(kind, subtype)
        charge.is_paid = bool(paid)
        if voucher:
            charge.voucher = voucher
        if check_date:
            charge.check_date = as_date(check_date)
        return charge

    def clear(self) -> None:
        self.freight = None
        self.trucking.clear()
        self.port.clear()
        self.misc.clear()

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def charges(self) -> List[ChargeData]:
        result = [self.freight] if self.freight is not None else []
        return result + self.trucking + self.port + self.misc

    def unpaid_charges(self) -> List[ChargeData]:
        return [c for c in self.charges() if not c.is_paid]

    def total_expenses(self) -> Decimal:
        return sum((c.amount for c in self.charges()), ZERO)

    def unpaid_total(self) -> Decimal:
        return sum((c.amount for c in self.unpaid_charges()), ZERO)

    def unpaid_count(self) -> int:
        return len(self.unpaid_charges())

    def keys(self) -> List[Tuple[ChargeKind, Optional[str]]]:
        return [c.key for c in self.charges()]

    def is_empty(self) -> bool:
        return not self.charges()

    def __len__(self) -> int:
        return len(self.charges())
