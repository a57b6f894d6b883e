"""
Bill totals.

Totals are derived on demand from the current line items and the bill
metadata; they are never stored.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from charges import LineItem
from rates import to_float

OVERRIDE_KEY = 'totalAmountOverride'
EXTRA_CHARGES_KEY = 'extraCharges'
PREVIOUS_BALANCE_KEY = 'previousBalance'

PAID = 'paid'
TO_PAY = 'to-pay'


@dataclass
class Totals:
    freight: float = 0.0
    labour: float = 0.0
    bill_charge: float = 0.0
    toll: float = 0.0
    dd: float = 0.0
    pf: float = 0.0
    other: float = 0.0
    packages: int = 0
    weight: float = 0.0
    paid: float = 0.0
    to_pay: float = 0.0
    items_total: float = 0.0
    other_charges: float = 0.0
    extra_charges: List[Dict[str, Any]] = field(default_factory=list)
    computed_total: float = 0.0
    total: float = 0.0
    is_overridden: bool = False
    previous_balance: float = 0.0
    balance_due: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_total_override(value: Any) -> Optional[float]:
    """Map the manual total input to metadata; a cleared field becomes None, not 0."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return to_float(value)


def extra_charges(metadata: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Named extra charges from bill metadata, amounts parsed leniently."""
    entries = (metadata or {}).get(EXTRA_CHARGES_KEY) or []
    if not isinstance(entries, list):
        return []
    charges = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        charges.append({
            'name': str(entry.get('name') or 'Other'),
            'amount': to_float(entry.get('amount')),
        })
    return charges


def aggregate(items: Iterable[LineItem], metadata: Optional[Mapping[str, Any]] = None) -> Totals:
    """
    Reduce line items and bill metadata into Totals.

    A `totalAmountOverride` in metadata replaces the grand total outright;
    every sub-total stays computed from the items.
    """
    metadata = metadata or {}
    totals = Totals()

    for item in items:
        totals.freight += item.freight_amount
        totals.labour += item.labour_charge
        totals.bill_charge += item.bill_charge
        totals.toll += item.toll_charge
        totals.dd += item.dd_charge
        totals.pf += item.pf_charge
        totals.other += item.other_charge
        totals.items_total += item.total_amount
        totals.packages += item.packages
        totals.weight += item.weight

        pay_mode = (item.pay_mode or '').strip().lower()
        if pay_mode == PAID:
            totals.paid += item.total_amount
        elif pay_mode == TO_PAY:
            totals.to_pay += item.total_amount

    totals.extra_charges = extra_charges(metadata)
    totals.other_charges = sum(charge['amount'] for charge in totals.extra_charges)
    totals.computed_total = totals.items_total + totals.other_charges

    override = metadata.get(OVERRIDE_KEY)
    if override is not None:
        totals.total = to_float(override)
        totals.is_overridden = True
    else:
        totals.total = totals.computed_total

    totals.previous_balance = to_float(metadata.get(PREVIOUS_BALANCE_KEY))
    totals.balance_due = totals.total + totals.previous_balance

    for name in ('freight', 'labour', 'bill_charge', 'toll', 'dd', 'pf', 'other', 'paid',
                 'to_pay', 'items_total', 'other_charges', 'computed_total', 'total',
                 'previous_balance', 'balance_due'):
        setattr(totals, name, round(getattr(totals, name), 2))
    totals.weight = round(totals.weight, 3)
    return totals
