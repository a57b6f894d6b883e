from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional

from rates import CATEGORIES, ResolvedRate, to_float, to_int

# Charge category -> line item field
CHARGE_FIELDS = {
    'freight': 'freight_amount',
    'labour': 'labour_charge',
    'bill': 'bill_charge',
    'toll': 'toll_charge',
    'dd': 'dd_charge',
    'pf': 'pf_charge',
    'other': 'other_charge',
}

# Per-unit rate kept on the item for categories priced by quantity
UNIT_RATE_FIELDS = {
    'freight': 'rate',
    'labour': 'labour_rate',
}

NUMERIC_FIELDS = ('rate', 'labour_rate', 'total_amount') + tuple(CHARGE_FIELDS.values())
TEXT_FIELDS = ('gr_no', 'city', 'pay_mode', 'consignor', 'consignee', 'contents',
               'pvt_marks', 'delivery_type')


@dataclass(frozen=True)
class LineItem:
    """One bilty on a bill, with its charges."""

    gr_no: str = ''
    city: str = ''
    packages: int = 0
    weight: float = 0.0
    pay_mode: str = ''
    rate: float = 0.0
    labour_rate: float = 0.0
    freight_amount: float = 0.0
    labour_charge: float = 0.0
    bill_charge: float = 0.0
    toll_charge: float = 0.0
    dd_charge: float = 0.0
    pf_charge: float = 0.0
    other_charge: float = 0.0
    total_amount: float = 0.0
    id: Optional[int] = None
    bilty_type: str = 'regular'
    bilty_date: Optional[str] = None
    consignor: str = ''
    consignee: str = ''
    contents: str = ''
    pvt_marks: str = ''
    delivery_type: str = ''

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'LineItem':
        values = {name: to_float(record.get(name)) for name in NUMERIC_FIELDS}
        values.update({name: str(record.get(name) or '') for name in TEXT_FIELDS})
        bilty_date = record.get('bilty_date')
        return cls(
            packages=to_int(record.get('packages')),
            weight=to_float(record.get('weight')),
            id=record.get('id'),
            bilty_type=str(record.get('bilty_type') or 'regular').lower(),
            bilty_date=str(bilty_date) if bilty_date else None,
            **values
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    def charge(self, category: str) -> float:
        return getattr(self, CHARGE_FIELDS[category])

    def charges_sum(self, include_pf: bool = True) -> float:
        return round(sum(
            self.charge(category)
            for category in CHARGE_FIELDS
            if include_pf or category != 'pf'
        ), 2)


def calculate_charges(item: LineItem, resolved: Mapping[str, ResolvedRate],
                      include_pf: bool = True) -> LineItem:
    """
    Apply resolved rates to one line item and return the updated copy.

    Only categories with a positive resolved rate are overwritten, so figures
    typed in by hand survive a pass that targets other categories. The total
    is recomputed only when a category that counts towards it changed.
    """
    changes = {}
    total_touched = False

    for category in CATEGORIES:
        rates = resolved.get(category)
        if rates is None or not rates.is_set:
            continue

        changes[CHARGE_FIELDS[category]] = rates.amount(item.packages, item.weight)
        if category in UNIT_RATE_FIELDS and rates.unit_rate > 0:
            changes[UNIT_RATE_FIELDS[category]] = rates.unit_rate

        # PF is stored either way but only counts when included
        if category != 'pf' or include_pf:
            total_touched = True

    if not changes:
        return replace(item)

    updated = replace(item, **changes)
    if total_touched:
        updated = replace(updated, total_amount=updated.charges_sum(include_pf))
    return updated


def recalculate_total(item: LineItem, include_pf: bool = True) -> LineItem:
    return replace(item, total_amount=item.charges_sum(include_pf))
