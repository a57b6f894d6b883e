"""
Bilty record normalization.

Bills are built from two kinds of consignment records that name the same
facts differently: regular bilties and manually entered station bilties.
Each kind is mapped once, here, onto the common LineItem fields.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from charges import CHARGE_FIELDS, LineItem

REGULAR = 'regular'
STATION = 'station'

# LineItem field -> candidate record keys, first non-empty wins
FIELD_MAPS = {
    REGULAR: {
        'gr_no': ('gr_no',),
        'bilty_date': ('bilty_date', 'created_at'),
        'city': ('to_city_name', 'destination', 'city'),
        'packages': ('no_of_pkg', 'no_of_packages', 'packages'),
        'weight': ('wt', 'weight'),
        'pay_mode': ('payment_mode', 'pay_mode'),
        'consignor': ('consignor_name', 'consignor'),
        'consignee': ('consignee_name', 'consignee'),
        'contents': ('contain', 'contents'),
        'pvt_marks': ('pvt_marks',),
        'delivery_type': ('delivery_type',),
        'total_amount': ('total', 'grand_total', 'total_amount', 'amount'),
    },
    STATION: {
        'gr_no': ('gr_no',),
        'bilty_date': ('created_at', 'bilty_date'),
        'city': ('city_name', 'destination', 'station'),
        'packages': ('no_of_packets', 'packages'),
        'weight': ('weight', 'wt'),
        'pay_mode': ('payment_status', 'payment_mode'),
        'consignor': ('consignor',),
        'consignee': ('consignee',),
        'contents': ('contents',),
        'pvt_marks': ('pvt_marks',),
        'delivery_type': ('delivery_type',),
        'total_amount': ('amount', 'total', 'total_amount'),
    },
}

# Station bilties record manual entries as "manual"
TYPE_ALIASES = {
    'regular': REGULAR,
    'station': STATION,
    'manual': STATION,
}


def bilty_kind(value: Optional[str]) -> str:
    kind = TYPE_ALIASES.get(str(value or REGULAR).strip().lower())
    if kind is None:
        raise ValueError(f"Unknown bilty type: {value}")
    return kind


def _first(record: Mapping[str, Any], keys) -> Any:
    # Empty strings and zeros fall through to the next candidate
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return None


def normalize_bilty(record: Mapping[str, Any], kind: Optional[str] = None) -> LineItem:
    """Map a raw regular or station bilty record to a LineItem."""
    kind = bilty_kind(kind or record.get('bilty_type') or record.get('type'))
    values: Dict[str, Any] = {
        name: _first(record, keys) for name, keys in FIELD_MAPS[kind].items()
    }
    # Charge and rate fields share names across both kinds
    for name in list(CHARGE_FIELDS.values()) + ['rate', 'labour_rate']:
        values[name] = record.get(name)
    values['bilty_type'] = kind
    values['id'] = record.get('id')

    item = LineItem.from_record(values)
    logging.debug(f"Normalized {kind} bilty {item.gr_no or '?'} for {item.city or 'Unknown'}")
    return item
