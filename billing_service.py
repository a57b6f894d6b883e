"""
Bill persistence.

Service functions return a BillingResult instead of raising, so each caller
chooses how to report failures. All writes of one operation are committed
as a single transaction; on error the session is rolled back.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from bill_totals import (EXTRA_CHARGES_KEY, OVERRIDE_KEY, PREVIOUS_BALANCE_KEY,
                         aggregate, extra_charges, parse_total_override)
from bilties import normalize_bilty
from bulk_rates import apply_bulk_rates
from charges import CHARGE_FIELDS, recalculate_total
from database import db
from models import Bill, BillItem
from rates import RateConfig, to_flag, to_float

BULK_RATES_KEY = 'bulkRates'

NOT_FOUND = 'not_found'
INVALID = 'invalid'
PERSISTENCE = 'persistence'

EDITABLE_FIELDS = ('rate', 'labour_rate') + tuple(CHARGE_FIELDS.values())


@dataclass
class BillingResult:
    ok: bool
    data: Any = None
    error_kind: Optional[str] = None
    message: str = ''

    @classmethod
    def success(cls, data=None):
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error_kind, message):
        return cls(ok=False, error_kind=error_kind, message=message)


def _commit(action):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error {action}: {str(e)}")
        return BillingResult.failure(PERSISTENCE, f"Could not save changes while {action}")
    return None


def _parse_date(value):
    if not value:
        return None
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()


def get_bill(bill_id):
    bill = db.session.get(Bill, bill_id)
    if bill is None:
        return BillingResult.failure(NOT_FOUND, f"Bill {bill_id} not found")
    return BillingResult.success(bill)


def bill_totals(bill):
    return aggregate(bill.line_items(), bill.get_metadata())


def create_bill(data: Mapping[str, Any]):
    """Create a bill and its items from raw regular/station bilty records."""
    bill_number = str(data.get('bill_number') or '').strip()
    party_name = str(data.get('party_name') or '').strip()
    if not bill_number or not party_name:
        return BillingResult.failure(INVALID, 'Bill number and party name are required')
    if Bill.query.filter_by(bill_number=bill_number).first():
        return BillingResult.failure(INVALID, f"Bill number {bill_number} already exists")

    records = data.get('bilties') or []
    try:
        items = [normalize_bilty(record) for record in records]
        bill = Bill(
            bill_number=bill_number,
            party_name=party_name,
            billing_type=data.get('billing_type') or 'monthly',
            bill_date=_parse_date(data.get('bill_date')) or datetime.utcnow().date(),
            period_start=_parse_date(data.get('period_start')),
            period_end=_parse_date(data.get('period_end')),
            bill_metadata={},
        )
    except (ValueError, AttributeError) as e:
        return BillingResult.failure(INVALID, str(e))

    for item in items:
        bill.items.append(BillItem.from_line_item(item))
    db.session.add(bill)

    error = _commit('creating bill')
    if error:
        return error
    logging.info(f"Created bill {bill.bill_number} for {bill.party_name} with {len(items)} bilties")
    return BillingResult.success(bill)


def saved_rate_config(bill):
    """The RateConfig last applied to this bill, or an empty one."""
    saved = bill.get_metadata().get(BULK_RATES_KEY) or {}
    return RateConfig.from_snapshot(saved.get('config'))


def preview_bulk_rates(bill_id, config: RateConfig):
    result = get_bill(bill_id)
    if not result.ok:
        return result
    bill = result.data
    items = apply_bulk_rates(bill.line_items(), config)
    return BillingResult.success({
        'items': items,
        'totals': aggregate(items, bill.get_metadata()),
    })


def apply_bulk_rates_to_bill(bill_id, config: RateConfig):
    """
    Apply a rate configuration to every item of a bill and save it.

    Items and the configuration snapshot are written in one transaction,
    so a failure leaves the stored bill as it was.
    """
    result = get_bill(bill_id)
    if not result.ok:
        return result
    bill = result.data

    updated = apply_bulk_rates(bill.line_items(), config)
    for bill_item, item in zip(bill.items, updated):
        bill_item.apply_line_item(item)
    bill.update_metadata(**{BULK_RATES_KEY: {
        'config': config.to_snapshot(),
        'appliedAt': datetime.utcnow().isoformat(),
    }})

    error = _commit(f"applying bulk rates to bill {bill.bill_number}")
    if error:
        return error
    return BillingResult.success({
        'items': updated,
        'totals': bill_totals(bill),
    })


def copy_bulk_rates(bill_id, source_bill_id):
    """Apply the rates saved on another bill to this one."""
    source = get_bill(source_bill_id)
    if not source.ok:
        return source
    if not source.data.get_metadata().get(BULK_RATES_KEY):
        return BillingResult.failure(INVALID, f"Bill {source.data.bill_number} has no saved bulk rates")
    logging.info(f"Copying bulk rates from bill {source.data.bill_number} to bill {bill_id}")
    return apply_bulk_rates_to_bill(bill_id, saved_rate_config(source.data))


def rate_sources(bill_id, limit=50):
    """Other bills of the same party that carry saved bulk rates, newest first."""
    result = get_bill(bill_id)
    if not result.ok:
        return result
    bill = result.data
    candidates = Bill.query.filter(Bill.id != bill.id, Bill.party_name == bill.party_name)\
        .order_by(Bill.bill_date.desc(), Bill.id.desc()).all()
    # Saved rates live in the JSON metadata, so filter before limiting
    sources = [b for b in candidates if b.get_metadata().get(BULK_RATES_KEY)]
    return BillingResult.success(sources[:limit])


def _find_item(bill, item_id):
    for bill_item in bill.items:
        if bill_item.id == item_id:
            return bill_item
    return None


def update_bill_item(bill_id, item_id, changes: Mapping[str, Any], include_pf=None):
    """
    Edit rates/charges of one item; the total is recomputed from its charges.

    PF counts towards the total as the last applied bulk rates say, unless
    `include_pf` is given.
    """
    result = get_bill(bill_id)
    if not result.ok:
        return result
    bill_item = _find_item(result.data, item_id)
    if bill_item is None:
        return BillingResult.failure(NOT_FOUND, f"Item {item_id} not found on bill {bill_id}")

    values = {name: to_float(changes[name]) for name in EDITABLE_FIELDS if name in changes}
    negative = sorted(name for name, value in values.items() if value < 0)
    if negative:
        return BillingResult.failure(INVALID, f"Values must not be negative: {', '.join(negative)}")

    include_pf = to_flag(include_pf, saved_rate_config(result.data).include_pf_in_total)
    item = recalculate_total(replace(bill_item.to_line_item(), **values), include_pf)
    bill_item.apply_line_item(item)

    error = _commit(f"updating item {item_id}")
    if error:
        return error
    return BillingResult.success(item)


def remove_bill_item(bill_id, item_id):
    result = get_bill(bill_id)
    if not result.ok:
        return result
    bill_item = _find_item(result.data, item_id)
    if bill_item is None:
        return BillingResult.failure(NOT_FOUND, f"Item {item_id} not found on bill {bill_id}")
    result.data.items.remove(bill_item)

    error = _commit(f"removing item {item_id}")
    if error:
        return error
    return BillingResult.success(bill_totals(result.data))


def set_total_override(bill_id, raw_value):
    result = get_bill(bill_id)
    if not result.ok:
        return result
    bill = result.data
    bill.update_metadata(**{OVERRIDE_KEY: parse_total_override(raw_value)})

    error = _commit(f"setting total override on bill {bill.bill_number}")
    if error:
        return error
    return BillingResult.success(bill_totals(bill))


def update_bill_metadata(bill_id, data: Mapping[str, Any]):
    """Update previous balance and extra charges; other keys are ignored."""
    result = get_bill(bill_id)
    if not result.ok:
        return result
    bill = result.data

    changes = {}
    if PREVIOUS_BALANCE_KEY in data:
        changes[PREVIOUS_BALANCE_KEY] = to_float(data.get(PREVIOUS_BALANCE_KEY))
    if EXTRA_CHARGES_KEY in data:
        if not isinstance(data.get(EXTRA_CHARGES_KEY) or [], list):
            return BillingResult.failure(INVALID, 'extraCharges must be a list')
        changes[EXTRA_CHARGES_KEY] = extra_charges(data)
    bill.update_metadata(**changes)

    error = _commit(f"updating metadata of bill {bill.bill_number}")
    if error:
        return error
    return BillingResult.success(bill_totals(bill))
