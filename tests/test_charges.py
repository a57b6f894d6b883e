"""
Unit tests for the charge calculator.
"""

import pytest

from charges import CHARGE_FIELDS, LineItem, calculate_charges, recalculate_total
from rates import NO_RATE, ResolvedRate


@pytest.fixture
def typed_item():
    """Bilty with hand-entered charges and a hand-entered total."""
    return LineItem(
        gr_no='GR9', city='Agra', packages=4, weight=60.0,
        freight_amount=400, labour_charge=40, bill_charge=10, toll_charge=15,
        dd_charge=25, pf_charge=12, other_charge=5, total_amount=999,
    )


class TestLineItemFromRecord:

    def test_lenient_numbers(self):
        item = LineItem.from_record({'gr_no': 'X1', 'packages': '3.9', 'weight': 'heavy',
                                     'freight_amount': '1,250.50', 'total_amount': None})
        assert item.packages == 3
        assert item.weight == 0.0
        assert item.freight_amount == 1250.5
        assert item.total_amount == 0.0

    def test_text_defaults(self):
        item = LineItem.from_record({})
        assert item.city == ''
        assert item.bilty_type == 'regular'
        assert item.bilty_date is None

    def test_round_trip_through_record(self, typed_item):
        assert LineItem.from_record(typed_item.to_record()) == typed_item


class TestCalculateCharges:

    def test_total_is_sum_of_seven_charges_when_touched(self, typed_item):
        updated = calculate_charges(typed_item, {'freight': ResolvedRate(100, 0, 0)})
        assert updated.freight_amount == 400
        assert updated.total_amount == pytest.approx(
            sum(getattr(updated, name) for name in CHARGE_FIELDS.values())
        )
        assert updated.total_amount == pytest.approx(507)

    def test_untargeted_categories_keep_typed_values(self, typed_item):
        updated = calculate_charges(typed_item, {'labour': ResolvedRate(0, 2, 0)})
        assert updated.labour_charge == 120
        assert updated.freight_amount == 400
        assert updated.dd_charge == 25

    def test_zero_rates_leave_item_unchanged(self, typed_item):
        resolved = {category: NO_RATE for category in ('freight', 'labour', 'bill', 'toll', 'pf')}
        assert calculate_charges(typed_item, resolved) == typed_item

    def test_total_preserved_when_nothing_touched(self, typed_item):
        assert calculate_charges(typed_item, {}).total_amount == 999

    def test_flat_rate_per_bilty(self, typed_item):
        updated = calculate_charges(typed_item, {'bill': ResolvedRate(0, 0, 30)})
        assert updated.bill_charge == 30

    def test_pf_combines_all_bases(self, typed_item):
        updated = calculate_charges(typed_item, {'pf': ResolvedRate(1, 0.5, 10)})
        assert updated.pf_charge == pytest.approx(4 + 30 + 10)

    def test_excluded_pf_is_stored_but_not_totalled(self, typed_item):
        updated = calculate_charges(
            typed_item,
            {'freight': ResolvedRate(100, 0, 0), 'pf': ResolvedRate(0, 0, 50)},
            include_pf=False,
        )
        assert updated.pf_charge == 50
        assert updated.total_amount == pytest.approx(400 + 40 + 10 + 15 + 25 + 5)

    def test_excluded_pf_alone_keeps_total(self, typed_item):
        updated = calculate_charges(typed_item, {'pf': ResolvedRate(0, 0, 50)}, include_pf=False)
        assert updated.pf_charge == 50
        assert updated.total_amount == 999

    def test_unit_rates_follow_resolved_rate(self, typed_item):
        updated = calculate_charges(typed_item, {
            'freight': ResolvedRate(0, 7, 0),
            'labour': ResolvedRate(3, 0, 0),
        })
        assert updated.rate == 7
        assert updated.labour_rate == 3

    def test_amounts_rounded_to_cents(self):
        item = LineItem(packages=3, weight=0.333)
        updated = calculate_charges(item, {'freight': ResolvedRate(0, 10, 0)})
        assert updated.freight_amount == 3.33

    def test_input_not_mutated(self, typed_item):
        before = typed_item.to_record()
        calculate_charges(typed_item, {'freight': ResolvedRate(1, 0, 0)})
        assert typed_item.to_record() == before


class TestRecalculateTotal:

    def test_includes_pf_by_default(self, typed_item):
        assert recalculate_total(typed_item).total_amount == pytest.approx(507)

    def test_can_exclude_pf(self, typed_item):
        assert recalculate_total(typed_item, include_pf=False).total_amount == pytest.approx(495)
