"""
Tests for bill statement formatting and PDF rendering.
"""

import pytest

from bill_totals import aggregate
from charges import LineItem
from utils import (AVAILABLE_COLUMNS, build_column_config, format_currency, format_date,
                   generate_bill_pdf, generate_city_summary_pdf, short_pay_mode)


class FakeBill:
    bill_number = 'MB-7'
    party_name = 'Gupta & Sons <Agra>'
    billing_type = 'monthly'
    bill_date = '2024-04-30'
    period_start = '2024-04-01'
    period_end = '2024-04-30'


class FakeCompany:
    company_name = 'Test Transport'
    company_address = 'G.T. Road & Bypass, Aligarh'
    company_phone = '0571 000000'
    gst_number = '09ABCDE1234F1Z5'
    signatory_name = 'R. Singh'


@pytest.fixture
def many_items():
    return [
        LineItem(gr_no=f'GR{i}', city='Delhi' if i % 2 else 'Jaipur', packages=i, weight=i * 2.5,
                 pay_mode='paid' if i % 3 else 'to-pay', freight_amount=100 + i, total_amount=100 + i,
                 bilty_date='2024-04-10', consignee='Consignee name that is long')
        for i in range(1, 121)
    ]


class TestFormatting:

    def test_format_currency_rounds_to_rupees(self):
        assert format_currency(1234.5) == '1234'
        assert format_currency(1234.51) == '1235'
        assert format_currency(None) == '0'

    def test_format_date(self):
        assert format_date('2024-04-05T10:00:00') == '05/04/2024'
        assert format_date('garbage') == 'N/A'
        assert format_date(None) == 'N/A'

    def test_short_pay_mode(self):
        assert short_pay_mode('to-pay') == 'ToPay'
        assert short_pay_mode('paid') == 'Paid'
        assert short_pay_mode(None) == 'N/A'


class TestBuildColumnConfig:

    def test_required_columns_always_present(self):
        config = build_column_config(['city'], 100)
        assert config['ids'] == ['sno', 'gr_no', 'city', 'freight', 'total']

    def test_unknown_ids_ignored_and_order_fixed(self):
        config = build_column_config(['total', 'bogus', 'weight'], 100)
        assert config['ids'] == ['sno', 'gr_no', 'weight', 'freight', 'total']

    def test_widths_fill_table(self):
        config = build_column_config([column[0] for column in AVAILABLE_COLUMNS], 500)
        assert sum(config['widths']) == pytest.approx(500)

    def test_accessors_and_totals(self):
        items = [LineItem(gr_no='G1', packages=2, weight=1.25, freight_amount=99.6, total_amount=99.6),
                 LineItem(gr_no='G2', packages=3, weight=2.0, freight_amount=50, total_amount=50)]
        config = build_column_config(['packages', 'weight'], 100)
        assert [accessor(items[0], 0) for accessor in config['accessors']] == ['1', 'G1', '2', '1.2', '100', '100']
        assert [calc(items) for calc in config['total_calculators']] == ['TOTAL', '', '5', '3.2', '150', '150']


class TestGenerateBillPdf:

    @pytest.mark.parametrize('orientation', ['portrait', 'landscape'])
    def test_renders_statement(self, many_items, orientation):
        totals = aggregate(many_items, {'extraCharges': [{'name': 'Demurrage', 'amount': 100}],
                                        'previousBalance': 50})
        content = generate_bill_pdf(FakeBill(), many_items, totals, FakeCompany(), orientation=orientation)
        assert content.startswith(b'%PDF')

    def test_city_summary_pdf(self, many_items):
        content = generate_city_summary_pdf(FakeBill(), many_items, aggregate(many_items), FakeCompany())
        assert content.startswith(b'%PDF')
