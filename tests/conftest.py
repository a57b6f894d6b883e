import os
import tempfile

# Point the app at a throwaway database before it is imported
_db_dir = tempfile.mkdtemp(prefix='bilty-billing-')
os.environ['DATABASE_URL'] = 'sqlite:///' + os.path.join(_db_dir, 'test.db')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

import pytest

from app import app as flask_app
from database import db
from init_data import initialize_company_profile
from charges import LineItem


@pytest.fixture
def app():
    flask_app.config['TESTING'] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        initialize_company_profile({'company_name': 'Test Transport', 'gst_number': '09ABCDE1234F1Z5'})
        yield flask_app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def delhi_items():
    """Two Delhi bilties with no charges yet."""
    return [
        LineItem(gr_no='GR1', city='Delhi', packages=10, weight=100.0, pay_mode='paid'),
        LineItem(gr_no='GR2', city='Delhi', packages=5, weight=50.0, pay_mode='to-pay'),
    ]


@pytest.fixture
def bill_payload():
    return {
        'bill_number': 'MB-2024-001',
        'party_name': 'Sharma Traders',
        'bill_date': '2024-04-30',
        'period_start': '2024-04-01',
        'period_end': '2024-04-30',
        'bilties': [
            {
                'bilty_type': 'regular', 'gr_no': 'A101', 'bilty_date': '2024-04-03',
                'to_city_name': 'Delhi', 'no_of_pkg': 10, 'wt': 100, 'payment_mode': 'paid',
                'consignor_name': 'Sharma Traders', 'consignee_name': 'Gupta & Sons',
                'freight_amount': 500, 'dd_charge': 20, 'total': 520,
            },
            {
                'bilty_type': 'regular', 'gr_no': 'A102', 'bilty_date': '2024-04-09',
                'to_city_name': 'Jaipur', 'no_of_pkg': 4, 'wt': 40, 'payment_mode': 'to-pay',
                'freight_amount': 200, 'total': 200,
            },
            {
                'bilty_type': 'station', 'gr_no': 'S7', 'created_at': '2024-04-12T10:00:00',
                'city_name': 'Delhi', 'no_of_packets': 5, 'weight': 50, 'payment_status': 'to-pay',
                'consignor': 'Sharma Traders', 'consignee': 'Verma Stores', 'amount': 300,
                'freight_amount': 300,
            },
        ],
    }
