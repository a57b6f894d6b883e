from datetime import datetime
from database import db
from charges import CHARGE_FIELDS, LineItem


class CompanyProfile(db.Model):
    __tablename__ = 'company_profile'

    id = db.Column(db.Integer, primary_key=True)
    company_name = db.Column(db.String(200), nullable=False, default='S S Transport')
    company_address = db.Column(db.Text, nullable=False, default='Gandhi Park, G.T. Road, Aligarh 202001')
    company_phone = db.Column(db.String(100), nullable=False, default='+91 94140 81901')
    gst_number = db.Column(db.String(15), nullable=False, default='')
    signatory_name = db.Column(db.String(100), nullable=False, default='Authorized Signatory')
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def get_settings(cls):
        """Get the current company profile, creating the default if none exists"""
        settings = cls.query.first()
        if not settings:
            settings = cls()
            db.session.add(settings)
            db.session.commit()
        return settings

    def to_dict(self):
        return {
            'company_name': self.company_name,
            'company_address': self.company_address,
            'company_phone': self.company_phone,
            'gst_number': self.gst_number,
            'signatory_name': self.signatory_name,
        }


class Bill(db.Model):
    __tablename__ = 'bill_master'

    id = db.Column(db.Integer, primary_key=True)
    bill_number = db.Column(db.String(50), unique=True, nullable=False)
    party_name = db.Column(db.String(200), nullable=False)
    billing_type = db.Column(db.String(20), default='monthly')  # monthly, consignor, consignee
    bill_date = db.Column(db.Date, default=lambda: datetime.utcnow().date())
    period_start = db.Column(db.Date)
    period_end = db.Column(db.Date)
    status = db.Column(db.String(20), default='draft')  # draft, final, paid, cancelled

    # previousBalance, totalAmountOverride, extraCharges, bulkRates
    bill_metadata = db.Column('metadata', db.JSON, default=dict)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('BillItem', backref='bill', order_by='BillItem.id',
                            cascade='all, delete-orphan')

    def get_metadata(self):
        return dict(self.bill_metadata or {})

    def update_metadata(self, **changes):
        # Reassign so the JSON column is flagged dirty
        metadata = self.get_metadata()
        metadata.update(changes)
        self.bill_metadata = metadata

    def line_items(self):
        return [item.to_line_item() for item in self.items]

    def to_dict(self):
        return {
            'id': self.id,
            'bill_number': self.bill_number,
            'party_name': self.party_name,
            'billing_type': self.billing_type,
            'bill_date': self.bill_date.isoformat() if self.bill_date else None,
            'period_start': self.period_start.isoformat() if self.period_start else None,
            'period_end': self.period_end.isoformat() if self.period_end else None,
            'status': self.status,
            'metadata': self.get_metadata(),
        }


class BillItem(db.Model):
    __tablename__ = 'bill_items'

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey('bill_master.id'), nullable=False)
    gr_no = db.Column(db.String(50), nullable=False)
    bilty_type = db.Column(db.String(20), default='regular')  # regular, station
    bilty_date = db.Column(db.String(30))

    # Consignment details
    city = db.Column(db.String(100))
    packages = db.Column(db.Integer, default=0)
    weight = db.Column(db.Float, default=0.0)  # in kg
    pay_mode = db.Column(db.String(20))  # paid, to-pay, foc
    delivery_type = db.Column(db.String(30))
    consignor = db.Column(db.String(200))
    consignee = db.Column(db.String(200))
    contents = db.Column(db.String(200))
    pvt_marks = db.Column(db.String(100))

    # Rates and charges
    rate = db.Column(db.Float, default=0.0)
    labour_rate = db.Column(db.Float, default=0.0)
    freight_amount = db.Column(db.Float, default=0.0)
    labour_charge = db.Column(db.Float, default=0.0)
    bill_charge = db.Column(db.Float, default=0.0)
    toll_charge = db.Column(db.Float, default=0.0)
    dd_charge = db.Column(db.Float, default=0.0)
    pf_charge = db.Column(db.Float, default=0.0)
    other_charge = db.Column(db.Float, default=0.0)
    total_amount = db.Column(db.Float, default=0.0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    STORED_FIELDS = (
        'gr_no', 'bilty_type', 'bilty_date', 'city', 'packages', 'weight', 'pay_mode',
        'delivery_type', 'consignor', 'consignee', 'contents', 'pvt_marks', 'rate',
        'labour_rate', 'total_amount',
    ) + tuple(CHARGE_FIELDS.values())

    def to_line_item(self):
        record = {name: getattr(self, name) for name in self.STORED_FIELDS}
        record['id'] = self.id
        return LineItem.from_record(record)

    def apply_line_item(self, item):
        for name in self.STORED_FIELDS:
            setattr(self, name, getattr(item, name))

    @classmethod
    def from_line_item(cls, item):
        bill_item = cls()
        bill_item.apply_line_item(item)
        return bill_item
