import os
import logging
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from database import db

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "DEBUG"))

# Import branding config
try:
    from branding_config import SITE_NAME, COMPANY_NAME, COMPANY_ADDRESS, COMPANY_PHONE, GST_NUMBER
except ImportError:
    SITE_NAME = "S S Transport Billing"
    COMPANY_NAME = "S S Transport"
    COMPANY_ADDRESS = "Gandhi Park, G.T. Road, Aligarh 202001"
    COMPANY_PHONE = "+91 94140 81901"
    GST_NUMBER = ""

# Create the app
app = Flask(__name__)
app.secret_key = os.environ.get("SESSION_SECRET", "bilty-billing-secret")
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)
app.config['SITE_NAME'] = SITE_NAME
app.config['COMPANY_NAME'] = COMPANY_NAME

# Configure the database
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///billing.db")
app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

# Bill statement layout
app.config['BILL_PDF_ORIENTATION'] = os.environ.get("BILL_PDF_ORIENTATION", "portrait")

# Initialize the app with the extension
db.init_app(app)

with app.app_context():
    # Import models to ensure tables are created
    import models
    db.create_all()
    logging.info("Database tables created successfully")

    # Initialize default content
    from init_data import initialize_company_profile
    initialize_company_profile({
        'company_name': COMPANY_NAME,
        'company_address': COMPANY_ADDRESS,
        'company_phone': COMPANY_PHONE,
        'gst_number': GST_NUMBER,
    })

# Import routes after app is created
from routes import *

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=8080, debug=True)
