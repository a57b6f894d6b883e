from models import CompanyProfile
from database import db
import logging


def initialize_company_profile(defaults=None):
    """Initialize the default company profile printed on bills"""
    if CompanyProfile.query.count() == 0:
        profile = CompanyProfile(**(defaults or {}))
        db.session.add(profile)
        db.session.commit()
        logging.info("Default company profile created")


if __name__ == "__main__":
    from app import app
    with app.app_context():
        db.create_all()
        print("All tables created.")
        initialize_company_profile()
        print("Company profile seeded.")
