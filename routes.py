from flask import request, jsonify, make_response, send_file
from app import app, db
from models import Bill, CompanyProfile
from rates import RateConfig
from utils import generate_bill_pdf, generate_city_summary_pdf, DEFAULT_COLUMNS
from bulk_rates import summarize_cities
import billing_service
import logging
import csv
import io

STATUS_CODES = {
    billing_service.NOT_FOUND: 404,
    billing_service.INVALID: 400,
    billing_service.PERSISTENCE: 500,
}


def failure_response(result):
    return jsonify({'success': False, 'error': result.message}), STATUS_CODES.get(result.error_kind, 500)


def rates_payload(result):
    return {
        'success': True,
        'items': [item.to_record() for item in result.data['items']],
        'totals': result.data['totals'].to_dict(),
    }


def load_bill(bill_id):
    result = billing_service.get_bill(bill_id)
    return result.data if result.ok else None


@app.route('/api/bills', methods=['GET'])
def list_bills():
    """List bills, newest first"""
    query = Bill.query
    party_name = request.args.get('party_name')
    if party_name:
        query = query.filter_by(party_name=party_name)
    bills = query.order_by(Bill.bill_date.desc(), Bill.id.desc()).all()
    return jsonify({'success': True, 'bills': [bill.to_dict() for bill in bills]})


@app.route('/api/bills', methods=['POST'])
def create_bill():
    """Create a bill from selected bilties"""
    try:
        data = request.get_json(silent=True) or {}
        result = billing_service.create_bill(data)
        if not result.ok:
            return failure_response(result)
        return jsonify({'success': True, 'bill': result.data.to_dict()}), 201
    except Exception as e:
        logging.error(f"Error creating bill: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>')
def bill_detail(bill_id):
    """Bill with its items and totals"""
    result = billing_service.get_bill(bill_id)
    if not result.ok:
        return failure_response(result)
    bill = result.data
    return jsonify({
        'success': True,
        'bill': bill.to_dict(),
        'items': [item.to_record() for item in bill.line_items()],
        'totals': billing_service.bill_totals(bill).to_dict(),
    })


@app.route('/api/bills/<int:bill_id>/totals')
def bill_totals(bill_id):
    result = billing_service.get_bill(bill_id)
    if not result.ok:
        return failure_response(result)
    return jsonify({'success': True, 'totals': billing_service.bill_totals(result.data).to_dict()})


@app.route('/api/bills/<int:bill_id>/cities')
def bill_cities(bill_id):
    """Bilties, packages and weight per destination city"""
    result = billing_service.get_bill(bill_id)
    if not result.ok:
        return failure_response(result)
    cities = summarize_cities(result.data.line_items())
    return jsonify({
        'success': True,
        'cities': [dict(city=city, **summary) for city, summary in cities.items()],
    })


@app.route('/api/bills/<int:bill_id>/bulk-rates', methods=['GET'])
def saved_bulk_rates(bill_id):
    """Rate configuration last applied to the bill"""
    result = billing_service.get_bill(bill_id)
    if not result.ok:
        return failure_response(result)
    saved = result.data.get_metadata().get(billing_service.BULK_RATES_KEY) or {}
    return jsonify({
        'success': True,
        'config': billing_service.saved_rate_config(result.data).to_snapshot(),
        'applied_at': saved.get('appliedAt'),
    })


@app.route('/api/bills/<int:bill_id>/bulk-rates/preview', methods=['POST'])
def preview_bulk_rates(bill_id):
    """Recalculate charges without saving"""
    try:
        config = RateConfig.from_snapshot(request.get_json(silent=True))
        result = billing_service.preview_bulk_rates(bill_id, config)
        if not result.ok:
            return failure_response(result)
        return jsonify(rates_payload(result))
    except Exception as e:
        logging.error(f"Error previewing bulk rates: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>/bulk-rates', methods=['POST'])
def apply_bulk_rates(bill_id):
    """Apply bulk rates to all bilties of the bill and save them"""
    try:
        config = RateConfig.from_snapshot(request.get_json(silent=True))
        result = billing_service.apply_bulk_rates_to_bill(bill_id, config)
        if not result.ok:
            return failure_response(result)
        return jsonify(rates_payload(result))
    except Exception as e:
        logging.error(f"Error applying bulk rates: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>/bulk-rates/copy/<int:source_id>', methods=['POST'])
def copy_bulk_rates(bill_id, source_id):
    """Apply the rates saved on a previous bill"""
    try:
        result = billing_service.copy_bulk_rates(bill_id, source_id)
        if not result.ok:
            return failure_response(result)
        return jsonify(rates_payload(result))
    except Exception as e:
        logging.error(f"Error copying bulk rates: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>/rate-sources')
def rate_sources(bill_id):
    """Previous bills of the same party with saved bulk rates"""
    result = billing_service.rate_sources(bill_id)
    if not result.ok:
        return failure_response(result)
    return jsonify({'success': True, 'bills': [bill.to_dict() for bill in result.data]})


@app.route('/api/bills/<int:bill_id>/items/<int:item_id>', methods=['PUT'])
def update_item(bill_id, item_id):
    try:
        data = request.get_json(silent=True) or {}
        include_pf = data.pop('include_pf_in_total', None)
        result = billing_service.update_bill_item(bill_id, item_id, data, include_pf)
        if not result.ok:
            return failure_response(result)
        return jsonify({'success': True, 'item': result.data.to_record()})
    except Exception as e:
        logging.error(f"Error updating item {item_id}: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>/items/<int:item_id>', methods=['DELETE'])
def remove_item(bill_id, item_id):
    try:
        result = billing_service.remove_bill_item(bill_id, item_id)
        if not result.ok:
            return failure_response(result)
        return jsonify({'success': True, 'totals': result.data.to_dict()})
    except Exception as e:
        logging.error(f"Error removing item {item_id}: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>/total-override', methods=['POST'])
def total_override(bill_id):
    """Set or clear the manual grand total"""
    try:
        data = request.get_json(silent=True) or {}
        result = billing_service.set_total_override(bill_id, data.get('value'))
        if not result.ok:
            return failure_response(result)
        return jsonify({'success': True, 'totals': result.data.to_dict()})
    except Exception as e:
        logging.error(f"Error setting total override: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>/metadata', methods=['POST'])
def update_metadata(bill_id):
    """Update previous balance and extra charges"""
    try:
        data = request.get_json(silent=True) or {}
        result = billing_service.update_bill_metadata(bill_id, data)
        if not result.ok:
            return failure_response(result)
        return jsonify({'success': True, 'totals': result.data.to_dict()})
    except Exception as e:
        logging.error(f"Error updating bill metadata: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/bills/<int:bill_id>/pdf')
def download_bill_pdf(bill_id):
    """Download the bill statement"""
    bill = load_bill(bill_id)
    if bill is None:
        return jsonify({'success': False, 'error': 'Bill not found'}), 404

    orientation = request.args.get('orientation') or app.config['BILL_PDF_ORIENTATION']
    if orientation not in DEFAULT_COLUMNS:
        return jsonify({'success': False, 'error': f'Unknown orientation: {orientation}'}), 400
    columns = request.args.get('columns')
    column_ids = [c.strip() for c in columns.split(',') if c.strip()] if columns else None

    try:
        items = bill.line_items()
        pdf_content = generate_bill_pdf(bill, items, billing_service.bill_totals(bill),
                                        CompanyProfile.get_settings(), column_ids, orientation)
        return send_file(io.BytesIO(pdf_content), as_attachment=True,
                         download_name=f'bill_{bill.bill_number}.pdf', mimetype='application/pdf')
    except Exception as e:
        logging.error(f"Error generating PDF: {str(e)}")
        return jsonify({'success': False, 'error': 'Error generating PDF'}), 500


@app.route('/api/bills/<int:bill_id>/summary.pdf')
def download_summary_pdf(bill_id):
    """Download the city-wise bill summary"""
    bill = load_bill(bill_id)
    if bill is None:
        return jsonify({'success': False, 'error': 'Bill not found'}), 404

    items = bill.line_items()
    pdf_bytes = generate_city_summary_pdf(bill, items, billing_service.bill_totals(bill),
                                          CompanyProfile.get_settings())
    return send_file(io.BytesIO(pdf_bytes), as_attachment=True,
                     download_name=f'bill_{bill.bill_number}_summary.pdf', mimetype='application/pdf')


@app.route('/api/bills/<int:bill_id>/export.csv')
def export_bill_csv(bill_id):
    """Export bill items in CSV format"""
    bill = load_bill(bill_id)
    if bill is None:
        return jsonify({'success': False, 'error': 'Bill not found'}), 404

    output = io.StringIO()
    writer = csv.writer(output)

    # Write header
    writer.writerow([
        'GR No', 'Type', 'Date', 'Consignor', 'Consignee', 'City', 'Packages', 'Weight (kg)',
        'Pay Mode', 'Rate', 'Labour Rate', 'Freight', 'Labour', 'Bill Charge', 'Toll', 'DD',
        'PF', 'Other', 'Total'
    ])

    # Write data
    for item in bill.line_items():
        writer.writerow([
            item.gr_no, item.bilty_type, item.bilty_date or '', item.consignor, item.consignee,
            item.city, item.packages, item.weight, item.pay_mode, item.rate, item.labour_rate,
            item.freight_amount, item.labour_charge, item.bill_charge, item.toll_charge,
            item.dd_charge, item.pf_charge, item.other_charge, item.total_amount
        ])

    totals = billing_service.bill_totals(bill)
    writer.writerow([])
    writer.writerow(['Grand Total', f'{totals.total:.2f}'])

    response = make_response(output.getvalue())
    response.headers['Content-Type'] = 'text/csv'
    response.headers['Content-Disposition'] = f'attachment; filename=bill_{bill.bill_number}.csv'
    return response


# Error handlers
@app.errorhandler(404)
def not_found(error):
    return jsonify({'success': False, 'error': 'Not found'}), 404


@app.errorhandler(500)
def internal_error(error):
    db.session.rollback()
    return jsonify({'success': False, 'error': 'Internal server error'}), 500
