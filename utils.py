from datetime import datetime
from io import BytesIO
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, LongTable, TableStyle
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from fpdf import FPDF
import logging
from xml.sax.saxutils import escape

from bulk_rates import summarize_cities
from rates import to_float

# id, header label, relative width, always printed
AVAILABLE_COLUMNS = [
    ('sno', 'S.No', 0.03, True),
    ('date', 'Date', 0.06, False),
    ('gr_no', 'GR No', 0.07, True),
    ('consignor', 'Consignor', 0.11, False),
    ('consignee', 'Consignee', 0.11, False),
    ('city', 'City', 0.08, False),
    ('pvt_marks', 'Pvt Marks', 0.05, False),
    ('packages', 'Pkgs', 0.04, False),
    ('weight', 'Weight', 0.05, False),
    ('delivery_type', 'Del', 0.04, False),
    ('pay_mode', 'Pay Mode', 0.05, False),
    ('freight', 'Freight', 0.07, True),
    ('labour', 'Labour', 0.05, False),
    ('bill_charge', 'Bill Ch', 0.05, False),
    ('toll', 'Toll', 0.05, False),
    ('dd', 'DD', 0.05, False),
    ('pf', 'PF', 0.05, False),
    ('other', 'Other', 0.05, False),
    ('total', 'Total', 0.07, True),
]

DEFAULT_COLUMNS = {
    'portrait': ['sno', 'date', 'gr_no', 'consignee', 'city', 'packages', 'weight',
                 'freight', 'labour', 'bill_charge', 'toll', 'other', 'total'],
    'landscape': [column[0] for column in AVAILABLE_COLUMNS],
}

AMOUNT_FIELDS = {
    'freight': 'freight_amount',
    'labour': 'labour_charge',
    'bill_charge': 'bill_charge',
    'toll': 'toll_charge',
    'dd': 'dd_charge',
    'pf': 'pf_charge',
    'other': 'other_charge',
    'total': 'total_amount',
}


def format_currency(amount):
    """Whole rupees, as printed on bills"""
    number = to_float(amount)
    if not number:
        return '0'
    return str(int(round(number)))


def format_date(value):
    if not value:
        return 'N/A'
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').strftime('%d/%m/%Y')
    except ValueError:
        return 'N/A'


def short_pay_mode(pay_mode):
    pay_mode = pay_mode or 'N/A'
    if pay_mode == 'to-pay':
        return 'ToPay'
    if pay_mode == 'paid':
        return 'Paid'
    return pay_mode[:5]


def short_delivery_type(delivery_type):
    delivery_type = delivery_type or 'N/A'
    if delivery_type == 'door-delivery':
        return 'DD'
    if delivery_type == 'godown':
        return 'GD'
    return delivery_type[:3].upper()


def _accessor(column_id):
    if column_id == 'sno':
        return lambda item, index: str(index + 1)
    if column_id == 'date':
        return lambda item, index: format_date(item.bilty_date)
    if column_id == 'gr_no':
        return lambda item, index: (item.gr_no or 'N/A')[:10]
    if column_id in ('consignor', 'consignee'):
        return lambda item, index: (getattr(item, column_id) or 'N/A')[:15]
    if column_id == 'city':
        return lambda item, index: (item.city or 'N/A')[:12]
    if column_id == 'pvt_marks':
        return lambda item, index: (item.pvt_marks or '-')[:8]
    if column_id == 'packages':
        return lambda item, index: str(item.packages)
    if column_id == 'weight':
        return lambda item, index: f"{item.weight:.1f}"
    if column_id == 'delivery_type':
        return lambda item, index: short_delivery_type(item.delivery_type)
    if column_id == 'pay_mode':
        return lambda item, index: short_pay_mode(item.pay_mode)
    if column_id in AMOUNT_FIELDS:
        return lambda item, index: format_currency(getattr(item, AMOUNT_FIELDS[column_id]))
    return lambda item, index: ''


def _total_calculator(column_id):
    if column_id == 'sno':
        return lambda items: 'TOTAL'
    if column_id == 'packages':
        return lambda items: str(sum(item.packages for item in items))
    if column_id == 'weight':
        return lambda items: f"{sum(item.weight for item in items):.1f}"
    if column_id in AMOUNT_FIELDS:
        field = AMOUNT_FIELDS[column_id]
        return lambda items: format_currency(sum(getattr(item, field) for item in items))
    return lambda items: ''


def build_column_config(column_ids, table_width):
    """
    Column layout for the bill table.

    Unknown ids are ignored, required columns are always present, and the
    order follows AVAILABLE_COLUMNS. Widths are shared out in proportion to
    each column's relative width.
    """
    wanted = set(column_ids or [])
    columns = [column for column in AVAILABLE_COLUMNS if column[0] in wanted or column[3]]
    total_weight = sum(column[2] for column in columns)

    return {
        'ids': [column[0] for column in columns],
        'headers': [column[1] for column in columns],
        'widths': [column[2] / total_weight * table_width for column in columns],
        'accessors': [_accessor(column[0]) for column in columns],
        'total_calculators': [_total_calculator(column[0]) for column in columns],
    }


def _draw_page_number(canvas, doc):
    canvas.saveState()
    canvas.setFont('Helvetica', 8)
    canvas.drawRightString(doc.pagesize[0] - doc.rightMargin, 8 * mm, f"Page {doc.page}")
    canvas.restoreState()


def generate_bill_pdf(bill, items, totals, company, column_ids=None, orientation='portrait'):
    """Generate the bill statement PDF and return its bytes"""
    try:
        orientation = 'landscape' if orientation == 'landscape' else 'portrait'
        pagesize = landscape(A4) if orientation == 'landscape' else A4
        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=pagesize, rightMargin=10 * mm, leftMargin=10 * mm,
                                topMargin=10 * mm, bottomMargin=15 * mm,
                                title=f"Bill {bill.bill_number}")

        elements = []
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'CompanyTitle',
            parent=styles['Heading1'],
            fontSize=18,
            spaceAfter=4,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#2c3e50')
        )
        centered_style = ParagraphStyle(
            'Centered',
            parent=styles['Normal'],
            fontSize=9,
            alignment=TA_CENTER
        )
        heading_style = ParagraphStyle(
            'StatementHeading',
            parent=styles['Heading2'],
            fontSize=13,
            alignment=TA_CENTER,
            spaceBefore=6,
            spaceAfter=6,
            textColor=colors.HexColor('#34495e')
        )
        cell_size = 7 if orientation == 'landscape' else 6.5

        # Company header
        elements.append(Paragraph(escape(company.company_name), title_style))
        elements.append(Paragraph(escape(company.company_address), centered_style))
        elements.append(Paragraph(f"Phone: {escape(company.company_phone)}", centered_style))
        if company.gst_number:
            elements.append(Paragraph(f"GST No: {escape(company.gst_number)}", centered_style))

        billing_type = (bill.billing_type or 'monthly').title()
        elements.append(Paragraph(f"{billing_type} Bill Statement", heading_style))

        bill_info = [
            ['Bill No:', bill.bill_number, 'Bill Date:', format_date(bill.bill_date)],
            ['Party:', bill.party_name, 'Period:',
             f"{format_date(bill.period_start)} to {format_date(bill.period_end)}"],
        ]
        info_table = Table(bill_info, colWidths=[25 * mm, 70 * mm, 25 * mm, 60 * mm])
        info_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        elements.append(info_table)
        elements.append(Spacer(1, 8))

        # Bilty table, header repeated on every page
        config = build_column_config(column_ids or DEFAULT_COLUMNS[orientation], doc.width)
        rows = [config['headers']]
        for index, item in enumerate(items):
            rows.append([accessor(item, index) for accessor in config['accessors']])
        rows.append([calculator(items) for calculator in config['total_calculators']])

        amount_start = next(
            (i for i, column_id in enumerate(config['ids']) if column_id in AMOUNT_FIELDS),
            len(config['ids'])
        )
        bilty_table = LongTable(rows, colWidths=config['widths'], repeatRows=1)
        bilty_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2c3e50')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -2), 'Helvetica'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#ecf0f1')),
            ('FONTSIZE', (0, 0), (-1, -1), cell_size),
            ('ALIGN', (amount_start, 0), (-1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('TOPPADDING', (0, 0), (-1, -1), 2),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
        ]))
        elements.append(bilty_table)
        elements.append(Spacer(1, 12))

        # Summary
        summary = [
            ['Freight', format_currency(totals.freight)],
            ['Labour', format_currency(totals.labour)],
            ['Bill Charge', format_currency(totals.bill_charge)],
            ['Toll', format_currency(totals.toll)],
            ['DD', format_currency(totals.dd)],
            ['PF', format_currency(totals.pf)],
            ['Other', format_currency(totals.other)],
            ['Paid', format_currency(totals.paid)],
            ['To Pay', format_currency(totals.to_pay)],
        ]
        for charge in totals.extra_charges:
            summary.append([charge['name'], format_currency(charge['amount'])])
        if totals.previous_balance:
            summary.append(['Previous Balance', format_currency(totals.previous_balance)])
        summary.append(['Grand Total', f"INR {format_currency(totals.total)}"])
        if totals.previous_balance:
            summary.append(['Balance Due', f"INR {format_currency(totals.balance_due)}"])

        summary_table = Table(summary, colWidths=[45 * mm, 35 * mm], hAlign='RIGHT')
        summary_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#ecf0f1')),
        ]))
        elements.append(summary_table)
        elements.append(Spacer(1, 30))

        signature_style = ParagraphStyle(
            'Signature',
            parent=styles['Normal'],
            fontSize=9,
            alignment=TA_RIGHT
        )
        elements.append(Paragraph(f"<b>{escape(company.signatory_name)}</b><br/>Authorized Signatory", signature_style))

        doc.build(elements, onFirstPage=_draw_page_number, onLaterPages=_draw_page_number)

        pdf_content = buffer.getvalue()
        buffer.close()

        return pdf_content

    except Exception as e:
        logging.error(f"Error generating bill PDF: {str(e)}")
        raise e


def _latin1(text):
    # Core PDF fonts only cover latin-1
    return str(text).encode('latin-1', 'replace').decode('latin-1')


def generate_city_summary_pdf(bill, items, totals, company):
    """City-wise summary report for a bill, returned as PDF bytes"""
    pdf = FPDF()
    pdf.add_page()
    pdf.set_font('Helvetica', 'B', 16)
    pdf.cell(0, 10, _latin1(f'{company.company_name} - Bill Summary'), new_x='LMARGIN', new_y='NEXT', align='C')
    pdf.set_font('Helvetica', '', 11)
    pdf.cell(0, 8, _latin1(f'Bill No: {bill.bill_number}    Party: {bill.party_name}'), new_x='LMARGIN', new_y='NEXT')
    pdf.cell(0, 8, f'Generated: {datetime.now().strftime("%Y-%m-%d %H:%M")}', new_x='LMARGIN', new_y='NEXT')
    pdf.ln(4)

    pdf.set_font('Helvetica', 'B', 11)
    widths = (70, 30, 30, 40)
    for width, header in zip(widths, ('City', 'Bilties', 'Packages', 'Weight (kg)')):
        pdf.cell(width, 8, header, border=1)
    pdf.ln()
    pdf.set_font('Helvetica', '', 11)
    for city, summary in summarize_cities(items).items():
        pdf.cell(widths[0], 8, _latin1(city[:35]), border=1)
        pdf.cell(widths[1], 8, str(summary['count']), border=1, align='R')
        pdf.cell(widths[2], 8, str(summary['packages']), border=1, align='R')
        pdf.cell(widths[3], 8, f"{summary['weight']:.1f}", border=1, align='R')
        pdf.ln()
    pdf.ln(4)

    pdf.set_font('Helvetica', 'B', 12)
    pdf.cell(0, 8, 'Totals', new_x='LMARGIN', new_y='NEXT')
    pdf.set_font('Helvetica', '', 11)
    for label, amount in (('Freight', totals.freight), ('Labour', totals.labour),
                          ('Bill Charge', totals.bill_charge), ('Toll', totals.toll),
                          ('DD', totals.dd), ('PF', totals.pf), ('Other', totals.other),
                          ('Other Charges', totals.other_charges), ('Paid', totals.paid),
                          ('To Pay', totals.to_pay)):
        pdf.cell(0, 7, f'{label}: INR {amount:.2f}', new_x='LMARGIN', new_y='NEXT')
    pdf.set_font('Helvetica', 'B', 11)
    pdf.cell(0, 8, f'Grand Total: INR {totals.total:.2f}', new_x='LMARGIN', new_y='NEXT')

    return bytes(pdf.output())
