# pgledger/utils/receipt.py
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..ledger import format_inr


def _line(pdf, label, value):
    pdf.set_font("Helvetica", style="B", size=11)
    pdf.cell(60, 8, text=label)
    pdf.set_font("Helvetica", size=11)
    pdf.cell(0, 8, text=str(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def generate_payment_receipt(payment, enriched, app_name="PG Management System"):
    """Render a payment receipt as PDF bytes."""
    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", style="B", size=16)
    pdf.cell(0, 10, text="Payment Receipt", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", size=12)
    pdf.cell(0, 8, text=app_name, align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(6)

    _line(pdf, "Receipt No:", payment.receipt_number or payment.payment_id)
    _line(pdf, "Student:", f"{payment.student.full_name if payment.student else ''} ({payment.student_id})")
    _line(pdf, "Building:", payment.building_code or "-")
    _line(pdf, "Rent Period:", enriched.period.label)
    _line(pdf, "Amount Due:", format_inr(enriched.amount_due))
    _line(pdf, "Late Fee:", format_inr(enriched.late_fee))
    _line(pdf, "Amount Paid:", format_inr(enriched.amount_paid))
    _line(pdf, "Balance:", format_inr(enriched.balance))
    _line(pdf, "Payment Date:", payment.payment_date.strftime("%b %d, %Y") if payment.payment_date else "-")
    _line(pdf, "Method:", (payment.payment_method or "-").replace("_", " ").title())
    _line(pdf, "Status:", enriched.display_label.title())

    pdf.ln(10)
    pdf.set_font("Helvetica", style="I", size=9)
    pdf.cell(0, 6, text="This is a computer-generated receipt.", align="C")
    return bytes(pdf.output())
