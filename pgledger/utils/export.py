# pgledger/utils/export.py
import csv
import io

PAYMENT_COLUMNS = [
    ("payment_id", "Payment ID"),
    ("student_id", "Student ID"),
    ("student_name", "Student Name"),
    ("building_code", "Building"),
    ("period", "Month"),
    ("amount_due", "Amount Due"),
    ("late_fee", "Late Fee"),
    ("amount_paid", "Amount Paid"),
    ("balance", "Balance"),
    ("payment_date", "Payment Date"),
    ("payment_method", "Payment Method"),
    ("status_label", "Status"),
]

OVERDUE_COLUMNS = PAYMENT_COLUMNS + [
    ("due_date", "Due Date"),
    ("days_overdue", "Days Overdue"),
    ("urgency", "Urgency"),
]

STUDENT_COLUMNS = [
    ("student_id", "Student ID"),
    ("full_name", "Full Name"),
    ("phone", "Phone"),
    ("email", "Email"),
    ("building_code", "Building"),
    ("room_number", "Room"),
    ("monthly_rent", "Monthly Rent"),
    ("admission_date", "Admission Date"),
    ("status", "Status"),
]

ACTIVE_STUDENT_COLUMNS = STUDENT_COLUMNS[:7]

CONTACT_COLUMNS = [
    ("full_name", "Name"),
    ("student_id", "Student ID"),
    ("phone", "Phone"),
    ("email", "Email"),
    ("building_code", "Building"),
    ("room_number", "Room"),
]

MONTHLY_COLUMNS = PAYMENT_COLUMNS + [
    ("receipt_number", "Receipt Number"),
    ("notes", "Notes"),
]

# students and payments of one building share a sheet
BUILDING_COLUMNS = [
    ("record_type", "Record Type"),
    ("id", "ID"),
    ("name", "Name"),
    ("student_id", "Student ID"),
    ("room_number", "Room"),
    ("phone", "Phone"),
    ("status", "Status"),
    ("amount", "Rent/Amount Due"),
    ("date", "Join/Payment Date"),
    ("amount_paid", "Amount Paid"),
    ("balance", "Balance"),
    ("payment_method", "Payment Method"),
    ("period", "Month"),
]


def rows_to_csv(rows, columns):
    """Render dict rows as CSV text with a header line of column labels."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([label for _, label in columns])
    for row in rows:
        writer.writerow(["" if row.get(key) is None else row.get(key) for key, _ in columns])
    return buf.getvalue()
