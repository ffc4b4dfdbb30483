from . import db
from datetime import datetime
import re
from ..ledger import PaymentRecord

_PAYMENT_ID_RE = re.compile(r"^PAY(\d+)$")


class Payment(db.Model):
    __tablename__ = 'payments'
    __table_args__ = (db.UniqueConstraint('student_id', 'month_year', name='uq_payment_student_month'),)

    payment_id = db.Column(db.String(20), primary_key=True)
    student_id = db.Column(db.String(40), db.ForeignKey('students.student_id'), nullable=False, index=True)
    building_code = db.Column(db.String(20), nullable=True, index=True)
    month_year = db.Column(db.String(7), nullable=False, index=True)  # YYYY-MM

    # Financial details
    amount_due = db.Column(db.Numeric(10, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(10, 2), default=0)
    late_fee = db.Column(db.Numeric(10, 2), default=0)

    payment_date = db.Column(db.Date, nullable=True)
    payment_method = db.Column(db.String(20), nullable=True)  # 'cash', 'upi', 'bank_transfer', 'cheque'
    receipt_number = db.Column(db.String(50), nullable=True)

    # Display label set by staff; balances are always recomputed
    payment_status = db.Column(db.String(20), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Payment {self.payment_id}: {self.student_id} {self.month_year}>'

    @classmethod
    def next_payment_id(cls):
        """Next sequential id in the PAY000001 series"""
        highest = 0
        for (payment_id,) in db.session.query(cls.payment_id).all():
            match = _PAYMENT_ID_RE.match(payment_id or '')
            if match:
                highest = max(highest, int(match.group(1)))
        return f"PAY{highest + 1:06d}"

    def to_record(self) -> PaymentRecord:
        return PaymentRecord(
            payment_id=self.payment_id,
            student_id=self.student_id,
            building_code=self.building_code,
            period=self.month_year,
            amount_due=self.amount_due,
            amount_paid=self.amount_paid,
            late_fee=self.late_fee,
            payment_date=self.payment_date,
            method=self.payment_method,
            payment_status=self.payment_status,
            notes=self.notes,
        )

    def serialize(self, enriched=None):
        data = {
            "payment_id": self.payment_id,
            "student_id": self.student_id,
            "building_code": self.building_code,
            "month_year": self.month_year,
            "amount_due": str(self.amount_due) if self.amount_due is not None else None,
            "amount_paid": str(self.amount_paid) if self.amount_paid is not None else None,
            "late_fee": str(self.late_fee) if self.late_fee is not None else None,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "payment_method": self.payment_method,
            "receipt_number": self.receipt_number,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "student_name": self.student.full_name if self.student else None,
        }
        if enriched is not None:
            data.update({
                "total_owed": str(enriched.total_owed),
                "balance": str(enriched.balance),
                "due_date": enriched.due_date.isoformat(),
                "settlement_state": enriched.settlement_state.value,
                "is_overdue": enriched.is_overdue,
                "days_overdue": enriched.days_overdue,
                "urgency": enriched.urgency.name,
                "status_label": enriched.display_label,
            })
        return data
