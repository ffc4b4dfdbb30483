from . import db
from datetime import datetime
from ..ledger import StudentRent


class Student(db.Model):
    __tablename__ = 'students'

    student_id = db.Column(db.String(40), primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    # Accommodation
    building_code = db.Column(db.String(20), db.ForeignKey('buildings.building_code'), nullable=True, index=True)
    room_number = db.Column(db.String(20), nullable=True)
    monthly_rent = db.Column(db.Numeric(10, 2), nullable=True)
    admission_date = db.Column(db.Date, nullable=True)

    status = db.Column(db.String(20), default='active', index=True)  # active, inactive
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    payments = db.relationship('Payment', backref='student', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Student {self.student_id}: {self.full_name}>'

    @property
    def is_active(self):
        return (self.status or 'active') == 'active'

    def to_rent_profile(self) -> StudentRent:
        return StudentRent(
            student_id=self.student_id,
            building_code=self.building_code,
            monthly_rent=self.monthly_rent,
            admission_date=self.admission_date,
            active=self.is_active,
        )

    def serialize(self):
        return {
            'student_id': self.student_id,
            'full_name': self.full_name,
            'phone': self.phone,
            'email': self.email,
            'building_code': self.building_code,
            'room_number': self.room_number,
            'monthly_rent': str(self.monthly_rent) if self.monthly_rent is not None else None,
            'admission_date': self.admission_date.isoformat() if self.admission_date else None,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
