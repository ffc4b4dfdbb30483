from . import db
from datetime import datetime


class Building(db.Model):
    __tablename__ = 'buildings'

    building_code = db.Column(db.String(20), primary_key=True)
    building_name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(512), nullable=True)
    total_rooms = db.Column(db.Integer, default=0)
    status = db.Column(db.String(20), default='active', index=True)  # active, inactive
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    rooms = db.relationship('Room', backref='building', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Building {self.building_code}: {self.building_name}>'

    @classmethod
    def names(cls):
        """Lookup of building code to display name for active buildings"""
        return {
            b.building_code: b.building_name
            for b in cls.query.filter_by(status='active').order_by(cls.building_code).all()
        }

    def serialize(self):
        return {
            'building_code': self.building_code,
            'building_name': self.building_name,
            'address': self.address,
            'total_rooms': self.total_rooms,
            'status': self.status,
        }


class Room(db.Model):
    __tablename__ = 'rooms'
    __table_args__ = (db.UniqueConstraint('building_code', 'room_number', name='uq_room_building_number'),)

    id = db.Column(db.Integer, primary_key=True)
    building_code = db.Column(db.String(20), db.ForeignKey('buildings.building_code'), nullable=False)
    room_number = db.Column(db.String(20), nullable=False)
    capacity = db.Column(db.Integer, default=1)
    monthly_rent = db.Column(db.Numeric(10, 2), nullable=True)
    status = db.Column(db.String(20), default='available')  # available, occupied, maintenance

    def __repr__(self):
        return f'<Room {self.building_code}-{self.room_number}>'

    def serialize(self):
        return {
            'id': self.id,
            'building_code': self.building_code,
            'room_number': self.room_number,
            'capacity': self.capacity,
            'monthly_rent': str(self.monthly_rent) if self.monthly_rent is not None else None,
            'status': self.status,
        }
