from datetime import date
from decimal import Decimal

import pytest

from pgledger import create_app
from pgledger.config import TestingConfig
from pgledger.extensions import db
from pgledger.models import AdminUser, Building, Payment, Student

AS_OF = "2024-04-15"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        admin = AdminUser(email="admin@example.com", name="Warden")
        admin.set_password("Secret123!")
        db.session.add(admin)
        db.session.add_all([
            Building(building_code="A", building_name="Block A", total_rooms=20),
            Building(building_code="B", building_name="Block B", total_rooms=10),
            Student(student_id="S1", full_name="Asha Rao", building_code="A", room_number="101",
                    monthly_rent=Decimal("7000"), admission_date=date(2024, 1, 1)),
            Student(student_id="S2", full_name="Bilal Khan", building_code="A", room_number="102",
                    monthly_rent=Decimal("6000"), admission_date=date(2024, 1, 1)),
            Student(student_id="S3", full_name="Chen Li", building_code="B", room_number="201",
                    monthly_rent=Decimal("5000"), admission_date=date(2024, 3, 1)),
            Student(student_id="S4", full_name="Dev Patel", building_code="B", room_number="202",
                    monthly_rent=Decimal("5000"), admission_date=date(2024, 1, 1), status="inactive"),
        ])
        db.session.commit()
    yield app


@pytest.fixture
def ledger(app):
    """A few months of history for building A and B."""
    with app.app_context():
        db.session.add_all([
            Payment(payment_id="PAY000001", student_id="S1", building_code="A", month_year="2024-01",
                    amount_due=Decimal("7000"), amount_paid=Decimal("7000"), late_fee=Decimal("0"),
                    payment_date=date(2024, 1, 5), payment_method="cash"),
            Payment(payment_id="PAY000002", student_id="S1", building_code="A", month_year="2024-02",
                    amount_due=Decimal("7000"), amount_paid=Decimal("3000"), late_fee=Decimal("200"),
                    payment_date=date(2024, 2, 20), payment_method="upi"),
            Payment(payment_id="PAY000003", student_id="S2", building_code="A", month_year="2024-01",
                    amount_due=Decimal("6000"), amount_paid=Decimal("6000"), late_fee=Decimal("0"),
                    payment_date=date(2024, 1, 7), payment_method="cash"),
            Payment(payment_id="PAY000004", student_id="S3", building_code="B", month_year="2024-03",
                    amount_due=Decimal("5000"), amount_paid=Decimal("5000"), late_fee=Decimal("0"),
                    payment_date=date(2024, 3, 2), payment_method="bank_transfer"),
        ])
        db.session.commit()
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(client):
    resp = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "Secret123!"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['access_token']}"}
