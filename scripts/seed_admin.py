# scripts/seed_admin.py
# Create or reset the dashboard admin account.
import os

from dotenv import load_dotenv

load_dotenv()

from pgledger import create_app
from pgledger.extensions import db
from pgledger.models import AdminUser

EMAIL = os.environ.get("ADMIN_EMAIL", "admin@example.com").lower()
PASSWORD = os.environ.get("ADMIN_PASSWORD")

if not PASSWORD:
    raise SystemExit("Set ADMIN_PASSWORD to seed the admin account")

app = create_app()
with app.app_context():
    u = AdminUser.query.filter_by(email=EMAIL).first()
    if not u:
        u = AdminUser(email=EMAIL, name=os.environ.get("ADMIN_NAME", "Admin"), is_active=True)
        db.session.add(u)
    u.set_password(PASSWORD)
    db.session.commit()
    print("Admin upserted:", u.id, u.email)
