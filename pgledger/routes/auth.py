# pgledger/routes/auth.py
import logging
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity, create_access_token

from ..extensions import db
from ..models import AdminUser

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)


@bp.post("/auth/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({
            "error": "validation_error",
            "message": "email and password are required"
        }), 400

    user = AdminUser.query.filter_by(email=email).first()
    if not user or not user.is_active or not user.check_password(password):
        logger.info("Failed login for %s", email)
        return jsonify({"error": "unauthorized", "message": "Invalid credentials"}), 401

    user.last_login = datetime.utcnow()
    db.session.commit()

    token = create_access_token(identity=str(user.id), additional_claims={"name": user.name})
    return jsonify({"access_token": token, "user": user.serialize()}), 200


@bp.get("/auth/me")
@jwt_required()
def me():
    user = db.session.get(AdminUser, int(get_jwt_identity()))
    if not user:
        return jsonify({"error": "not_found", "message": "User not found"}), 404
    return jsonify(user.serialize()), 200


def current_admin_name():
    user_id = get_jwt_identity()
    user = db.session.get(AdminUser, int(user_id)) if user_id else None
    return user.name if user else "admin"
