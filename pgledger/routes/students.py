# pgledger/routes/students.py
import logging
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from ..extensions import db
from ..ledger import InvalidRecord, to_paise, from_paise
from ..models import Building, Payment, Student
from ..utils.ledger_context import building_arg, evaluation_date, get_engine, skipped_payload

logger = logging.getLogger(__name__)

bp = Blueprint("students", __name__)

_EDITABLE = ("full_name", "phone", "email", "building_code", "room_number", "monthly_rent", "admission_date", "status")


def _clean(data, partial=False):
    """Validate student fields; returns (values, errors)"""
    values, errors = {}, []

    for field in ("full_name", "phone", "email", "building_code", "room_number"):
        if field in data:
            values[field] = str(data.get(field) or "").strip() or None

    if not partial:
        if not str(data.get("student_id") or "").strip():
            errors.append("student_id is required")
        else:
            values["student_id"] = str(data["student_id"]).strip()
        if "full_name" not in values:
            errors.append("full_name is required")

    if "full_name" in values and not values["full_name"]:
        errors.append("full_name is required")

    if values.get("building_code") and not db.session.get(Building, values["building_code"]):
        errors.append(f"Unknown building {values['building_code']}")

    if data.get("monthly_rent") in (None, ""):
        if "monthly_rent" in data:
            values["monthly_rent"] = None
    else:
        try:
            values["monthly_rent"] = from_paise(to_paise(data["monthly_rent"], "monthly_rent"))
        except InvalidRecord as e:
            errors.append(e.reason)

    if data.get("admission_date"):
        try:
            values["admission_date"] = datetime.strptime(data["admission_date"], "%Y-%m-%d").date()
        except (TypeError, ValueError):
            errors.append("admission_date must be YYYY-MM-DD")

    if "status" in data:
        if data["status"] not in ("active", "inactive"):
            errors.append("status must be active or inactive")
        else:
            values["status"] = data["status"]

    return values, errors


@bp.get("/students")
@jwt_required()
def list_students():
    query = Student.query
    building = building_arg()
    status = request.args.get("status")
    if building:
        query = query.filter(Student.building_code == building)
    if status:
        query = query.filter(Student.status == status)

    students = query.order_by(Student.full_name).all()
    return jsonify({"students": [s.serialize() for s in students], "count": len(students)}), 200


@bp.post("/students")
@jwt_required()
def create_student():
    data = request.get_json(silent=True) or {}
    values, errors = _clean(data)
    if errors:
        return jsonify({"error": "validation_error", "message": errors}), 400

    if db.session.get(Student, values["student_id"]):
        return jsonify({
            "error": "conflict",
            "message": f"Student {values['student_id']} already exists"
        }), 409

    student = Student(**values)
    db.session.add(student)
    db.session.commit()
    logger.info("Created student %s", student.student_id)
    return jsonify(student.serialize()), 201


@bp.get("/students/<student_id>")
@jwt_required()
def get_student(student_id):
    """Student profile with the payment history run through the ledger"""
    student = db.get_or_404(Student, student_id)
    payments = Payment.query.filter_by(student_id=student_id).order_by(Payment.month_year.desc()).all()

    result = get_engine().enrich([p.to_record() for p in payments], evaluation_date())
    enriched = {e.payment_id: e for e in result.items}
    outstanding = sum((e.balance for e in result.items if e.balance > 0), from_paise(0))

    return jsonify({
        **student.serialize(),
        "payments": [p.serialize(enriched.get(p.payment_id)) for p in payments],
        "outstanding_balance": str(outstanding),
        **skipped_payload(result),
    }), 200


@bp.patch("/students/<student_id>")
@jwt_required()
def update_student(student_id):
    student = db.get_or_404(Student, student_id)
    data = request.get_json(silent=True) or {}
    values, errors = _clean({k: v for k, v in data.items() if k in _EDITABLE}, partial=True)
    if errors:
        return jsonify({"error": "validation_error", "message": errors}), 400

    for field, value in values.items():
        setattr(student, field, value)
    db.session.commit()
    logger.info("Updated student %s: %s", student_id, ", ".join(sorted(values)))
    return jsonify(student.serialize()), 200


@bp.delete("/students/<student_id>")
@jwt_required()
def delete_student(student_id):
    """Remove a student together with their payment history"""
    student = db.get_or_404(Student, student_id)
    removed = len(student.payments)
    db.session.delete(student)
    db.session.commit()
    logger.info("Deleted student %s and %d payments", student_id, removed)
    return jsonify({"status": "deleted", "student_id": student_id, "payments_deleted": removed}), 200
