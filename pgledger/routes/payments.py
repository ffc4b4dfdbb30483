# pgledger/routes/payments.py
import io
import logging
from datetime import datetime

from flask import Blueprint, current_app, request, jsonify, send_file
from flask_jwt_extended import jwt_required

from ..extensions import db
from ..ledger import InvalidRecord, PaymentMethod, Period, SettlementState, from_paise, to_paise
from ..models import Payment, Student
from ..utils.ledger_context import (
    building_arg, evaluation_date, get_engine, period_arg, skipped_payload, today,
)
from ..utils.receipt import generate_payment_receipt
from .auth import current_admin_name

logger = logging.getLogger(__name__)

bp = Blueprint("payments", __name__)

_MONEY_FIELDS = ("amount_due", "amount_paid", "late_fee")
_TEXT_FIELDS = ("receipt_number", "payment_status", "notes")
_EDITABLE = ("amount_paid", "late_fee", "payment_method", "payment_date") + _TEXT_FIELDS
_STATE_FILTERS = tuple(s.value for s in SettlementState) + ("overdue",)


def _clean(data):
    """Validate payment form fields present in `data`; returns (values, errors)"""
    values, errors = {}, []

    for field in _MONEY_FIELDS:
        if field in data:
            try:
                values[field] = from_paise(to_paise(data[field], field))
            except InvalidRecord as e:
                errors.append(e.reason)

    if "month_year" in data:
        try:
            values["month_year"] = str(Period.parse(data["month_year"]))
        except InvalidRecord as e:
            errors.append(e.reason)

    if "payment_method" in data:
        try:
            method = PaymentMethod.parse(data["payment_method"])
            values["payment_method"] = method.value if method else None
        except InvalidRecord as e:
            errors.append(e.reason)

    if "payment_date" in data:
        if data["payment_date"]:
            try:
                values["payment_date"] = datetime.strptime(data["payment_date"], "%Y-%m-%d").date()
            except (TypeError, ValueError):
                errors.append("Valid payment date is required (YYYY-MM-DD)")
        else:
            values["payment_date"] = None

    for field in _TEXT_FIELDS:
        if field in data:
            values[field] = str(data.get(field) or "").strip() or None

    return values, errors


@bp.get("/payments")
@jwt_required()
def list_payments():
    """Payments with ledger fields, filterable by building, month, student and state"""
    query = Payment.query
    building = building_arg()
    month = period_arg("month")
    student_id = request.args.get("student_id")
    state = request.args.get("state")

    if state and state not in _STATE_FILTERS:
        return jsonify({
            "error": "validation_error",
            "message": f"state must be one of {', '.join(_STATE_FILTERS)}"
        }), 400

    if building:
        query = query.filter(Payment.building_code == building)
    if month:
        query = query.filter(Payment.month_year == str(month))
    if student_id:
        query = query.filter(Payment.student_id == student_id)

    payments = query.order_by(Payment.month_year.desc(), Payment.payment_id).all()
    result = get_engine().enrich([p.to_record() for p in payments], evaluation_date())
    enriched = {e.payment_id: e for e in result.items}

    rows = []
    for payment in payments:
        e = enriched.get(payment.payment_id)
        if e is None:
            continue
        if state == "overdue" and not e.is_overdue:
            continue
        if state and state != "overdue" and e.settlement_state.value != state:
            continue
        rows.append(payment.serialize(e))

    return jsonify({"payments": rows, "count": len(rows), **skipped_payload(result)}), 200


@bp.post("/payments")
@jwt_required()
def create_payment():
    data = request.get_json(silent=True) or {}
    values, errors = _clean(data)

    student_id = str(data.get("student_id") or "").strip()
    student = db.session.get(Student, student_id) if student_id else None
    if not student_id:
        errors.append("Student selection is required")
    elif student is None:
        errors.append(f"Unknown student {student_id}")
    if "month_year" not in data:
        errors.append("Payment period is required")
    if values.get("amount_due") is None or values["amount_due"] <= 0:
        errors.append("Amount due must be greater than zero")

    if errors:
        return jsonify({"error": "validation_error", "message": errors}), 400

    existing = Payment.query.filter_by(student_id=student_id, month_year=values["month_year"]).first()
    if existing:
        return jsonify({
            "error": "conflict",
            "message": "Payment for this student and period already exists.",
            "payment_id": existing.payment_id
        }), 409

    payment_id = str(data.get("payment_id") or "").strip() or Payment.next_payment_id()
    if db.session.get(Payment, payment_id):
        return jsonify({"error": "conflict", "message": f"Payment {payment_id} already exists"}), 409

    amount_paid = values.get("amount_paid") or from_paise(0)
    payment = Payment(
        payment_id=payment_id,
        student_id=student_id,
        building_code=(str(data.get("building_code") or "").strip() or student.building_code),
        month_year=values["month_year"],
        amount_due=values["amount_due"],
        amount_paid=amount_paid,
        late_fee=values.get("late_fee") or from_paise(0),
        payment_date=values.get("payment_date", today() if amount_paid > 0 else None),
        payment_method=values.get("payment_method", "cash" if amount_paid > 0 else None),
        receipt_number=values.get("receipt_number"),
        payment_status=values.get("payment_status"),
        notes=values.get("notes"),
        created_by=current_admin_name(),
    )
    enriched = get_engine().compute(payment.to_record(), evaluation_date())

    db.session.add(payment)
    db.session.commit()
    logger.info("Recorded payment %s for %s (%s)", payment.payment_id, student_id, payment.month_year)
    return jsonify(payment.serialize(enriched)), 201


@bp.get("/payments/<payment_id>")
@jwt_required()
def get_payment(payment_id):
    payment = db.get_or_404(Payment, payment_id)
    enriched = get_engine().compute(payment.to_record(), evaluation_date())
    return jsonify(payment.serialize(enriched)), 200


@bp.patch("/payments/<payment_id>")
@jwt_required()
def update_payment(payment_id):
    """Restate amount paid, late fee, method, date, receipt, label or notes"""
    payment = db.get_or_404(Payment, payment_id)
    data = request.get_json(silent=True) or {}

    rejected = sorted(k for k in data if k not in _EDITABLE)
    if rejected:
        return jsonify({
            "error": "validation_error",
            "message": [f"{k} cannot be changed" for k in rejected]
        }), 400

    values, errors = _clean(data)
    if errors:
        return jsonify({"error": "validation_error", "message": errors}), 400

    for field, value in values.items():
        setattr(payment, field, value)
    enriched = get_engine().compute(payment.to_record(), evaluation_date())

    db.session.commit()
    logger.info("Updated payment %s: %s", payment_id, ", ".join(sorted(values)))
    return jsonify(payment.serialize(enriched)), 200


@bp.delete("/payments/<payment_id>")
@jwt_required()
def delete_payment(payment_id):
    payment = db.get_or_404(Payment, payment_id)
    db.session.delete(payment)
    db.session.commit()
    logger.info("Deleted payment %s", payment_id)
    return jsonify({"status": "deleted", "payment_id": payment_id}), 200


@bp.get("/payments/<payment_id>/receipt")
@jwt_required()
def payment_receipt(payment_id):
    payment = db.get_or_404(Payment, payment_id)
    enriched = get_engine().compute(payment.to_record(), evaluation_date())
    pdf = generate_payment_receipt(payment, enriched, current_app.config.get("APP_NAME", "PG Management System"))
    return send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"receipt_{payment.payment_id}.pdf",
    )
