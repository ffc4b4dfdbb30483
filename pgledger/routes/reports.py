# pgledger/routes/reports.py
"""
Financial reports. Every number here comes out of the ledger engine; the
views only load rows, pick the evaluation date and shape the JSON.
"""
import logging
from decimal import Decimal

from flask import Blueprint, Response, current_app, request, jsonify
from flask_jwt_extended import jwt_required

from ..extensions import db
from ..ledger import (
    SORT_KEYS, Period, Urgency, completed_periods, from_paise,
)
from ..models import Building, Payment, Student
from ..utils.export import (
    ACTIVE_STUDENT_COLUMNS, BUILDING_COLUMNS, CONTACT_COLUMNS, MONTHLY_COLUMNS,
    OVERDUE_COLUMNS, PAYMENT_COLUMNS, STUDENT_COLUMNS, rows_to_csv,
)
from ..utils.ledger_context import (
    building_arg, evaluation_date, get_engine, period_arg, skipped_payload,
)

logger = logging.getLogger(__name__)

bp = Blueprint("reports", __name__)

_ZERO = from_paise(0)


def _students(building=None):
    query = Student.query.filter(Student.status == "active")
    if building:
        query = query.filter(Student.building_code == building)
    return query.all()


def _expected(periods, building=None):
    """Recorded payments for `periods` plus placeholders for unrecorded rent."""
    periods = list(periods)
    if not periods:
        return [], {}
    # all buildings, so a payment booked elsewhere still counts as recorded
    payments = Payment.query.filter(Payment.month_year.in_([str(p) for p in periods])).all()
    students = _students(building)
    records = get_engine().expected_records(
        [s.to_rent_profile() for s in students],
        [p.to_record() for p in payments],
        periods,
    )
    if building:
        records = [r for r in records if r.building_code == building]
    names = {s.student_id: s.full_name for s in Student.query.all()}
    return records, names


def _merged_skipped(*results):
    seen, skipped = set(), []
    for result in results:
        for s in result.skipped:
            if s.payment_id is not None and s.payment_id in seen:
                continue
            seen.add(s.payment_id)
            skipped.append(s)
    return skipped


def _row(enriched, names):
    row = enriched.as_dict()
    row["student_name"] = names.get(enriched.student_id)
    return row


def _overdue_queue(as_of, building=None, urgency=None):
    start = current_app.config.get("LEDGER_TRACKING_START")
    records, names = _expected(completed_periods(start, as_of), building)
    result = get_engine().classify_urgency(records, as_of, building_code=building, urgency=urgency)
    return result, names


def _pending(month, as_of, building=None):
    records, names = _expected([month], building)
    result = get_engine().enrich(records, as_of)
    pending = [e for e in result.items if e.balance_paise > 0]
    return result, pending, names


@bp.get("/reports/overview")
@jwt_required()
def overview():
    as_of = evaluation_date()
    engine = get_engine()
    month = Period.current(as_of)

    all_students = Student.query.all()
    active = [s for s in all_students if s.is_active]

    totals = engine.summarize_by_period([p.to_record() for p in Payment.query.all()], as_of)
    collected = sum((s.collected for s in totals.items.values()), _ZERO)
    late_fees = sum((s.late_fee_total for s in totals.items.values()), _ZERO)

    current_result, current_pending, _ = _pending(month, as_of)
    overdue, _ = _overdue_queue(as_of)
    skipped = _merged_skipped(totals, current_result, overdue)

    return jsonify({
        "as_of": as_of.isoformat(),
        "current_month": str(month),
        "students": {
            "total": len(all_students),
            "active": len(active),
            "inactive": len(all_students) - len(active),
        },
        "buildings": Building.query.filter_by(status="active").count(),
        "total_collected": str(collected),
        "total_late_fees": str(late_fees),
        "current_month_collected": str(sum((e.amount_paid for e in current_result.items), _ZERO)),
        "current_month_pending": str(sum((e.balance for e in current_pending), _ZERO)),
        "current_month_pending_count": len(current_pending),
        "overdue_count": len(overdue.items),
        "overdue_amount": str(sum((e.balance for e in overdue.items), _ZERO)),
        "skipped": [s.as_dict() for s in skipped],
        "skipped_count": len(skipped),
    }), 200


@bp.get("/reports/overdue")
@jwt_required()
def overdue_report():
    """Overdue queue for completed months since tracking started"""
    as_of = evaluation_date()
    building = building_arg()
    sort = request.args.get("sort", "urgency")
    urgency_name = request.args.get("urgency", "all")

    if sort not in SORT_KEYS:
        return jsonify({
            "error": "validation_error",
            "message": f"sort must be one of {', '.join(SORT_KEYS)}"
        }), 400
    urgency = None
    if urgency_name != "all":
        try:
            urgency = Urgency.parse(urgency_name)
        except ValueError as e:
            return jsonify({"error": "validation_error", "message": str(e)}), 400

    engine = get_engine()
    result, names = _overdue_queue(as_of, building, urgency)
    queue = engine.sort_queue(result.items, sort)

    by_building = {}
    for e in queue:
        bucket = by_building.setdefault(e.building_code, {"count": 0, "amount": _ZERO})
        bucket["count"] += 1
        bucket["amount"] += e.balance

    logger.debug("Overdue report as of %s: %d payments", as_of, len(queue))
    return jsonify({
        "as_of": as_of.isoformat(),
        "payments": [_row(e, names) for e in queue],
        "total_overdue_payments": len(queue),
        "total_overdue_amount": str(sum((e.balance for e in queue), _ZERO)),
        "urgency_breakdown": engine.urgency_breakdown(queue),
        "building_breakdown": {
            code: {"count": b["count"], "amount": str(b["amount"])} for code, b in sorted(by_building.items())
        },
        **skipped_payload(result),
    }), 200


@bp.get("/reports/pending")
@jwt_required()
def pending_report():
    """Outstanding balances for one month (default: the current one)"""
    as_of = evaluation_date()
    month = period_arg("month", Period.current(as_of))
    building = building_arg()

    result, pending, names = _pending(month, as_of, building)
    pending = sorted(pending, key=lambda e: (-e.balance_paise, e.payment_id))

    return jsonify({
        "as_of": as_of.isoformat(),
        "month": str(month),
        "payments": [_row(e, names) for e in pending],
        "total_pending_payments": len(pending),
        "total_pending_amount": str(sum((e.balance for e in pending), _ZERO)),
        **skipped_payload(result),
    }), 200


@bp.get("/reports/buildings")
@jwt_required()
def buildings_report():
    as_of = evaluation_date()
    result = get_engine().summarize_by_building([p.to_record() for p in Payment.query.all()], as_of)
    names = Building.names()

    buildings = []
    for code, summary in result.items.items():
        data = summary.as_dict()
        data["building_name"] = names.get(code, code)
        buildings.append(data)

    return jsonify({"as_of": as_of.isoformat(), "buildings": buildings, **skipped_payload(result)}), 200


@bp.get("/reports/buildings/<code>")
@jwt_required()
def building_detail(code):
    building = db.get_or_404(Building, code)
    as_of = evaluation_date()
    engine = get_engine()

    payments = Payment.query.filter_by(building_code=code).all()
    records = [p.to_record() for p in payments]
    by_building = engine.summarize_by_building(records, as_of)
    by_month = engine.summarize_by_period(records, as_of)

    students = Student.query.filter_by(building_code=code).all()
    active = [s for s in students if s.is_active]
    rents = [s.monthly_rent for s in students if s.monthly_rent]
    capacity = building.total_rooms or 0
    occupancy = round(len(active) / capacity * 100, 1) if capacity else 0
    average_rent = (sum(rents, Decimal(0)) / len(rents)).quantize(Decimal("0.01")) if rents else _ZERO

    recent = sorted(payments, key=lambda p: p.created_at or p.updated_at, reverse=True)[:10]
    summary = by_building.items.get(code)

    return jsonify({
        "as_of": as_of.isoformat(),
        "building": building.serialize(),
        "summary": summary.as_dict() if summary else None,
        "monthly": [s.as_dict() for s in reversed(list(by_month.items.values()))],
        "students": {"total": len(students), "active": len(active), "inactive": len(students) - len(active)},
        "occupancy_rate": occupancy,
        "avg_monthly_rent": str(average_rent),
        "recent_payments": [p.serialize() for p in recent],
        "skipped": [s.as_dict() for s in by_building.skipped],
        "skipped_count": by_building.skipped_count,
    }), 200


@bp.get("/reports/monthly")
@jwt_required()
def monthly_report():
    """One month against the month before, counting students with no record"""
    as_of = evaluation_date()
    month = period_arg("month", Period.current(as_of))
    engine = get_engine()

    records, names = _expected([month.previous(), month])
    result = engine.summarize_by_period(records, as_of)
    current = result.items.get(month)
    enriched = engine.enrich([r for r in records if str(r.period) == str(month)], as_of)

    order = {"paid": 1, "overpaid": 1, "partial": 2, "overdue": 2, "pending": 3}
    rows = sorted(
        (_row(e, names) for e in enriched.items),
        key=lambda r: (order.get(r["status_label"], 3), r["student_name"] or ""),
    )

    months = {m for (m,) in db.session.query(Payment.month_year).distinct().all()}
    months.add(str(Period.current(as_of)))

    return jsonify({
        "as_of": as_of.isoformat(),
        "month": str(month),
        "label": month.label,
        "summary": current.as_dict() if current else None,
        "payments": rows,
        "available_months": sorted(months, reverse=True),
        **skipped_payload(result),
    }), 200


def _building_rows(code, as_of):
    """Student rows followed by the building's payments run through the ledger"""
    rows = []
    for s in Student.query.filter_by(building_code=code).order_by(Student.student_id).all():
        rows.append({
            "record_type": "Student",
            "id": s.student_id,
            "name": s.full_name,
            "student_id": s.student_id,
            "room_number": s.room_number,
            "phone": s.phone,
            "status": s.status,
            "amount": s.monthly_rent,
            "date": s.admission_date.isoformat() if s.admission_date else None,
        })

    names = {s.student_id: s.full_name for s in Student.query.all()}
    payments = Payment.query.filter_by(building_code=code).order_by(Payment.month_year, Payment.payment_id).all()
    result = get_engine().enrich([p.to_record() for p in payments], as_of)
    for e in result.items:
        rows.append({
            "record_type": "Payment",
            "id": e.payment_id,
            "name": names.get(e.student_id),
            "student_id": e.student_id,
            "status": e.display_label,
            "amount": e.amount_due,
            "date": e.record.payment_date.isoformat() if e.record.payment_date else None,
            "amount_paid": e.amount_paid,
            "balance": e.balance,
            "payment_method": e.method.value if e.method else None,
            "period": str(e.period),
        })
    return rows


@bp.get("/reports/export/<kind>.csv")
@jwt_required()
def export_csv(kind):
    as_of = evaluation_date()
    filename = f"{kind}_{as_of.strftime('%Y%m%d')}.csv"

    if kind == "students":
        rows = [s.serialize() for s in Student.query.order_by(Student.student_id).all()]
        columns = STUDENT_COLUMNS
    elif kind in ("active_students", "contact_list"):
        students = Student.query.filter_by(status="active").order_by(Student.student_id).all()
        rows = [s.serialize() for s in students]
        columns = ACTIVE_STUDENT_COLUMNS if kind == "active_students" else CONTACT_COLUMNS
    elif kind == "monthly":
        month = period_arg("month", Period.current(as_of))
        names = {s.student_id: s.full_name for s in Student.query.all()}
        payments = Payment.query.filter_by(month_year=str(month)).order_by(Payment.payment_id).all()
        receipts = {p.payment_id: p.receipt_number for p in payments}
        result = get_engine().enrich([p.to_record() for p in payments], as_of)
        rows = [dict(_row(e, names), receipt_number=receipts.get(e.payment_id)) for e in result.items]
        columns = MONTHLY_COLUMNS
        filename = f"monthly_{month.year}_{month.month:02d}_{as_of.strftime('%Y%m%d')}.csv"
    elif kind == "building":
        code = building_arg()
        if not code:
            return jsonify({
                "error": "validation_error",
                "message": "building is required for a building export"
            }), 400
        db.get_or_404(Building, code)
        rows = _building_rows(code, as_of)
        columns = BUILDING_COLUMNS
        filename = f"building_{code}_{as_of.strftime('%Y%m%d')}.csv"
    elif kind == "payments":
        names = {s.student_id: s.full_name for s in Student.query.all()}
        payments = Payment.query.order_by(Payment.month_year, Payment.payment_id).all()
        result = get_engine().enrich([p.to_record() for p in payments], as_of)
        rows, columns = [_row(e, names) for e in result.items], PAYMENT_COLUMNS
    elif kind == "pending":
        month = period_arg("month", Period.current(as_of))
        _, pending, names = _pending(month, as_of, building_arg())
        rows, columns = [_row(e, names) for e in pending], PAYMENT_COLUMNS
    elif kind == "overdue":
        result, names = _overdue_queue(as_of, building_arg())
        rows, columns = [_row(e, names) for e in result.items], OVERDUE_COLUMNS
    else:
        return jsonify({
            "error": "not_found",
            "message": "Unknown export. Use students, active_students, contact_list, payments, pending, overdue, monthly or building"
        }), 404

    return Response(
        rows_to_csv(rows, columns),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
