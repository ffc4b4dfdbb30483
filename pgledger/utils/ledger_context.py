# pgledger/utils/ledger_context.py
"""Request-side helpers shared by the blueprints that call the ledger engine."""
from datetime import datetime

from dateutil import tz
from flask import abort, current_app, request

from ..ledger import InvalidRecord, Period


def get_engine():
    return current_app.extensions["ledger_engine"]


def today():
    """Today's date in the hostel's timezone"""
    zone = tz.gettz(current_app.config.get("LEDGER_TIMEZONE", "Asia/Kolkata"))
    return datetime.now(zone).date()


def evaluation_date():
    """`?as_of=YYYY-MM-DD`, or today"""
    as_of = request.args.get("as_of")
    if not as_of:
        return today()
    try:
        return datetime.strptime(as_of, "%Y-%m-%d").date()
    except ValueError:
        abort(400, description="Invalid as_of date. Use YYYY-MM-DD")


def period_arg(name="month", default=None):
    value = request.args.get(name)
    if not value:
        return default
    try:
        return Period.parse(value)
    except InvalidRecord:
        abort(400, description=f"Invalid {name} format. Use YYYY-MM")


def building_arg(name="building"):
    value = request.args.get(name)
    if not value or value == "all":
        return None
    return value


def skipped_payload(result):
    return {
        "skipped": [s.as_dict() for s in result.skipped],
        "skipped_count": result.skipped_count,
    }
