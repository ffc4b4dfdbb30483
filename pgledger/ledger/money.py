# pgledger/ledger/money.py
"""
Currency helpers.

Amounts are carried as integer paise inside the engine so that repeated
add/subtract never drifts. Decimal rupees are what callers see.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import InvalidRecord

PAISE_PER_RUPEE = 100
_TWO_PLACES = Decimal("0.01")


def to_paise(value, field: str = "amount", required: bool = False) -> int:
    """Convert a rupee amount to integer paise, rejecting negatives."""
    if value is None or value == "":
        if required:
            raise InvalidRecord(f"{field} is required")
        return 0
    if isinstance(value, bool):
        raise InvalidRecord(f"{field} must be numeric, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRecord(f"{field} must be numeric, got {value!r}")

    if not amount.is_finite():
        raise InvalidRecord(f"{field} must be a finite number")
    if amount < 0:
        raise InvalidRecord(f"{field} cannot be negative ({amount})")

    try:
        amount = amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidRecord(f"{field} is out of range ({value})")
    return int(amount * PAISE_PER_RUPEE)


def from_paise(paise: int) -> Decimal:
    return (Decimal(paise) / PAISE_PER_RUPEE).quantize(_TWO_PLACES)


def format_inr(amount) -> str:
    """Format an amount for receipts and exports, e.g. 'Rs. 7,200.00'"""
    amount = Decimal(amount).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}Rs. {abs(amount):,.2f}"
