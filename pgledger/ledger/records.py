# pgledger/ledger/records.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from .exceptions import InvalidRecord
from .money import from_paise
from .period import Period

UNKNOWN_BUILDING = "unknown"


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    upi = "upi"
    bank_transfer = "bank_transfer"
    cheque = "cheque"

    @classmethod
    def parse(cls, value) -> Optional["PaymentMethod"]:
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidRecord(f"unknown payment method {value!r}")


class SettlementState(str, enum.Enum):
    settled = "settled"
    partially_paid = "partially_paid"
    unpaid = "unpaid"


class Urgency(enum.IntEnum):
    """Collection urgency; ordering follows severity."""

    none = 0
    low = 1
    medium = 2
    high = 3
    critical = 4

    @classmethod
    def parse(cls, value) -> "Urgency":
        try:
            return cls[str(value).strip().lower()]
        except KeyError:
            raise ValueError(f"unknown urgency {value!r}")


@dataclass(frozen=True)
class PaymentRecord:
    """One rent period for one student, as loaded from the data store.

    Fields are kept as supplied; validation happens in the engine so that
    a malformed row can be reported instead of blowing up the loader.
    """

    payment_id: str
    student_id: str
    building_code: Optional[str]
    period: Any
    amount_due: Any
    amount_paid: Any = 0
    late_fee: Any = 0
    payment_date: Optional[date] = None
    method: Optional[str] = None
    payment_status: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "PaymentRecord":
        """Build a record from a data-store row (month_year / payment_method columns)."""
        payment_id = str(row.get("payment_id") or "")
        payment_date = row.get("payment_date")
        if isinstance(payment_date, str) and payment_date:
            try:
                payment_date = datetime.strptime(payment_date[:10], "%Y-%m-%d").date()
            except ValueError:
                raise InvalidRecord(f"payment_date must be YYYY-MM-DD, got {payment_date!r}", payment_id or None)
        elif isinstance(payment_date, datetime):
            payment_date = payment_date.date()
        return cls(
            payment_id=payment_id,
            student_id=str(row.get("student_id") or ""),
            building_code=row.get("building_code"),
            period=row.get("period", row.get("month_year")),
            amount_due=row.get("amount_due"),
            amount_paid=row.get("amount_paid", 0),
            late_fee=row.get("late_fee", 0),
            payment_date=payment_date or None,
            method=row.get("method", row.get("payment_method")),
            payment_status=row.get("payment_status"),
            notes=row.get("notes"),
        )


@dataclass(frozen=True)
class StudentRent:
    """What the engine needs to know about a student to expect rent."""

    student_id: str
    building_code: Optional[str]
    monthly_rent: Any = None
    admission_date: Optional[date] = None
    active: bool = True


@dataclass(frozen=True)
class EnrichedPayment:
    record: PaymentRecord
    period: Period
    method: Optional[PaymentMethod]
    amount_due_paise: int
    amount_paid_paise: int
    late_fee_paise: int
    evaluation_date: date
    settlement_state: SettlementState
    is_overdue: bool
    days_overdue: int
    urgency: Urgency

    @property
    def payment_id(self) -> str:
        return self.record.payment_id

    @property
    def student_id(self) -> str:
        return self.record.student_id

    @property
    def building_code(self) -> str:
        return self.record.building_code or UNKNOWN_BUILDING

    @property
    def total_owed_paise(self) -> int:
        return self.amount_due_paise + self.late_fee_paise

    @property
    def balance_paise(self) -> int:
        return self.total_owed_paise - self.amount_paid_paise

    @property
    def amount_due(self) -> Decimal:
        return from_paise(self.amount_due_paise)

    @property
    def amount_paid(self) -> Decimal:
        return from_paise(self.amount_paid_paise)

    @property
    def late_fee(self) -> Decimal:
        return from_paise(self.late_fee_paise)

    @property
    def total_owed(self) -> Decimal:
        return from_paise(self.total_owed_paise)

    @property
    def balance(self) -> Decimal:
        """Negative when overpaid."""
        return from_paise(self.balance_paise)

    @property
    def due_date(self) -> date:
        return self.period.due_date

    @property
    def display_label(self) -> str:
        if self.record.payment_status:
            return self.record.payment_status
        if self.balance_paise < 0:
            return "overpaid"
        if self.settlement_state == SettlementState.settled:
            return "paid"
        if self.is_overdue:
            return "overdue"
        if self.settlement_state == SettlementState.partially_paid:
            return "partial"
        return "pending"

    def as_dict(self) -> Dict[str, Any]:
        record = self.record
        return {
            "payment_id": record.payment_id,
            "student_id": record.student_id,
            "building_code": self.building_code,
            "period": str(self.period),
            "amount_due": str(self.amount_due),
            "amount_paid": str(self.amount_paid),
            "late_fee": str(self.late_fee),
            "total_owed": str(self.total_owed),
            "balance": str(self.balance),
            "payment_date": record.payment_date.isoformat() if record.payment_date else None,
            "payment_method": self.method.value if self.method else None,
            "due_date": self.due_date.isoformat(),
            "settlement_state": self.settlement_state.value,
            "is_overdue": self.is_overdue,
            "days_overdue": self.days_overdue,
            "urgency": self.urgency.name,
            "status_label": self.display_label,
            "notes": record.notes,
        }


def _rate(collected: int, owed: int) -> Decimal:
    if owed == 0:
        return Decimal("100.00")
    return (Decimal(collected) * 100 / Decimal(owed)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass
class BuildingSummary:
    key: str
    record_count: int = 0
    collected_paise: int = 0
    owed_paise: int = 0
    pending_paise: int = 0
    late_fee_count: int = 0
    late_fee_paise: int = 0
    overdue_count: int = 0
    settlement_counts: Dict[str, int] = field(
        default_factory=lambda: {state.value: 0 for state in SettlementState}
    )

    def add(self, payment: EnrichedPayment) -> None:
        self.record_count += 1
        self.collected_paise += payment.amount_paid_paise
        self.owed_paise += payment.total_owed_paise
        if payment.balance_paise > 0:
            self.pending_paise += payment.balance_paise
        if payment.late_fee_paise > 0:
            self.late_fee_count += 1
            self.late_fee_paise += payment.late_fee_paise
        if payment.is_overdue:
            self.overdue_count += 1
        self.settlement_counts[payment.settlement_state.value] += 1

    @property
    def collected(self) -> Decimal:
        return from_paise(self.collected_paise)

    @property
    def total_owed(self) -> Decimal:
        return from_paise(self.owed_paise)

    @property
    def pending_total(self) -> Decimal:
        return from_paise(self.pending_paise)

    @property
    def late_fee_total(self) -> Decimal:
        return from_paise(self.late_fee_paise)

    @property
    def collection_rate(self) -> Decimal:
        """Percentage of what was owed that has been collected."""
        return _rate(self.collected_paise, self.owed_paise)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "record_count": self.record_count,
            "collected": str(self.collected),
            "total_owed": str(self.total_owed),
            "pending_total": str(self.pending_total),
            "late_fee_count": self.late_fee_count,
            "late_fee_total": str(self.late_fee_total),
            "overdue_count": self.overdue_count,
            "collection_rate": str(self.collection_rate),
            "settlement_counts": dict(self.settlement_counts),
        }


@dataclass
class PeriodSummary(BuildingSummary):
    method_counts: Dict[str, int] = field(
        default_factory=lambda: dict({method.value: 0 for method in PaymentMethod}, not_paid=0)
    )
    growth_rate: Decimal = Decimal("0")

    def add(self, payment: EnrichedPayment) -> None:
        super().add(payment)
        if payment.amount_paid_paise == 0:
            self.method_counts["not_paid"] += 1
        elif payment.method is not None:
            self.method_counts[payment.method.value] += 1

    def as_dict(self) -> Dict[str, Any]:
        data = super().as_dict()
        data["method_counts"] = dict(self.method_counts)
        data["growth_rate"] = str(self.growth_rate)
        return data


@dataclass(frozen=True)
class SkippedRecord:
    payment_id: Optional[str]
    reason: str

    def as_dict(self) -> Dict[str, Any]:
        return {"payment_id": self.payment_id, "reason": self.reason}


T = TypeVar("T")


@dataclass
class LedgerResult(Generic[T]):
    """Outcome of a batch pass: the computed value plus whatever was skipped."""

    items: T
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)
