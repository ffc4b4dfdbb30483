# pgledger/ledger/engine.py
"""
Payment ledger engine.

Pure computation over payment records: outstanding balance, settlement
state and collection urgency per record, and building / month roll-ups.
Nothing here touches the database or the request context; every call
takes an explicit evaluation date so results are reproducible.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .exceptions import DuplicateRecord, InvalidRecord
from .money import from_paise, to_paise
from .period import Period
from .records import (
    UNKNOWN_BUILDING,
    BuildingSummary,
    EnrichedPayment,
    LedgerResult,
    PaymentMethod,
    PaymentRecord,
    PeriodSummary,
    SettlementState,
    SkippedRecord,
    StudentRent,
    Urgency,
)

logger = logging.getLogger(__name__)

# Lower bound (days overdue, inclusive) for low, medium, high, critical
DEFAULT_URGENCY_THRESHOLDS: Tuple[int, int, int, int] = (1, 8, 31, 61)
DEFAULT_MONTHLY_RENT = Decimal("5000.00")

SORT_KEYS = ("urgency", "days_desc", "days_asc", "amount_desc", "amount_asc")


def growth_rate(current, previous) -> Decimal:
    """(current - previous) / previous, or 0 when nothing was collected before."""
    current = Decimal(current)
    previous = Decimal(previous)
    if previous == 0:
        return Decimal("0")
    return ((current - previous) / previous).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"evaluation_date must be a date, got {value!r}")


class PaymentLedgerEngine:
    """Stateless calculator; safe to share between threads."""

    def __init__(
        self,
        urgency_thresholds: Sequence[int] = DEFAULT_URGENCY_THRESHOLDS,
        default_rent=DEFAULT_MONTHLY_RENT,
    ):
        thresholds = tuple(int(t) for t in urgency_thresholds)
        if len(thresholds) != 4 or thresholds[0] < 1 or list(thresholds) != sorted(set(thresholds)):
            raise ValueError(
                f"urgency_thresholds must be four increasing day counts starting at 1 or more, got {urgency_thresholds!r}"
            )
        self.urgency_thresholds = thresholds
        self.default_rent = from_paise(to_paise(default_rent, "default_rent"))

    # ------------------------------------------------------------------
    # Single record
    # ------------------------------------------------------------------
    def urgency_for(self, days_overdue: int) -> Urgency:
        low, medium, high, critical = self.urgency_thresholds
        if days_overdue >= critical:
            return Urgency.critical
        if days_overdue >= high:
            return Urgency.high
        if days_overdue >= medium:
            return Urgency.medium
        if days_overdue >= low:
            return Urgency.low
        return Urgency.none

    def compute(self, record: PaymentRecord, evaluation_date: date) -> EnrichedPayment:
        """Derive balance, settlement state and urgency for one record.

        Raises InvalidRecord for negative amounts, an unknown payment
        method or a period that is not a valid year-month.
        """
        evaluation_date = _as_date(evaluation_date)
        try:
            period = Period.parse(record.period)
            due = to_paise(record.amount_due, "amount_due", required=True)
            paid = to_paise(record.amount_paid, "amount_paid")
            late_fee = to_paise(record.late_fee, "late_fee")
            method = PaymentMethod.parse(record.method)
        except InvalidRecord as e:
            raise InvalidRecord(e.reason, record.payment_id) from None

        total_owed = due + late_fee
        balance = total_owed - paid

        if balance <= 0:
            state = SettlementState.settled
        elif paid == 0:
            state = SettlementState.unpaid
        else:
            state = SettlementState.partially_paid

        is_overdue = balance > 0 and period.due_date < evaluation_date
        days_overdue = (evaluation_date - period.due_date).days if is_overdue else 0
        urgency = self.urgency_for(days_overdue) if is_overdue else Urgency.none

        return EnrichedPayment(
            record=record,
            period=period,
            method=method,
            amount_due_paise=due,
            amount_paid_paise=paid,
            late_fee_paise=late_fee,
            evaluation_date=evaluation_date,
            settlement_state=state,
            is_overdue=is_overdue,
            days_overdue=days_overdue,
            urgency=urgency,
        )

    # ------------------------------------------------------------------
    # Batch passes: never raise for bad rows, report them instead
    # ------------------------------------------------------------------
    def enrich(
        self, records: Iterable[PaymentRecord], evaluation_date: date
    ) -> LedgerResult[List[EnrichedPayment]]:
        """Compute every record, skipping malformed and duplicate ones."""
        evaluation_date = _as_date(evaluation_date)
        enriched: List[EnrichedPayment] = []
        skipped: List[SkippedRecord] = []
        seen: Set[Tuple[str, Period]] = set()

        for record in records:
            try:
                payment = self.compute(record, evaluation_date)
                key = (payment.student_id, payment.period)
                if key in seen:
                    raise DuplicateRecord(
                        f"duplicate record for student {payment.student_id} period {payment.period}",
                        record.payment_id,
                    )
                seen.add(key)
            except InvalidRecord as e:
                logger.warning("Skipping payment %s: %s", e.payment_id or "<no id>", e.reason)
                skipped.append(SkippedRecord(payment_id=e.payment_id, reason=e.reason))
                continue
            enriched.append(payment)

        logger.debug("Ledger pass: %d computed, %d skipped", len(enriched), len(skipped))
        return LedgerResult(items=enriched, skipped=skipped)

    def summarize_by_building(
        self, records: Iterable[PaymentRecord], evaluation_date: date
    ) -> LedgerResult[Dict[str, BuildingSummary]]:
        result = self.enrich(records, evaluation_date)
        buckets: Dict[str, BuildingSummary] = {}
        for payment in result.items:
            code = payment.building_code
            if code not in buckets:
                buckets[code] = BuildingSummary(key=code)
            buckets[code].add(payment)
        return LedgerResult(items=dict(sorted(buckets.items())), skipped=result.skipped)

    def summarize_by_period(
        self, records: Iterable[PaymentRecord], evaluation_date: Optional[date] = None
    ) -> LedgerResult[Dict[Period, PeriodSummary]]:
        """Month buckets in calendar order, each with growth against the month before.

        Without an evaluation date nothing counts as overdue; the money
        totals do not depend on it.
        """
        result = self.enrich(records, evaluation_date if evaluation_date is not None else date.min)
        buckets: Dict[Period, PeriodSummary] = {}
        for payment in result.items:
            if payment.period not in buckets:
                buckets[payment.period] = PeriodSummary(key=str(payment.period))
            buckets[payment.period].add(payment)

        ordered = dict(sorted(buckets.items()))
        for period, summary in ordered.items():
            previous = ordered.get(period.previous())
            summary.growth_rate = growth_rate(
                summary.collected, previous.collected if previous else 0
            )
        return LedgerResult(items=ordered, skipped=result.skipped)

    def classify_urgency(
        self,
        records: Iterable[PaymentRecord],
        evaluation_date: date,
        building_code: Optional[str] = None,
        urgency: Optional[Urgency] = None,
    ) -> LedgerResult[List[EnrichedPayment]]:
        """The overdue queue: most urgent first, then oldest, then largest balance."""
        result = self.enrich(records, evaluation_date)
        queue = [p for p in result.items if p.is_overdue]
        if building_code is not None:
            queue = [p for p in queue if p.building_code == building_code]
        if urgency is not None:
            queue = [p for p in queue if p.urgency == urgency]
        return LedgerResult(items=self.sort_queue(queue, "urgency"), skipped=result.skipped)

    @staticmethod
    def sort_queue(payments: Iterable[EnrichedPayment], sort: str = "urgency") -> List[EnrichedPayment]:
        payments = list(payments)
        if sort == "urgency":
            key = lambda p: (-p.urgency, -p.days_overdue, -p.balance_paise, p.payment_id)
        elif sort == "days_desc":
            key = lambda p: (-p.days_overdue, p.payment_id)
        elif sort == "days_asc":
            key = lambda p: (p.days_overdue, p.payment_id)
        elif sort == "amount_desc":
            key = lambda p: (-p.balance_paise, p.payment_id)
        elif sort == "amount_asc":
            key = lambda p: (p.balance_paise, p.payment_id)
        else:
            raise ValueError(f"unknown sort {sort!r}, expected one of {', '.join(SORT_KEYS)}")
        return sorted(payments, key=key)

    @staticmethod
    def urgency_breakdown(payments: Iterable[EnrichedPayment]) -> Dict[str, int]:
        counts = {u.name: 0 for u in Urgency if u != Urgency.none}
        for payment in payments:
            if payment.urgency != Urgency.none:
                counts[payment.urgency.name] += 1
        return counts

    # ------------------------------------------------------------------
    # Expected rent
    # ------------------------------------------------------------------
    def expected_records(
        self,
        students: Iterable[StudentRent],
        records: Iterable[PaymentRecord],
        periods: Iterable,
    ) -> List[PaymentRecord]:
        """Existing records plus an unpaid placeholder for every rent nobody recorded.

        A placeholder is added for each active student admitted on or
        before the period's due date who has no record for that period.
        """
        records = list(records)
        periods = [Period.parse(p) for p in periods]
        present: Set[Tuple[str, Period]] = set()
        for record in records:
            try:
                present.add((record.student_id, Period.parse(record.period)))
            except InvalidRecord:
                # reported later when the record itself is computed
                continue

        expected = list(records)
        for student in students:
            if not student.active:
                continue
            rent = student.monthly_rent if student.monthly_rent not in (None, "") else self.default_rent
            for period in periods:
                if (student.student_id, period) in present:
                    continue
                if student.admission_date is not None and _as_date(student.admission_date) > period.due_date:
                    continue
                expected.append(
                    PaymentRecord(
                        payment_id=f"NO_RECORD_{student.student_id}_{period}",
                        student_id=student.student_id,
                        building_code=student.building_code or UNKNOWN_BUILDING,
                        period=period,
                        amount_due=rent,
                    )
                )
        return expected
