from datetime import date, timedelta
from decimal import Decimal

import pytest

from pgledger.ledger import (
    InvalidRecord,
    PaymentLedgerEngine,
    PaymentRecord,
    Period,
    SettlementState,
    StudentRent,
    Urgency,
    growth_rate,
)


def rec(pid="PAY000001", student="S1", building="A", period="2024-03",
        due="7000", paid="0", late="0", method=None, **kwargs):
    return PaymentRecord(
        payment_id=pid,
        student_id=student,
        building_code=building,
        period=period,
        amount_due=Decimal(due),
        amount_paid=Decimal(paid),
        late_fee=Decimal(late),
        method=method,
        **kwargs,
    )


@pytest.fixture
def engine():
    return PaymentLedgerEngine()


# --- compute ---------------------------------------------------------------

def test_fully_paid_record_is_settled_and_not_overdue(engine):
    e = engine.compute(rec(due="7000", paid="7000", period="2024-03"), date(2024, 4, 15))
    assert e.balance == Decimal("0")
    assert e.settlement_state == SettlementState.settled
    assert e.is_overdue is False
    assert e.urgency == Urgency.none
    assert e.days_overdue == 0


def test_partial_payment_three_months_late_is_critical(engine):
    e = engine.compute(rec(due="7000", late="200", paid="3000", period="2024-01"), date(2024, 4, 15))
    assert e.balance == Decimal("4200")
    assert e.settlement_state == SettlementState.partially_paid
    assert e.due_date == date(2024, 1, 31)
    assert e.days_overdue == 75
    assert e.urgency == Urgency.critical


def test_unpaid_before_month_end_is_not_yet_due(engine):
    e = engine.compute(rec(due="5000", paid="0", period="2024-04"), date(2024, 4, 10))
    assert e.is_overdue is False
    assert e.settlement_state == SettlementState.unpaid
    assert e.urgency == Urgency.none


def test_overpayment_is_settled_with_negative_balance(engine):
    e = engine.compute(rec(due="5000", paid="5500"), date(2030, 1, 1))
    assert e.balance == Decimal("-500")
    assert e.settlement_state == SettlementState.settled
    assert e.display_label == "overpaid"


def test_due_date_itself_is_not_overdue(engine):
    e = engine.compute(rec(period="2024-01"), date(2024, 1, 31))
    assert e.is_overdue is False
    assert engine.compute(rec(period="2024-01"), date(2024, 2, 1)).is_overdue is True


def test_payment_date_does_not_affect_overdue(engine):
    early = engine.compute(rec(period="2024-01", paid="100", payment_date=date(2024, 1, 2)), date(2024, 3, 1))
    missing = engine.compute(rec(period="2024-01", paid="100"), date(2024, 3, 1))
    assert early.days_overdue == missing.days_overdue == 30


@pytest.mark.parametrize("days,expected", [
    (1, Urgency.low),
    (7, Urgency.low),
    (8, Urgency.medium),
    (30, Urgency.medium),
    (31, Urgency.high),
    (60, Urgency.high),
    (61, Urgency.critical),
])
def test_urgency_boundaries(engine, days, expected):
    e = engine.compute(rec(period="2024-01"), date(2024, 1, 31) + timedelta(days=days))
    assert e.days_overdue == days
    assert e.urgency == expected


def test_urgency_is_monotonic_in_days(engine):
    tiers = [engine.urgency_for(d) for d in range(0, 100)]
    assert tiers == sorted(tiers)


def test_custom_thresholds():
    engine = PaymentLedgerEngine(urgency_thresholds=(1, 31, 61, 91))
    assert engine.urgency_for(45) == Urgency.medium
    assert engine.urgency_for(91) == Urgency.critical


@pytest.mark.parametrize("thresholds", [(0, 8, 31, 61), (1, 8, 8, 61), (1, 8, 31)])
def test_bad_thresholds_rejected(thresholds):
    with pytest.raises(ValueError):
        PaymentLedgerEngine(urgency_thresholds=thresholds)


def test_balance_is_exact_for_float_inputs(engine):
    record = PaymentRecord("P1", "S1", "A", "2024-01", amount_due=0.1 + 0.2, amount_paid=0.1, late_fee=0.2)
    # 0.30 + 0.20 - 0.10, no float residue
    assert engine.compute(record, date(2024, 1, 1)).balance == Decimal("0.40")


def test_compute_does_not_touch_input_amounts(engine):
    record = rec(due="7000", paid="3000", late="150")
    e = engine.compute(record, date(2024, 4, 15))
    assert e.amount_paid == record.amount_paid
    assert e.amount_due == record.amount_due
    assert e.late_fee == record.late_fee
    assert e.record is record


def test_compute_is_idempotent(engine):
    record = rec(period="2024-01", paid="10")
    assert engine.compute(record, date(2024, 5, 1)) == engine.compute(record, date(2024, 5, 1))


@pytest.mark.parametrize("kwargs", [
    {"due": "-100"},
    {"paid": "-1"},
    {"late": "-0.01"},
    {"period": "2024-13"},
    {"period": "March"},
    {"method": "bitcoin"},
])
def test_malformed_records_raise_invalid_record(engine, kwargs):
    with pytest.raises(InvalidRecord) as exc:
        engine.compute(rec(pid="PAY000042", **kwargs), date(2024, 4, 15))
    assert exc.value.payment_id == "PAY000042"


def test_missing_amount_due_is_invalid(engine):
    record = PaymentRecord("P1", "S1", "A", "2024-01", amount_due=None)
    with pytest.raises(InvalidRecord):
        engine.compute(record, date(2024, 4, 15))


def test_evaluation_date_must_be_explicit(engine):
    with pytest.raises(TypeError):
        engine.compute(rec(), None)


def test_from_mapping_reads_data_store_columns(engine):
    record = PaymentRecord.from_mapping({
        "payment_id": "PAY000007",
        "student_id": "S9",
        "building_code": "B",
        "month_year": "2024-02",
        "amount_due": "6000.00",
        "amount_paid": "6000.00",
        "late_fee": "0",
        "payment_date": "2024-02-03T10:00:00",
        "payment_method": "UPI",
    })
    e = engine.compute(record, date(2024, 3, 1))
    assert e.period == Period(2024, 2)
    assert e.method.value == "upi"
    assert record.payment_date == date(2024, 2, 3)
    assert e.settlement_state == SettlementState.settled


def test_from_mapping_rejects_malformed_payment_date():
    with pytest.raises(InvalidRecord) as exc:
        PaymentRecord.from_mapping({
            "payment_id": "PAY000008",
            "student_id": "S9",
            "month_year": "2024-02",
            "amount_due": "6000",
            "payment_date": "03/02/2024",
        })
    assert exc.value.payment_id == "PAY000008"
    assert "payment_date" in exc.value.reason


# --- batch passes ------------------------------------------------------------

def test_summarize_by_building(engine):
    records = [
        rec(pid="P1", student="S1", building="A", due="1000", paid="0"),
        rec(pid="P2", student="S2", building="B", due="500", paid="500"),
    ]
    result = engine.summarize_by_building(records, date(2024, 4, 15))
    assert list(result.items) == ["A", "B"]
    assert result.items["A"].pending_total == Decimal("1000")
    assert result.items["B"].pending_total == Decimal("0")
    assert result.items["B"].collection_rate == Decimal("100.00")
    assert result.items["A"].collection_rate == Decimal("0.00")
    assert result.skipped == []


def test_summarize_by_building_totals(engine):
    records = [
        rec(pid="P1", student="S1", period="2024-01", due="7000", paid="7000"),
        rec(pid="P2", student="S1", period="2024-02", due="7000", late="200", paid="3000"),
        rec(pid="P3", student="S2", period="2024-01", due="6000", paid="6000"),
    ]
    summary = engine.summarize_by_building(records, date(2024, 4, 15)).items["A"]
    assert summary.record_count == 3
    assert summary.collected == Decimal("16000")
    assert summary.pending_total == Decimal("4200")
    assert summary.late_fee_count == 1
    assert summary.late_fee_total == Decimal("200")
    assert summary.overdue_count == 1
    assert summary.collection_rate == Decimal("79.21")
    assert summary.settlement_counts == {"settled": 2, "partially_paid": 1, "unpaid": 0}


def test_missing_building_goes_to_unknown_bucket(engine):
    records = [rec(pid="P1", building=None), rec(pid="P2", student="S2", building="")]
    result = engine.summarize_by_building(records, date(2024, 4, 15))
    assert list(result.items) == ["unknown"]
    assert result.items["unknown"].record_count == 2


def test_zero_owed_collection_rate_is_full(engine):
    result = engine.summarize_by_building([rec(due="0", paid="0")], date(2024, 4, 15))
    assert result.items["A"].collection_rate == Decimal("100.00")


def test_empty_input_gives_empty_summary(engine):
    result = engine.summarize_by_building([], date(2024, 4, 15))
    assert result.items == {}
    assert result.skipped_count == 0
    assert engine.summarize_by_period([]).items == {}


def test_invalid_record_is_skipped_not_fatal(engine):
    records = [
        rec(pid="BAD", student="S0", due="-100"),
        rec(pid="P1", student="S1", due="1000", paid="1000"),
        rec(pid="P2", student="S2", due="2000", paid="500"),
    ]
    result = engine.summarize_by_building(records, date(2024, 4, 15))
    assert result.skipped_count == 1
    assert result.skipped[0].payment_id == "BAD"
    assert "negative" in result.skipped[0].reason
    assert sum(s.record_count for s in result.items.values()) == 2
    assert result.items["A"].collected == Decimal("1500")


def test_buildings_partition_all_valid_records(engine):
    records = [
        rec(pid=f"P{i}", student=f"S{i}", building=b, due="100", paid=str(i))
        for i, b in enumerate(["A", "B", "C", None, "A", "B"])
    ] + [rec(pid="X", student="SX", period="nope")]
    result = engine.summarize_by_building(records, date(2024, 4, 15))
    assert sum(s.record_count for s in result.items.values()) == len(records) - result.skipped_count


def test_duplicate_student_period_is_skipped(engine):
    records = [rec(pid="P1"), rec(pid="P2")]
    result = engine.enrich(records, date(2024, 4, 15))
    assert [e.payment_id for e in result.items] == ["P1"]
    assert result.skipped[0].payment_id == "P2"
    assert "duplicate" in result.skipped[0].reason


def test_out_of_range_amount_is_skipped_not_fatal(engine):
    records = [
        rec(pid="BAD", student="S0", due="1e30"),
        rec(pid="P1", student="S1", due="1000", paid="1000"),
    ]
    result = engine.summarize_by_building(records, date(2024, 4, 15))
    assert result.skipped_count == 1
    assert result.skipped[0].payment_id == "BAD"
    assert "out of range" in result.skipped[0].reason
    assert result.items["A"].record_count == 1


def test_summarize_by_period_with_growth(engine):
    records = [
        rec(pid="P1", student="S1", period="2024-01", due="1000", paid="1000", method="cash"),
        rec(pid="P2", student="S1", period="2024-02", due="1000", paid="1000", method="upi"),
        rec(pid="P3", student="S2", period="2024-02", due="1000", paid="500", method="upi"),
        rec(pid="P4", student="S2", period="2024-04", due="1000", paid="0"),
    ]
    result = engine.summarize_by_period(records)
    assert list(result.items) == [Period(2024, 1), Period(2024, 2), Period(2024, 4)]
    feb = result.items[Period(2024, 2)]
    assert feb.collected == Decimal("1500")
    assert feb.growth_rate == Decimal("0.5")
    assert feb.method_counts["upi"] == 2
    assert result.items[Period(2024, 1)].growth_rate == Decimal("0")
    # no March bucket: nothing to grow from
    assert result.items[Period(2024, 4)].growth_rate == Decimal("0")
    assert result.items[Period(2024, 4)].method_counts["not_paid"] == 1
    assert feb.overdue_count == 0


def test_growth_rate():
    assert growth_rate(Decimal("1500"), Decimal("1000")) == Decimal("0.5")
    assert growth_rate(Decimal("500"), Decimal("1000")) == Decimal("-0.5")
    assert growth_rate(Decimal("500"), 0) == Decimal("0")


def test_classify_urgency_orders_queue(engine):
    records = [
        rec(pid="SETTLED", student="S0", period="2024-01", due="100", paid="100"),
        rec(pid="LOW", student="S1", period="2024-03", due="100"),
        rec(pid="CRIT_SMALL", student="S2", period="2024-01", due="100"),
        rec(pid="CRIT_BIG", student="S3", period="2024-01", due="900"),
        rec(pid="CRIT_OLDER", student="S4", period="2023-12", due="50"),
        rec(pid="NOT_DUE", student="S5", period="2024-04", due="100"),
    ]
    result = engine.classify_urgency(records, date(2024, 4, 5))
    assert [e.payment_id for e in result.items] == ["CRIT_OLDER", "CRIT_BIG", "CRIT_SMALL", "LOW"]


def test_classify_urgency_filters(engine):
    records = [
        rec(pid="A1", student="S1", building="A", period="2024-01"),
        rec(pid="B1", student="S2", building="B", period="2024-03"),
    ]
    as_of = date(2024, 4, 5)
    assert [e.payment_id for e in engine.classify_urgency(records, as_of, building_code="B").items] == ["B1"]
    assert [e.payment_id for e in engine.classify_urgency(records, as_of, urgency=Urgency.critical).items] == ["A1"]


def test_sort_queue_alternatives(engine):
    records = [
        rec(pid="OLD", student="S1", period="2024-01", due="100"),
        rec(pid="NEW", student="S2", period="2024-03", due="900"),
    ]
    queue = engine.classify_urgency(records, date(2024, 4, 5)).items
    assert [e.payment_id for e in engine.sort_queue(queue, "days_asc")] == ["NEW", "OLD"]
    assert [e.payment_id for e in engine.sort_queue(queue, "amount_desc")] == ["NEW", "OLD"]
    assert [e.payment_id for e in engine.sort_queue(queue, "amount_asc")] == ["OLD", "NEW"]
    with pytest.raises(ValueError):
        engine.sort_queue(queue, "name")


def test_urgency_breakdown(engine):
    records = [
        rec(pid="P1", student="S1", period="2024-01"),
        rec(pid="P2", student="S2", period="2024-03"),
        rec(pid="P3", student="S3", period="2024-03"),
    ]
    queue = engine.classify_urgency(records, date(2024, 4, 5)).items
    assert engine.urgency_breakdown(queue) == {"low": 2, "medium": 0, "high": 0, "critical": 1}


# --- expected rent -----------------------------------------------------------

def test_expected_records_adds_placeholders(engine):
    students = [
        StudentRent("S1", "A", Decimal("7000"), date(2024, 1, 10)),
        StudentRent("S2", "A", None, date(2024, 2, 15)),
        StudentRent("S3", "B", Decimal("4000"), date(2024, 1, 1), active=False),
    ]
    records = [rec(pid="P1", student="S1", period="2024-01", due="7000", paid="7000")]
    expected = engine.expected_records(students, records, ["2024-01", "2024-02"])

    ids = [r.payment_id for r in expected]
    assert ids == ["P1", "NO_RECORD_S1_2024-02", "NO_RECORD_S2_2024-02"]
    placeholder = expected[2]
    assert placeholder.amount_due == Decimal("5000.00")
    assert placeholder.building_code == "A"

    e = engine.compute(placeholder, date(2024, 3, 10))
    assert e.settlement_state == SettlementState.unpaid
    assert e.is_overdue is True
