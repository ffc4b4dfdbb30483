# pgledger/ledger/period.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, List

from dateutil.relativedelta import relativedelta

from .exceptions import InvalidRecord

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


@dataclass(frozen=True, order=True)
class Period:
    """A rent cycle: one calendar month."""

    year: int
    month: int

    def __post_init__(self):
        if not isinstance(self.year, int) or not isinstance(self.month, int):
            raise InvalidRecord(f"period must be integers, got {self.year!r}-{self.month!r}")
        if not 1 <= self.month <= 12:
            raise InvalidRecord(f"period month out of range: {self.month}")
        if not 1 <= self.year <= 9999:
            raise InvalidRecord(f"period year out of range: {self.year}")

    @classmethod
    def parse(cls, value) -> "Period":
        """Accept a Period, a date, or a 'YYYY-MM' string."""
        if isinstance(value, Period):
            return value
        if isinstance(value, date):
            return cls(value.year, value.month)
        if isinstance(value, str):
            match = _PERIOD_RE.match(value.strip())
            if match:
                return cls(int(match.group(1)), int(match.group(2)))
        raise InvalidRecord(f"period must be YYYY-MM, got {value!r}")

    @classmethod
    def current(cls, today: date) -> "Period":
        return cls(today.year, today.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def due_date(self) -> date:
        """Last calendar day of the month; rent for the period is due by then."""
        return self.first_day + relativedelta(months=1) - timedelta(days=1)

    @property
    def label(self) -> str:
        return self.first_day.strftime("%B %Y")

    def next(self) -> "Period":
        return Period.parse(self.first_day + relativedelta(months=1))

    def previous(self) -> "Period":
        return Period.parse(self.first_day - relativedelta(months=1))

    @staticmethod
    def span(start: "Period", end: "Period") -> Iterator["Period"]:
        """Every month from start to end, both inclusive."""
        current = start
        while current <= end:
            yield current
            current = current.next()

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def completed_periods(start, evaluation_date: date) -> List[Period]:
    """Months from start up to, but not including, the evaluation month."""
    if isinstance(evaluation_date, datetime):
        evaluation_date = evaluation_date.date()
    start = Period.parse(start)
    current = Period.current(evaluation_date)
    if start >= current:
        return []
    return list(Period.span(start, current.previous()))
