# pgledger/ledger/__init__.py
from .engine import (
    DEFAULT_MONTHLY_RENT,
    DEFAULT_URGENCY_THRESHOLDS,
    SORT_KEYS,
    PaymentLedgerEngine,
    growth_rate,
)
from .exceptions import DuplicateRecord, InvalidRecord, LedgerError
from .money import format_inr, from_paise, to_paise
from .period import Period, completed_periods
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
