# pgledger/ledger/exceptions.py
from typing import Optional


class LedgerError(Exception):
    """Base class for ledger engine errors"""


class InvalidRecord(LedgerError):
    """A payment record has malformed money or period fields."""

    def __init__(self, reason: str, payment_id: Optional[str] = None):
        self.reason = reason
        self.payment_id = payment_id
        if payment_id:
            super().__init__(f"{payment_id}: {reason}")
        else:
            super().__init__(reason)


class DuplicateRecord(InvalidRecord):
    """A second record for the same student and rent period."""
