"""
Typed errors raised by the ledger engine.

Every error carries a machine-readable ``code`` plus the context a caller needs
to decide what to do with it: the group, the offending record ids and the
computed delta. Callers catch by type, never by message.

    LedgerError
    +-- InvalidRecordError       malformed expense or settlement record
    +-- LedgerImbalanceError     balances do not sum to zero before rounding
    +-- UnsettleableLedgerError  planner handed balances it cannot settle
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple


class LedgerError(Exception):
    """Base class for all ledger engine errors."""

    code: str = "LEDGER_ERROR"

    def __init__(
        self,
        message: str,
        group_id: Optional[str] = None,
        record_ids: Iterable[str] = (),
        delta: Optional[Decimal] = None,
    ):
        self.message = message
        self.group_id = group_id
        self.record_ids: Tuple[str, ...] = tuple(record_ids)
        self.delta = delta
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "group_id": self.group_id,
            "record_ids": list(self.record_ids),
            "delta": self.delta,
        }


class InvalidRecordError(LedgerError):
    """An expense's shares do not add up to its amount, or a record is malformed."""

    code = "INVALID_RECORD"


class LedgerImbalanceError(LedgerError):
    """Net balances do not sum to zero within tolerance."""

    code = "LEDGER_IMBALANCE"


class UnsettleableLedgerError(LedgerError):
    """The planner received balances that cannot be settled to zero."""

    code = "UNSETTLEABLE_LEDGER"
