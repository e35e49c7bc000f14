from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Literal, Optional, List, Tuple
from decimal import Decimal

from app.core.exceptions import LedgerError


class ExpenseParticipant(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: str
    amount_owed: Decimal = Field(..., ge=0)


class ExpenseRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    group_id: str
    payer_id: str
    amount: Decimal = Field(..., gt=0)
    participants: Tuple[ExpenseParticipant, ...] = ()
    description: Optional[str] = None


class SettlementRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    group_id: str
    from_user_id: str
    to_user_id: str
    amount: Decimal = Field(..., gt=0)
    notes: Optional[str] = None


class CounterpartyAmount(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    amount: Decimal


class MemberBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    total_owed: Decimal
    total_paid: Decimal
    net_balance: Decimal
    owes_to: Tuple[CounterpartyAmount, ...] = ()
    owed_by: Tuple[CounterpartyAmount, ...] = ()


class SuggestedSettlement(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_user_id: str
    to_user_id: str
    amount: Decimal = Field(..., gt=0)


class GroupLedger(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_id: Optional[str] = None
    precision: int
    balances: List[MemberBalance]
    suggested_settlements: List[SuggestedSettlement]


class LedgerFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    error: str
    message: str
    group_id: Optional[str] = None
    record_ids: List[str] = []
    delta: Optional[Decimal] = None

    @classmethod
    def from_error(cls, error: LedgerError) -> "LedgerFailure":
        return cls(**error.to_dict())


SplitType = Literal["equally", "exact", "percentage", "shares", "adjustment"]


class SplitExpenseRequest(BaseModel):
    """An expense given as a split type and per-member values instead of shares"""
    id: str
    group_id: str
    payer_id: str
    amount: Decimal = Field(..., gt=0)
    split_type: SplitType = "equally"
    values: Dict[str, Optional[Decimal]]
    description: Optional[str] = None


class LedgerComputeRequest(BaseModel):
    group_id: Optional[str] = None
    expenses: List[ExpenseRecord] = []
    split_expenses: List[SplitExpenseRequest] = []
    settlements: List[SettlementRecord] = []
    member_ids: List[str] = []
    precision: Optional[int] = Field(None, ge=0, le=6)
