from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.core.config import Settings, get_settings
from app.core.exceptions import LedgerError, UnsettleableLedgerError
from app.services.ledger_service import build_split_expense, compute_group_ledger, get_member_balance
from app.services.record_repository import load_group_snapshot
from app.schemas.ledger_schema import GroupLedger, LedgerComputeRequest, LedgerFailure, MemberBalance

router = APIRouter(prefix="/ledger", tags=["ledger"])


def ledger_http_error(error: LedgerError) -> HTTPException:
    """Map an engine error to an HTTP error carrying the LedgerFailure body"""
    status_code = 500 if isinstance(error, UnsettleableLedgerError) else 422
    return HTTPException(
        status_code=status_code,
        detail=LedgerFailure.from_error(error).model_dump(mode="json"),
    )


def build_group_ledger(db: Session, group_id: str, settings: Settings) -> GroupLedger:
    expenses, settlements = load_group_snapshot(db, group_id)
    try:
        return compute_group_ledger(
            expenses,
            settlements,
            settings.LEDGER_PRECISION,
            group_id=group_id,
            tolerance_units=settings.LEDGER_TOLERANCE_UNITS,
        )
    except LedgerError as e:
        raise ledger_http_error(e)


@router.post("/compute", response_model=GroupLedger)
def compute_ledger(
    request: LedgerComputeRequest,
    settings: Settings = Depends(get_settings)
):
    """Compute balances and suggested settlements for the given records"""
    precision = request.precision if request.precision is not None else settings.LEDGER_PRECISION
    try:
        expenses = request.expenses + [
            build_split_expense(split, precision) for split in request.split_expenses
        ]
        return compute_group_ledger(
            expenses,
            request.settlements,
            precision,
            group_id=request.group_id,
            member_ids=request.member_ids,
            tolerance_units=settings.LEDGER_TOLERANCE_UNITS,
        )
    except LedgerError as e:
        raise ledger_http_error(e)


@router.get("/groups/{group_id}", response_model=GroupLedger)
def get_group_ledger(
    group_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Get balances and suggested settlements for a stored group"""
    return build_group_ledger(db, group_id, settings)


@router.get("/groups/{group_id}/members/{user_id}", response_model=MemberBalance)
def get_group_member_balance(
    group_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Get one member's balance in a stored group"""
    balance = get_member_balance(build_group_ledger(db, group_id, settings), user_id)
    if not balance:
        raise HTTPException(status_code=404, detail="Member has no balance in this group")
    return balance
