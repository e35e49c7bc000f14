from sqlalchemy.orm import Session
from typing import List, Tuple
from app.models.expenses import Expense
from app.models.settlements import Settlement
from app.schemas.ledger_schema import ExpenseParticipant, ExpenseRecord, SettlementRecord


def get_group_expense_records(db: Session, group_id: str) -> List[ExpenseRecord]:
    """Get all expenses for a group as ledger records"""
    expenses = db.query(Expense).filter(Expense.group_id == group_id).order_by(Expense.id).all()
    return [
        ExpenseRecord(
            id=expense.id,
            group_id=expense.group_id,
            payer_id=expense.paid_by,
            amount=expense.amount,
            description=expense.description,
            participants=tuple(
                ExpenseParticipant(user_id=p.user_id, amount_owed=p.amount_owed)
                for p in expense.participants
            ),
        )
        for expense in expenses
    ]


def get_group_settlement_records(db: Session, group_id: str) -> List[SettlementRecord]:
    """Get all settlements for a group as ledger records"""
    settlements = db.query(Settlement).filter(Settlement.group_id == group_id).order_by(Settlement.id).all()
    return [SettlementRecord.model_validate(settlement) for settlement in settlements]


def load_group_snapshot(db: Session, group_id: str) -> Tuple[List[ExpenseRecord], List[SettlementRecord]]:
    """
    Load a group's expenses and settlements in one read.

    Both queries run inside the session's current transaction, so the ledger
    sees expenses and settlements from the same point in time.
    """
    expenses = get_group_expense_records(db, group_id)
    settlements = get_group_settlement_records(db, group_id)
    return expenses, settlements
