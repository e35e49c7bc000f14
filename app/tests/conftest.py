"""
Pytest configuration and fixtures for ledger service tests.
"""
import os

# Keep the app's default engine off disk; route tests swap in their own session.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from decimal import Decimal
from typing import Dict, Iterable, List

from app.schemas.ledger_schema import (
    ExpenseParticipant,
    ExpenseRecord,
    MemberBalance,
    SettlementRecord,
    SuggestedSettlement,
)


def make_expense(expense_id: str, payer: str, amount: str, shares: Dict[str, str], group_id: str = "g1") -> ExpenseRecord:
    """Build an ExpenseRecord from plain strings."""
    return ExpenseRecord(
        id=expense_id,
        group_id=group_id,
        payer_id=payer,
        amount=Decimal(amount),
        participants=tuple(
            ExpenseParticipant(user_id=user_id, amount_owed=Decimal(owed))
            for user_id, owed in shares.items()
        ),
    )


def make_settlement(settlement_id: str, from_user: str, to_user: str, amount: str, group_id: str = "g1") -> SettlementRecord:
    """Build a SettlementRecord from plain strings."""
    return SettlementRecord(
        id=settlement_id,
        group_id=group_id,
        from_user_id=from_user,
        to_user_id=to_user,
        amount=Decimal(amount),
    )


def make_balances(nets: Dict[str, str]) -> List[MemberBalance]:
    """Build MemberBalance values from net amounts only."""
    balances = []
    for user_id, net in nets.items():
        net = Decimal(net)
        balances.append(MemberBalance(
            user_id=user_id,
            total_paid=max(net, Decimal("0")),
            total_owed=max(-net, Decimal("0")),
            net_balance=net,
        ))
    return balances


@pytest.fixture
def scenario_a():
    """One 90.00 expense paid by A, split equally among A, B and C."""
    return [make_expense("e1", "A", "90.00", {"A": "30.00", "B": "30.00", "C": "30.00"})], []


@pytest.fixture
def scenario_b():
    """100.00 paid by A split 33.34/33.33/33.33, then B pays A 33.34."""
    expenses = [make_expense("e1", "A", "100.00", {"A": "33.34", "B": "33.33", "C": "33.33"})]
    settlements = [make_settlement("s1", "B", "A", "33.34")]
    return expenses, settlements


@pytest.fixture
def sample_group():
    """A busier group with several payers and a partial settlement."""
    expenses = [
        make_expense("e1", "A", "120.00", {"A": "40.00", "B": "40.00", "C": "40.00"}),
        make_expense("e2", "B", "60.00", {"B": "30.00", "C": "30.00"}),
        make_expense("e3", "C", "40.00", {"A": "13.34", "C": "13.33", "D": "13.33"}),
        make_expense("e4", "D", "75.50", {"A": "25.17", "B": "25.17", "D": "25.16"}),
    ]
    settlements = [make_settlement("s1", "C", "A", "20.00")]
    return expenses, settlements


def verify_settlements_settle_debts(balances: Iterable[MemberBalance], settlements: Iterable[SuggestedSettlement]) -> None:
    """
    Helper to verify settlements settle all debts exactly.

    Paying a settlement raises the payer's balance and lowers the receiver's,
    so every final balance must be exactly zero.
    """
    final: Dict[str, Decimal] = {b.user_id: b.net_balance for b in balances}

    for settlement in settlements:
        assert settlement.amount > 0
        final[settlement.from_user_id] += settlement.amount
        final[settlement.to_user_id] -= settlement.amount

    for user, remaining in final.items():
        assert remaining == 0, f"User {user} not settled: final={remaining}"
