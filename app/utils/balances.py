"""
Ledger accumulation and balance normalization.

accumulate() folds expense and settlement records into per-member paid/owed
totals. normalize() turns those totals into rounded MemberBalance values whose
net balances sum to exactly zero.

Net balance = total_paid - total_owed
- Positive balance: member is owed money (creditor)
- Negative balance: member owes money (debtor)

A settlement counts as a payment by the sender (total_paid) and as an amount
already collected by the receiver (total_owed), so expenses and settlements go
through the same two accumulators.

Example Usage:
    totals = accumulate(expenses, settlements)
    balances = normalize(totals, precision=2)
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.core.exceptions import InvalidRecordError, LedgerImbalanceError
from app.schemas.ledger_schema import (
    CounterpartyAmount,
    ExpenseRecord,
    MemberBalance,
    SettlementRecord,
)
from app.utils.money import (
    DEFAULT_PRECISION,
    from_minor_units,
    minor_unit,
    round_decimal,
    to_minor_units,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class MemberTotals:
    total_paid: Decimal = ZERO
    total_owed: Decimal = ZERO
    # Carries a residual already absorbed by an earlier normalize() pass.
    adjustment: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.total_paid - self.total_owed + self.adjustment

    @classmethod
    def from_balance(cls, balance: MemberBalance) -> "MemberTotals":
        return cls(
            total_paid=balance.total_paid,
            total_owed=balance.total_owed,
            adjustment=balance.net_balance - (balance.total_paid - balance.total_owed),
        )


def totals_from_balances(balances: Iterable[MemberBalance]) -> Dict[str, MemberTotals]:
    """Turn normalized balances back into accumulator output."""
    return {balance.user_id: MemberTotals.from_balance(balance) for balance in balances}


def _check_single_group(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord],
    group_id: Optional[str],
) -> Optional[str]:
    records = list(expenses) + list(settlements)
    groups = {record.group_id for record in records}
    if not groups:
        return group_id

    expected = group_id if group_id is not None else min(groups)
    foreign = sorted(record.id for record in records if record.group_id != expected)
    if foreign:
        raise InvalidRecordError(
            f"Records belong to groups other than {expected!r}: {', '.join(foreign)}",
            group_id=expected,
            record_ids=foreign,
        )
    return expected


def accumulate(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord] = (),
    tolerance: Optional[Decimal] = None,
    precision: int = DEFAULT_PRECISION,
    group_id: Optional[str] = None,
) -> Dict[str, MemberTotals]:
    """
    Fold expense and settlement records into per-member totals.

    Args:
        expenses: Expense records of a single group
        settlements: Settlement records of the same group
        tolerance: Allowed gap between an expense's amount and the sum of its
            shares (default: one minor unit at ``precision``)
        precision: Decimal places of the ledger currency
        group_id: Group the records must belong to (default: inferred)

    Returns:
        Dictionary mapping user_id -> MemberTotals

    Raises:
        InvalidRecordError: If an expense's shares don't add up to its amount,
            a settlement pays the same member it comes from, or records span
            more than one group
    """
    if tolerance is None:
        tolerance = minor_unit(precision)
    group_id = _check_single_group(expenses, settlements, group_id)

    offenders: List[Tuple[str, str, Optional[Decimal]]] = []
    for expense in expenses:
        shares_total = sum((p.amount_owed for p in expense.participants), ZERO)
        delta = shares_total - expense.amount
        if abs(delta) > tolerance:
            offenders.append((
                expense.id,
                f"expense {expense.id} shares sum to {shares_total}, expected {expense.amount} (delta {delta})",
                delta,
            ))
    for settlement in settlements:
        if settlement.from_user_id == settlement.to_user_id:
            offenders.append((
                settlement.id,
                f"settlement {settlement.id} pays {settlement.from_user_id} back to themselves",
                None,
            ))

    if offenders:
        offenders.sort(key=lambda offender: offender[0])
        raise InvalidRecordError(
            f"Invalid records (tolerance {tolerance}): " + "; ".join(o[1] for o in offenders),
            group_id=group_id,
            record_ids=[o[0] for o in offenders],
            delta=offenders[0][2] if len(offenders) == 1 else None,
        )

    totals: Dict[str, MemberTotals] = defaultdict(MemberTotals)

    for expense in expenses:
        totals[expense.payer_id].total_paid += expense.amount
        for participant in expense.participants:
            totals[participant.user_id].total_owed += participant.amount_owed

    for settlement in settlements:
        totals[settlement.from_user_id].total_paid += settlement.amount
        totals[settlement.to_user_id].total_owed += settlement.amount

    return dict(totals)


def inexact_expense_ids(expenses: Sequence[ExpenseRecord]) -> List[str]:
    """Ids of expenses whose shares differ from their amount at all, sorted."""
    return sorted(
        expense.id
        for expense in expenses
        if sum((p.amount_owed for p in expense.participants), ZERO) != expense.amount
    )


def accumulate_pairwise(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord] = (),
) -> Dict[Tuple[str, str], Decimal]:
    """
    Net who-owes-whom per pair of members.

    Every participant other than the payer owes the payer their share; a
    settlement reduces the sender's debt to the receiver. Debts in opposite
    directions between the same two members cancel out.

    Returns:
        Dictionary mapping (debtor_id, creditor_id) -> positive amount
    """
    owes: Dict[Tuple[str, str], Decimal] = defaultdict(lambda: ZERO)

    for expense in expenses:
        for participant in expense.participants:
            if participant.user_id != expense.payer_id:
                owes[(participant.user_id, expense.payer_id)] += participant.amount_owed

    for settlement in settlements:
        owes[(settlement.from_user_id, settlement.to_user_id)] -= settlement.amount

    netted: Dict[Tuple[str, str], Decimal] = {}
    for a, b in {tuple(sorted(pair)) for pair in owes}:
        amount = owes.get((a, b), ZERO) - owes.get((b, a), ZERO)
        if amount > 0:
            netted[(a, b)] = amount
        elif amount < 0:
            netted[(b, a)] = -amount
    return netted


def counterparties(
    pairwise: Mapping[Tuple[str, str], Decimal],
    precision: int = DEFAULT_PRECISION,
) -> Dict[str, Tuple[Tuple[CounterpartyAmount, ...], Tuple[CounterpartyAmount, ...]]]:
    """Group pairwise debts into (owes_to, owed_by) per member, sorted by user_id."""
    owes_to: Dict[str, List[CounterpartyAmount]] = defaultdict(list)
    owed_by: Dict[str, List[CounterpartyAmount]] = defaultdict(list)

    for (debtor, creditor), amount in sorted(pairwise.items()):
        rounded = round_decimal(amount, precision)
        if rounded == 0:
            continue
        owes_to[debtor].append(CounterpartyAmount(user_id=creditor, amount=rounded))
        owed_by[creditor].append(CounterpartyAmount(user_id=debtor, amount=rounded))

    members = set(owes_to) | set(owed_by)
    return {
        user_id: (tuple(owes_to.get(user_id, ())), tuple(owed_by.get(user_id, ())))
        for user_id in members
    }


def validate_balance_sum(
    accumulated: Mapping[str, MemberTotals],
    tolerance: Decimal,
    group_id: Optional[str] = None,
    record_ids: Sequence[str] = (),
) -> Decimal:
    """
    Check that net balances sum to zero within ``tolerance``.

    ``record_ids`` names the records that may have caused an imbalance
    (see inexact_expense_ids()) and is carried on the error.

    Returns:
        The (unrounded) sum of net balances

    Raises:
        LedgerImbalanceError: If the sum exceeds the tolerance
    """
    total = sum((totals.net for totals in accumulated.values()), ZERO)
    if abs(total) > tolerance:
        raise LedgerImbalanceError(
            f"Balances not zero-sum: total={total}, tolerance={tolerance}. "
            f"This indicates inconsistent expense or settlement data.",
            group_id=group_id,
            record_ids=sorted(record_ids),
            delta=total,
        )
    return total


def normalize(
    accumulated: Mapping[str, MemberTotals],
    precision: int = DEFAULT_PRECISION,
    tolerance: Optional[Decimal] = None,
    group_id: Optional[str] = None,
    record_ids: Sequence[str] = (),
) -> List[MemberBalance]:
    """
    Round accumulated totals into balances that sum to exactly zero.

    Net balances are rounded half-to-even. Whatever residual the rounding
    leaves is absorbed by the member with the largest balance magnitude
    (ties go to the smallest user_id).

    Args:
        accumulated: Output of accumulate() (or totals_from_balances())
        precision: Decimal places of the ledger currency
        tolerance: Allowed deviation from zero before rounding
            (default: one minor unit)
        group_id: Reported in errors
        record_ids: Suspect records reported if the balances don't sum to zero

    Returns:
        List of MemberBalance sorted by user_id

    Raises:
        LedgerImbalanceError: If the unrounded balances don't sum to zero
    """
    if not accumulated:
        return []
    if tolerance is None:
        tolerance = minor_unit(precision)

    validate_balance_sum(accumulated, tolerance, group_id, record_ids)

    net_units = {
        user_id: to_minor_units(totals.net, precision)
        for user_id, totals in accumulated.items()
    }
    residual = sum(net_units.values())
    if residual:
        target = min(net_units, key=lambda user_id: (-abs(net_units[user_id]), user_id))
        net_units[target] -= residual
        logger.debug(
            "Absorbed rounding residual of %s minor units into %s", residual, target
        )

    return [
        MemberBalance(
            user_id=user_id,
            total_owed=round_decimal(accumulated[user_id].total_owed, precision),
            total_paid=round_decimal(accumulated[user_id].total_paid, precision),
            net_balance=from_minor_units(net_units[user_id], precision),
        )
        for user_id in sorted(net_units)
    ]
