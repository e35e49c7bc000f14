import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from app.core.exceptions import InvalidRecordError, LedgerError, UnsettleableLedgerError
from app.schemas.ledger_schema import (
    ExpenseRecord,
    GroupLedger,
    LedgerFailure,
    MemberBalance,
    SettlementRecord,
    SplitExpenseRequest,
)
from app.utils.balances import (
    MemberTotals,
    accumulate,
    accumulate_pairwise,
    counterparties,
    inexact_expense_ids,
    normalize,
)
from app.utils.min_cash_flow import plan_settlements
from app.utils.money import DEFAULT_PRECISION, minor_unit
from app.utils.splits import split_amount

logger = logging.getLogger(__name__)


def compute_group_ledger(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord] = (),
    precision: Optional[int] = None,
    *,
    group_id: Optional[str] = None,
    member_ids: Iterable[str] = (),
    tolerance_units: int = 1,
) -> GroupLedger:
    """
    Compute member balances and suggested settlements for one group.

    Runs accumulate -> normalize -> plan. The result depends only on the
    records, never on their order, so calling it again with the same data
    gives the same ledger.

    Args:
        expenses: The group's expense records
        settlements: Settlements already paid between members
        precision: Decimal places of the group currency (default: 2)
        group_id: Group the records belong to; inferred from them if omitted
        member_ids: Members to report even if they have no records yet
        tolerance_units: Allowed rounding gap, in minor units, both per expense
            and for the whole ledger

    Returns:
        GroupLedger with balances sorted by user_id and the suggested settlements

    Raises:
        InvalidRecordError: A record is malformed
        LedgerImbalanceError: Balances don't sum to zero before rounding
        UnsettleableLedgerError: The planner could not settle the balances
    """
    if precision is None:
        precision = DEFAULT_PRECISION
    tolerance = minor_unit(precision) * tolerance_units
    if group_id is None:
        groups = {record.group_id for record in list(expenses) + list(settlements)}
        group_id = min(groups) if groups else None

    try:
        totals = accumulate(expenses, settlements, tolerance=tolerance, precision=precision, group_id=group_id)
        for user_id in member_ids:
            totals.setdefault(user_id, MemberTotals())

        balances = normalize(
            totals,
            precision=precision,
            tolerance=tolerance,
            group_id=group_id,
            record_ids=inexact_expense_ids(expenses),
        )
        suggested = plan_settlements(balances, precision=precision)
    except LedgerError as e:
        e.group_id = e.group_id or group_id
        if not isinstance(e, UnsettleableLedgerError):
            logger.warning("Rejected ledger input for group %s [%s]: %s", group_id, e.code, e.message)
        raise

    pairwise = counterparties(accumulate_pairwise(expenses, settlements), precision)
    balances = [
        balance.model_copy(update=dict(zip(("owes_to", "owed_by"), pairwise[balance.user_id])))
        if balance.user_id in pairwise else balance
        for balance in balances
    ]

    logger.info(
        "Computed ledger for group %s: %d members, %d suggested settlements, %s outstanding",
        group_id, len(balances), len(suggested), sum((s.amount for s in suggested), Decimal("0")),
    )
    return GroupLedger(
        group_id=group_id,
        precision=precision,
        balances=balances,
        suggested_settlements=suggested,
    )


def compute_group_ledger_result(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord] = (),
    precision: Optional[int] = None,
    **kwargs,
) -> Union[GroupLedger, LedgerFailure]:
    """Same as compute_group_ledger(), but returns a LedgerFailure instead of raising."""
    try:
        return compute_group_ledger(expenses, settlements, precision, **kwargs)
    except LedgerError as e:
        return LedgerFailure.from_error(e)


def get_member_balance(ledger: GroupLedger, user_id: str) -> Optional[MemberBalance]:
    """Get one member's balance from a computed ledger"""
    return next((b for b in ledger.balances if b.user_id == user_id), None)


def build_split_expense(request: SplitExpenseRequest, precision: Optional[int] = None) -> ExpenseRecord:
    """
    Turn a split-type expense into an ExpenseRecord with exact shares.

    Raises:
        InvalidRecordError: The split values can't produce shares for the amount
    """
    if precision is None:
        precision = DEFAULT_PRECISION
    try:
        participants = split_amount(request.split_type, request.amount, request.values, precision)
    except ValueError as e:
        raise InvalidRecordError(
            f"expense {request.id}: {e}",
            group_id=request.group_id,
            record_ids=[request.id],
        )
    return ExpenseRecord(
        id=request.id,
        group_id=request.group_id,
        payer_id=request.payer_id,
        amount=request.amount,
        participants=participants,
        description=request.description,
    )
