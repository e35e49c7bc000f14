"""
Min-Cash-Flow Settlement Planner

This module turns zero-sum net balances into a short list of suggested
payments that settle every member of a group.

The algorithm works by:
1. Separating members into creditors (positive balance) and debtors (negative balance)
2. Keeping each side in a max-heap keyed by remaining magnitude
3. Matching the largest debtor with the largest creditor and transferring the
   smaller of the two amounts
4. Pushing back whichever side still has something left, until both heaps are empty

Every match settles at least one member completely, so n non-zero balances
never need more than n - 1 payments. Ties on magnitude go to the smaller
user_id, which keeps the plan deterministic.

Time Complexity: O(n log n) for the heap operations
Space Complexity: O(n) for the heaps and settlement results

Example Usage:
    from app.utils.min_cash_flow import plan_settlements

    settlements = plan_settlements(balances, precision=2)

    # Result: [SuggestedSettlement(from_user_id="C", to_user_id="A", amount=Decimal("70.00")), ...]
"""

import heapq
import logging
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from app.core.exceptions import UnsettleableLedgerError
from app.schemas.ledger_schema import MemberBalance, SuggestedSettlement
from app.utils.money import (
    DEFAULT_CURRENCY,
    DEFAULT_PRECISION,
    Currency,
    format_amount,
    from_minor_units,
    round_decimal,
    to_minor_units,
)

logger = logging.getLogger(__name__)

# (debtor_id, creditor_id, amount, debt_left, credit_left), amounts in minor units
Match = Tuple[str, str, int, int, int]


def _to_units(balances: Sequence[MemberBalance], precision: int) -> Dict[str, int]:
    units: Dict[str, int] = {}
    for balance in balances:
        if balance.user_id in units:
            raise _unsettleable(f"Member {balance.user_id} appears more than once")
        if round_decimal(balance.net_balance, precision) != balance.net_balance:
            raise _unsettleable(
                f"Balance of {balance.user_id} ({balance.net_balance}) "
                f"is not at {precision} decimal places"
            )
        units[balance.user_id] = to_minor_units(balance.net_balance, precision)

    total = sum(units.values())
    if total:
        raise _unsettleable(
            f"Balances sum to {from_minor_units(total, precision)}, not zero",
            delta=from_minor_units(total, precision),
        )
    return units


def _unsettleable(message: str, delta: Optional[Decimal] = None) -> UnsettleableLedgerError:
    logger.critical("Cannot plan settlements: %s", message)
    return UnsettleableLedgerError(message, delta=delta)


def _match(units: Dict[str, int]) -> Iterator[Match]:
    creditors = [(-amount, user_id) for user_id, amount in units.items() if amount > 0]
    debtors = [(amount, user_id) for user_id, amount in units.items() if amount < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    while creditors and debtors:
        neg_credit, creditor_id = heapq.heappop(creditors)
        neg_debt, debtor_id = heapq.heappop(debtors)
        credit, debt = -neg_credit, -neg_debt

        amount = min(credit, debt)
        credit -= amount
        debt -= amount
        yield debtor_id, creditor_id, amount, debt, credit

        if credit:
            heapq.heappush(creditors, (-credit, creditor_id))
        if debt:
            heapq.heappush(debtors, (-debt, debtor_id))

    if creditors or debtors:
        raise _unsettleable("Greedy matching left members unsettled")


def plan_settlements(
    balances: Sequence[MemberBalance],
    precision: int = DEFAULT_PRECISION,
) -> List[SuggestedSettlement]:
    """
    Minimize the number of payments needed to settle all balances.

    Edge Cases Handled:
    - No balances, or all balances zero: returns []
    - Balances not summing to exactly zero: raises UnsettleableLedgerError
    - Same member listed twice: raises UnsettleableLedgerError

    Args:
        balances: Normalized member balances (output of normalize())
        precision: Decimal places of the ledger currency

    Returns:
        List of SuggestedSettlement, debtor -> creditor, in matching order

    Raises:
        UnsettleableLedgerError: If the balances cannot be settled to zero

    Example:
        >>> balances = [
        ...     MemberBalance(user_id="A", total_owed=Decimal("0"), total_paid=Decimal("80"), net_balance=Decimal("80")),
        ...     MemberBalance(user_id="B", total_owed=Decimal("10"), total_paid=Decimal("0"), net_balance=Decimal("-10")),
        ...     MemberBalance(user_id="C", total_owed=Decimal("70"), total_paid=Decimal("0"), net_balance=Decimal("-70")),
        ... ]
        >>> [(s.from_user_id, s.to_user_id, s.amount) for s in plan_settlements(balances)]
        [('C', 'A', Decimal('70.00')), ('B', 'A', Decimal('10.00'))]
    """
    units = _to_units(balances, precision)

    settlements = []
    for debtor_id, creditor_id, amount, debt_left, credit_left in _match(units):
        logger.debug(
            "Matched %s -> %s for %s units (debt left %s, credit left %s)",
            debtor_id, creditor_id, amount, debt_left, credit_left,
        )
        settlements.append(SuggestedSettlement(
            from_user_id=debtor_id,
            to_user_id=creditor_id,
            amount=from_minor_units(amount, precision),
        ))
    return settlements


def explain_plan(
    balances: Sequence[MemberBalance],
    currency: Currency = DEFAULT_CURRENCY,
    precision: int = DEFAULT_PRECISION,
) -> Tuple[List[SuggestedSettlement], List[str]]:
    """
    Plan settlements and describe every matching step.

    Same algorithm as plan_settlements(), but also returns readable lines
    showing how each payment was chosen. Useful for debugging and for
    showing members why a payment was suggested.

    Returns:
        Tuple of (settlements_list, explanation_lines)
    """
    def money(units: int) -> str:
        return format_amount(from_minor_units(units, precision), currency, precision)

    units = _to_units(balances, precision)
    lines = []
    creditors = sorted(user_id for user_id, amount in units.items() if amount > 0)
    debtors = sorted(user_id for user_id, amount in units.items() if amount < 0)
    lines.append(f"Creditors: {', '.join(f'{u} ({money(units[u])})' for u in creditors) or 'none'}")
    lines.append(f"Debtors: {', '.join(f'{u} ({money(-units[u])})' for u in debtors) or 'none'}")

    settlements = []
    for step, (debtor_id, creditor_id, amount, debt_left, credit_left) in enumerate(_match(units), 1):
        settlements.append(SuggestedSettlement(
            from_user_id=debtor_id,
            to_user_id=creditor_id,
            amount=from_minor_units(amount, precision),
        ))
        line = f"Step {step}: {debtor_id} pays {creditor_id} {money(amount)}"
        settled = [user_id for user_id, left in ((debtor_id, debt_left), (creditor_id, credit_left)) if not left]
        if settled:
            line += f" ({' and '.join(settled)} settled)"
        lines.append(line)

    lines.append(f"Total payments: {len(settlements)}")
    return settlements, lines
