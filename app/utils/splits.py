"""
Split calculators.

Each function turns an expense amount into ExpenseParticipant shares that add
up to exactly that amount at the ledger precision, so the records pass the
accumulator's share check without relying on its tolerance.

Minor units that cannot be divided evenly are handed out one at a time,
largest fractional remainder first, ties in participant order. For example
100.00 split three ways gives 33.34, 33.33, 33.33.

Supported split types:
- equally: everyone pays the same
- exact: fixed amounts, members left blank share what is left
- percentage: percentages of the amount, blanks share the remaining percentage
- shares: proportional to share counts (default 1 each)
- adjustment: equal split plus or minus a fixed adjustment per member
"""

from decimal import Decimal
from typing import Mapping, Optional, Sequence, Tuple

from app.schemas.ledger_schema import ExpenseParticipant
from app.utils.money import DEFAULT_PRECISION, from_minor_units, round_decimal, to_minor_units

Participants = Tuple[ExpenseParticipant, ...]

HUNDRED = Decimal("100")


def _check_amount(amount: Decimal, precision: int) -> int:
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValueError(f"Expense amount must be positive, got {amount}")
    if round_decimal(amount, precision) != amount:
        raise ValueError(f"Expense amount {amount} has more than {precision} decimal places")
    return to_minor_units(amount, precision)


def _check_members(user_ids: Sequence[str]) -> None:
    if not user_ids:
        raise ValueError("At least one participant is required")
    if len(set(user_ids)) != len(user_ids):
        raise ValueError(f"Duplicate participants: {list(user_ids)}")


def _allocate(total_units: int, weights: Sequence[Decimal]) -> list:
    """Split ``total_units`` proportionally to ``weights`` using largest remainders."""
    weight_sum = sum(weights, Decimal("0"))
    if weight_sum <= 0 or any(w < 0 for w in weights):
        raise ValueError(f"Weights must be non-negative with a positive sum, got {list(weights)}")

    raw = [total_units * w / weight_sum for w in weights]
    units = [int(r) for r in raw]
    leftover = total_units - sum(units)
    order = sorted(range(len(raw)), key=lambda i: (-(raw[i] - units[i]), i))
    for i in order[:leftover]:
        units[i] += 1
    return units


def _participants(user_ids: Sequence[str], units: Sequence[int], precision: int) -> Participants:
    return tuple(
        ExpenseParticipant(user_id=user_id, amount_owed=from_minor_units(share, precision))
        for user_id, share in zip(user_ids, units)
    )


def split_equally(
    amount: Decimal,
    user_ids: Sequence[str],
    precision: int = DEFAULT_PRECISION,
) -> Participants:
    """
    Split an amount evenly.

    Example:
        >>> [p.amount_owed for p in split_equally(Decimal("100"), ["A", "B", "C"])]
        [Decimal('33.34'), Decimal('33.33'), Decimal('33.33')]
    """
    total_units = _check_amount(amount, precision)
    _check_members(user_ids)
    base, extra = divmod(total_units, len(user_ids))
    units = [base + (1 if i < extra else 0) for i in range(len(user_ids))]
    return _participants(user_ids, units, precision)


def split_exact(
    amount: Decimal,
    amounts: Mapping[str, Optional[Decimal]],
    precision: int = DEFAULT_PRECISION,
) -> Participants:
    """
    Use the given amounts; members mapped to None or zero share the remainder.

    Raises:
        ValueError: If the fixed amounts exceed the total, or they don't add up
            to it and nobody is left to absorb the difference
    """
    total_units = _check_amount(amount, precision)
    user_ids = list(amounts)
    _check_members(user_ids)

    fixed = {
        user_id: to_minor_units(Decimal(str(value)), precision)
        for user_id, value in amounts.items()
        if value
    }
    if any(units < 0 for units in fixed.values()):
        raise ValueError("Exact amounts must not be negative")
    remaining = total_units - sum(fixed.values())
    blanks = [user_id for user_id in user_ids if user_id not in fixed]

    if remaining < 0:
        raise ValueError(
            f"Exact amounts total {from_minor_units(sum(fixed.values()), precision)}, "
            f"more than the expense amount {from_minor_units(total_units, precision)}"
        )
    if not blanks and remaining:
        raise ValueError(
            f"Total owed ({from_minor_units(total_units - remaining, precision)}) "
            f"must equal expense amount ({from_minor_units(total_units, precision)})"
        )

    blank_units = dict(zip(blanks, _allocate(remaining, [Decimal(1)] * len(blanks)))) if blanks else {}
    units = [fixed.get(user_id, blank_units.get(user_id, 0)) for user_id in user_ids]
    return _participants(user_ids, units, precision)


def split_by_percentage(
    amount: Decimal,
    percentages: Mapping[str, Optional[Decimal]],
    precision: int = DEFAULT_PRECISION,
) -> Participants:
    """
    Split by percentage; members mapped to None or zero share the percentage left over.

    Raises:
        ValueError: If the percentages don't come to 100
    """
    total_units = _check_amount(amount, precision)
    user_ids = list(percentages)
    _check_members(user_ids)

    fixed = {user_id: Decimal(str(value)) for user_id, value in percentages.items() if value}
    remaining = HUNDRED - sum(fixed.values(), Decimal("0"))
    blanks = [user_id for user_id in user_ids if user_id not in fixed]

    if remaining < 0 or (not blanks and remaining != 0):
        raise ValueError(
            f"Total percentage must equal 100% (currently {sum(fixed.values(), Decimal('0'))}%)"
        )

    weights = [fixed.get(user_id, remaining / len(blanks) if blanks else Decimal("0")) for user_id in user_ids]
    return _participants(user_ids, _allocate(total_units, weights), precision)


def split_by_shares(
    amount: Decimal,
    shares: Mapping[str, Optional[Decimal]],
    precision: int = DEFAULT_PRECISION,
) -> Participants:
    """Split proportionally to share counts; None means one share, zero means nothing owed."""
    total_units = _check_amount(amount, precision)
    user_ids = list(shares)
    _check_members(user_ids)
    weights = [
        Decimal(1) if shares[user_id] is None else Decimal(str(shares[user_id]))
        for user_id in user_ids
    ]
    return _participants(user_ids, _allocate(total_units, weights), precision)


def split_by_adjustment(
    amount: Decimal,
    adjustments: Mapping[str, Optional[Decimal]],
    precision: int = DEFAULT_PRECISION,
) -> Participants:
    """
    Split evenly what is left after adjustments, then add each member's adjustment.

    Example:
        A 90.00 dinner where A ordered 15.00 extra: A owes 40.00, B and C 25.00.

    Raises:
        ValueError: If an adjustment would leave a member owing less than nothing
    """
    total_units = _check_amount(amount, precision)
    user_ids = list(adjustments)
    _check_members(user_ids)

    adjustment_units = [
        to_minor_units(Decimal(str(adjustments[user_id] or 0)), precision) for user_id in user_ids
    ]
    remaining = total_units - sum(adjustment_units)
    if remaining < 0:
        raise ValueError("Adjustments exceed the expense amount")

    base = _allocate(remaining, [Decimal(1)] * len(user_ids))
    units = [b + a for b, a in zip(base, adjustment_units)]
    if any(u < 0 for u in units):
        raise ValueError("Adjustments leave a participant with a negative share")
    return _participants(user_ids, units, precision)


SPLIT_CALCULATORS = {
    "exact": split_exact,
    "percentage": split_by_percentage,
    "shares": split_by_shares,
    "adjustment": split_by_adjustment,
}


def split_amount(
    split_type: str,
    amount: Decimal,
    values: Mapping[str, Optional[Decimal]],
    precision: int = DEFAULT_PRECISION,
) -> Participants:
    """
    Dispatch to the calculator for ``split_type``.

    ``values`` maps each participant to their amount, percentage, share count
    or adjustment; for an equal split only its keys are used.
    """
    if split_type == "equally":
        return split_equally(amount, list(values), precision)
    if split_type not in SPLIT_CALCULATORS:
        raise ValueError(f"Unknown split type: {split_type}")
    return SPLIT_CALCULATORS[split_type](amount, values, precision)
