"""
Unit tests for the split calculators.
"""
import pytest
from decimal import Decimal

from app.utils.splits import (
    split_amount,
    split_by_adjustment,
    split_by_percentage,
    split_by_shares,
    split_equally,
    split_exact,
)


def owed(participants):
    return {p.user_id: p.amount_owed for p in participants}


@pytest.mark.unit
class TestSplitEqually:
    """Test equal splits."""

    def test_even_split(self):
        assert owed(split_equally(Decimal("90"), ["A", "B", "C"])) == {
            "A": Decimal("30.00"), "B": Decimal("30.00"), "C": Decimal("30.00"),
        }

    def test_leftover_cent_goes_to_first_participant(self):
        participants = split_equally(Decimal("100"), ["A", "B", "C"])

        assert [p.amount_owed for p in participants] == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
        assert sum(p.amount_owed for p in participants) == Decimal("100")

    def test_zero_decimal_currency(self):
        participants = split_equally(Decimal("10"), ["A", "B", "C"], precision=0)
        assert [p.amount_owed for p in participants] == [Decimal("4"), Decimal("3"), Decimal("3")]

    def test_invalid_amount(self):
        with pytest.raises(ValueError, match="positive"):
            split_equally(Decimal("0"), ["A"])
        with pytest.raises(ValueError, match="decimal places"):
            split_equally(Decimal("10.001"), ["A"])

    def test_no_participants(self):
        with pytest.raises(ValueError, match="At least one participant"):
            split_equally(Decimal("10"), [])

    def test_duplicate_participants(self):
        with pytest.raises(ValueError, match="Duplicate"):
            split_equally(Decimal("10"), ["A", "A"])


@pytest.mark.unit
class TestSplitExact:
    """Test exact-amount splits."""

    def test_all_amounts_given(self):
        participants = split_exact(Decimal("100"), {"A": Decimal("70"), "B": Decimal("30")})
        assert owed(participants) == {"A": Decimal("70.00"), "B": Decimal("30.00")}

    def test_blanks_share_remainder(self):
        participants = split_exact(Decimal("100"), {"A": Decimal("60"), "B": None, "C": Decimal("0")})
        assert owed(participants) == {"A": Decimal("60.00"), "B": Decimal("20.00"), "C": Decimal("20.00")}

    def test_amounts_exceed_total(self):
        with pytest.raises(ValueError, match="more than the expense amount"):
            split_exact(Decimal("100"), {"A": Decimal("80"), "B": Decimal("30")})

    def test_amounts_short_of_total(self):
        with pytest.raises(ValueError, match="must equal expense amount"):
            split_exact(Decimal("100"), {"A": Decimal("50"), "B": Decimal("49")})


@pytest.mark.unit
class TestSplitByPercentage:
    """Test percentage splits."""

    def test_percentages(self):
        participants = split_by_percentage(Decimal("200"), {"A": Decimal("50"), "B": Decimal("30"), "C": Decimal("20")})
        assert owed(participants) == {"A": Decimal("100.00"), "B": Decimal("60.00"), "C": Decimal("40.00")}

    def test_blanks_share_remaining_percentage(self):
        participants = split_by_percentage(Decimal("100"), {"A": Decimal("50"), "B": None, "C": None})
        assert owed(participants) == {"A": Decimal("50.00"), "B": Decimal("25.00"), "C": Decimal("25.00")}

    def test_thirds_sum_exactly(self):
        participants = split_by_percentage(Decimal("100"), {"A": None, "B": None, "C": None})

        assert [p.amount_owed for p in participants] == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]

    def test_percentages_must_total_100(self):
        with pytest.raises(ValueError, match="100%"):
            split_by_percentage(Decimal("100"), {"A": Decimal("50"), "B": Decimal("40")})
        with pytest.raises(ValueError, match="100%"):
            split_by_percentage(Decimal("100"), {"A": Decimal("80"), "B": Decimal("30"), "C": None})


@pytest.mark.unit
class TestSplitByShares:
    """Test share-count splits."""

    def test_shares(self):
        participants = split_by_shares(Decimal("100"), {"A": Decimal("2"), "B": Decimal("1"), "C": None})
        assert owed(participants) == {"A": Decimal("50.00"), "B": Decimal("25.00"), "C": Decimal("25.00")}

    def test_uneven_shares_sum_exactly(self):
        participants = split_by_shares(Decimal("10"), {"A": Decimal("1"), "B": Decimal("1"), "C": Decimal("1")})
        assert sum(p.amount_owed for p in participants) == Decimal("10")

    def test_zero_shares_owe_nothing(self):
        """An explicit zero is a zero share; only a missing count means one share."""
        participants = split_by_shares(Decimal("100"), {"A": Decimal("1"), "B": Decimal("0"), "C": None})
        assert owed(participants) == {"A": Decimal("50.00"), "B": Decimal("0"), "C": Decimal("50.00")}

    def test_all_zero_shares_rejected(self):
        with pytest.raises(ValueError, match="positive sum"):
            split_by_shares(Decimal("100"), {"A": Decimal("0"), "B": Decimal("0")})

    def test_negative_shares_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            split_by_shares(Decimal("100"), {"A": Decimal("-1"), "B": Decimal("2")})


@pytest.mark.unit
class TestSplitByAdjustment:
    """Test adjustment splits."""

    def test_adjustment(self):
        participants = split_by_adjustment(Decimal("90"), {"A": Decimal("15"), "B": None, "C": None})
        assert owed(participants) == {"A": Decimal("40.00"), "B": Decimal("25.00"), "C": Decimal("25.00")}

    def test_negative_share_rejected(self):
        with pytest.raises(ValueError, match="negative share"):
            split_by_adjustment(Decimal("10"), {"A": Decimal("-40"), "B": None})

    def test_adjustments_exceed_amount(self):
        with pytest.raises(ValueError, match="exceed"):
            split_by_adjustment(Decimal("10"), {"A": Decimal("20"), "B": None})


@pytest.mark.unit
class TestSplitAmount:
    """Test dispatch by split type."""

    def test_dispatch(self):
        participants = split_amount("percentage", Decimal("200"), {"A": Decimal("75"), "B": None})
        assert owed(participants) == {"A": Decimal("150.00"), "B": Decimal("50.00")}

    def test_equally_ignores_values(self):
        participants = split_amount("equally", Decimal("90"), {"A": Decimal("5"), "B": None, "C": None})
        assert owed(participants) == {"A": Decimal("30.00"), "B": Decimal("30.00"), "C": Decimal("30.00")}

    def test_unknown_split_type(self):
        with pytest.raises(ValueError, match="Unknown split type"):
            split_amount("itemized", Decimal("10"), {"A": None})
