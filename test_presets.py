import pytest

from portfolio_challenge.payoff import DEFAULT_ALLOCATION
from portfolio_challenge.presets import (
    BalancedControls,
    EquityControls,
    IncomeControls,
    apply_profile,
    outcome_summary,
    profile_name,
    profile_terms,
)


def test_income_profile_terms():
    split, equity_note, income_note = profile_terms(IncomeControls(income_target="high", protection="conservative"))
    assert split == 0.1
    assert (equity_note.buffer, equity_note.cap) == (0.20, 0.10)
    assert (income_note.coupon, income_note.barrier, income_note.protection) == (0.12, 0.80, "hard")


def test_balanced_growth_tilt_is_uncapped():
    split, equity_note, income_note = profile_terms(BalancedControls(tilt="growth", protection_level=15))
    assert split == 0.6
    assert equity_note.cap is None
    assert equity_note.buffer == pytest.approx(0.15)
    assert income_note.barrier == 0.75


def test_equity_conservative_upside_reduces_participation():
    split, equity_note, income_note = profile_terms(EquityControls(upside="conservative", buffer=20))
    assert split == 0.85
    assert equity_note.participation == 0.9
    assert equity_note.cap == 0.12
    assert income_note.coupon == 0.08


def test_apply_profile_keeps_weights():
    updated = apply_profile(DEFAULT_ALLOCATION, EquityControls(upside="high", buffer=10))
    assert updated.weights == DEFAULT_ALLOCATION.weights
    assert updated.struct_split_equity_note == 0.85
    assert updated.equity_note.cap is None


def test_outcome_summaries():
    assert outcome_summary(IncomeControls(income_target="low", protection="standard")) == (
        "Targets stable income with standard protection through barrier-protected income structures."
    )
    assert outcome_summary(BalancedControls(tilt="income", protection_level=20)) == (
        "Income-oriented allocation with 20% downside buffer protection."
    )
    assert outcome_summary(EquityControls(upside="high", buffer=15)) == (
        "Focuses on uncapped upside participation with 15% downside buffer protection."
    )


def test_profile_names():
    assert profile_name(IncomeControls()) == "income"
    assert profile_name(BalancedControls()) == "balanced"
    assert profile_name(EquityControls()) == "equity"


@pytest.mark.parametrize(
    "factory",
    [
        lambda: IncomeControls(income_target="max"),
        lambda: BalancedControls(protection_level=12),
        lambda: EquityControls(upside="extreme"),
    ],
)
def test_invalid_choices_raise(factory):
    with pytest.raises(ValueError):
        factory()
