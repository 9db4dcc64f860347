from dataclasses import replace

import pytest

np = pytest.importorskip("numpy")

from portfolio_challenge.environments import get_environment
from portfolio_challenge.payoff import (
    DEFAULT_ALLOCATION,
    Allocation,
    EquityNoteTerms,
    IncomeNoteTerms,
    equity_note_return,
    equity_note_returns,
    income_note_return,
    income_note_returns,
    portfolio_outcome,
    portfolio_outcome_scenario,
)
from portfolio_challenge.scenarios import Scenario


def test_equity_note_upside_is_capped():
    terms = EquityNoteTerms(buffer=0.15, cap=0.12, participation=1.0)
    assert equity_note_return(0.10, terms) == pytest.approx(0.10)
    assert equity_note_return(0.25, terms) == pytest.approx(0.12)


def test_equity_note_uncapped_scales_by_participation():
    terms = EquityNoteTerms(buffer=0.10, cap=None, participation=0.9)
    assert equity_note_return(0.30, terms) == pytest.approx(0.27)


def test_equity_note_buffer_absorbs_losses_then_offsets():
    terms = EquityNoteTerms(buffer=0.15, cap=0.12)
    for r in (-0.15, -0.10, -0.01, 0.0):
        assert equity_note_return(r, terms) == 0.0
    assert equity_note_return(-0.40, terms) == pytest.approx(-0.25)


def test_equity_note_is_monotonic():
    terms = EquityNoteTerms(buffer=0.20, cap=0.10, participation=1.0)
    values = [equity_note_return(float(r), terms) for r in np.linspace(-0.6, 0.3, 181)]
    assert all(b >= a for a, b in zip(values, values[1:]))


def test_income_note_pays_coupon_in_calm_market():
    env = get_environment(1)
    result = income_note_return(0.10, env, IncomeNoteTerms(coupon=0.10, barrier=0.70, protection="hard"))
    assert result.income == pytest.approx(0.025)
    assert result.principal_hit == 0.0
    assert result.total == pytest.approx(0.025)


def test_income_note_coupon_suspended_under_stress_or_sell_off():
    terms = IncomeNoteTerms(coupon=0.10, barrier=0.70)
    assert income_note_return(0.05, get_environment(3), terms).income == 0.0
    assert income_note_return(-0.18, get_environment(1), terms).income == 0.0
    assert income_note_return(-0.17, get_environment(2), terms).income == pytest.approx(0.025)


def test_income_note_barrier_boundary_is_not_a_breach():
    env = get_environment(3)
    terms = IncomeNoteTerms(coupon=0.10, barrier=0.70, protection="hard")
    assert income_note_return(-0.30, env, terms).principal_hit == 0.0


def test_income_note_hard_protection_dampens_breach():
    env = get_environment(3)
    terms = IncomeNoteTerms(coupon=0.10, barrier=0.70, protection="hard")
    result = income_note_return(-0.31, env, terms)
    barrier_loss = -(1 - 0.70)
    assert result.principal_hit < 0
    assert result.principal_hit == (-0.31 - barrier_loss) * 0.65
    assert result.principal_hit == pytest.approx(-0.0065)
    assert result.total == result.principal_hit


def test_income_note_soft_protection_takes_full_breach():
    env = get_environment(3)
    result = income_note_return(-0.31, env, IncomeNoteTerms(coupon=0.10, barrier=0.70, protection="soft"))
    assert result.principal_hit == pytest.approx(-0.01)


def test_default_allocation_in_calm_market():
    env = get_environment(1)
    outcome = portfolio_outcome(env, DEFAULT_ALLOCATION)
    assert outcome.total_r == pytest.approx(0.06727, abs=1e-9)
    assert outcome.max_dd == 0.0
    assert outcome.income == pytest.approx(0.2 * 0.4 * 0.025)


def test_drawdown_ignores_naive_penalty():
    env = get_environment(3)
    scenario = Scenario(equity_return=-0.30, bond_return=-0.02)
    outcome = portfolio_outcome_scenario(scenario, env, DEFAULT_ALLOCATION)
    penalty = 0.9 * 0.15 * (0.5 * 0.3)
    assert outcome.max_dd == pytest.approx(-(outcome.total_r + penalty))


def test_portfolio_outcome_uses_anchor_returns():
    env = get_environment(2)
    anchor = Scenario(equity_return=env.equity_return, bond_return=env.bond_return)
    assert portfolio_outcome(env, DEFAULT_ALLOCATION) == portfolio_outcome_scenario(anchor, env, DEFAULT_ALLOCATION)


def test_array_payoffs_match_scalar_payoffs():
    env = get_environment(2)
    equity = np.linspace(-0.6, 0.3, 91)
    for cap in (0.12, None):
        terms = EquityNoteTerms(buffer=0.15, cap=cap, participation=0.9)
        vectorised = equity_note_returns(equity, terms.buffer, terms.cap, terms.participation)
        assert vectorised.tolist() == [equity_note_return(float(r), terms) for r in equity]

    for protection in ("hard", "soft"):
        terms = IncomeNoteTerms(coupon=0.08, barrier=0.60, protection=protection)
        total, income, hit = income_note_returns(equity, env, terms.coupon, terms.barrier, protection == "hard")
        expected = [income_note_return(float(r), env, terms) for r in equity]
        assert total.tolist() == [e.total for e in expected]
        assert income.tolist() == [e.income for e in expected]
        assert hit.tolist() == [e.principal_hit for e in expected]


def test_allocation_rejects_weights_not_summing_to_one():
    with pytest.raises(ValueError):
        replace(DEFAULT_ALLOCATION, fi=0.5)


@pytest.mark.parametrize(
    "factory",
    [
        lambda: IncomeNoteTerms(coupon=0.1, barrier=1.0),
        lambda: IncomeNoteTerms(coupon=0.1, barrier=0.7, protection="medium"),
        lambda: EquityNoteTerms(buffer=1.5, cap=None),
        lambda: EquityNoteTerms(buffer=0.1, cap=-0.1),
    ],
)
def test_note_terms_validate_ranges(factory):
    with pytest.raises(ValueError):
        factory()


def test_allocation_round_trips_through_dict():
    payload = DEFAULT_ALLOCATION.to_dict()
    assert payload["equity_note"]["cap"] == 0.12
    assert Allocation.from_dict(payload) == DEFAULT_ALLOCATION
