import math
from dataclasses import replace

import pytest

np = pytest.importorskip("numpy")

from portfolio_challenge.environments import LEVELS, get_environment
from portfolio_challenge.objective import (
    DEFAULT_WEIGHTS,
    ObjectiveWeights,
    compute_objective,
    constraint_penalty,
    cvar,
    outcome_score,
    tail_count,
)
from portfolio_challenge.payoff import DEFAULT_ALLOCATION, ScenarioOutcome, portfolio_outcome_scenario
from portfolio_challenge.scenarios import generate_scenarios


def _outcomes(env, allocation=DEFAULT_ALLOCATION, n=50):
    return [portfolio_outcome_scenario(s, env, allocation) for s in generate_scenarios(env, n)]


def test_tail_count_rounds_up_with_minimum_one():
    assert tail_count(50) == 5
    assert tail_count(51) == 6
    assert tail_count(3) == 1
    assert tail_count(1) == 1


def test_cvar_averages_worst_tail_without_mutating_input():
    values = [0.05, -0.20, 0.10, -0.05, 0.02, 0.07, -0.01, 0.03, 0.04, 0.06, 0.08]
    original = list(values)
    # 11 values -> worst ceil(1.1) = 2
    assert float(cvar(values)) == pytest.approx((-0.20 + -0.05) / 2)
    assert values == original


def test_cvar_never_exceeds_mean_return():
    for env in LEVELS:
        metrics = compute_objective(_outcomes(env), DEFAULT_ALLOCATION)
        assert metrics.cvar10 <= metrics.mean_r


def test_compute_objective_rejects_empty_outcomes():
    with pytest.raises(ValueError):
        compute_objective([], DEFAULT_ALLOCATION)


def test_metrics_are_means_of_outcomes():
    outcomes = [
        ScenarioOutcome(total_r=0.10, max_dd=0.0, income=0.01),
        ScenarioOutcome(total_r=-0.10, max_dd=0.10, income=0.0),
    ]
    metrics = compute_objective(outcomes, DEFAULT_ALLOCATION)
    assert metrics.mean_r == pytest.approx(0.0)
    assert metrics.mean_dd == pytest.approx(0.05)
    assert metrics.mean_income == pytest.approx(0.005)
    assert metrics.cvar10 == pytest.approx(-0.10)


def test_score_combines_components():
    metrics = compute_objective(_outcomes(get_environment(2)), DEFAULT_ALLOCATION)
    expected = (
        400
        + metrics.mean_r * 100
        + metrics.mean_income * 15
        - metrics.mean_dd * 60
        + metrics.cvar10 * 120
        - metrics.penalty_div
        - metrics.penalty_constraints
    )
    assert metrics.score == pytest.approx(expected)


def test_concentrated_allocation_pays_higher_diversification_penalty():
    env = get_environment(1)
    concentrated = replace(DEFAULT_ALLOCATION, fi=1.0, eq=0.0, struct=0.0)
    spread = replace(DEFAULT_ALLOCATION, fi=0.33, eq=0.33, struct=0.34)
    outcomes = _outcomes(env)
    high = compute_objective(outcomes, concentrated)
    low = compute_objective(outcomes, spread)
    assert high.penalty_div > low.penalty_div
    assert high.penalty_div == pytest.approx(150.0)


def test_constraint_penalty_tiers_stack():
    # eq: 800 * 0.3^2 + 1500 * 0.15^2, plus the max-weight tier 2000 * 0.1^2
    assert constraint_penalty(0.0, 1.0, 0.0) == pytest.approx(72.0 + 33.75 + 20.0)
    assert constraint_penalty(0.3, 0.5, 0.2) == 0.0
    assert constraint_penalty(0.0, 0.25, 0.75) == pytest.approx(300 * 0.15**2)


def test_custom_weights_change_the_score():
    outcomes = _outcomes(get_environment(1))
    weak = ObjectiveWeights(offset=0.0, diversification=25.0, constraint_tiers=())
    default_metrics = compute_objective(outcomes, DEFAULT_ALLOCATION)
    weak_metrics = compute_objective(outcomes, DEFAULT_ALLOCATION, weak)
    assert weak_metrics.penalty_div == pytest.approx(25.0 * (0.09 + 0.25 + 0.04))
    assert weak_metrics.mean_r == default_metrics.mean_r
    assert weak_metrics.score != default_metrics.score


def test_outcome_score_broadcasts_over_arrays():
    mean_r = np.array([0.01, 0.02])
    scores = outcome_score(mean_r, 0.0, 0.0, 0.0, 0.0, 0.0, DEFAULT_WEIGHTS)
    assert scores.tolist() == pytest.approx([401.0, 402.0])


def test_tail_fraction_must_be_positive():
    with pytest.raises(ValueError):
        ObjectiveWeights(tail_fraction=0.0)
    assert math.isfinite(ObjectiveWeights(tail_fraction=1.0).tail_fraction)
