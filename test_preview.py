import pytest

pd = pytest.importorskip("pandas")

from portfolio_challenge.environments import synthetic_environment
from portfolio_challenge.payoff import DEFAULT_ALLOCATION
from portfolio_challenge.preview import payoff_profile, y_domain


def test_payoff_profile_sweeps_equity_moves():
    profile = payoff_profile(DEFAULT_ALLOCATION)
    assert list(profile.columns) == ["equity_return", "portfolio_return", "max_drawdown"]
    assert len(profile) == 31
    assert profile["equity_return"].iloc[0] == pytest.approx(-40.0)
    assert profile["equity_return"].iloc[-1] == pytest.approx(20.0)
    assert (profile["max_drawdown"] >= 0).all()


def test_payoff_profile_value_at_calm_anchor():
    profile = payoff_profile(DEFAULT_ALLOCATION, start=0.10, stop=0.10)
    assert len(profile) == 1
    assert profile["portfolio_return"].iloc[0] == pytest.approx(6.727, abs=1e-6)


def test_synthetic_environment_steps_stress():
    assert synthetic_environment(-0.30).stress == 0.9
    assert synthetic_environment(-0.10).stress == 0.4
    assert synthetic_environment(0.05).stress == 0.1


def test_y_domain_pads_range():
    frame = pd.DataFrame({"portfolio_return": [-2.0, 3.0]})
    assert y_domain(frame) == (-7, 8)


def test_payoff_profile_rejects_bad_step():
    with pytest.raises(ValueError):
        payoff_profile(DEFAULT_ALLOCATION, step=0.0)
