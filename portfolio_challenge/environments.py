"""Catalog of the three market environments faced during the challenge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class MarketEnvironment:
    """A single market regime with its anchor returns and stress level."""

    id: int
    name: str
    subtitle: str
    equity_return: float
    bond_return: float
    stress: float
    description: str = ""


LEVELS: Tuple[MarketEnvironment, ...] = (
    MarketEnvironment(
        id=1,
        name="Level 1 — Comfort Zone",
        subtitle="Market +10%",
        equity_return=0.10,
        bond_return=0.02,
        stress=0.1,
        description="Strong markets favor growth. Traditional allocations feel safe.",
    ),
    MarketEnvironment(
        id=2,
        name="Level 2 — False Safety",
        subtitle="Market –5%",
        equity_return=-0.05,
        bond_return=0.01,
        stress=0.4,
        description="Moderate drawdowns test diversification. Bonds partially compensate.",
    ),
    MarketEnvironment(
        id=3,
        name="Level 3 — Regime Break",
        subtitle="Market –30%",
        equity_return=-0.30,
        bond_return=0.00,
        stress=0.9,
        description="Extreme stress breaks correlations. Only engineered outcomes survive.",
    ),
)


def get_environment(level_id: int) -> MarketEnvironment:
    for env in LEVELS:
        if env.id == level_id:
            return env
    known = ", ".join(str(env.id) for env in LEVELS)
    raise ValueError(f"Unknown level id {level_id!r}; expected one of {known}")


def synthetic_environment(equity_return: float, bond_return: float = 0.02) -> MarketEnvironment:
    """Build an ad-hoc environment for payoff previews.

    The stress level is stepped from the equity move so the preview shows the
    same coupon suspension and correlation penalties as the real levels.
    """

    if equity_return < -0.20:
        stress = 0.9
    elif equity_return < -0.05:
        stress = 0.4
    else:
        stress = 0.1
    return MarketEnvironment(
        id=1,
        name="Synthetic",
        subtitle="",
        equity_return=float(equity_return),
        bond_return=float(bond_return),
        stress=stress,
    )


__all__ = ["LEVELS", "MarketEnvironment", "get_environment", "synthetic_environment"]
