"""Portfolio Outcome Score: the risk-adjusted objective used for ranking.

The score rewards mean return and income, and penalises tail loss (CVaR of
the worst 10% of scenarios), drawdown, concentration (an L2 penalty on the
weights) and soft allocation ceilings. A constant offset keeps well-built
portfolios positive. Every coefficient lives in :class:`ObjectiveWeights` so
alternative calibrations are configuration rather than code.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from .payoff import Allocation, ScenarioOutcome

CONSTRAINT_TARGETS = ("fi", "eq", "struct", "max")


@dataclass(frozen=True)
class ConstraintTier:
    """Quadratic penalty ``coefficient * (weight - threshold)**2`` above ``threshold``.

    ``target`` is one of the asset-class weights, or ``"max"`` for the largest
    of the three.
    """

    target: str
    threshold: float
    coefficient: float

    def __post_init__(self) -> None:
        if self.target not in CONSTRAINT_TARGETS:
            raise ValueError(f"Unknown constraint target {self.target!r}")


DEFAULT_CONSTRAINT_TIERS: Tuple[ConstraintTier, ...] = (
    ConstraintTier("fi", 0.70, 500.0),
    ConstraintTier("eq", 0.70, 800.0),
    ConstraintTier("eq", 0.85, 1500.0),
    ConstraintTier("struct", 0.60, 300.0),
    ConstraintTier("struct", 0.80, 500.0),
    ConstraintTier("max", 0.90, 2000.0),
)


@dataclass(frozen=True)
class ObjectiveWeights:
    """Coefficients of the Portfolio Outcome Score."""

    offset: float = 400.0
    return_weight: float = 100.0
    income_weight: float = 15.0
    drawdown_weight: float = 60.0
    cvar_weight: float = 120.0
    diversification: float = 150.0
    tail_fraction: float = 0.10
    constraint_tiers: Tuple[ConstraintTier, ...] = DEFAULT_CONSTRAINT_TIERS

    def __post_init__(self) -> None:
        if not (0.0 < self.tail_fraction <= 1.0):
            raise ValueError(f"tail_fraction must lie in (0, 1], got {self.tail_fraction!r}")

    def to_config(self) -> Dict[str, object]:
        payload = asdict(self)
        payload["constraint_tiers"] = [asdict(tier) for tier in self.constraint_tiers]
        return payload


DEFAULT_WEIGHTS = ObjectiveWeights()


@dataclass(frozen=True)
class ObjectiveMetrics:
    mean_r: float
    cvar10: float
    mean_dd: float
    mean_income: float
    penalty_div: float
    penalty_constraints: float
    score: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def tail_count(n: int, fraction: float = 0.10) -> int:
    return max(1, math.ceil(n * fraction))


def cvar(values, fraction: float = 0.10):
    """Mean of the worst ``ceil(fraction * n)`` values along the last axis.

    Sorting happens on a copy; the caller's ordering is untouched.
    """

    arr = np.asarray(values, dtype=float)
    n = arr.shape[-1]
    if n == 0:
        raise ValueError("cvar requires at least one value")
    worst = np.sort(arr, axis=-1)[..., : tail_count(n, fraction)]
    return worst.mean(axis=-1)


def summarise(returns, drawdowns, incomes, *, tail_fraction: float = 0.10):
    """Reduce per-scenario arrays (scenarios on the last axis).

    Returns ``(mean_r, cvar, mean_dd, mean_income)``; scalar-shaped for 1-D
    input, one value per candidate for stacked input.
    """

    returns = np.asarray(returns, dtype=float)
    mean_r = returns.mean(axis=-1)
    tail = cvar(returns, tail_fraction)
    mean_dd = np.asarray(drawdowns, dtype=float).mean(axis=-1)
    mean_income = np.asarray(incomes, dtype=float).mean(axis=-1)
    return mean_r, tail, mean_dd, mean_income


def diversification_penalty(fi: float, eq: float, struct: float, weights: ObjectiveWeights = DEFAULT_WEIGHTS) -> float:
    return weights.diversification * (fi**2 + eq**2 + struct**2)


def constraint_penalty(fi: float, eq: float, struct: float, weights: ObjectiveWeights = DEFAULT_WEIGHTS) -> float:
    values = {"fi": fi, "eq": eq, "struct": struct, "max": max(fi, eq, struct)}
    penalty = 0.0
    for tier in weights.constraint_tiers:
        value = values[tier.target]
        if value > tier.threshold:
            penalty += tier.coefficient * (value - tier.threshold) ** 2
    return penalty


def outcome_score(
    mean_r,
    mean_income,
    mean_dd,
    cvar10,
    penalty_div: float,
    penalty_constraints: float,
    weights: ObjectiveWeights = DEFAULT_WEIGHTS,
):
    # cvar10 is negative in loss scenarios, so a positive weight acts as a penalty.
    return (
        weights.offset
        + mean_r * weights.return_weight
        + mean_income * weights.income_weight
        - mean_dd * weights.drawdown_weight
        + cvar10 * weights.cvar_weight
        - penalty_div
        - penalty_constraints
    )


def compute_objective(
    outcomes: Sequence[ScenarioOutcome],
    allocation: Allocation,
    weights: ObjectiveWeights = DEFAULT_WEIGHTS,
) -> ObjectiveMetrics:
    """Aggregate scenario outcomes for ``allocation`` into :class:`ObjectiveMetrics`."""

    if len(outcomes) == 0:
        raise ValueError("compute_objective requires at least one scenario outcome")

    returns = np.array([o.total_r for o in outcomes], dtype=float)
    drawdowns = np.array([o.max_dd for o in outcomes], dtype=float)
    incomes = np.array([o.income for o in outcomes], dtype=float)
    mean_r, tail, mean_dd, mean_income = summarise(
        returns, drawdowns, incomes, tail_fraction=weights.tail_fraction
    )

    fi, eq, struct = allocation.weights
    penalty_div = diversification_penalty(fi, eq, struct, weights)
    penalty_constraints = constraint_penalty(fi, eq, struct, weights)
    score = outcome_score(mean_r, mean_income, mean_dd, tail, penalty_div, penalty_constraints, weights)

    return ObjectiveMetrics(
        mean_r=float(mean_r),
        cvar10=float(tail),
        mean_dd=float(mean_dd),
        mean_income=float(mean_income),
        penalty_div=float(penalty_div),
        penalty_constraints=float(penalty_constraints),
        score=float(score),
    )


__all__ = [
    "ConstraintTier",
    "DEFAULT_CONSTRAINT_TIERS",
    "DEFAULT_WEIGHTS",
    "ObjectiveMetrics",
    "ObjectiveWeights",
    "compute_objective",
    "constraint_penalty",
    "cvar",
    "diversification_penalty",
    "outcome_score",
    "summarise",
    "tail_count",
]
