"""In-memory game session: the current round plus per-level results.

The session owns all mutable state; the scoring functions it calls take every
input as an argument. Display clamping happens here, on top of the optimizer's
honest output, so the optimized example is never shown underperforming the
user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

import pandas as pd

from .environments import MarketEnvironment, get_environment
from .objective import DEFAULT_WEIGHTS, ObjectiveMetrics, ObjectiveWeights
from .optimizer import DEFAULT_GRID, BaseTerms, SearchGrid, evaluate_allocation, find_optimal
from .payoff import DEFAULT_ALLOCATION, Allocation, ScenarioOutcome, portfolio_outcome

logger = logging.getLogger(__name__)

LEVEL_SECONDS = 30
DISPLAY_EPSILON = 1e-6
MATCHED_SCORE_GAP = 0.5


def clamp_for_display(optimal: float, user: float, eps: float = DISPLAY_EPSILON) -> Tuple[float, bool]:
    """Floor ``optimal`` at ``user - eps``; the flag reports whether it moved."""

    displayed = max(optimal, user - eps)
    return displayed, displayed != optimal


@dataclass(frozen=True)
class LevelResult:
    regime: MarketEnvironment
    user_allocation: Allocation
    user_outcome: ScenarioOutcome
    user_metrics: ObjectiveMetrics
    optimal_allocation: Allocation
    optimal_outcome: ScenarioOutcome
    optimal_score: float
    displayed_optimal_total_r: float
    displayed_optimal_score: float
    clamped: bool = False

    @property
    def user_score(self) -> float:
        return self.user_metrics.score

    @property
    def opportunity_cost(self) -> float:
        """Score gap between the displayed optimum and the user's allocation."""

        return self.displayed_optimal_score - self.user_score

    @property
    def return_gap(self) -> float:
        return self.displayed_optimal_total_r - self.user_outcome.total_r

    @property
    def matched(self) -> bool:
        return self.opportunity_cost <= MATCHED_SCORE_GAP


class GameSession:
    """Single owned state container for one player's run through the levels."""

    def __init__(
        self,
        *,
        grid: SearchGrid = DEFAULT_GRID,
        weights: ObjectiveWeights = DEFAULT_WEIGHTS,
        level_seconds: int = LEVEL_SECONDS,
        default_allocation: Allocation = DEFAULT_ALLOCATION,
    ) -> None:
        if level_seconds <= 0:
            raise ValueError("level_seconds must be positive")
        self.grid = grid
        self.weights = weights
        self.level_seconds = int(level_seconds)
        self.default_allocation = default_allocation
        self.level = 1
        self.time_left = self.level_seconds
        self.allocation = default_allocation
        self.results: Dict[int, LevelResult] = {}

    @property
    def expired(self) -> bool:
        return self.time_left <= 0

    @property
    def environment(self) -> MarketEnvironment:
        return get_environment(self.level)

    def start_level(self, level_id: int) -> None:
        get_environment(level_id)
        self.level = level_id
        self.time_left = self.level_seconds

    def tick(self) -> int:
        if self.time_left > 0:
            self.time_left -= 1
        return self.time_left

    def set_allocation(self, allocation: Optional[Allocation] = None, **patch) -> Allocation:
        """Replace the working allocation, or patch fields of it.

        The caller normalises weights (see :func:`portfolio_challenge.weights.rebalance`);
        a patch that breaks the sum-to-one invariant raises ``ValueError``.
        """

        base = self.allocation if allocation is None else allocation
        self.allocation = replace(base, **patch) if patch else base
        return self.allocation

    def finish_level(self) -> LevelResult:
        regime = self.environment
        allocation = self.allocation

        user_outcome = portfolio_outcome(regime, allocation)
        user_metrics = evaluate_allocation(
            regime,
            allocation,
            scenario_count=self.grid.scenario_count,
            weights=self.weights,
        )
        optimal = find_optimal(
            regime,
            BaseTerms.from_allocation(allocation),
            grid=self.grid,
            weights=self.weights,
        )

        displayed_r, clamped_r = clamp_for_display(optimal.outcome.total_r, user_outcome.total_r)
        displayed_score, clamped_score = clamp_for_display(optimal.score, user_metrics.score)
        clamped = clamped_r or clamped_score
        if clamped:
            logger.warning(
                "Level %d: optimizer did not beat the user (return %.4f vs %.4f, score %.2f vs %.2f); display clamped",
                regime.id,
                optimal.outcome.total_r,
                user_outcome.total_r,
                optimal.score,
                user_metrics.score,
            )

        result = LevelResult(
            regime=regime,
            user_allocation=allocation,
            user_outcome=user_outcome,
            user_metrics=user_metrics,
            optimal_allocation=optimal.allocation,
            optimal_outcome=optimal.outcome,
            optimal_score=optimal.score,
            displayed_optimal_total_r=displayed_r,
            displayed_optimal_score=displayed_score,
            clamped=clamped,
        )
        self.results[regime.id] = result
        return result

    def average_opportunity_cost(self) -> float:
        """Mean score gap over the finished levels, floored at zero."""

        if not self.results:
            return 0.0
        total = sum(res.opportunity_cost for res in self.results.values())
        return max(0.0, total / len(self.results))

    def reset(self) -> None:
        self.level = 1
        self.time_left = self.level_seconds
        self.allocation = self.default_allocation
        self.results = {}

    def results_frame(self) -> pd.DataFrame:
        columns = [
            "level",
            "regime",
            "user_fi",
            "user_eq",
            "user_struct",
            "user_total_r",
            "user_score",
            "optimal_fi",
            "optimal_eq",
            "optimal_struct",
            "optimal_total_r",
            "optimal_score",
            "displayed_optimal_total_r",
            "displayed_optimal_score",
            "opportunity_cost",
            "return_gap",
            "matched",
            "clamped",
        ]
        rows = []
        for level_id in sorted(self.results):
            res = self.results[level_id]
            rows.append(
                {
                    "level": level_id,
                    "regime": res.regime.name,
                    "user_fi": res.user_allocation.fi,
                    "user_eq": res.user_allocation.eq,
                    "user_struct": res.user_allocation.struct,
                    "user_total_r": res.user_outcome.total_r,
                    "user_score": res.user_score,
                    "optimal_fi": res.optimal_allocation.fi,
                    "optimal_eq": res.optimal_allocation.eq,
                    "optimal_struct": res.optimal_allocation.struct,
                    "optimal_total_r": res.optimal_outcome.total_r,
                    "optimal_score": res.optimal_score,
                    "displayed_optimal_total_r": res.displayed_optimal_total_r,
                    "displayed_optimal_score": res.displayed_optimal_score,
                    "opportunity_cost": res.opportunity_cost,
                    "return_gap": res.return_gap,
                    "matched": res.matched,
                    "clamped": res.clamped,
                }
            )
        return pd.DataFrame(rows, columns=columns).set_index("level")


__all__ = [
    "DISPLAY_EPSILON",
    "GameSession",
    "LEVEL_SECONDS",
    "LevelResult",
    "MATCHED_SCORE_GAP",
    "clamp_for_display",
]
