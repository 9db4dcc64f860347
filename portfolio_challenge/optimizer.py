"""Exhaustive grid search for the best allocation and structured-note terms.

The search walks every ``(fi, eq)`` pair on a percent grid (``struct`` takes
the remainder) and, for each pair, every combination of structured split,
equity-note buffer and cap, and income-note coupon, barrier and protection.
All candidates are scored against the same scenario sample. The highest score
wins; ties keep the first candidate in iteration order (``fi`` ascending, then
``eq``, then the term loops in the order of :class:`SearchGrid`'s fields).

The term loops for one weight pair are evaluated together as a numpy array
whose axes follow that same order, so ``argmax`` reproduces the first-found
tie-break of a plain nested loop.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Dict, Iterator, Optional, Sequence, Tuple

import numpy as np

from .environments import MarketEnvironment
from .objective import (
    DEFAULT_WEIGHTS,
    ObjectiveMetrics,
    ObjectiveWeights,
    compute_objective,
    constraint_penalty,
    diversification_penalty,
    outcome_score,
    summarise,
)
from .payoff import (
    DEFAULT_ALLOCATION,
    PROTECTIONS,
    Allocation,
    EquityNoteTerms,
    IncomeNoteTerms,
    ScenarioOutcome,
    check_unit_interval,
    equity_note_returns,
    income_note_returns,
    naive_penalty,
    portfolio_outcome,
    portfolio_outcome_scenario,
    structured_drag,
)
from .scenarios import DEFAULT_SCENARIO_COUNT, Scenario, generate_scenarios, scenario_arrays

logger = logging.getLogger(__name__)

_SUM_TOLERANCE = 0.001


class OptimizerError(RuntimeError):
    """Raised when the grid search produces no valid candidate."""


@dataclass(frozen=True)
class SearchGrid:
    """Candidate sets for the grid search; ``weight_step`` is in percent."""

    weight_step: int = 5
    splits: Tuple[float, ...] = (0.0, 0.2, 0.4, 0.5, 0.6, 0.8, 1.0)
    buffers: Tuple[float, ...] = (0.10, 0.15, 0.20, 0.30)
    caps: Tuple[Optional[float], ...] = (0.08, 0.10, 0.12, 0.15, None)
    coupons: Tuple[float, ...] = (0.06, 0.08, 0.10, 0.12)
    barriers: Tuple[float, ...] = (0.60, 0.70, 0.80)
    protections: Tuple[str, ...] = ("hard", "soft")
    scenario_count: int = DEFAULT_SCENARIO_COUNT

    def __post_init__(self) -> None:
        if isinstance(self.weight_step, bool) or not isinstance(self.weight_step, int) or not 0 < self.weight_step <= 100:
            raise ValueError(f"weight_step must be an integer percent in (0, 100], got {self.weight_step!r}")
        if isinstance(self.scenario_count, bool) or not isinstance(self.scenario_count, int) or self.scenario_count <= 0:
            raise ValueError(f"scenario_count must be a positive integer, got {self.scenario_count!r}")
        unknown = [p for p in self.protections if p not in PROTECTIONS]
        if unknown:
            raise ValueError(f"Unknown protection value(s): {', '.join(map(repr, unknown))}")
        # Term values go through the same checks as the note terms built from them.
        for split in self.splits:
            check_unit_interval("split", split)
        for buffer in self.buffers:
            for cap in self.caps:
                EquityNoteTerms(buffer=buffer, cap=cap)
        for coupon in self.coupons:
            for barrier in self.barriers:
                IncomeNoteTerms(coupon=coupon, barrier=barrier)

    @property
    def term_shape(self) -> Tuple[int, ...]:
        return (
            len(self.splits),
            len(self.buffers),
            len(self.caps),
            len(self.coupons),
            len(self.barriers),
            len(self.protections),
        )

    def weight_pairs(self) -> Iterator[Tuple[float, float, float]]:
        """Yield ``(fi, eq, struct)`` weights in search order."""

        step = self.weight_step
        for fi in range(0, 101, step):
            for eq in range(0, 100 - fi + 1, step):
                struct = 100 - fi - eq
                if struct < 0:
                    continue
                fi_w, eq_w, struct_w = fi / 100, eq / 100, struct / 100
                if abs(fi_w + eq_w + struct_w - 1.0) > _SUM_TOLERANCE:
                    continue
                yield fi_w, eq_w, struct_w

    def candidate_count(self) -> int:
        pairs = sum(1 for _ in self.weight_pairs())
        return pairs * int(np.prod(self.term_shape))

    def to_config(self) -> Dict[str, object]:
        payload = asdict(self)
        for key, value in payload.items():
            if isinstance(value, tuple):
                payload[key] = list(value)
        return payload


DEFAULT_GRID = SearchGrid()


@dataclass(frozen=True)
class BaseTerms:
    """Note terms the search starts from.

    Only the equity note's participation survives; buffer, cap and the whole
    income note come from the grid.
    """

    equity_note: EquityNoteTerms
    income_note: IncomeNoteTerms

    @classmethod
    def from_allocation(cls, allocation: Allocation) -> "BaseTerms":
        return cls(equity_note=allocation.equity_note, income_note=allocation.income_note)


DEFAULT_BASE_TERMS = BaseTerms.from_allocation(DEFAULT_ALLOCATION)


@dataclass(frozen=True)
class OptimalResult:
    allocation: Allocation
    score: float
    outcome: ScenarioOutcome
    metrics: ObjectiveMetrics
    candidates_evaluated: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "allocation": self.allocation.to_dict(),
            "score": self.score,
            "outcome": self.outcome.to_dict(),
            "metrics": self.metrics.to_dict(),
            "candidates_evaluated": self.candidates_evaluated,
        }


def _build_allocation(
    weights: Tuple[float, float, float],
    split: float,
    buffer: float,
    cap: Optional[float],
    coupon: float,
    barrier: float,
    protection: str,
    base: BaseTerms,
) -> Allocation:
    fi, eq, struct = weights
    return Allocation(
        fi=fi,
        eq=eq,
        struct=struct,
        struct_split_equity_note=split,
        equity_note=replace(base.equity_note, buffer=buffer, cap=cap),
        income_note=IncomeNoteTerms(coupon=coupon, barrier=barrier, protection=protection),
    )


def iter_candidates(base: BaseTerms = DEFAULT_BASE_TERMS, grid: SearchGrid = DEFAULT_GRID) -> Iterator[Allocation]:
    """Yield every candidate allocation in tie-break order."""

    for weights in grid.weight_pairs():
        for split in grid.splits:
            for buffer in grid.buffers:
                for cap in grid.caps:
                    for coupon in grid.coupons:
                        for barrier in grid.barriers:
                            for protection in grid.protections:
                                yield _build_allocation(weights, split, buffer, cap, coupon, barrier, protection, base)


def _axis(values: Sequence[object], position: int, *, dtype=float) -> np.ndarray:
    shape = [1] * 7
    shape[position] = len(values)
    return np.asarray(values, dtype=dtype).reshape(shape)


def evaluate_allocation(
    environment: MarketEnvironment,
    allocation: Allocation,
    *,
    scenarios: Optional[Sequence[Scenario]] = None,
    scenario_count: int = DEFAULT_SCENARIO_COUNT,
    weights: ObjectiveWeights = DEFAULT_WEIGHTS,
) -> ObjectiveMetrics:
    """Score an arbitrary allocation the same way the optimizer scores candidates."""

    if scenarios is None:
        scenarios = generate_scenarios(environment, scenario_count)
    outcomes = [portfolio_outcome_scenario(s, environment, allocation) for s in scenarios]
    return compute_objective(outcomes, allocation, weights)


def find_optimal(
    environment: MarketEnvironment,
    base: BaseTerms = DEFAULT_BASE_TERMS,
    *,
    grid: SearchGrid = DEFAULT_GRID,
    weights: ObjectiveWeights = DEFAULT_WEIGHTS,
) -> OptimalResult:
    """Search ``grid`` for the allocation with the highest outcome score.

    The returned ``outcome`` is evaluated at the environment's anchor returns
    for display; ``score`` and ``metrics`` are the scenario-averaged values used
    for ranking.
    """

    scenarios = generate_scenarios(environment, grid.scenario_count)
    equity, bond = scenario_arrays(scenarios)
    equity = equity.reshape([1] * 6 + [-1])
    bond = bond.reshape([1] * 6 + [-1])

    split = _axis(grid.splits, 0)
    buffers = _axis(grid.buffers, 1)
    caps = _axis([np.nan if cap is None else cap for cap in grid.caps], 2)
    coupons = _axis(grid.coupons, 3)
    barriers = _axis(grid.barriers, 4)
    hard = _axis([p == "hard" for p in grid.protections], 5, dtype=bool)

    equity_note = equity_note_returns(equity, buffers, caps, base.equity_note.participation)
    income_total, income_paid, _ = income_note_returns(equity, environment, coupons, barriers, hard)
    struct_r_net = (split * equity_note + (1 - split) * income_total) - structured_drag(environment)

    term_shape = grid.term_shape
    best: Optional[Tuple[float, Tuple[float, float, float], Tuple[int, ...], ObjectiveMetrics]] = None
    evaluated = 0

    for fi, eq, struct in grid.weight_pairs():
        penalty = naive_penalty(environment, eq, fi)
        total_r = fi * bond + eq * equity + struct * struct_r_net - penalty
        max_dd = np.maximum(0.0, -(eq * equity + struct * struct_r_net + fi * bond))
        income = struct * (1 - split) * income_paid

        mean_r, tail, mean_dd, mean_income = summarise(
            total_r, max_dd, income, tail_fraction=weights.tail_fraction
        )
        penalty_div = diversification_penalty(fi, eq, struct, weights)
        penalty_constraints = constraint_penalty(fi, eq, struct, weights)
        scores = np.broadcast_to(
            outcome_score(mean_r, mean_income, mean_dd, tail, penalty_div, penalty_constraints, weights),
            term_shape,
        )
        if scores.size == 0:
            continue
        evaluated += scores.size

        flat_idx = int(np.argmax(scores))
        score = float(scores.flat[flat_idx])
        if best is not None and not score > best[0]:
            continue

        idx = np.unravel_index(flat_idx, term_shape)
        metrics = ObjectiveMetrics(
            mean_r=float(np.broadcast_to(mean_r, term_shape)[idx]),
            cvar10=float(np.broadcast_to(tail, term_shape)[idx]),
            mean_dd=float(np.broadcast_to(mean_dd, term_shape)[idx]),
            mean_income=float(np.broadcast_to(mean_income, term_shape)[idx]),
            penalty_div=float(penalty_div),
            penalty_constraints=float(penalty_constraints),
            score=score,
        )
        best = (score, (fi, eq, struct), tuple(int(i) for i in idx), metrics)

    if best is None:
        raise OptimizerError(f"No optimal allocation found for market environment {environment.id}")

    score, best_weights, idx, metrics = best
    allocation = _build_allocation(
        best_weights,
        grid.splits[idx[0]],
        grid.buffers[idx[1]],
        grid.caps[idx[2]],
        grid.coupons[idx[3]],
        grid.barriers[idx[4]],
        grid.protections[idx[5]],
        base,
    )
    logger.debug(
        "Level %d: %d candidates x %d scenarios; best score %.2f (FI=%.0f%% EQ=%.0f%% Struct=%.0f%%)",
        environment.id,
        evaluated,
        len(scenarios),
        score,
        allocation.fi * 100,
        allocation.eq * 100,
        allocation.struct * 100,
    )

    return OptimalResult(
        allocation=allocation,
        score=score,
        outcome=portfolio_outcome(environment, allocation),
        metrics=metrics,
        candidates_evaluated=evaluated,
    )


__all__ = [
    "BaseTerms",
    "DEFAULT_BASE_TERMS",
    "DEFAULT_GRID",
    "OptimalResult",
    "OptimizerError",
    "SearchGrid",
    "evaluate_allocation",
    "find_optimal",
    "iter_candidates",
]
