"""Payoff model for plain fixed income, plain equity and structured notes."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from .environments import MarketEnvironment
from .scenarios import Scenario

PROTECTIONS = ("hard", "soft")
WEIGHT_TOLERANCE = 1e-6

# Income note: quarterly accrual of the quoted coupon, suspended under stress.
COUPON_PERIOD_FRACTION = 0.25
COUPON_STRESS_CEILING = 0.7
COUPON_EQUITY_TRIGGER = -0.18
HARD_PROTECTION_FACTOR = 0.65

# Structured sleeve servicing/credit drag and the naive EQ+FI penalty.
STRUCT_DRAG_BASE = 0.002
STRUCT_DRAG_STRESS = 0.004
NAIVE_PENALTY_SLOPE = 0.15


def check_unit_interval(name: str, value: float, *, tol: float = 0.0) -> None:
    if not (-tol <= value <= 1.0 + tol):
        raise ValueError(f"{name} must lie in [0, 1], got {value!r}")


@dataclass(frozen=True)
class EquityNoteTerms:
    """Buffered, optionally capped, equity-linked note."""

    buffer: float
    cap: Optional[float]
    participation: float = 1.0

    def __post_init__(self) -> None:
        check_unit_interval("buffer", self.buffer)
        check_unit_interval("participation", self.participation)
        if self.cap is not None and self.cap < 0:
            raise ValueError(f"cap must be non-negative or None, got {self.cap!r}")


@dataclass(frozen=True)
class IncomeNoteTerms:
    """Barrier income note paying a gated coupon."""

    coupon: float
    barrier: float
    protection: str = "hard"

    def __post_init__(self) -> None:
        check_unit_interval("coupon", self.coupon)
        if not (0.0 < self.barrier < 1.0):
            raise ValueError(f"barrier must lie strictly between 0 and 1, got {self.barrier!r}")
        if self.protection not in PROTECTIONS:
            raise ValueError(f"protection must be 'hard' or 'soft', got {self.protection!r}")


@dataclass(frozen=True)
class Allocation:
    """Portfolio weights plus the structured-note terms."""

    fi: float
    eq: float
    struct: float
    struct_split_equity_note: float
    equity_note: EquityNoteTerms
    income_note: IncomeNoteTerms

    def __post_init__(self) -> None:
        for name in ("fi", "eq", "struct"):
            check_unit_interval(name, getattr(self, name), tol=WEIGHT_TOLERANCE)
        check_unit_interval("struct_split_equity_note", self.struct_split_equity_note)
        total = self.fi + self.eq + self.struct
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"Allocation weights must sum to 1, got {total:.8f}")

    @property
    def weights(self) -> Tuple[float, float, float]:
        return self.fi, self.eq, self.struct

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "Allocation":
        equity_note = payload["equity_note"]
        income_note = payload["income_note"]
        return cls(
            fi=float(payload["fi"]),
            eq=float(payload["eq"]),
            struct=float(payload["struct"]),
            struct_split_equity_note=float(payload["struct_split_equity_note"]),
            equity_note=EquityNoteTerms(**equity_note),  # type: ignore[arg-type]
            income_note=IncomeNoteTerms(**income_note),  # type: ignore[arg-type]
        )


DEFAULT_ALLOCATION = Allocation(
    fi=0.3,
    eq=0.5,
    struct=0.2,
    struct_split_equity_note=0.6,
    equity_note=EquityNoteTerms(buffer=0.15, cap=0.12, participation=1.0),
    income_note=IncomeNoteTerms(coupon=0.10, barrier=0.70, protection="hard"),
)


@dataclass(frozen=True)
class IncomeNoteResult:
    total: float
    income: float
    principal_hit: float


@dataclass(frozen=True)
class ScenarioOutcome:
    """Portfolio result for one scenario."""

    total_r: float
    max_dd: float
    income: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def equity_note_return(equity_return: float, terms: EquityNoteTerms) -> float:
    """Participation upside (optionally capped); losses start only past the buffer."""

    if equity_return >= 0:
        upside = equity_return * terms.participation
        return upside if terms.cap is None else min(upside, terms.cap)
    if equity_return >= -terms.buffer:
        return 0.0
    return equity_return + terms.buffer


def coupon_pays(equity_return: float, environment: MarketEnvironment) -> bool:
    return environment.stress < COUPON_STRESS_CEILING and equity_return > COUPON_EQUITY_TRIGGER


def income_note_return(
    equity_return: float,
    environment: MarketEnvironment,
    terms: IncomeNoteTerms,
) -> IncomeNoteResult:
    """Coupon income plus any principal impairment past the barrier."""

    income = terms.coupon * COUPON_PERIOD_FRACTION if coupon_pays(equity_return, environment) else 0.0

    barrier_loss = -(1.0 - terms.barrier)
    principal_hit = 0.0
    if equity_return < barrier_loss:
        breach_amount = equity_return - barrier_loss
        if terms.protection == "hard":
            principal_hit = breach_amount * HARD_PROTECTION_FACTOR
        else:
            principal_hit = breach_amount

    return IncomeNoteResult(total=income + principal_hit, income=income, principal_hit=principal_hit)


def structured_drag(environment: MarketEnvironment) -> float:
    return STRUCT_DRAG_BASE + environment.stress * STRUCT_DRAG_STRESS


def naive_penalty(environment: MarketEnvironment, eq: float, fi: float) -> float:
    """Penalty for holding plain equity and plain bonds together under stress."""

    return environment.stress * NAIVE_PENALTY_SLOPE * (eq * fi)


def portfolio_outcome_scenario(
    scenario: Scenario,
    environment: MarketEnvironment,
    allocation: Allocation,
) -> ScenarioOutcome:
    """Evaluate ``allocation`` against a single scenario draw."""

    r_eq = scenario.equity_return
    r_fi = scenario.bond_return
    split = allocation.struct_split_equity_note

    r_equity_note = equity_note_return(r_eq, allocation.equity_note)
    income_note = income_note_return(r_eq, environment, allocation.income_note)

    struct_r = split * r_equity_note + (1 - split) * income_note.total
    struct_r_net = struct_r - structured_drag(environment)

    total_r = (
        allocation.fi * r_fi
        + allocation.eq * r_eq
        + allocation.struct * struct_r_net
        - naive_penalty(environment, allocation.eq, allocation.fi)
    )

    # Single-period drawdown proxy; the naive penalty is not part of it.
    portfolio_move = allocation.eq * r_eq + allocation.struct * struct_r_net + allocation.fi * r_fi
    max_dd = max(0.0, -portfolio_move)

    income = allocation.struct * (1 - split) * income_note.income

    return ScenarioOutcome(total_r=total_r, max_dd=max_dd, income=income)


def portfolio_outcome(environment: MarketEnvironment, allocation: Allocation) -> ScenarioOutcome:
    """Evaluate at the environment's anchor returns (display only, not scoring)."""

    anchor = Scenario(equity_return=environment.equity_return, bond_return=environment.bond_return)
    return portfolio_outcome_scenario(anchor, environment, allocation)


# Array versions. Arguments broadcast against each other, so a term grid laid
# out on leading axes and scenarios on the last axis is evaluated in one pass.
# Operation order mirrors the scalar functions above so results agree bit for bit.


def equity_note_returns(equity, buffer, cap, participation) -> np.ndarray:
    """Vectorised :func:`equity_note_return`; ``nan`` caps mean uncapped."""

    equity = np.asarray(equity, dtype=float)
    buffer = np.asarray(buffer, dtype=float)
    cap = np.asarray(np.nan if cap is None else cap, dtype=float)

    upside = equity * participation
    capped = np.minimum(upside, np.where(np.isnan(cap), np.inf, cap))
    downside = np.where(equity >= -buffer, 0.0, equity + buffer)
    return np.where(equity >= 0, capped, downside)


def income_note_returns(
    equity,
    environment: MarketEnvironment,
    coupon,
    barrier,
    hard,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorised :func:`income_note_return` returning ``(total, income, principal_hit)``."""

    equity = np.asarray(equity, dtype=float)
    coupon = np.asarray(coupon, dtype=float)
    barrier = np.asarray(barrier, dtype=float)
    hard = np.asarray(hard, dtype=bool)

    pays = (environment.stress < COUPON_STRESS_CEILING) & (equity > COUPON_EQUITY_TRIGGER)
    income = np.where(pays, coupon * COUPON_PERIOD_FRACTION, 0.0)

    barrier_loss = -(1.0 - barrier)
    breach_amount = equity - barrier_loss
    dampened = np.where(hard, breach_amount * HARD_PROTECTION_FACTOR, breach_amount)
    principal_hit = np.where(equity < barrier_loss, dampened, 0.0)

    return income + principal_hit, income, principal_hit


__all__ = [
    "Allocation",
    "DEFAULT_ALLOCATION",
    "EquityNoteTerms",
    "IncomeNoteResult",
    "IncomeNoteTerms",
    "PROTECTIONS",
    "ScenarioOutcome",
    "check_unit_interval",
    "coupon_pays",
    "equity_note_return",
    "equity_note_returns",
    "income_note_return",
    "income_note_returns",
    "naive_penalty",
    "portfolio_outcome",
    "portfolio_outcome_scenario",
    "structured_drag",
]
