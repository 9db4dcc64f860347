"""Deterministic scenario generation for a market environment.

Each environment gets its own seeded linear-congruential stream, so the same
level always produces the same ``(equity_return, bond_return)`` sample, across
calls and across processes. Bonds carry a correlation-break term: in stressed
regimes they are dragged down when equities fall.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import numpy as np
import pandas as pd

from .environments import MarketEnvironment

SEED_BASE = 12345
SEED_PER_LEVEL = 1000
DEFAULT_SCENARIO_COUNT = 50

# Volatility around each level's anchor equity return.
SCENARIO_SIGMA: Dict[int, float] = {
    1: 0.08,
    2: 0.10,
    3: 0.16,
}
BOND_NOISE_SIGMA = 0.01
CORRELATION_BREAK_SLOPE = 0.25

EQUITY_BOUNDS = (-0.60, 0.30)
BOND_BOUNDS = (-0.10, 0.05)

_LCG_MULTIPLIER = 1664525
_LCG_INCREMENT = 1013904223
_LCG_MODULUS = 2**32


@dataclass(frozen=True)
class Scenario:
    """One joint equity/bond draw."""

    equity_return: float
    bond_return: float


class LinearCongruentialGenerator:
    """Seeded LCG with a Box–Muller normal sampler."""

    def __init__(self, seed: int) -> None:
        self.seed = int(seed) % _LCG_MODULUS

    def next(self) -> float:
        self.seed = (self.seed * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return self.seed / _LCG_MODULUS

    def normal(self, mean: float, std: float) -> float:
        u1 = self.next()
        u2 = self.next()
        radius = math.sqrt(-2.0 * math.log(u1)) if u1 > 0.0 else math.inf
        z0 = radius * math.cos(2.0 * math.pi * u2)
        return mean + z0 * std


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def scenario_seed(environment: MarketEnvironment) -> int:
    return SEED_BASE + environment.id * SEED_PER_LEVEL


def generate_scenarios(environment: MarketEnvironment, n: int = DEFAULT_SCENARIO_COUNT) -> List[Scenario]:
    """Draw ``n`` scenarios for ``environment``.

    Equity returns are ``Normal(anchor, sigma)`` clamped to [-0.60, 0.30]; bond
    returns add 1% noise plus ``stress * 0.25 * min(0, equity)`` and are clamped
    to [-0.10, 0.05].
    """

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n <= 0:
        raise ValueError(f"Scenario count must be a positive integer, got {n!r}")
    try:
        sigma = SCENARIO_SIGMA[environment.id]
    except KeyError:
        raise ValueError(f"No scenario volatility configured for level {environment.id}") from None

    rng = LinearCongruentialGenerator(scenario_seed(environment))
    scenarios: List[Scenario] = []
    for _ in range(int(n)):
        r_eq = environment.equity_return + rng.normal(0.0, sigma)
        r_eq = _clamp(r_eq, EQUITY_BOUNDS)

        bond_noise = rng.normal(0.0, BOND_NOISE_SIGMA)
        correlation_break = environment.stress * CORRELATION_BREAK_SLOPE * min(0.0, r_eq)
        r_fi = environment.bond_return + bond_noise + correlation_break
        r_fi = _clamp(r_fi, BOND_BOUNDS)

        scenarios.append(Scenario(equity_return=r_eq, bond_return=r_fi))
    return scenarios


def scenario_arrays(scenarios: Iterable[Scenario]) -> Tuple[np.ndarray, np.ndarray]:
    """Split scenarios into ``(equity, bond)`` float arrays."""

    items = list(scenarios)
    equity = np.array([s.equity_return for s in items], dtype=float)
    bond = np.array([s.bond_return for s in items], dtype=float)
    return equity, bond


def scenarios_frame(scenarios: Iterable[Scenario]) -> pd.DataFrame:
    equity, bond = scenario_arrays(scenarios)
    frame = pd.DataFrame({"equity_return": equity, "bond_return": bond})
    frame.index.name = "scenario"
    return frame


__all__ = [
    "BOND_BOUNDS",
    "DEFAULT_SCENARIO_COUNT",
    "EQUITY_BOUNDS",
    "LinearCongruentialGenerator",
    "SCENARIO_SIGMA",
    "Scenario",
    "generate_scenarios",
    "scenario_arrays",
    "scenario_seed",
    "scenarios_frame",
]
