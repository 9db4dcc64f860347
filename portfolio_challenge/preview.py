"""Payoff profile of an allocation across a sweep of equity market moves."""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np
import pandas as pd

from .environments import synthetic_environment
from .payoff import Allocation, portfolio_outcome


def payoff_profile(
    allocation: Allocation,
    *,
    start: float = -0.40,
    stop: float = 0.20,
    step: float = 0.02,
    bond_return: float = 0.02,
) -> pd.DataFrame:
    """Evaluate ``allocation`` at each equity move from ``start`` to ``stop``.

    Values are reported in percent. Each point uses a synthetic environment
    whose stress steps up with the size of the sell-off.
    """

    if step <= 0:
        raise ValueError("step must be positive")
    if stop < start:
        raise ValueError("stop must be >= start")

    count = int(math.floor((stop - start) / step + 1e-9)) + 1
    moves = start + step * np.arange(count)
    rows = []
    for move in moves:
        env = synthetic_environment(float(move), bond_return=bond_return)
        outcome = portfolio_outcome(env, allocation)
        rows.append(
            {
                "equity_return": float(move) * 100,
                "portfolio_return": outcome.total_r * 100,
                "max_drawdown": outcome.max_dd * 100,
            }
        )
    return pd.DataFrame(rows, columns=["equity_return", "portfolio_return", "max_drawdown"])


def y_domain(frame: pd.DataFrame, column: str = "portfolio_return") -> Tuple[int, int]:
    """Integer axis bounds padded by ``max(5, 10% of range)``."""

    if frame.empty:
        raise ValueError("Cannot compute an axis domain for an empty profile")
    low = float(frame[column].min())
    high = float(frame[column].max())
    padding = max(5.0, (high - low) * 0.1)
    return int(math.floor(low - padding)), int(math.ceil(high + padding))


__all__ = ["payoff_profile", "y_domain"]
