"""Helpers for editing allocation weights while keeping them summing to one."""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from .payoff import Allocation

WEIGHT_KEYS = ("fi", "eq", "struct")
_RENORMALISE_DRIFT = 1e-4


def normalise_weights(fi: float, eq: float, struct: float) -> Tuple[float, float, float]:
    """Scale the three weights to sum to one; all-zero input stays zero."""

    total = fi + eq + struct
    if total <= 0:
        return 0.0, 0.0, 0.0
    return fi / total, eq / total, struct / total


def rebalance(allocation: Allocation, key: str, value: float) -> Allocation:
    """Set one weight and rescale the other two proportionally.

    Returns ``allocation`` unchanged when the other two weights are already zero
    and the edit would lower ``key`` (there is nothing to hand the weight to).
    """

    if key not in WEIGHT_KEYS:
        raise ValueError(f"Unknown weight {key!r}; expected one of {', '.join(WEIGHT_KEYS)}")

    clamped = max(0.0, min(1.0, float(value)))
    current = getattr(allocation, key)
    others = [k for k in WEIGHT_KEYS if k != key]
    other_total = sum(getattr(allocation, k) for k in others)

    if other_total == 0 and clamped < current:
        return allocation

    weights = {key: clamped}
    if other_total > 0:
        scale = (1.0 - clamped) / other_total
        for k in others:
            weights[k] = getattr(allocation, k) * scale
    else:
        for k in others:
            weights[k] = 0.0

    final_total = weights["fi"] + weights["eq"] + weights["struct"]
    if abs(final_total - 1.0) > _RENORMALISE_DRIFT and final_total > 0:
        for k in WEIGHT_KEYS:
            weights[k] /= final_total

    return replace(allocation, **weights)


__all__ = ["WEIGHT_KEYS", "normalise_weights", "rebalance"]
