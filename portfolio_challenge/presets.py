"""Structured-note profiles that map a few investor-facing choices to note terms."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple, Union

from .payoff import Allocation, EquityNoteTerms, IncomeNoteTerms


def _require(name: str, value: object, choices: Tuple[object, ...]) -> None:
    if value not in choices:
        options = ", ".join(repr(c) for c in choices)
        raise ValueError(f"{name} must be one of {options}; got {value!r}")


@dataclass(frozen=True)
class IncomeControls:
    income_target: str = "med"  # low | med | high
    protection: str = "standard"  # conservative | standard

    def __post_init__(self) -> None:
        _require("income_target", self.income_target, ("low", "med", "high"))
        _require("protection", self.protection, ("conservative", "standard"))


@dataclass(frozen=True)
class BalancedControls:
    tilt: str = "neutral"  # income | neutral | growth
    protection_level: int = 15

    def __post_init__(self) -> None:
        _require("tilt", self.tilt, ("income", "neutral", "growth"))
        _require("protection_level", self.protection_level, (10, 15, 20))


@dataclass(frozen=True)
class EquityControls:
    upside: str = "standard"  # conservative | standard | high
    buffer: int = 15

    def __post_init__(self) -> None:
        _require("upside", self.upside, ("conservative", "standard", "high"))
        _require("buffer", self.buffer, (10, 15, 20))


ProfileControls = Union[IncomeControls, BalancedControls, EquityControls]
ProfileTerms = Tuple[float, EquityNoteTerms, IncomeNoteTerms]


def profile_name(controls: ProfileControls) -> str:
    if isinstance(controls, IncomeControls):
        return "income"
    if isinstance(controls, BalancedControls):
        return "balanced"
    if isinstance(controls, EquityControls):
        return "equity"
    raise TypeError(f"Unsupported profile controls: {type(controls).__name__}")


def profile_terms(controls: ProfileControls) -> ProfileTerms:
    """Return ``(struct_split_equity_note, equity_note, income_note)`` for a profile."""

    if isinstance(controls, IncomeControls):
        # Mostly income notes; a small conservative equity-linked sleeve.
        coupon = {"high": 0.12, "med": 0.10, "low": 0.08}[controls.income_target]
        barrier = 0.80 if controls.protection == "conservative" else 0.70
        return (
            0.1,
            EquityNoteTerms(buffer=0.20, cap=0.10, participation=1.0),
            IncomeNoteTerms(coupon=coupon, barrier=barrier, protection="hard"),
        )

    if isinstance(controls, BalancedControls):
        split = {"income": 0.4, "neutral": 0.5, "growth": 0.6}[controls.tilt]
        barrier = {20: 0.80, 15: 0.75, 10: 0.70}[controls.protection_level]
        return (
            split,
            EquityNoteTerms(
                buffer=controls.protection_level / 100,
                cap=None if controls.tilt == "growth" else 0.12,
                participation=1.0,
            ),
            IncomeNoteTerms(coupon=0.10, barrier=barrier, protection="hard"),
        )

    if isinstance(controls, EquityControls):
        cap = {"conservative": 0.12, "standard": 0.15, "high": None}[controls.upside]
        participation = 0.9 if controls.upside == "conservative" else 1.0
        return (
            0.85,
            EquityNoteTerms(buffer=controls.buffer / 100, cap=cap, participation=participation),
            IncomeNoteTerms(coupon=0.08, barrier=0.75, protection="hard"),
        )

    raise TypeError(f"Unsupported profile controls: {type(controls).__name__}")


def apply_profile(allocation: Allocation, controls: ProfileControls) -> Allocation:
    """Replace the structured-note terms of ``allocation``; weights are untouched."""

    split, equity_note, income_note = profile_terms(controls)
    return replace(
        allocation,
        struct_split_equity_note=split,
        equity_note=equity_note,
        income_note=income_note,
    )


def outcome_summary(controls: ProfileControls) -> str:
    if isinstance(controls, IncomeControls):
        target = {"high": "high income", "med": "moderate income", "low": "stable income"}[controls.income_target]
        if controls.protection == "conservative":
            protection = "with conservative principal protection"
        else:
            protection = "with standard protection"
        return f"Targets {target} {protection} through barrier-protected income structures."

    if isinstance(controls, BalancedControls):
        tilt = {"income": "income-oriented", "growth": "growth-oriented", "neutral": "balanced"}[controls.tilt]
        return f"{tilt[0].upper() + tilt[1:]} allocation with {controls.protection_level}% downside buffer protection."

    if isinstance(controls, EquityControls):
        upside = {
            "high": "uncapped upside participation",
            "standard": "standard upside",
            "conservative": "conservative upside",
        }[controls.upside]
        return f"Focuses on {upside} with {controls.buffer}% downside buffer protection."

    raise TypeError(f"Unsupported profile controls: {type(controls).__name__}")


__all__ = [
    "BalancedControls",
    "EquityControls",
    "IncomeControls",
    "ProfileControls",
    "apply_profile",
    "outcome_summary",
    "profile_name",
    "profile_terms",
]
