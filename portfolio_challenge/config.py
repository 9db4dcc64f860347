"""JSON configuration for the objective coefficients and the search grid."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Dict, Mapping, Optional

from .objective import DEFAULT_WEIGHTS, ConstraintTier, ObjectiveWeights
from .optimizer import DEFAULT_GRID, SearchGrid


class ConfigError(ValueError):
    """Raised when a configuration file is malformed."""


@dataclass(frozen=True)
class ChallengeConfig:
    objective: ObjectiveWeights = field(default=DEFAULT_WEIGHTS)
    grid: SearchGrid = field(default=DEFAULT_GRID)

    def to_config(self) -> Dict[str, object]:
        return {"objective": self.objective.to_config(), "grid": self.grid.to_config()}


def _check_keys(section: str, payload: Mapping[str, object], allowed) -> None:
    unknown = sorted(set(payload) - set(allowed))
    if unknown:
        joined = ", ".join(unknown)
        raise ConfigError(f"Unknown key(s) in '{section}': {joined}")


def _objective_from_mapping(payload: Mapping[str, object]) -> ObjectiveWeights:
    names = [f.name for f in fields(ObjectiveWeights)]
    _check_keys("objective", payload, names)
    kwargs: Dict[str, object] = {}
    for key, value in payload.items():
        if key == "constraint_tiers":
            if not isinstance(value, list):
                raise ConfigError("'objective.constraint_tiers' must be a list")
            tiers = []
            for item in value:
                if not isinstance(item, Mapping):
                    raise ConfigError("Each constraint tier must be an object")
                tiers.append(
                    ConstraintTier(
                        target=str(item["target"]),
                        threshold=float(item["threshold"]),
                        coefficient=float(item["coefficient"]),
                    )
                )
            kwargs[key] = tuple(tiers)
        else:
            kwargs[key] = float(value)  # type: ignore[arg-type]
    return ObjectiveWeights(**kwargs)  # type: ignore[arg-type]


def _grid_from_mapping(payload: Mapping[str, object]) -> SearchGrid:
    names = [f.name for f in fields(SearchGrid)]
    _check_keys("grid", payload, names)
    kwargs: Dict[str, object] = {}
    for key, value in payload.items():
        if key in ("weight_step", "scenario_count"):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"'grid.{key}' must be an integer")
            kwargs[key] = value
        elif key == "protections":
            kwargs[key] = tuple(str(v) for v in value)  # type: ignore[union-attr]
        elif key == "caps":
            kwargs[key] = tuple(None if v is None else float(v) for v in value)  # type: ignore[union-attr]
        else:
            kwargs[key] = tuple(float(v) for v in value)  # type: ignore[union-attr]
    return SearchGrid(**kwargs)  # type: ignore[arg-type]


def config_from_mapping(payload: Mapping[str, object]) -> ChallengeConfig:
    if not isinstance(payload, Mapping):
        raise ConfigError("Configuration root must be a JSON object")
    _check_keys("root", payload, ("objective", "grid"))
    try:
        objective = _objective_from_mapping(payload.get("objective") or {})  # type: ignore[arg-type]
        grid = _grid_from_mapping(payload.get("grid") or {})  # type: ignore[arg-type]
    except ConfigError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    return ChallengeConfig(objective=objective, grid=grid)


def load_config(path: Optional[str]) -> ChallengeConfig:
    """Load ``path``; ``None`` returns the defaults."""

    if path is None:
        return ChallengeConfig()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: not valid JSON ({exc})") from exc
    except OSError as exc:
        raise ConfigError(f"{path}: cannot read configuration ({exc})") from exc
    return config_from_mapping(payload)


__all__ = ["ChallengeConfig", "ConfigError", "config_from_mapping", "load_config"]
