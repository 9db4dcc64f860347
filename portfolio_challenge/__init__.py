"""Scenario-based portfolio valuation and allocation optimizer for the portfolio challenge."""

from .config import ChallengeConfig, ConfigError, load_config
from .environments import LEVELS, MarketEnvironment, get_environment, synthetic_environment
from .objective import ObjectiveMetrics, ObjectiveWeights, compute_objective, cvar
from .optimizer import (
    BaseTerms,
    OptimalResult,
    OptimizerError,
    SearchGrid,
    evaluate_allocation,
    find_optimal,
    iter_candidates,
)
from .payoff import (
    DEFAULT_ALLOCATION,
    Allocation,
    EquityNoteTerms,
    IncomeNoteResult,
    IncomeNoteTerms,
    ScenarioOutcome,
    equity_note_return,
    income_note_return,
    portfolio_outcome,
    portfolio_outcome_scenario,
)
from .presets import BalancedControls, EquityControls, IncomeControls, apply_profile, outcome_summary
from .preview import payoff_profile
from .scenarios import Scenario, generate_scenarios, scenarios_frame
from .session import GameSession, LevelResult, clamp_for_display
from .weights import normalise_weights, rebalance

__all__ = [
    "ChallengeConfig",
    "ConfigError",
    "load_config",
    "LEVELS",
    "MarketEnvironment",
    "get_environment",
    "synthetic_environment",
    "ObjectiveMetrics",
    "ObjectiveWeights",
    "compute_objective",
    "cvar",
    "BaseTerms",
    "OptimalResult",
    "OptimizerError",
    "SearchGrid",
    "evaluate_allocation",
    "find_optimal",
    "iter_candidates",
    "DEFAULT_ALLOCATION",
    "Allocation",
    "EquityNoteTerms",
    "IncomeNoteResult",
    "IncomeNoteTerms",
    "ScenarioOutcome",
    "equity_note_return",
    "income_note_return",
    "portfolio_outcome",
    "portfolio_outcome_scenario",
    "BalancedControls",
    "EquityControls",
    "IncomeControls",
    "apply_profile",
    "outcome_summary",
    "payoff_profile",
    "Scenario",
    "generate_scenarios",
    "scenarios_frame",
    "GameSession",
    "LevelResult",
    "clamp_for_display",
    "normalise_weights",
    "rebalance",
]
