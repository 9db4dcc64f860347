#!/usr/bin/env python3
"""Run the allocation optimizer for each challenge level.

For every market environment the script scores the default allocation, runs
the exhaustive grid search over weights and structured-note terms, and prints
a comparison of the two (scenario-averaged score and metrics, plus the
anchor-point outcome shown to players). Optionally writes the comparison as
CSV, the full results as JSON (consumed by scripts/render_level_tables.py),
and a payoff-profile chart of the default and optimal allocations.

CLI
---
python optimize_levels.py [--level 1 2 3] [--config challenge.json] \
  [--scenarios 50] [--weight-step 5] [--save-csv levels.csv] \
  [--save-json levels.json] [--save-plot payoff.png] [--no-show]
"""

from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import replace
from typing import Dict, List

import matplotlib.pyplot as plt
import pandas as pd

from portfolio_challenge import (
    DEFAULT_ALLOCATION,
    LEVELS,
    BaseTerms,
    evaluate_allocation,
    find_optimal,
    get_environment,
    load_config,
    payoff_profile,
)
from portfolio_challenge.payoff import Allocation, portfolio_outcome


def format_percent(value: float) -> str:
    return f"{value * 100:.2f}%"


def describe_allocation(allocation: Allocation) -> str:
    cap = "uncapped" if allocation.equity_note.cap is None else format_percent(allocation.equity_note.cap)
    return (
        f"FI={allocation.fi * 100:.0f}% EQ={allocation.eq * 100:.0f}% Struct={allocation.struct * 100:.0f}% "
        f"(split {allocation.struct_split_equity_note:.0%} equity note; "
        f"buffer {format_percent(allocation.equity_note.buffer)}, cap {cap}; "
        f"coupon {format_percent(allocation.income_note.coupon)}, barrier {allocation.income_note.barrier:.0%}, "
        f"{allocation.income_note.protection} protection)"
    )


def optimal_label(level_id: int) -> str:
    return f"Optimal (level {level_id})"


def plot_profiles(allocations: Dict[str, Allocation]):
    fig, ax = plt.subplots(figsize=(10, 5))
    for label, allocation in allocations.items():
        profile = payoff_profile(allocation)
        ax.plot(profile["equity_return"], profile["portfolio_return"], label=label)
    ax.axhline(0.0, color="#888888", linewidth=0.8)
    ax.axvline(0.0, color="#888888", linewidth=0.8)
    ax.set_title("Payoff profile: portfolio return vs equity market move")
    ax.set_xlabel("Equity market return (%)")
    ax.set_ylabel("Portfolio return (%)")
    ax.grid(True, linestyle=":", alpha=0.4)
    ax.legend(loc="lower right")
    fig.tight_layout()
    return fig


def main() -> None:
    parser = argparse.ArgumentParser(description="Find the optimal allocation for each challenge level")
    parser.add_argument("--level", type=int, nargs="+", default=[env.id for env in LEVELS], help="Level id(s) to optimise (default: all)")
    parser.add_argument("--config", default=None, help="JSON file overriding objective coefficients and the search grid")
    parser.add_argument("--scenarios", type=int, default=None, help="Scenario sample size (default from config, 50)")
    parser.add_argument("--weight-step", type=int, default=None, help="Weight grid step in percent (default from config, 5)")
    parser.add_argument("--save-csv", default=None, help="If set, saves the comparison table here")
    parser.add_argument("--save-json", default=None, help="If set, saves full results as JSON here")
    parser.add_argument("--save-plot", default=None, help="If set, saves the payoff-profile PNG here")
    parser.add_argument("--no-show", action="store_true", help="Do not display the plot")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging from the optimizer")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    config = load_config(args.config)
    grid = config.grid
    if args.scenarios is not None:
        grid = replace(grid, scenario_count=args.scenarios)
    if args.weight_step is not None:
        grid = replace(grid, weight_step=args.weight_step)
    weights = config.objective

    print(f"Search grid: {grid.candidate_count():,} candidates x {grid.scenario_count} scenarios per level")

    base = BaseTerms.from_allocation(DEFAULT_ALLOCATION)
    rows: List[Dict[str, object]] = []
    payload: List[Dict[str, object]] = []
    optimal_allocations: Dict[str, Allocation] = {"Default allocation": DEFAULT_ALLOCATION}

    for level_id in args.level:
        env = get_environment(level_id)
        baseline = evaluate_allocation(env, DEFAULT_ALLOCATION, scenario_count=grid.scenario_count, weights=weights)
        baseline_outcome = portfolio_outcome(env, DEFAULT_ALLOCATION)

        started = time.perf_counter()
        result = find_optimal(env, base, grid=grid, weights=weights)
        elapsed = time.perf_counter() - started

        print()
        print(f"{env.name} ({env.subtitle}, stress {env.stress:.1f})")
        print(f"  Searched {result.candidates_evaluated:,} candidates in {elapsed:.2f}s")
        print(f"  Default : {describe_allocation(DEFAULT_ALLOCATION)}")
        print(f"  Optimal : {describe_allocation(result.allocation)}")
        print()
        print("  Metric            | Default   | Optimal")
        print("  ------------------|-----------|----------")
        print(f"  Score             | {baseline.score:9.2f} | {result.score:9.2f}")
        print(f"  Mean return       | {format_percent(baseline.mean_r):>9s} | {format_percent(result.metrics.mean_r):>9s}")
        print(f"  CVaR (worst 10%)  | {format_percent(baseline.cvar10):>9s} | {format_percent(result.metrics.cvar10):>9s}")
        print(f"  Mean drawdown     | {format_percent(baseline.mean_dd):>9s} | {format_percent(result.metrics.mean_dd):>9s}")
        print(f"  Mean income       | {format_percent(baseline.mean_income):>9s} | {format_percent(result.metrics.mean_income):>9s}")
        print(f"  Anchor return     | {format_percent(baseline_outcome.total_r):>9s} | {format_percent(result.outcome.total_r):>9s}")
        print(f"  Opportunity cost  : {result.score - baseline.score:.2f} points")
        print(f"  Return gap        : {(result.outcome.total_r - baseline_outcome.total_r) * 100:.2f} pp")

        rows.append(
            {
                "level": env.id,
                "name": env.name,
                "default_score": baseline.score,
                "optimal_score": result.score,
                "default_total_r": baseline_outcome.total_r,
                "optimal_total_r": result.outcome.total_r,
                "optimal_fi": result.allocation.fi,
                "optimal_eq": result.allocation.eq,
                "optimal_struct": result.allocation.struct,
                "optimal_split": result.allocation.struct_split_equity_note,
            }
        )
        payload.append(
            {
                "level": env.id,
                "name": env.name,
                "subtitle": env.subtitle,
                "default": {
                    "allocation": DEFAULT_ALLOCATION.to_dict(),
                    "metrics": baseline.to_dict(),
                    "outcome": baseline_outcome.to_dict(),
                },
                "optimal": result.to_dict(),
            }
        )
        optimal_allocations[optimal_label(env.id)] = result.allocation

    if args.save_csv:
        pd.DataFrame(rows).set_index("level").to_csv(args.save_csv)

    if args.save_json:
        with open(args.save_json, "w", encoding="utf-8") as fh:
            json.dump({"config": replace(config, grid=grid).to_config(), "levels": payload}, fh, indent=2)
            fh.write("\n")

    if args.save_plot or not args.no_show:
        fig = plot_profiles(optimal_allocations)
        if args.save_plot:
            fig.savefig(args.save_plot, dpi=150)
        if not args.no_show:
            plt.show()


if __name__ == "__main__":
    main()
