#!/usr/bin/env python3
"""Render Markdown tables from a JSON file written by optimize_levels.py --save-json."""

from __future__ import annotations

import argparse
import json
from typing import Mapping, Sequence


def _format_percent(value: object) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{float(value) * 100:.2f}%"
    return "—"


def _format_cap(value: object) -> str:
    return "uncapped" if value is None else _format_percent(value)


def render_summary(levels: Sequence[Mapping[str, object]]) -> str:
    headers = ["Level", "Default Score", "Optimal Score", "Opportunity Cost", "Default Return", "Optimal Return", "Return Gap"]
    lines = [" | ".join(headers), " | ".join(["---"] * len(headers))]
    for entry in levels:
        default = entry["default"]
        optimal = entry["optimal"]
        default_r = default["outcome"]["total_r"]
        optimal_r = optimal["outcome"]["total_r"]
        lines.append(
            " | ".join(
                [
                    str(entry.get("name", entry.get("level"))),
                    f"{default['metrics']['score']:.2f}",
                    f"{optimal['score']:.2f}",
                    f"{optimal['score'] - default['metrics']['score']:.2f}",
                    _format_percent(default_r),
                    _format_percent(optimal_r),
                    _format_percent(optimal_r - default_r),
                ]
            )
        )
    return "\n".join(lines)


def render_allocations(levels: Sequence[Mapping[str, object]]) -> str:
    headers = ["Level", "FI", "EQ", "Struct", "Equity-Note Split", "Buffer", "Cap", "Coupon", "Barrier", "Protection"]
    lines = [" | ".join(headers), " | ".join(["---"] * len(headers))]
    for entry in levels:
        alloc = entry["optimal"]["allocation"]
        equity_note = alloc["equity_note"]
        income_note = alloc["income_note"]
        lines.append(
            " | ".join(
                [
                    str(entry.get("name", entry.get("level"))),
                    _format_percent(alloc["fi"]),
                    _format_percent(alloc["eq"]),
                    _format_percent(alloc["struct"]),
                    _format_percent(alloc["struct_split_equity_note"]),
                    _format_percent(equity_note["buffer"]),
                    _format_cap(equity_note["cap"]),
                    _format_percent(income_note["coupon"]),
                    _format_percent(income_note["barrier"]),
                    str(income_note["protection"]),
                ]
            )
        )
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("results", help="Path to the JSON results file")
    args = parser.parse_args()

    with open(args.results, "r", encoding="utf-8") as fh:
        payload = json.load(fh)
    levels = payload.get("levels", [])

    print("# Optimal vs Default")
    print(render_summary(levels))
    print()  # Spacer between tables
    print("# Optimal Allocations")
    print(render_allocations(levels))


if __name__ == "__main__":
    main()
