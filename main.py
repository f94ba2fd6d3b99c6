# main.py
from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict

import numpy as np
import pandas as pd

from alg.bounded_frontier_search import FrontierParams
from alg.exhaustive_search import ExhaustiveSearchParams
from alg.schedule_search import MODES, SearchParams
from alg.setup_optimizer import SetupParams, optimize_setup
from core.gear_space import GearSpace
from core.results import SetupResult
from core.system import RotationSystem
from examples.mage_rotation import EXAMPLES, build_instance


def load_roster(path: str) -> GearSpace:
    """
    JSON roster: either a list of action records or {"actions": [...]}, each
    record {name, cast_time, recast_time, damage, gear_options} (camelCase
    castDuration / baseCooldown / damagePerCast / modifierOptions also accepted).
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("actions", [])
    return GearSpace.from_records(data)


def _pretty_print_setup(result: SetupResult) -> None:
    print("=== Best DPS Setup ===")
    print("Gear chosen (%):", [float(g) for g in result.gear])
    print(f"Total Damage in {result.time_limit:g}s: {result.best_damage:.6g}")
    print(f"DPS: {result.best_dps:.2f}")
    print("Cast Sequence:", " -> ".join(result.sequence + ["END"]))

    meta = result.schedule.meta
    print(f"mode: {result.schedule.mode}  combos: {result.num_combos}  "
          f"runtime_sec: {result.meta.get('runtime_sec', 0.0):.3f}")
    print(f"all_complete: {result.meta.get('all_complete')}  "
          f"optimal_guaranteed: {result.meta.get('all_optimal_guaranteed')}")
    for k in ("visited_nodes", "pruned_nodes", "expanded_nodes", "discarded_nodes", "evicted_nodes",
              "incumbent_updates", "max_depth"):
        if k in meta:
            print(f"  {k:16s}: {meta[k]}")


def _pretty_print_timeline(gear_space: GearSpace, result: SetupResult) -> None:
    system = RotationSystem(gear_space, result.gear, result.time_limit)
    rr = system.rollout(result.sequence)
    print("=== Timeline ===")
    print("Format: start - end | skill | damage | next available | total")
    for e in rr.events:
        print(f"{e.start:7.2f} - {e.end:7.2f} | {e.name:12s} | {e.damage:>9.1f} | "
              f"{e.next_avail:7.2f} | {e.total_damage:>10.1f}")


def _evaluations_frame(result: SetupResult, gear_space: GearSpace) -> pd.DataFrame:
    rows = []
    for gear, damage in result.evaluations:
        row: Dict[str, Any] = {f"gear_{n}": g for n, g in zip(gear_space.names, gear)}
        row["gear_cost"] = float(np.sum(gear))
        row["max_damage"] = float(damage)
        row["dps"] = float(damage) / result.time_limit
        rows.append(row)
    df = pd.DataFrame(rows)
    return df.sort_values(["max_damage", "gear_cost"], ascending=[False, True], kind="stable")


def main():
    parser = argparse.ArgumentParser("Find the gear combo and cast rotation with the highest damage")

    parser.add_argument("--example", type=str, default="duo_gear", choices=sorted(EXAMPLES.keys()))
    parser.add_argument("--roster", type=str, default="", help="JSON roster file (overrides --example)")
    parser.add_argument("--time_limit", type=float, default=None, help="window length (default: example's)")

    parser.add_argument("--mode", type=str, default="exhaustive", choices=list(MODES))
    parser.add_argument("--no_pruning", action="store_true", help="exhaustive: disable upper-bound pruning")
    parser.add_argument("--max_nodes", type=int, default=None, help="exhaustive: node budget per combo")
    parser.add_argument("--capacity", type=int, default=None, help="frontier: states kept per checkpoint (K)")
    parser.add_argument("--checkpoint_width", type=float, default=None, help="frontier: checkpoint width (W)")
    parser.add_argument("--max_expansions", type=int, default=None, help="frontier: expansion budget per combo")
    parser.add_argument("--search_time_limit_sec", type=float, default=None,
                        help="wall-clock budget per combo search (partial result when hit)")

    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--progress_every", type=int, default=0)
    parser.add_argument("--timeline", action="store_true", help="print the replayed cast timeline")
    parser.add_argument("--out_csv", type=str, default="", help="write per-combo damage table")
    parser.add_argument("--dump_json", type=str, default="", help="write the best setup as JSON")

    args = parser.parse_args()

    if args.roster:
        gear_space = load_roster(args.roster)
        inst: Dict[str, Any] = dict(time_limit=None, capacity=1000, checkpoint_width=5.0)
        print(f"[roster] loaded {gear_space.n} actions from {args.roster}")
    else:
        inst = build_instance(args.example)
        gear_space = inst["gear_space"]
        print(f"[example] {args.example}: {gear_space.n} actions")

    time_limit = args.time_limit if args.time_limit is not None else inst.get("time_limit")
    if time_limit is None:
        parser.error("--time_limit is required with --roster")

    capacity = args.capacity if args.capacity is not None else int(inst.get("capacity", 1000))
    width = args.checkpoint_width if args.checkpoint_width is not None else float(inst.get("checkpoint_width", 5.0))

    search = SearchParams(
        mode=args.mode,
        exhaustive=ExhaustiveSearchParams(
            enable_pruning=not args.no_pruning,
            max_nodes=args.max_nodes,
            time_limit_sec=args.search_time_limit_sec,
        ),
        frontier=FrontierParams(
            capacity=capacity,
            checkpoint_width=width,
            max_expansions=args.max_expansions,
            time_limit_sec=args.search_time_limit_sec,
        ),
    )
    params = SetupParams(search=search, workers=args.workers, progress_every=args.progress_every)

    print(f"[setup] {gear_space.num_combos()} gear combos, time_limit={float(time_limit):g}, mode={search.mode}")
    result = optimize_setup(gear_space, float(time_limit), params)

    _pretty_print_setup(result)
    if args.timeline:
        _pretty_print_timeline(gear_space, result)

    if args.out_csv:
        df = _evaluations_frame(result, gear_space)
        df.to_csv(args.out_csv, index=False)
        print(f"[saved] {len(df)} rows -> {args.out_csv}")

    if args.dump_json:
        out_dir = os.path.dirname(args.dump_json)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(args.dump_json, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, default=str)
        print(f"[dump] saved setup to {args.dump_json}")


if __name__ == "__main__":
    main()
