# alg/setup_optimizer.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple
import multiprocessing as mp
import time

import numpy as np

from alg.schedule_search import SearchParams, run_schedule_search
from core.gear_space import GearSpace
from core.results import ScheduleResult, SetupResult
from core.system import TIME_EPS


@dataclass
class SetupParams:
    search: SearchParams = field(default_factory=SearchParams)

    # >1 evaluates gear combos on a process pool; the result is identical to workers=1
    workers: int = 1

    # Damage values closer than this are a tie (broken by the lower gear sum)
    tie_eps: float = TIME_EPS

    # Print progress every this many evaluated combos
    progress_every: int = 0


def _evaluate_combo(args: Tuple[GearSpace, Tuple[float, ...], float, SearchParams]) -> ScheduleResult:
    """
    Must be at module top-level to be picklable under multiprocessing 'spawn'.
    """
    gear_space, gear, time_limit, search = args
    return run_schedule_search(gear_space, gear, time_limit, search)


def _pool_context():
    # Prefer fork on Linux (no pickling of the module state), spawn elsewhere.
    try:
        return mp.get_context("fork")
    except ValueError:
        return mp.get_context("spawn")


def _is_better(damage: float, cost: float, best_damage: float, best_cost: float, tie_eps: float) -> bool:
    if damage > best_damage + tie_eps:
        return True
    if abs(damage - best_damage) <= tie_eps and cost < best_cost:
        return True
    return False


def optimize_setup(
    gear_space: GearSpace,
    time_limit: float,
    params: Optional[SetupParams] = None,
) -> SetupResult:
    """
    Try every gear combo, search the best rotation for each, and keep the best:
      - higher max damage wins,
      - equal damage (within tie_eps): lower sum of gear percentages wins,
      - full tie: the earlier combo in enumeration order stays.

    Errors from the per-combo search propagate unchanged. In particular the
    exhaustive mode raises ValueError when a window allows more nested casts
    than the recursion limit permits; use SearchParams(mode="frontier") there.
    """
    if params is None:
        params = SetupParams()

    tl = float(time_limit)
    if not np.isfinite(tl) or tl <= 0:
        raise ValueError(f"time_limit must be a positive finite number, got {time_limit!r}")

    t0 = time.perf_counter()
    combos = [tuple(float(g) for g in c) for c in gear_space.enumerate_combos()]
    total = len(combos)
    jobs = [(gear_space, c, tl, params.search) for c in combos]

    best_result: Optional[ScheduleResult] = None
    best_gear: Optional[Tuple[float, ...]] = None
    best_cost = float("inf")
    evaluations: List[Tuple[List[float], float]] = []
    all_complete = True
    all_optimal = True

    def consume(results: Iterator[ScheduleResult]) -> None:
        nonlocal best_result, best_gear, best_cost, all_complete, all_optimal
        for idx, res in enumerate(results):
            gear = combos[idx]
            cost = gear_space.combo_cost(gear)
            evaluations.append((list(gear), float(res.max_damage)))
            all_complete = all_complete and bool(res.meta.get("complete", True))
            all_optimal = all_optimal and bool(res.meta.get("optimal_guaranteed", False))

            if best_result is None or _is_better(res.max_damage, cost, best_result.max_damage, best_cost, params.tie_eps):
                best_result = res
                best_gear = gear
                best_cost = cost

            if params.progress_every and ((idx + 1) % int(params.progress_every) == 0 or idx + 1 == total):
                print(f"[setup] combo {idx + 1}/{total} gear={list(gear)} damage={res.max_damage:.6g}  "
                      f"best={best_result.max_damage:.6g} gear={list(best_gear)}")

    workers = max(1, int(params.workers))
    if workers > 1 and total > 1:
        ctx = _pool_context()
        with ctx.Pool(processes=min(workers, total)) as pool:
            # imap keeps enumeration order, so tie-breaking matches the sequential run
            consume(pool.imap(_evaluate_combo, jobs, chunksize=1))
    else:
        consume(_evaluate_combo(job) for job in jobs)

    meta: Dict[str, Any] = {
        "mode": params.search.mode,
        "workers": workers,
        "all_complete": bool(all_complete),
        "all_optimal_guaranteed": bool(all_optimal),
        "runtime_sec": float(time.perf_counter() - t0),
    }
    return SetupResult(
        best_damage=float(best_result.max_damage),
        best_dps=float(best_result.max_damage) / tl,
        gear=list(best_gear),
        sequence=list(best_result.sequence),
        time_limit=tl,
        schedule=best_result,
        num_combos=total,
        evaluations=evaluations,
        meta=meta,
    )
