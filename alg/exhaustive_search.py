# alg/exhaustive_search.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import sys
import time

import numpy as np

from alg.bounds import DamageBound
from core.results import Incumbent, ScheduleResult
from core.system import RotationSystem

# Stack frames kept free for the caller when checking the recursion budget.
_STACK_HEADROOM = 200


@dataclass
class ExhaustiveSearchParams:
    """
    Parameters for the exact depth-first cast-sequence search.
    """
    # Skip subtrees whose damage upper bound cannot strictly beat the incumbent.
    # Never changes the returned damage or sequence.
    enable_pruning: bool = True
    # Rounding slack on the bound: prune only when ub < best - margin
    margin: float = 1e-9

    # Safety guards: stop after visiting this many nodes / this many seconds (partial search)
    max_nodes: Optional[int] = None
    time_limit_sec: Optional[float] = None

    # Print progress every this many visited nodes
    progress_every: int = 0


class _DepthFirst:
    """
    One DFS run. The availability buffer and the history list are shared by
    the whole traversal; every cast is undone on the way back out.
    """
    def __init__(self, system: RotationSystem, params: ExhaustiveSearchParams):
        self.system = system
        self.params = params
        self.bound = DamageBound(system) if params.enable_pruning else None

        self.next_avail = np.zeros(system.n, dtype=float)
        self.history: List[int] = []
        self.best = Incumbent()

        self.visited = 0
        self.pruned = 0
        self.max_depth = 0
        self.complete = True
        self.deadline: Optional[float] = None

    def _out_of_budget(self) -> bool:
        p = self.params
        if p.max_nodes is not None and self.visited >= int(p.max_nodes):
            return True
        # clock is read every 1024 nodes only
        if self.deadline is not None and (self.visited & 1023) == 0 and time.perf_counter() >= self.deadline:
            return True
        return False

    def run(self) -> None:
        if self.params.time_limit_sec is not None:
            self.deadline = time.perf_counter() + max(0.0, float(self.params.time_limit_sec))
        self._visit(0.0, 0.0)

    def _visit(self, t: float, damage: float) -> None:
        if not self.complete:
            return
        if self._out_of_budget():
            self.complete = False
            return

        self.visited += 1
        depth = len(self.history)
        if depth > self.max_depth:
            self.max_depth = depth
        if self.params.progress_every and (self.visited % int(self.params.progress_every) == 0):
            print(f"[exhaustive] visited={self.visited}  best={self.best.damage:.6g}  depth={depth}")

        if self.best.improves(damage):
            self.best.record(damage, self.history)

        if self.bound is not None:
            ub = damage + self.bound.tail(t, self.next_avail)
            if ub < self.best.damage - self.params.margin:
                self.pruned += 1
                return

        system = self.system
        for i in range(system.n):
            window = system.cast_window(t, float(self.next_avail[i]), i)
            if window is None:
                continue
            _, end = window

            saved = self.next_avail[i]
            self.next_avail[i] = end + system.recast[i]
            self.history.append(i)
            try:
                self._visit(end, damage + float(system.damage[i]))
            finally:
                self.history.pop()
                self.next_avail[i] = saved

            if not self.complete:
                return


def exhaustive_schedule_search(
    system: RotationSystem,
    params: Optional[ExhaustiveSearchParams] = None,
) -> ScheduleResult:
    """
    Exact search: maximize total damage over every legal cast sequence of
    `system` (one roster, one gear combo, one time limit).

    Returns a ScheduleResult whose meta holds:
      visited_nodes, pruned_nodes, incumbent_updates, max_depth, depth_bound,
      complete, optimal_guaranteed, runtime_sec, params

    Raises ValueError when the longest possible cast sequence would exceed the
    interpreter's recursion limit; such windows need mode='frontier'.
    """
    if params is None:
        params = ExhaustiveSearchParams()

    t0 = time.perf_counter()

    depth_bound = DamageBound(system).max_casts()
    stack_budget = sys.getrecursionlimit() - _STACK_HEADROOM
    if depth_bound > stack_budget:
        raise ValueError(
            f"exhaustive search may need {depth_bound} nested casts, more than the "
            f"recursion budget ({stack_budget}); use mode='frontier' for this window"
        )

    dfs = _DepthFirst(system, params)
    dfs.run()

    meta: Dict[str, Any] = {
        "visited_nodes": int(dfs.visited),
        "pruned_nodes": int(dfs.pruned),
        "incumbent_updates": int(dfs.best.updates),
        "max_depth": int(dfs.max_depth),
        "depth_bound": int(depth_bound),
        "complete": bool(dfs.complete),
        "optimal_guaranteed": bool(dfs.complete),
        "runtime_sec": float(time.perf_counter() - t0),
        "params": dict(params.__dict__),
    }
    return ScheduleResult(
        mode="exhaustive",
        max_damage=float(dfs.best.damage),
        sequence=system.names_of(dfs.best.indices),
        indices=list(dfs.best.indices),
        meta=meta,
    )
