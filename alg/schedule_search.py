# alg/schedule_search.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from alg.bounded_frontier_search import FrontierParams, bounded_frontier_search
from alg.exhaustive_search import ExhaustiveSearchParams, exhaustive_schedule_search
from core.gear_space import GearSpace
from core.results import ScheduleResult
from core.system import RotationSystem

MODES = ("exhaustive", "frontier")


@dataclass
class SearchParams:
    mode: str = "exhaustive"  # "exhaustive" | "frontier"
    exhaustive: ExhaustiveSearchParams = field(default_factory=ExhaustiveSearchParams)
    frontier: FrontierParams = field(default_factory=FrontierParams)

    def __post_init__(self):
        self.mode = str(self.mode).lower()
        if self.mode in ("beam", "bounded"):
            self.mode = "frontier"
        if self.mode in ("exact", "dfs"):
            self.mode = "exhaustive"
        if self.mode not in MODES:
            raise ValueError(f"Unknown search mode: {self.mode!r} (expected one of {MODES})")


def run_schedule_search(
    gear_space: GearSpace,
    gear: Sequence[float],
    time_limit: float,
    params: Optional[SearchParams] = None,
) -> ScheduleResult:
    """
    Unified entry, same contract for both strategies:
      (roster, gear combo, time limit) -> ScheduleResult
      - exhaustive: exact depth-first branch-and-bound
      - frontier:   capacity-bounded checkpointed frontier (approximate)
    """
    if params is None:
        params = SearchParams()

    system = RotationSystem(gear_space, gear, time_limit)
    if params.mode == "exhaustive":
        return exhaustive_schedule_search(system, params.exhaustive)
    return bounded_frontier_search(system, params.frontier)
