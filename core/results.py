# core/results.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass
class ScheduleResult:
    mode: str  # "exhaustive" | "frontier"
    max_damage: float
    sequence: List[str]
    indices: List[int] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SetupResult:
    best_damage: float
    best_dps: float
    gear: List[float]
    sequence: List[str]
    time_limit: float
    schedule: ScheduleResult
    num_combos: int
    # (gear, max_damage) per evaluated combo, in enumeration order
    evaluations: List[Tuple[List[float], float]] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def gear_cost(self) -> float:
        return float(sum(self.gear))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_damage": float(self.best_damage),
            "best_dps": float(self.best_dps),
            "gear": [float(g) for g in self.gear],
            "sequence": list(self.sequence),
            "time_limit": float(self.time_limit),
            "num_combos": int(self.num_combos),
            "mode": self.schedule.mode,
            "meta": dict(self.meta),
        }


@dataclass
class Incumbent:
    """Best (damage, cast indices) seen so far by one schedule search."""
    damage: float = 0.0
    indices: List[int] = field(default_factory=list)
    updates: int = 0

    def improves(self, damage: float) -> bool:
        return damage > self.damage

    def record(self, damage: float, indices) -> None:
        self.damage = float(damage)
        self.indices = list(indices)
        self.updates += 1
