# core/gear_space.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple
import numpy as np


# camelCase keys accepted by GearSpace.from_records, mapped to Action fields
_RECORD_ALIASES = {
    "skillName": "name",
    "castDuration": "cast_time",
    "castTimeS": "cast_time",
    "baseCooldown": "recast_time",
    "recastTimeS": "recast_time",
    "damagePerCast": "damage",
    "modifierOptions": "gear_options",
    "possibleSkillGear": "gear_options",
}


def _check_non_negative(name: str, field_name: str, value: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Action {name!r}: {field_name} must be a number, got {value!r}")
    if not np.isfinite(v):
        raise ValueError(f"Action {name!r}: {field_name} must be finite, got {v}")
    if v < 0:
        raise ValueError(f"Action {name!r}: {field_name} must be >= 0, got {v}")
    return v


@dataclass(frozen=True)
class Action:
    """
    A repeatable timed ability.

      cast_time    : time the global timeline is busy while casting
      recast_time  : base cooldown, counted from the end of the cast
      damage       : damage dealt by one cast
      gear_options : allowed recast reductions in percent, each in [0, 100)
    """
    name: str
    cast_time: float
    recast_time: float
    damage: float
    gear_options: Tuple[float, ...] = (0.0,)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError(f"Action name must be a non-empty string, got {self.name!r}")
        object.__setattr__(self, "cast_time", _check_non_negative(self.name, "cast_time", self.cast_time))
        object.__setattr__(self, "recast_time", _check_non_negative(self.name, "recast_time", self.recast_time))
        object.__setattr__(self, "damage", _check_non_negative(self.name, "damage", self.damage))

        if self.cast_time == 0.0 and self.recast_time == 0.0:
            raise ValueError(
                f"Action {self.name!r}: cast_time and recast_time are both 0, "
                "the action could be cast infinitely often"
            )

        opts = tuple(self.gear_options) if self.gear_options is not None else ()
        if len(opts) == 0:
            raise ValueError(f"Action {self.name!r}: gear_options must not be empty")
        checked = []
        for pct in opts:
            p = _check_non_negative(self.name, "gear_options", pct)
            if p >= 100.0:
                raise ValueError(f"Action {self.name!r}: gear_options value {p} must be < 100")
            checked.append(p)
        object.__setattr__(self, "gear_options", tuple(checked))

    def effective_recast(self, gear_pct: float) -> float:
        return self.recast_time * (1.0 - float(gear_pct) / 100.0)


@dataclass(frozen=True)
class GearSpace:
    """
    The roster plus its gear choices. A gear combo ("assignment") picks exactly
    one percentage per action; the combo space is the Cartesian product of all
    gear_options.
    """
    actions: Tuple[Action, ...]

    def __post_init__(self):
        acts = tuple(self.actions)
        if len(acts) == 0:
            raise ValueError("GearSpace: roster must contain at least one action")
        seen = set()
        for a in acts:
            if not isinstance(a, Action):
                raise ValueError(f"GearSpace: expected Action, got {type(a).__name__}")
            if a.name in seen:
                raise ValueError(f"GearSpace: duplicate action name {a.name!r}")
            seen.add(a.name)
        object.__setattr__(self, "actions", acts)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "GearSpace":
        """Build from plain dicts, e.g. rows loaded from JSON."""
        actions = []
        for idx, rec in enumerate(records):
            kw: Dict[str, Any] = {}
            for key, val in rec.items():
                kw[_RECORD_ALIASES.get(key, key)] = val
            missing = [k for k in ("name", "cast_time", "recast_time", "damage") if k not in kw]
            if missing:
                raise ValueError(f"GearSpace.from_records: record {idx} is missing {missing}")
            actions.append(Action(
                name=kw["name"],
                cast_time=kw["cast_time"],
                recast_time=kw["recast_time"],
                damage=kw["damage"],
                gear_options=tuple(kw.get("gear_options", (0.0,))),
            ))
        return cls(actions=tuple(actions))

    @property
    def n(self) -> int:
        return len(self.actions)

    @property
    def names(self) -> List[str]:
        return [a.name for a in self.actions]

    def num_combos(self) -> int:
        # python ints, the product can overflow int64 for large rosters
        return int(np.prod([len(a.gear_options) for a in self.actions], dtype=object))

    def check_combo(self, gear: Sequence[float]) -> np.ndarray:
        """Return gear as a float array, or raise ValueError naming the bad entry."""
        g = np.asarray(gear, dtype=float).reshape(-1)
        if g.shape != (self.n,):
            raise ValueError(f"gear combo has {g.shape[0]} entries, roster has {self.n} actions")
        for i, a in enumerate(self.actions):
            if float(g[i]) not in a.gear_options:
                raise ValueError(
                    f"Action {a.name!r}: gear {float(g[i])} is not one of {list(a.gear_options)}"
                )
        return g

    def combo_cost(self, gear: Sequence[float]) -> float:
        return float(np.sum(np.asarray(gear, dtype=float)))

    def effective_recasts(self, gear: Sequence[float]) -> np.ndarray:
        g = self.check_combo(gear)
        recast = np.array([a.recast_time for a in self.actions], dtype=float)
        eff = recast * (1.0 - g / 100.0)
        if np.any(eff < 0):
            raise RuntimeError(f"negative effective recast {eff.tolist()} for gear {g.tolist()}")
        return eff

    # -------------------------
    # Enumeration
    # -------------------------
    def enumerate_combos(self) -> Iterable[np.ndarray]:
        """
        Yield every gear combo, first action outermost, each action's options
        in their declared order. Exponential in the roster size.
        """
        cur = np.zeros(self.n, dtype=float)

        def rec(i: int):
            if i == self.n:
                yield cur.copy()
                return
            for pct in self.actions[i].gear_options:
                cur[i] = pct
                yield from rec(i + 1)

        yield from rec(0)
