# core/system.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Union
import numpy as np

from core.gear_space import GearSpace

# Tolerance for every comparison against the time limit (both search strategies).
TIME_EPS = 1e-9


@dataclass(frozen=True)
class SearchState:
    """
    Immutable search node. The cast history is a parent chain, so siblings
    share their common prefix instead of copying it.
    """
    time: float
    damage: float
    next_avail: Tuple[float, ...]
    action: int = -1
    parent: Optional["SearchState"] = field(default=None, repr=False, compare=False)
    depth: int = 0

    def history(self) -> List[int]:
        out: List[int] = []
        node: Optional[SearchState] = self
        while node is not None and node.action >= 0:
            out.append(node.action)
            node = node.parent
        out.reverse()
        return out


@dataclass
class CastEvent:
    name: str
    start: float
    end: float
    next_avail: float
    damage: float
    total_damage: float


@dataclass
class RolloutResult:
    events: List[CastEvent]
    total_damage: float


class RotationSystem:
    """
    Deterministic cast timeline for one roster and one gear combo:

      start = max(t, next_avail[i]),  end = start + cast_time[i]
      legal iff end <= time_limit + eps
      next_avail[i] <- end + recast_time[i] * (1 - gear[i]/100)
    """
    def __init__(self, gear_space: GearSpace, gear: Sequence[float], time_limit: float, eps: float = TIME_EPS):
        tl = float(time_limit)
        if not np.isfinite(tl) or tl <= 0:
            raise ValueError(f"time_limit must be a positive finite number, got {time_limit!r}")

        self.gear_space = gear_space
        self.gear = gear_space.check_combo(gear)
        self.time_limit = tl
        self.eps = float(eps)

        self.names = gear_space.names
        self.cast = np.array([a.cast_time for a in gear_space.actions], dtype=float)
        self.damage = np.array([a.damage for a in gear_space.actions], dtype=float)
        self.recast = gear_space.effective_recasts(self.gear)
        # cast_time + recast > 0 is guaranteed by Action validation
        self.period = self.cast + self.recast

    @property
    def n(self) -> int:
        return len(self.names)

    def init_state(self) -> SearchState:
        return SearchState(time=0.0, damage=0.0, next_avail=tuple([0.0] * self.n))

    def cast_window(self, t: float, avail: float, i: int) -> Optional[Tuple[float, float]]:
        """(start, end) of casting action i now, or None if it cannot finish in time."""
        if avail > self.time_limit + self.eps:
            return None
        start = max(t, avail)
        end = start + float(self.cast[i])
        if end > self.time_limit + self.eps:
            return None
        return start, end

    def step(self, state: SearchState, i: int) -> Optional[SearchState]:
        window = self.cast_window(state.time, state.next_avail[i], i)
        if window is None:
            return None
        _, end = window
        avail = list(state.next_avail)
        avail[i] = end + float(self.recast[i])
        return SearchState(
            time=end,
            damage=state.damage + float(self.damage[i]),
            next_avail=tuple(avail),
            action=i,
            parent=state,
            depth=state.depth + 1,
        )

    def successors(self, state: SearchState) -> Iterator[Tuple[int, SearchState]]:
        for i in range(self.n):
            child = self.step(state, i)
            if child is not None:
                yield i, child

    def index_of(self, action: Union[int, str]) -> int:
        if isinstance(action, (int, np.integer)):
            i = int(action)
            if not (0 <= i < self.n):
                raise ValueError(f"action index {i} out of range [0, {self.n})")
            return i
        try:
            return self.names.index(action)
        except ValueError:
            raise ValueError(f"unknown action {action!r}")

    def names_of(self, indices: Sequence[int]) -> List[str]:
        return [self.names[int(i)] for i in indices]

    def rollout(self, sequence: Sequence[Union[int, str]]) -> RolloutResult:
        """Replay a cast sequence, raising ValueError at the first illegal cast."""
        state = self.init_state()
        events: List[CastEvent] = []
        for pos, a in enumerate(sequence):
            i = self.index_of(a)
            window = self.cast_window(state.time, state.next_avail[i], i)
            if window is None:
                raise ValueError(
                    f"cast #{pos} ({self.names[i]!r}) cannot finish by t={self.time_limit} "
                    f"(time={state.time:.6g}, available at {state.next_avail[i]:.6g})"
                )
            nxt = self.step(state, i)
            events.append(CastEvent(
                name=self.names[i],
                start=float(window[0]),
                end=float(nxt.time),
                next_avail=float(nxt.next_avail[i]),
                damage=float(self.damage[i]),
                total_damage=float(nxt.damage),
            ))
            state = nxt
        return RolloutResult(events=events, total_damage=float(state.damage))

    def eval_damage(self, sequence: Sequence[Union[int, str]]) -> float:
        return self.rollout(sequence).total_damage
