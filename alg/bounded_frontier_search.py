# alg/bounded_frontier_search.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Tuple
import heapq
import time

import numpy as np

from core.results import Incumbent, ScheduleResult
from core.system import RotationSystem, SearchState


@dataclass
class FrontierParams:
    """
    Parameters for the approximate (beam-like) frontier search.

    capacity (K) and checkpoint_width (W) trade result quality against runtime
    and memory. There is no error bound for any finite K: a larger K only keeps
    more states alive per checkpoint.
    """
    capacity: int = 1000
    checkpoint_width: float = 5.0

    # Safety guards (partial search)
    max_expansions: Optional[int] = None
    time_limit_sec: Optional[float] = None

    # Print progress every this many expanded states
    progress_every: int = 0

    def __post_init__(self):
        if int(self.capacity) < 1:
            raise ValueError(f"FrontierParams: capacity must be >= 1, got {self.capacity}")
        w = float(self.checkpoint_width)
        if not np.isfinite(w) or w <= 0:
            raise ValueError(f"FrontierParams: checkpoint_width must be > 0, got {self.checkpoint_width}")


class _Entry:
    __slots__ = ("state", "evicted")

    def __init__(self, state: SearchState):
        self.state = state
        self.evicted = False


class CheckpointBucket:
    """
    Keeps at most `capacity` states of one checkpoint, ranked by damage.
    A min-heap exposes the weakest entry; ties evict the oldest entry first.
    """
    def __init__(self, capacity: int):
        self.capacity = int(capacity)
        self._heap: List[Tuple[float, int, _Entry]] = []
        self._counter = 0

    def __len__(self) -> int:
        return len(self._heap)

    def min_damage(self) -> Optional[float]:
        return self._heap[0][0] if self._heap else None

    def offer(self, state: SearchState) -> Tuple[Optional[_Entry], Optional[_Entry]]:
        """
        Insert `state` if there is room, or if it strictly beats the weakest
        retained state, which is then evicted.
        Returns (retained entry or None, evicted entry or None).
        """
        self._counter += 1
        if len(self._heap) < self.capacity:
            entry = _Entry(state)
            heapq.heappush(self._heap, (state.damage, self._counter, entry))
            return entry, None
        if state.damage > self._heap[0][0]:
            entry = _Entry(state)
            _, _, evicted = heapq.heapreplace(self._heap, (state.damage, self._counter, entry))
            evicted.evicted = True
            return entry, evicted
        return None, None


def checkpoint_of(end_time: float, width: float) -> float:
    return float(np.floor(end_time / width) * width)


def bounded_frontier_search(
    system: RotationSystem,
    params: Optional[FrontierParams] = None,
) -> ScheduleResult:
    """
    FIFO expansion of cast sequences. Every generated successor is offered to
    the bucket of its checkpoint floor(end / W) * W; only retained successors
    are queued, and a state evicted before it is expanded is dropped.
    The incumbent is updated from every expanded state.

    Returns a ScheduleResult whose meta holds:
      expanded_nodes, generated_nodes, retained_nodes, discarded_nodes,
      evicted_nodes, skipped_evicted, incumbent_updates, max_depth, num_checkpoints,
      complete, optimal_guaranteed, runtime_sec, params
    """
    if params is None:
        params = FrontierParams()

    t0 = time.perf_counter()
    deadline = None
    if params.time_limit_sec is not None:
        deadline = t0 + max(0.0, float(params.time_limit_sec))

    width = float(params.checkpoint_width)
    buckets: Dict[float, CheckpointBucket] = {}
    queue: Deque[_Entry] = deque([_Entry(system.init_state())])
    best = Incumbent()

    expanded = 0
    generated = 0
    retained = 0
    discarded = 0
    evicted_total = 0
    skipped_evicted = 0
    max_depth = 0
    complete = True

    while queue:
        if params.max_expansions is not None and expanded >= int(params.max_expansions):
            complete = False
            break
        if deadline is not None and time.perf_counter() >= deadline:
            complete = False
            break

        entry = queue.popleft()
        if entry.evicted:
            skipped_evicted += 1
            continue

        state = entry.state
        expanded += 1
        max_depth = max(max_depth, state.depth)
        if params.progress_every and (expanded % int(params.progress_every) == 0):
            print(f"[frontier] expanded={expanded}  queued={len(queue)}  best={best.damage:.6g}")

        if best.improves(state.damage):
            best.record(state.damage, state.history())

        for _, child in system.successors(state):
            generated += 1
            key = checkpoint_of(child.time, width)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = CheckpointBucket(params.capacity)
                buckets[key] = bucket

            kept, evicted = bucket.offer(child)
            if evicted is not None:
                evicted_total += 1
            if kept is None:
                discarded += 1
                continue
            retained += 1
            queue.append(kept)

    meta: Dict[str, Any] = {
        "expanded_nodes": int(expanded),
        "generated_nodes": int(generated),
        "retained_nodes": int(retained),
        "discarded_nodes": int(discarded),
        "evicted_nodes": int(evicted_total),
        "skipped_evicted": int(skipped_evicted),
        "incumbent_updates": int(best.updates),
        "max_depth": int(max_depth),
        "num_checkpoints": int(len(buckets)),
        "complete": bool(complete),
        # nothing dropped => every reachable sequence was expanded
        "optimal_guaranteed": bool(complete and discarded == 0 and evicted_total == 0),
        "runtime_sec": float(time.perf_counter() - t0),
        "params": dict(params.__dict__),
    }
    return ScheduleResult(
        mode="frontier",
        max_damage=float(best.damage),
        sequence=system.names_of(best.indices),
        indices=list(best.indices),
        meta=meta,
    )
