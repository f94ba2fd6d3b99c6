# alg/bounds.py
from __future__ import annotations

from typing import Sequence
import numpy as np

from core.system import RotationSystem

# Slack added before flooring cast counts, so rounding can only loosen the bound.
_COUNT_SLACK = 1e-6


class DamageBound:
    """
    Sound upper bound on the damage still obtainable from a node (t, next_avail).

    1) Per action, its own cooldown caps the remaining casts:
         s0 = max(t, next_avail[i]),  casts start at s0, s0 + period, ...
         k_i = floor((T + eps - s0 - cast_i) / period_i) + 1   (0 if the first cast does not fit)
    2) Casts are sequential on one timeline, so sum_i x_i * cast_i <= T + eps - t.
    The bound is the LP (fractional knapsack) optimum of
         max sum_i x_i * damage_i   s.t. 0 <= x_i <= k_i,  sum_i x_i * cast_i <= T + eps - t,
    filled greedily by damage density. Zero-length casts are free.
    """
    def __init__(self, system: RotationSystem):
        self.system = system
        self.horizon = system.time_limit + system.eps
        self.cast = system.cast
        self.damage = system.damage
        self.period = system.period

        with np.errstate(divide="ignore", invalid="ignore"):
            density = np.where(self.cast > 0, self.damage / np.where(self.cast > 0, self.cast, 1.0), np.inf)
        # stable sort keeps roster order among equal densities
        self.order = [int(i) for i in np.argsort(-density, kind="stable")]

    def cast_counts(self, t: float, next_avail: Sequence[float]) -> np.ndarray:
        start = np.maximum(float(t), np.asarray(next_avail, dtype=float))
        room = self.horizon - start - self.cast
        counts = np.floor(np.maximum(room, 0.0) / self.period + _COUNT_SLACK) + 1.0
        return np.where(room >= 0, counts, 0.0)

    def tail(self, t: float, next_avail: Sequence[float]) -> float:
        counts = self.cast_counts(t, next_avail)
        budget = self.horizon - float(t)
        total = 0.0
        for i in self.order:
            k = float(counts[i])
            if k <= 0:
                continue
            c = float(self.cast[i])
            if c <= 0:
                total += k * float(self.damage[i])
                continue
            if budget <= 0:
                break
            x = min(k, budget / c)
            total += x * float(self.damage[i])
            budget -= x * c
        return float(total)

    def max_casts(self) -> int:
        """Upper bound on the length of any legal cast sequence from the root."""
        counts = self.cast_counts(0.0, np.zeros(self.system.n))
        return int(np.sum(counts))
