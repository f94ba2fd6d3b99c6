# examples/mage_rotation.py
from __future__ import annotations
from typing import Any, Dict, List

from core.gear_space import Action, GearSpace


def _mage_actions(gear: Dict[str, List[float]]) -> List[Action]:
    """Eight-skill fire/frost kit. `gear` overrides the recast options per skill."""
    base = [
        # name, cast, recast, damage
        ("Fireball",   1.0,  6.7, 10300.0),
        ("Fire Storm", 3.0, 15.0, 11100.0),
        ("Ice Blast",  4.0, 20.0, 14000.0),
        ("Ice Shards", 2.0, 15.0, 11765.0),
        ("FrostBite",  3.0, 20.0,  9500.0),
        ("Pet",        1.0, 15.0,  2400.0),
        ("Offhand",    2.0, 90.0,  9000.0),
        ("Mainhand",   1.0, 45.0,  9000.0),
    ]
    return [
        Action(name=n, cast_time=c, recast_time=r, damage=d, gear_options=tuple(gear.get(n, [0.0])))
        for n, c, r, d in base
    ]


def _example_mage_gear() -> Dict[str, Any]:
    """
    Full kit with gear choices on three skills (8 combos). Exhaustive search
    is slow for long windows; the frontier defaults are tuned for T=60.
    """
    actions = _mage_actions({
        "Fireball": [0.0, 15.0],
        "Fire Storm": [0.0, 30.0],
        "Ice Shards": [0.0, 30.0],
    })
    return dict(actions=actions, time_limit=60.0, capacity=1000, checkpoint_width=5.0)


def _example_mage_fixed() -> Dict[str, Any]:
    """Full kit with the gear already chosen (a single combo), 20s window."""
    actions = _mage_actions({
        "Fireball": [15.0],
        "Fire Storm": [30.0],
        "Ice Shards": [30.0],
    })
    return dict(actions=actions, time_limit=20.0, capacity=200, checkpoint_width=5.0)


def _example_single_nuke() -> Dict[str, Any]:
    """One action: casts end at t=1 and t=7, the third would start at t=12 > 11."""
    actions = [Action(name="Nuke", cast_time=1.0, recast_time=5.0, damage=10.0, gear_options=(0.0,))]
    return dict(actions=actions, time_limit=11.0, capacity=10, checkpoint_width=5.0)


def _example_filler_burst() -> Dict[str, Any]:
    """A cooldown-free filler plus a stronger burst on a long cooldown: weaving wins."""
    actions = [
        Action(name="Filler", cast_time=1.0, recast_time=0.0, damage=10.0),
        Action(name="Burst", cast_time=1.0, recast_time=10.0, damage=15.0),
    ]
    return dict(actions=actions, time_limit=5.0, capacity=50, checkpoint_width=5.0)


def _example_duo_gear() -> Dict[str, Any]:
    """Two cooldown-bound skills with gear that only sometimes buys an extra cast."""
    actions = [
        Action(name="Strike", cast_time=1.0, recast_time=4.0, damage=30.0, gear_options=(0.0, 25.0, 50.0)),
        Action(name="Sweep", cast_time=2.0, recast_time=6.0, damage=45.0, gear_options=(0.0, 20.0)),
        Action(name="Jab", cast_time=1.0, recast_time=1.0, damage=8.0, gear_options=(0.0,)),
    ]
    return dict(actions=actions, time_limit=15.0, capacity=100, checkpoint_width=3.0)


EXAMPLES = {
    "mage_gear": _example_mage_gear,
    "mage_fixed": _example_mage_fixed,
    "single_nuke": _example_single_nuke,
    "filler_burst": _example_filler_burst,
    "duo_gear": _example_duo_gear,
}


def build_instance(name: str) -> Dict[str, Any]:
    if name not in EXAMPLES:
        raise ValueError(f"Unknown example {name!r} (expected one of {sorted(EXAMPLES)})")
    inst = dict(EXAMPLES[name]())
    inst["gear_space"] = GearSpace(actions=tuple(inst["actions"]))
    return inst
