# tests/test_exhaustive_search.py
import unittest

from alg.bounded_frontier_search import FrontierParams, bounded_frontier_search
from alg.bounds import DamageBound
from alg.exhaustive_search import ExhaustiveSearchParams, exhaustive_schedule_search
from core.gear_space import Action, GearSpace
from core.system import RotationSystem
from examples.mage_rotation import build_instance


def duo_space() -> GearSpace:
    return GearSpace(actions=(
        Action(name="Strike", cast_time=1.0, recast_time=4.0, damage=30.0, gear_options=(0.0, 25.0, 50.0)),
        Action(name="Sweep", cast_time=2.0, recast_time=6.0, damage=45.0, gear_options=(0.0, 20.0)),
        Action(name="Jab", cast_time=1.0, recast_time=1.0, damage=8.0, gear_options=(0.0,)),
    ))


def run(system: RotationSystem, **kw):
    return exhaustive_schedule_search(system, ExhaustiveSearchParams(**kw))


class TestExhaustiveSearch(unittest.TestCase):
    def test_single_action_window(self):
        inst = build_instance("single_nuke")
        system = RotationSystem(inst["gear_space"], [0.0], inst["time_limit"])
        res = run(system)
        self.assertEqual(res.mode, "exhaustive")
        self.assertEqual(res.max_damage, 20.0)
        self.assertEqual(res.sequence, ["Nuke", "Nuke"])
        self.assertTrue(res.meta["complete"])
        self.assertTrue(res.meta["optimal_guaranteed"])

    def test_weaving_beats_spamming(self):
        """
        Filler alone: 5 x 10 = 50. Burst alone: 15 (cooldown 10 > window).
        Four fillers plus one burst: 55.
        """
        inst = build_instance("filler_burst")
        system = RotationSystem(inst["gear_space"], [0.0, 0.0], inst["time_limit"])
        for pruning in (True, False):
            res = run(system, enable_pruning=pruning)
            self.assertEqual(res.max_damage, 55.0)
            self.assertEqual(res.sequence, ["Filler"] * 4 + ["Burst"])

    def test_window_shorter_than_every_cast(self):
        system = RotationSystem(duo_space(), [0.0, 0.0, 0.0], 0.5)
        res = run(system)
        self.assertEqual(res.max_damage, 0.0)
        self.assertEqual(res.sequence, [])
        self.assertEqual(res.indices, [])

    def test_result_replays_legally(self):
        space = duo_space()
        for gear in space.enumerate_combos():
            system = RotationSystem(space, gear, 9.0)
            res = run(system)
            rr = system.rollout(res.sequence)
            self.assertAlmostEqual(rr.total_damage, res.max_damage)
            totals = [0.0] + [e.total_damage for e in rr.events]
            for prev, ev in zip(totals, rr.events):
                self.assertAlmostEqual(ev.total_damage - prev, ev.damage)
                self.assertLessEqual(ev.end, 9.0 + system.eps)

    def test_pruning_keeps_damage_and_sequence(self):
        space = duo_space()
        for gear in space.enumerate_combos():
            system = RotationSystem(space, gear, 8.0)
            full = run(system, enable_pruning=False)
            bnb = run(system, enable_pruning=True)
            self.assertEqual(bnb.max_damage, full.max_damage)
            self.assertEqual(bnb.sequence, full.sequence)
            self.assertLessEqual(bnb.meta["visited_nodes"], full.meta["visited_nodes"])
            self.assertEqual(full.meta["pruned_nodes"], 0)

    def test_pruning_keeps_rounding_sized_improvement(self):
        """
        C alone deals 0.3; A then B deals 0.1 + 0.2 = 0.30000000000000004,
        a strict improvement that the bound only clears by rounding error.
        """
        space = GearSpace(actions=(
            Action(name="C", cast_time=1.0, recast_time=100.0, damage=0.3),
            Action(name="A", cast_time=0.5, recast_time=100.0, damage=0.1),
            Action(name="B", cast_time=0.5, recast_time=100.0, damage=0.2),
        ))
        system = RotationSystem(space, [0.0, 0.0, 0.0], 1.0)
        full = run(system, enable_pruning=False)
        bnb = run(system, enable_pruning=True)
        self.assertEqual(full.max_damage, 0.1 + 0.2)
        self.assertEqual(full.sequence, ["A", "B"])
        self.assertEqual(bnb.max_damage, full.max_damage)
        self.assertEqual(bnb.sequence, full.sequence)

        frontier = bounded_frontier_search(system, FrontierParams())
        self.assertGreaterEqual(bnb.max_damage, frontier.max_damage)

    def test_incumbent_updates_reported(self):
        inst = build_instance("filler_burst")
        system = RotationSystem(inst["gear_space"], [0.0, 0.0], inst["time_limit"])
        res = run(system)
        # 10, 20, 30, 40, 50 along the first branch, then 55
        self.assertEqual(res.meta["incumbent_updates"], 6)
        self.assertEqual(res.meta["max_depth"], 5)

    def test_deterministic(self):
        system = RotationSystem(duo_space(), [25.0, 20.0, 0.0], 10.0)
        a = run(system)
        b = run(system)
        self.assertEqual(a.max_damage, b.max_damage)
        self.assertEqual(a.sequence, b.sequence)
        self.assertEqual(a.meta["visited_nodes"], b.meta["visited_nodes"])

    def test_bound_covers_optimum(self):
        space = duo_space()
        for gear in space.enumerate_combos():
            system = RotationSystem(space, gear, 8.0)
            res = run(system, enable_pruning=False)
            bound = DamageBound(system)
            self.assertGreaterEqual(bound.tail(0.0, [0.0, 0.0, 0.0]) + 1e-9, res.max_damage)
            self.assertGreaterEqual(bound.max_casts(), len(res.sequence))

    def test_node_budget_returns_partial_result(self):
        system = RotationSystem(duo_space(), [0.0, 0.0, 0.0], 8.0)
        res = run(system, enable_pruning=False, max_nodes=3)
        self.assertFalse(res.meta["complete"])
        self.assertFalse(res.meta["optimal_guaranteed"])
        self.assertEqual(res.meta["visited_nodes"], 3)
        # whatever was found is still a legal schedule
        self.assertAlmostEqual(system.eval_damage(res.sequence), res.max_damage)

    def test_time_budget_zero_stops_immediately(self):
        system = RotationSystem(duo_space(), [0.0, 0.0, 0.0], 8.0)
        res = run(system, time_limit_sec=0.0)
        self.assertFalse(res.meta["complete"])
        self.assertEqual(res.max_damage, 0.0)

    def test_too_deep_for_recursion_is_rejected(self):
        space = GearSpace(actions=(Action(name="Tick", cast_time=0.001, recast_time=0.0, damage=1.0),))
        system = RotationSystem(space, [0.0], 100.0)
        with self.assertRaisesRegex(ValueError, "frontier"):
            run(system)


if __name__ == "__main__":
    unittest.main()
