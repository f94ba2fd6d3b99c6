# tests/test_gear_space.py
import unittest
import numpy as np

from core.gear_space import Action, GearSpace


def make_space() -> GearSpace:
    return GearSpace(actions=(
        Action(name="Fireball", cast_time=1.0, recast_time=6.7, damage=10300.0, gear_options=(0.0, 15.0)),
        Action(name="Fire Storm", cast_time=3.0, recast_time=15.0, damage=11100.0, gear_options=(0.0, 15.0, 30.0)),
        Action(name="Pet", cast_time=1.0, recast_time=15.0, damage=2400.0, gear_options=(5.0,)),
    ))


class TestGearCombos(unittest.TestCase):
    def test_combo_count_is_product_of_options(self):
        space = make_space()
        combos = list(space.enumerate_combos())
        self.assertEqual(space.num_combos(), 2 * 3 * 1)
        self.assertEqual(len(combos), space.num_combos())

    def test_enumeration_order_first_action_outermost(self):
        space = make_space()
        combos = [c.tolist() for c in space.enumerate_combos()]
        self.assertEqual(combos, [
            [0.0, 0.0, 5.0], [0.0, 15.0, 5.0], [0.0, 30.0, 5.0],
            [15.0, 0.0, 5.0], [15.0, 15.0, 5.0], [15.0, 30.0, 5.0],
        ])

    def test_yielded_combos_are_independent_copies(self):
        space = make_space()
        combos = list(space.enumerate_combos())
        combos[0][0] = 99.0
        again = next(iter(space.enumerate_combos()))
        self.assertEqual(again.tolist(), [0.0, 0.0, 5.0])
        self.assertEqual(len({tuple(c.tolist()) for c in combos[1:]}), len(combos) - 1)

    def test_effective_recast(self):
        space = make_space()
        eff = space.effective_recasts([15.0, 30.0, 5.0])
        np.testing.assert_allclose(eff, [6.7 * 0.85, 15.0 * 0.7, 15.0 * 0.95])
        self.assertAlmostEqual(space.actions[1].effective_recast(30.0), 10.5)

    def test_combo_cost_and_check(self):
        space = make_space()
        self.assertEqual(space.combo_cost([15.0, 30.0, 5.0]), 50.0)
        np.testing.assert_array_equal(space.check_combo([0, 15, 5]), [0.0, 15.0, 5.0])

    def test_check_combo_names_offending_action(self):
        space = make_space()
        with self.assertRaisesRegex(ValueError, "Fire Storm"):
            space.check_combo([0.0, 20.0, 5.0])
        with self.assertRaisesRegex(ValueError, "entries"):
            space.check_combo([0.0, 15.0])


class TestValidation(unittest.TestCase):
    def test_negative_fields_rejected(self):
        with self.assertRaisesRegex(ValueError, "Bad.*cast_time"):
            Action(name="Bad", cast_time=-1.0, recast_time=1.0, damage=1.0)
        with self.assertRaisesRegex(ValueError, "Bad.*recast_time"):
            Action(name="Bad", cast_time=1.0, recast_time=-0.5, damage=1.0)
        with self.assertRaisesRegex(ValueError, "Bad.*damage"):
            Action(name="Bad", cast_time=1.0, recast_time=1.0, damage=-3.0)

    def test_non_finite_rejected(self):
        with self.assertRaisesRegex(ValueError, "finite"):
            Action(name="Bad", cast_time=1.0, recast_time=float("nan"), damage=1.0)
        with self.assertRaisesRegex(ValueError, "finite"):
            Action(name="Bad", cast_time=float("inf"), recast_time=1.0, damage=1.0)

    def test_gear_options_rejected(self):
        with self.assertRaisesRegex(ValueError, "must not be empty"):
            Action(name="Bad", cast_time=1.0, recast_time=1.0, damage=1.0, gear_options=())
        with self.assertRaisesRegex(ValueError, "< 100"):
            Action(name="Bad", cast_time=1.0, recast_time=1.0, damage=1.0, gear_options=(0.0, 100.0))
        with self.assertRaisesRegex(ValueError, "gear_options"):
            Action(name="Bad", cast_time=1.0, recast_time=1.0, damage=1.0, gear_options=(-5.0,))

    def test_zero_cast_and_zero_recast_rejected(self):
        with self.assertRaisesRegex(ValueError, "infinitely"):
            Action(name="Free", cast_time=0.0, recast_time=0.0, damage=1.0)
        # either one alone is fine
        Action(name="Instant", cast_time=0.0, recast_time=3.0, damage=1.0)
        Action(name="Filler", cast_time=1.0, recast_time=0.0, damage=1.0)

    def test_roster_rejected(self):
        with self.assertRaisesRegex(ValueError, "at least one"):
            GearSpace(actions=())
        a = Action(name="Same", cast_time=1.0, recast_time=1.0, damage=1.0)
        b = Action(name="Same", cast_time=2.0, recast_time=1.0, damage=2.0)
        with self.assertRaisesRegex(ValueError, "duplicate"):
            GearSpace(actions=(a, b))

    def test_values_are_coerced_to_float(self):
        a = Action(name="Int", cast_time=1, recast_time=5, damage=10, gear_options=[0, 10])
        self.assertIsInstance(a.cast_time, float)
        self.assertEqual(a.gear_options, (0.0, 10.0))


class TestFromRecords(unittest.TestCase):
    def test_camel_case_records(self):
        space = GearSpace.from_records([
            {"name": "Fireball", "castDuration": 1, "baseCooldown": 6.7, "damagePerCast": 10300,
             "modifierOptions": [0, 15]},
            {"skillName": "Pet", "castTimeS": 1, "recastTimeS": 15, "damage": 2400, "possibleSkillGear": [0]},
        ])
        self.assertEqual(space.names, ["Fireball", "Pet"])
        self.assertEqual(space.actions[0].gear_options, (0.0, 15.0))
        self.assertEqual(space.actions[1].recast_time, 15.0)
        self.assertEqual(space.num_combos(), 2)

    def test_missing_gear_defaults_to_zero(self):
        space = GearSpace.from_records([{"name": "A", "cast_time": 1, "recast_time": 2, "damage": 3}])
        self.assertEqual(space.actions[0].gear_options, (0.0,))

    def test_missing_field_reported(self):
        with self.assertRaisesRegex(ValueError, "record 0.*damage"):
            GearSpace.from_records([{"name": "A", "cast_time": 1, "recast_time": 2}])


if __name__ == "__main__":
    unittest.main()
