import unittest
from datetime import date

from rotation_scheduler.chromosome import Chromosome
from rotation_scheduler.fitness import (
    BASE_FITNESS,
    HARD_CONSTRAINT_PENALTY,
    SOFT_CONSTRAINT_REWARD,
    Constraint,
    ConstraintType,
    FitnessEvaluator,
    FitnessResult,
    ViolationType,
    build_constraints,
)
from rotation_scheduler.model import Assignment, HardConstraints, SchoolClass, SoftConstraints, TimeSlot


def assign(class_id, day, period, on=None):
    return Assignment(class_id, TimeSlot(day, period, date=on))


CLASSES = [SchoolClass(id=f"c{i}", name=f"Clase {i}") for i in range(1, 6)]


class BasicChecksTests(unittest.TestCase):
    def setUp(self):
        self.ev = FitnessEvaluator(CLASSES)

    def test_clean_schedule_scores_base(self):
        res = self.ev.evaluate_assignments([assign("c1", "Monday", 1), assign("c2", "Tuesday", 1)])
        self.assertEqual(res.hard_constraint_violations, 0)
        self.assertEqual(res.fitness_score, BASE_FITNESS)
        self.assertTrue(res.is_valid)

    def test_double_booking_counted_once_per_clash(self):
        res = self.ev.evaluate_assignments([
            assign("c1", "Monday", 1),
            assign("c2", "Monday", 1),
            assign("c3", "Monday", 2),
        ])
        self.assertEqual(res.hard_constraint_violations, 1)
        self.assertEqual(res.fitness_score, BASE_FITNESS - HARD_CONSTRAINT_PENALTY)
        self.assertEqual(res.violations[0].type, ViolationType.DOUBLE_BOOKING)
        self.assertEqual(res.violations[0].class_id, "c2")

    def test_own_conflict(self):
        ev = FitnessEvaluator([SchoolClass("a", "A", conflicts=[TimeSlot("Friday", 8)])])
        res = ev.evaluate_assignments([assign("a", "Friday", 8)])
        self.assertEqual(res.hard_constraint_violations, 1)
        self.assertEqual(res.violations[0].type, ViolationType.TIME_CONFLICT)

    def test_same_weekday_different_dates_is_not_double_booking(self):
        res = self.ev.evaluate_assignments([
            assign("c1", "Monday", 1, on=date(2024, 9, 2)),
            assign("c2", "Monday", 1, on=date(2024, 9, 9)),
        ])
        self.assertEqual(res.hard_constraint_violations, 0)

    def test_score_floors_at_zero(self):
        ev = FitnessEvaluator(CLASSES)
        res = ev.evaluate_assignments([assign(c.id, "Monday", 1) for c in CLASSES])
        self.assertEqual(res.hard_constraint_violations, 4)
        self.assertEqual(res.fitness_score, 0)


class ConstraintCatalogTests(unittest.TestCase):
    def test_build_constraints_ids(self):
        hard = HardConstraints(
            personal_conflicts=[TimeSlot("Friday", 8)],
            max_consecutive_periods=3,
            daily_max_classes=2,
            weekly_min_classes=1,
        )
        soft = SoftConstraints(
            preferred=[("c1", TimeSlot("Monday", 1))],
            not_preferred=[("c2", TimeSlot("Monday", 2))],
            balance_workload=True,
        )
        ids = [c.id for c in build_constraints(hard, soft)]
        self.assertEqual(ids, [
            "personal-conflict-Friday-8",
            "max-consecutive-periods",
            "max-classes-per-day",
            "min-classes-per-week",
            "teacher-preferred-c1-Monday-1",
            "teacher-not-preferred-c2-Monday-2",
            "balance-workload",
        ])

    def test_personal_conflict(self):
        cons = build_constraints(HardConstraints(personal_conflicts=[TimeSlot("Friday", 8)]))
        ev = FitnessEvaluator(CLASSES, cons)
        res = ev.evaluate_assignments([assign("c1", "Friday", 8)])
        self.assertEqual(res.hard_constraint_violations, 1)
        self.assertEqual(res.violations[0].constraint_id, "personal-conflict-Friday-8")
        self.assertEqual(ev.evaluate_assignments([assign("c1", "Friday", 7)]).hard_constraint_violations, 0)

    def test_max_classes_per_day(self):
        ev = FitnessEvaluator(CLASSES, build_constraints(HardConstraints(daily_max_classes=2)))
        crowded = [assign("c1", "Monday", 1), assign("c2", "Monday", 2), assign("c3", "Monday", 3)]
        res = ev.evaluate_assignments(crowded)
        self.assertEqual(res.hard_constraint_violations, 1)
        self.assertIn("Monday", res.violations[0].description)
        spread = [assign("c1", "Monday", 1), assign("c2", "Monday", 2), assign("c3", "Tuesday", 3)]
        self.assertTrue(ev.evaluate_assignments(spread).is_valid)

    def test_min_classes_per_day_counts_empty_grid_days(self):
        ev = FitnessEvaluator(CLASSES, build_constraints(HardConstraints(daily_min_classes=1)))
        res = ev.evaluate_assignments([assign("c1", "Monday", 1)])
        self.assertEqual(res.hard_constraint_violations, 1)
        self.assertEqual(len(res.violations), 4)

    def test_dated_schedule_only_counts_present_days(self):
        ev = FitnessEvaluator(CLASSES, build_constraints(HardConstraints(daily_min_classes=1)))
        res = ev.evaluate_assignments([assign("c1", "Monday", 1, on=date(2024, 9, 2))])
        self.assertTrue(res.is_valid)

    def test_weekly_limits(self):
        ev = FitnessEvaluator(
            CLASSES,
            build_constraints(HardConstraints(weekly_min_classes=2, weekly_max_classes=3)),
        )
        self.assertEqual(ev.evaluate_assignments([assign("c1", "Monday", 1)]).hard_constraint_violations, 1)
        many = [assign(c.id, "Tuesday", i + 1) for i, c in enumerate(CLASSES)]
        self.assertEqual(ev.evaluate_assignments(many).hard_constraint_violations, 1)

    def test_max_consecutive_periods(self):
        ev = FitnessEvaluator(CLASSES, build_constraints(HardConstraints(max_consecutive_periods=2)))
        run = [assign("c1", "Monday", 1), assign("c2", "Monday", 2), assign("c3", "Monday", 3)]
        self.assertEqual(ev.evaluate_assignments(run).hard_constraint_violations, 1)
        gap = [assign("c1", "Monday", 1), assign("c2", "Monday", 2), assign("c3", "Monday", 4)]
        self.assertTrue(ev.evaluate_assignments(gap).is_valid)

    def test_class_at_time(self):
        con = Constraint(
            id="class-at-time-c1",
            type=ConstraintType.HARD,
            parameters={"classId": "c1", "slot": TimeSlot("Wednesday", 5)},
        )
        ev = FitnessEvaluator(CLASSES, [con])
        self.assertTrue(ev.evaluate_assignments([assign("c1", "Wednesday", 5)]).is_valid)
        self.assertFalse(ev.evaluate_assignments([assign("c1", "Wednesday", 6)]).is_valid)

    def test_locked_assignments_become_class_at_time(self):
        locked = [Assignment("c1", TimeSlot("Wednesday", 5, is_fixed=True))]
        cons = build_constraints(locked=locked)
        self.assertEqual([c.id for c in cons], ["class-at-time-c1"])
        self.assertEqual(cons[0].type, ConstraintType.HARD)
        ev = FitnessEvaluator(CLASSES, cons)
        self.assertTrue(ev.evaluate_assignments([assign("c1", "Wednesday", 5)]).is_valid)
        moved = ev.evaluate_assignments([assign("c1", "Thursday", 5)])
        self.assertEqual(moved.hard_constraint_violations, 1)
        self.assertEqual(moved.violations[0].constraint_id, "class-at-time-c1")

    def test_unknown_constraint_is_satisfied(self):
        ev = FitnessEvaluator(CLASSES, [Constraint(id="whatever", type=ConstraintType.HARD)])
        self.assertTrue(ev.evaluate_assignments([assign("c1", "Monday", 1)]).is_valid)


class SoftScoringTests(unittest.TestCase):
    def test_teacher_preferences(self):
        soft = SoftConstraints(
            preferred=[("c1", TimeSlot("Monday", 1))],
            not_preferred=[("c2", TimeSlot("Monday", 2))],
        )
        ev = FitnessEvaluator(CLASSES, build_constraints(soft=soft))
        res = ev.evaluate_assignments([assign("c1", "Monday", 1), assign("c2", "Tuesday", 2)])
        self.assertEqual(res.soft_constraints_satisfied, 2)
        self.assertEqual(res.fitness_score, BASE_FITNESS + 2 * SOFT_CONSTRAINT_REWARD)
        res = ev.evaluate_assignments([assign("c1", "Friday", 1), assign("c2", "Monday", 2)])
        self.assertEqual(res.soft_constraints_satisfied, 0)
        self.assertEqual(res.fitness_score, BASE_FITNESS)

    def test_class_level_preferences(self):
        classes = [
            SchoolClass("a", "A", preferred=[TimeSlot("Monday", 1)]),
            SchoolClass("b", "B", not_preferred=[TimeSlot("Monday", 2)]),
        ]
        ev = FitnessEvaluator(classes)
        res = ev.evaluate_assignments([assign("a", "Monday", 1), assign("b", "Monday", 2)])
        self.assertEqual(res.fitness_score, BASE_FITNESS)
        self.assertEqual(res.soft_constraints_satisfied, 1)

    def test_balance_workload(self):
        ev = FitnessEvaluator(CLASSES, build_constraints(soft=SoftConstraints(balance_workload=True)))
        days = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
        even = [assign(c.id, d, 1) for c, d in zip(CLASSES, days)]
        self.assertEqual(ev.evaluate_assignments(even).fitness_score, BASE_FITNESS + SOFT_CONSTRAINT_REWARD)
        lumped = [assign(c.id, "Monday", i + 1) for i, c in enumerate(CLASSES)]
        self.assertEqual(ev.evaluate_assignments(lumped).fitness_score, BASE_FITNESS)


class ResultOrderingTests(unittest.TestCase):
    def test_fewer_hard_violations_wins(self):
        clean = FitnessResult(fitness_score=600, hard_constraint_violations=0)
        dirty = FitnessResult(fitness_score=1200, hard_constraint_violations=1)
        self.assertTrue(clean.is_better_than(dirty))
        self.assertFalse(dirty.is_better_than(clean))

    def test_ties_broken_by_score(self):
        a = FitnessResult(fitness_score=1050, hard_constraint_violations=0)
        b = FitnessResult(fitness_score=1000, hard_constraint_violations=0)
        self.assertTrue(a.is_better_than(b))
        self.assertFalse(b.is_better_than(a))
        self.assertFalse(a.is_better_than(a))
        self.assertTrue(a.is_better_than(None))
        self.assertLess(a.rank_key(), b.rank_key())

    def test_evaluate_with_details(self):
        ev = FitnessEvaluator(CLASSES[:2])
        chrom = Chromosome(
            CLASSES[:2],
            genes=[assign("c1", "Monday", 1), assign("c2", "Monday", 1)],
            complete=False,
        )
        details = ev.evaluate_with_details(chrom)
        self.assertFalse(details["is_valid"])
        self.assertEqual(details["hard_constraint_violations"], 1)
        self.assertEqual(len(details["violation_details"]), 1)
        self.assertEqual(ev.get_hard_constraint_violations(chrom), 1)


if __name__ == "__main__":
    unittest.main()
