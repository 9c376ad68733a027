"""
Unit tests for auditing a plain session list.

Definition used here:
- two sessions sharing a (day, period) must differ in teacher and room
- labs never touch lunch; rooms come from the pool matching the kind
"""

import unittest

from tests.helpers import GRID
from weekgrid.conflicts import find_conflicts
from weekgrid.model import Session, SessionKind


class TestConflicts(unittest.TestCase):
    def test_clean_list(self) -> None:
        sessions = [
            Session("A", "T1", "Monday", 0, "101", section="A"),
            Session("B", "T2", "Monday", 0, "102", section="B"),
            Session("C", "T1", "Monday", 5, "L1", SessionKind.LAB, section="A"),
        ]
        self.assertEqual(find_conflicts(sessions, GRID), [])

    def test_teacher_double_booked(self) -> None:
        sessions = [
            Session("A", "T1", "Monday", 0, "101", section="A"),
            Session("B", "T1", "Monday", 0, "102", section="B"),
        ]
        problems = find_conflicts(sessions, GRID)
        self.assertEqual([p.kind for p in problems], ["teacher"])

    def test_room_double_booked_by_overlapping_lab(self) -> None:
        sessions = [
            Session("A", "T1", "Monday", 5, "L1", SessionKind.LAB, section="A"),
            Session("B", "T2", "Monday", 6, "L1", SessionKind.LAB, section="B"),
        ]
        problems = find_conflicts(sessions, GRID)
        self.assertEqual([p.kind for p in problems], ["room"])
        self.assertEqual(problems[0].second.class_id, "B")

    def test_lab_over_lunch_and_wrong_pool(self) -> None:
        sessions = [Session("A", "T1", "Monday", 3, "101", SessionKind.LAB)]
        kinds = sorted(p.kind for p in find_conflicts(sessions, GRID))
        self.assertEqual(kinds, ["lunch", "room"])

    def test_unknown_day(self) -> None:
        problems = find_conflicts([Session("A", "T1", "Sunday", 0, "101")], GRID)
        self.assertEqual([p.kind for p in problems], ["span"])


if __name__ == "__main__":
    unittest.main()
