"""
Unit tests for the occupancy index.

Contract:
- one session per (day, period); same-identity puts replace
- rooms and teachers are never shared at the same (day, period)
- multi-key writes are all-or-nothing
"""

import unittest

from tests.helpers import GRID
from weekgrid.errors import InvalidSpanError, RoomConflictError, SlotOccupiedError, TeacherConflictError
from weekgrid.model import Session, SessionKind
from weekgrid.occupancy import OccupancyIndex


def theory(class_id: str, teacher: str, day: str, start: int, room: str) -> Session:
    return Session(class_id, teacher, day, start, room, SessionKind.THEORY)


def lab(class_id: str, teacher: str, day: str, start: int, room: str) -> Session:
    return Session(class_id, teacher, day, start, room, SessionKind.LAB)


class TestOccupancyIndex(unittest.TestCase):
    def setUp(self) -> None:
        self.index = OccupancyIndex(GRID)

    def test_put_and_get(self) -> None:
        s = theory("C1", "T1", "Monday", 0, "101")
        self.index.put("Monday", 0, s)
        self.assertEqual(self.index.get("Monday", 0), s)
        self.assertIsNone(self.index.get("Monday", 1))

    def test_put_on_held_key_fails(self) -> None:
        self.index.put("Monday", 0, theory("C1", "T1", "Monday", 0, "101"))
        with self.assertRaises(SlotOccupiedError) as ctx:
            self.index.put("Monday", 0, theory("C2", "T2", "Monday", 0, "102"))
        self.assertEqual(ctx.exception.conflicting, ("C1", "Monday", 0))

    def test_same_identity_put_replaces(self) -> None:
        self.index.put("Monday", 0, theory("C1", "T1", "Monday", 0, "101"))
        moved = theory("C1", "T1", "Monday", 0, "102")
        self.index.put("Monday", 0, moved)
        self.assertEqual(self.index.get("Monday", 0).room, "102")
        self.assertIsNone(self.index.room_holder("Monday", 0, "101"))

    def test_put_lab_at_one_key_stores_both(self) -> None:
        s = lab("C1", "T1", "Monday", 5, "L1")
        self.index.put("Monday", 5, s)
        self.assertEqual(self.index.keys(), [("Monday", 5), ("Monday", 6)])
        self.assertEqual(self.index.get("Monday", 6), s)
        self.assertEqual(len(self.index.occupied_keys_of(s)), 2)

    def test_put_lab_with_new_room_moves_both_keys(self) -> None:
        self.index.put("Monday", 5, lab("C1", "T1", "Monday", 5, "L1"))
        self.index.put("Monday", 6, lab("C1", "T1", "Monday", 5, "L2"))
        self.assertEqual(self.index.get("Monday", 5).room, "L2")
        self.assertEqual(self.index.get("Monday", 6).room, "L2")
        self.assertIsNone(self.index.room_holder("Monday", 5, "L1"))
        self.assertIsNone(self.index.room_holder("Monday", 6, "L1"))

    def test_put_lab_onto_half_held_span_writes_nothing(self) -> None:
        self.index.put("Monday", 6, theory("C2", "T2", "Monday", 6, "101"))
        with self.assertRaises(SlotOccupiedError):
            self.index.put("Monday", 5, lab("C1", "T1", "Monday", 5, "L1"))
        self.assertEqual(self.index.keys(), [("Monday", 6)])

    def test_same_identity_theory_replaces_whole_lab(self) -> None:
        self.index.place(lab("C1", "T1", "Monday", 5, "L1"))
        self.index.put("Monday", 5, theory("C1", "T1", "Monday", 5, "101"))
        self.assertEqual(self.index.keys(), [("Monday", 5)])
        self.assertIsNone(self.index.room_holder("Monday", 6, "L1"))

    def test_put_on_lunch_fails(self) -> None:
        with self.assertRaises(InvalidSpanError):
            self.index.put("Monday", 4, theory("C1", "T1", "Monday", 4, "101"))
        self.assertEqual(len(self.index), 0)

    def test_lab_occupies_two_keys(self) -> None:
        s = lab("C1", "T1", "Monday", 5, "L1")
        self.index.place(s)
        self.assertEqual(self.index.occupied_keys_of(s), {("Monday", 5), ("Monday", 6)})
        self.assertEqual(len(self.index), 2)
        self.assertEqual(self.index.sessions(), [s])

    def test_kind_given_as_text_is_normalized(self) -> None:
        s = Session("C1", "T1", "Monday", 5, "L1", kind="lab")
        self.assertIs(s.kind, SessionKind.LAB)
        self.assertEqual(s.periods, (5, 6))
        self.index.place(s)
        self.assertEqual(self.index.occupied_keys_of(s), {("Monday", 5), ("Monday", 6)})

    def test_lab_across_lunch_is_rejected(self) -> None:
        with self.assertRaises(InvalidSpanError):
            self.index.place(lab("C1", "T1", "Monday", 3, "L1"))
        self.assertEqual(len(self.index), 0)

    def test_failed_lab_write_rolls_back(self) -> None:
        # another section holds Lab 1 at Monday period 6
        index = OccupancyIndex(GRID, external=[theory("X9", "T9", "Monday", 6, "L1")])
        with self.assertRaises(RoomConflictError):
            index.place(lab("C1", "T1", "Monday", 5, "L1"))
        self.assertIsNone(index.get("Monday", 5))
        self.assertEqual(len(index), 0)

    def test_teacher_cannot_be_in_two_places(self) -> None:
        index = OccupancyIndex(GRID, external=[theory("X1", "T1", "Monday", 0, "103")])
        with self.assertRaises(TeacherConflictError):
            index.place(theory("C1", "T1", "Monday", 0, "101"))

    def test_remove_one_key_of_lab_frees_both(self) -> None:
        s = lab("C1", "T1", "Monday", 5, "L1")
        self.index.place(s)
        removed = self.index.remove("Monday", 6)
        self.assertEqual(removed, s)
        self.assertEqual(len(self.index), 0)
        self.assertIsNone(self.index.room_holder("Monday", 5, "L1"))

    def test_remove_absent_is_noop(self) -> None:
        self.assertIsNone(self.index.remove("Monday", 0))

    def test_discard_is_idempotent(self) -> None:
        s = theory("C1", "T1", "Monday", 0, "101")
        other = theory("C2", "T2", "Monday", 1, "101")
        self.index.place(s)
        self.index.place(other)
        self.index.discard(s)
        once = self.index.keys()
        self.index.discard(s)
        self.assertEqual(self.index.keys(), once)
        self.assertEqual(once, [("Monday", 1)])

    def test_sessions_follow_grid_order(self) -> None:
        self.index.place(theory("C2", "T2", "Tuesday", 0, "101"))
        self.index.place(theory("C1", "T1", "Monday", 3, "101"))
        self.assertEqual([s.class_id for s in self.index.sessions()], ["C1", "C2"])

    def test_copy_is_independent(self) -> None:
        self.index.place(theory("C1", "T1", "Monday", 0, "101"))
        other = self.index.copy()
        other.remove("Monday", 0)
        self.assertIsNotNone(self.index.get("Monday", 0))


if __name__ == "__main__":
    unittest.main()
