"""
Tests for the slot mutation API (add / edit / remove).

Grid used throughout: 8 periods per day, index 4 is lunch,
periods 0-3 morning and 5-7 afternoon.
"""

import unittest

from tests.helpers import C1, C2, C3, C4, GRID
from weekgrid.errors import (
    ConflictError,
    InvalidSpanError,
    NoLegalPlacementError,
    RoomConflictError,
    SlotOccupiedError,
    TeacherConflictError,
    UnknownSessionError,
)
from weekgrid.model import ClassRef, Session, SessionKind
from weekgrid.timetable import Timetable


class TestAdd(unittest.TestCase):
    def setUp(self) -> None:
        self.tt = Timetable(GRID)

    def test_add_copies_class_fields(self) -> None:
        s = self.tt.add(C1, SessionKind.THEORY, "Monday", 0, "101")
        self.assertEqual(s.class_id, "C1")
        self.assertEqual(s.teacher_id, "T1")
        self.assertEqual(s.course_name, "Data Structures")
        self.assertEqual((s.start_time, s.end_time), ("09:15", "10:05"))
        self.assertEqual(s.periods, (0,))
        self.assertEqual(self.tt.get("Monday", 0), s)

    def test_period_conflict_with_distinct_room(self) -> None:
        self.tt.add(C1, "theory", "Monday", 0, "101")
        with self.assertRaises(SlotOccupiedError) as ctx:
            self.tt.add(C2, "theory", "Monday", 0, "102")
        self.assertEqual(ctx.exception.day, "Monday")
        self.assertEqual(ctx.exception.period, 0)
        self.assertEqual(ctx.exception.conflicting, ("C1", "Monday", 0))
        self.assertEqual(len(self.tt), 1)

    def test_lab_cannot_run_into_lunch(self) -> None:
        with self.assertRaises(InvalidSpanError) as ctx:
            self.tt.add(C1, "lab", "Monday", 3, "L1")
        self.assertEqual(ctx.exception.period, 4)

        s = self.tt.add(C1, "lab", "Monday", 5, "L1")
        self.assertEqual(s.periods, (5, 6))
        self.assertEqual(s.end_period, 6)
        self.assertEqual(s.course_name, "Data Structures LAB")
        self.assertEqual(s.course_code, "CS201-LAB")
        self.assertTrue(self.tt.grid.is_afternoon(5) and self.tt.grid.is_afternoon(6))

    def test_lab_needs_a_next_period(self) -> None:
        with self.assertRaises(InvalidSpanError):
            self.tt.add(C1, "lab", "Monday", 7, "L1")

    def test_lunch_is_never_assignable(self) -> None:
        with self.assertRaises(InvalidSpanError):
            self.tt.add(C1, "theory", "Monday", 4, "101")

    def test_same_teacher_same_period_fails(self) -> None:
        self.tt.add(C1, "theory", "Monday", 0, "101")
        with self.assertRaises(SlotOccupiedError) as ctx:
            self.tt.add(C3, "theory", "Monday", 0, "103")
        self.assertEqual(ctx.exception.conflicting, ("C1", "Monday", 0))
        self.assertEqual(len(self.tt.sessions()), 1)

    def test_teacher_busy_in_another_section(self) -> None:
        other_section = Session("X1", "T1", "Monday", 0, "103", section="B")
        tt = Timetable(GRID, external=[other_section])
        with self.assertRaises(TeacherConflictError) as ctx:
            tt.add(C1, "theory", "Monday", 0, "101")
        self.assertEqual(ctx.exception.conflicting, ("X1", "Monday", 0))
        self.assertEqual(len(tt), 0)

    def test_room_busy_in_another_section(self) -> None:
        tt = Timetable(GRID, external=[Session("X1", "T9", "Monday", 0, "101", section="B")])
        with self.assertRaises(RoomConflictError) as ctx:
            tt.add(C1, "theory", "Monday", 0, "101")
        self.assertEqual(ctx.exception.room, "101")
        self.assertEqual(tt.add(C1, "theory", "Monday", 0, "102").room, "102")

    def test_room_must_match_kind(self) -> None:
        with self.assertRaises(RoomConflictError):
            self.tt.add(C1, "theory", "Monday", 0, "L1")
        with self.assertRaises(RoomConflictError):
            self.tt.add(C1, "lab", "Monday", 5, "101")

    def test_full_day_has_no_legal_placement(self) -> None:
        for i, p in enumerate(GRID.class_periods):
            ref = ClassRef(f"F{i}", f"TF{i}")
            self.tt.add(ref, "theory", "Monday", p.index, "101")
        with self.assertRaises(NoLegalPlacementError) as ctx:
            self.tt.add(C1, "theory", "Monday", 0, "102")
        self.assertEqual(ctx.exception.day, "Monday")

    def test_fragmented_day_has_no_lab_placement(self) -> None:
        for i, p in enumerate((0, 2, 5, 7)):
            self.tt.add(ClassRef(f"F{i}", f"TF{i}"), "theory", "Monday", p, "101")
        self.assertEqual(self.tt.legal_starts("Monday", "lab"), [])
        with self.assertRaises(NoLegalPlacementError):
            self.tt.add(C1, "lab", "Monday", 0, "L1")

    def test_unknown_day(self) -> None:
        with self.assertRaises(InvalidSpanError):
            self.tt.add(C1, "theory", "Sunday", 0, "101")


class TestEdit(unittest.TestCase):
    def setUp(self) -> None:
        self.tt = Timetable(GRID)
        self.s = self.tt.add(C1, "theory", "Monday", 0, "101")

    def test_move_to_free_slot(self) -> None:
        moved = self.tt.edit(self.s, "Tuesday", 0, "101")
        self.assertEqual((moved.day, moved.start_period), ("Tuesday", 0))
        self.assertIsNone(self.tt.get("Monday", 0))
        self.assertEqual(self.tt.get("Tuesday", 0), moved)
        self.assertEqual(len(self.tt), 1)

    def test_failed_move_keeps_original(self) -> None:
        blocker = self.tt.add(C2, "theory", "Tuesday", 0, "102")
        with self.assertRaises(SlotOccupiedError):
            self.tt.edit(self.s, "Tuesday", 0, "101")
        self.assertEqual(self.tt.get("Monday", 0), self.s)
        self.assertEqual(self.tt.get("Tuesday", 0), blocker)
        self.assertIn("Monday", [s.day for s in self.tt.sessions_of_class("C1")])

    def test_edit_onto_itself_is_noop(self) -> None:
        before = self.tt.index.keys()
        result = self.tt.edit(self.s, "Monday", 0, "101")
        self.assertEqual(result, self.s)
        self.assertEqual(self.tt.index.keys(), before)
        self.assertEqual(self.tt.sessions(), [self.s])

    def test_change_room_only(self) -> None:
        moved = self.tt.edit(self.s, "Monday", 0, "103")
        self.assertEqual(moved.room, "103")
        self.assertIsNone(self.tt.index.room_holder("Monday", 0, "101"))

    def test_lab_stays_lab_and_may_overlap_itself(self) -> None:
        lab = self.tt.add(C4, "lab", "Wednesday", 5, "L1")
        moved = self.tt.edit(lab, "Wednesday", 6, "L1")
        self.assertEqual(moved.kind, SessionKind.LAB)
        self.assertEqual(moved.periods, (6, 7))
        self.assertIsNone(self.tt.get("Wednesday", 5))
        self.assertEqual(moved.end_time, "15:55")

    def test_lab_edit_into_lunch_fails_cleanly(self) -> None:
        lab = self.tt.add(C4, "lab", "Wednesday", 5, "L1")
        with self.assertRaises(InvalidSpanError):
            self.tt.edit(lab, "Wednesday", 3, "L1")
        self.assertEqual(self.tt.get("Wednesday", 6), lab)

    def test_edit_unknown_session(self) -> None:
        ghost = Session("C9", "T9", "Friday", 1, "101")
        with self.assertRaises(UnknownSessionError):
            self.tt.edit(ghost, "Friday", 2, "101")


class TestRemove(unittest.TestCase):
    def test_remove_twice_equals_once(self) -> None:
        tt = Timetable(GRID)
        s = tt.add(C1, "lab", "Monday", 0, "L1")
        tt.add(C2, "theory", "Monday", 2, "101")
        tt.remove(s)
        once = tt.index.keys()
        tt.remove(s)
        self.assertEqual(tt.index.keys(), once)
        self.assertEqual(once, [("Monday", 2)])
        self.assertNotIn(s, tt)

    def test_load_rejects_illegal_session(self) -> None:
        tt = Timetable(GRID)
        good = Session("C1", "T1", "Monday", 0, "101")
        clash = Session("C2", "T2", "Monday", 0, "102")
        with self.assertRaises(SlotOccupiedError):
            tt.load([good, clash])
        self.assertEqual(tt.sessions()[0].start_time, "09:15")


class TestInvariants(unittest.TestCase):
    def test_no_double_booking_after_many_edits(self) -> None:
        tt = Timetable(GRID)
        refs = [ClassRef(f"K{i}", f"T{i % 3}") for i in range(6)]
        for i, ref in enumerate(refs):
            day = GRID.days[i % len(GRID.days)]
            try:
                tt.add(ref, "theory", day, 0, "101")
                tt.add(ref, "lab", day, 5, "L1")
            except ConflictError:
                pass

        sessions = tt.sessions()
        for i, a in enumerate(sessions):
            self.assertNotIn(GRID.lunch_index, a.periods)
            if a.is_lab:
                self.assertEqual(a.periods[1], a.periods[0] + 1)
            for b in sessions[i + 1:]:
                if a.day == b.day and set(a.periods) & set(b.periods):
                    self.assertNotEqual(a.room, b.room)
                    self.assertNotEqual(a.teacher_id, b.teacher_id)


if __name__ == "__main__":
    unittest.main()
