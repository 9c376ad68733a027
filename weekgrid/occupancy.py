"""
Occupancy index.

The single source of truth for conflict detection in one section's draft
timetable. It maps (day, period) to the session holding it, and keeps two
derived indexes in step with that map:

    (day, period, room)    -> session
    (day, period, teacher) -> session

External bookings (sessions already committed by other sections) reserve
teachers and rooms but never fill this section's grid slots.

Every public mutation either completes or leaves the index exactly as it was.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from weekgrid.errors import (
    InvalidSpanError,
    RoomConflictError,
    SlotOccupiedError,
    TeacherConflictError,
)
from weekgrid.grid import TimeGrid
from weekgrid.model import Session, SessionKind

logger = logging.getLogger(__name__)

Key = tuple[str, int]


class OccupancyIndex:
    def __init__(self, grid: TimeGrid, external: Iterable[Session] = ()) -> None:
        self.grid = grid
        self._slots: dict[Key, Session] = {}
        self._rooms: dict[tuple[str, int, str], Session] = {}
        self._teachers: dict[tuple[str, int, str], Session] = {}

        self._external: list[Session] = []
        self._ext_rooms: dict[tuple[str, int, str], Session] = {}
        self._ext_teachers: dict[tuple[str, int, str], Session] = {}
        for s in external:
            self.add_external(s)

    # ------------------------------------------------------------------
    # External bookings
    # ------------------------------------------------------------------

    def add_external(self, session: Session) -> None:
        """
        Reserve the teacher and room of a session from another timetable.
        Bookings outside this grid are ignored.
        """
        if not self.grid.has_day(session.day):
            logger.warning("Ignoring external booking on unknown day %r: %s", session.day, session.identity)
            return
        self._external.append(session)
        for p in session.periods:
            self._ext_rooms.setdefault((session.day, p, session.room), session)
            self._ext_teachers.setdefault((session.day, p, session.teacher_id), session)

    @property
    def external(self) -> list[Session]:
        return list(self._external)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, day: str, period_index: int) -> Optional[Session]:
        return self._slots.get((day, period_index))

    def room_holder(self, day: str, period_index: int, room: str) -> Optional[Session]:
        key = (day, period_index, room)
        return self._rooms.get(key) or self._ext_rooms.get(key)

    def teacher_holder(self, day: str, period_index: int, teacher_id: str) -> Optional[Session]:
        key = (day, period_index, teacher_id)
        return self._teachers.get(key) or self._ext_teachers.get(key)

    def occupied_keys_of(self, session: Session) -> set[Key]:
        """
        All (day, period) keys currently held by this session's identity.
        """
        return {k for k in session.keys() if self._holds(k, session)}

    def sessions(self) -> list[Session]:
        """
        Distinct sessions, ordered by grid day then start period.
        """
        seen: dict[tuple[str, str, int], Session] = {}
        for s in self._slots.values():
            seen.setdefault(s.identity, s)
        return sorted(seen.values(), key=lambda s: (self.grid.day_order(s.day), s.start_period, s.class_id))

    def keys(self) -> list[Key]:
        return sorted(self._slots, key=lambda k: (self.grid.day_order(k[0]), k[1]))

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, session: object) -> bool:
        if not isinstance(session, Session):
            return False
        return bool(self.occupied_keys_of(session))

    def __iter__(self) -> Iterator[Session]:
        return iter(self.sessions())

    def copy(self) -> "OccupancyIndex":
        other = OccupancyIndex(self.grid, self._external)
        other._slots = dict(self._slots)
        other._rooms = dict(self._rooms)
        other._teachers = dict(self._teachers)
        return other

    # ------------------------------------------------------------------
    # Single-key writes
    # ------------------------------------------------------------------

    def put(self, day: str, period_index: int, session: Session) -> None:
        """
        Store `session` at (day, period_index).

        Raises SlotOccupiedError if the key is held by a different session.
        A put by the same identity replaces the stored value.
        Room and teacher commitments are checked here as well, so no two
        sessions can ever share a room or a teacher at the same period.

        The whole span of the session is written, all or nothing, so putting
        a lab at either of its keys stores both.
        """
        self._check_key(day, period_index, session)
        self.place(session)

    def _put_key(self, day: str, period_index: int, session: Session) -> None:
        self._check_key(day, period_index, session)
        key = (day, period_index)

        current = self._slots.get(key)
        if current is not None and current.identity != session.identity:
            raise SlotOccupiedError(
                f"{day} period {period_index} is already held by {current.class_id}",
                day=day,
                period=period_index,
                conflicting=current.identity,
            )

        room_holder = self.room_holder(day, period_index, session.room)
        if room_holder is not None and room_holder.identity != session.identity:
            raise RoomConflictError(
                f"{session.room} is already used on {day} period {period_index} by {room_holder.class_id}",
                day=day,
                period=period_index,
                room=session.room,
                conflicting=room_holder.identity,
            )

        teacher_holder = self.teacher_holder(day, period_index, session.teacher_id)
        if teacher_holder is not None and teacher_holder.identity != session.identity:
            raise TeacherConflictError(
                f"Teacher {session.teacher_id} already teaches {teacher_holder.class_id} on {day} period {period_index}",
                day=day,
                period=period_index,
                conflicting=teacher_holder.identity,
            )

        if current is not None:
            self._drop_key(key)
        self._slots[key] = session
        self._rooms[(day, period_index, session.room)] = session
        self._teachers[(day, period_index, session.teacher_id)] = session

    def remove(self, day: str, period_index: int) -> Optional[Session]:
        """
        Free (day, period_index). No-op if the key is empty.

        A lab holds two keys; removing either frees both, so the index
        never contains half a lab. Returns the removed session, if any.
        """
        current = self._slots.get((day, period_index))
        if current is None:
            return None
        for k in self.occupied_keys_of(current):
            self._drop_key(k)
        return current

    # ------------------------------------------------------------------
    # Whole-session writes
    # ------------------------------------------------------------------

    def place(self, session: Session) -> None:
        """
        Write every key of `session`, or none of them.
        """
        self.check_shape(session)
        backup = {k: self._slots.get(k) for k in session.keys()}
        written: list[Key] = []
        try:
            for p in session.periods:
                self._put_key(session.day, p, session)
                written.append((session.day, p))
        except Exception:
            for k in written:
                self._drop_key(k)
            for k, prev in backup.items():
                if prev is not None and k not in self._slots:
                    self._restore_key(k, prev)
            raise
        # a previous value with the same identity may have covered more keys
        for k in [k for k, s in self._slots.items() if s.identity == session.identity and k not in session.keys()]:
            self._drop_key(k)
        logger.debug("Placed %s in %s at %s %s", session.class_id, session.room, session.day, session.periods)

    def discard(self, session: Session) -> None:
        """
        Remove every key held by the session's identity. Idempotent.
        """
        for k in self.occupied_keys_of(session):
            self._drop_key(k)

    def clear(self) -> None:
        self._slots.clear()
        self._rooms.clear()
        self._teachers.clear()

    def check_shape(self, session: Session) -> None:
        """
        Raise InvalidSpanError unless the session has a legal shape on this grid:
        a known day, one non-lunch period for theory, two consecutive
        non-lunch periods for a lab.
        """
        if not self.grid.has_day(session.day):
            raise InvalidSpanError(f"Unknown day: {session.day!r}", day=session.day)
        for p in session.periods:
            self._check_period(session.day, p, session.kind)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _holds(self, key: Key, session: Session) -> bool:
        current = self._slots.get(key)
        return current is not None and current.identity == session.identity

    def _check_key(self, day: str, period_index: int, session: Session) -> None:
        if session.day != day or period_index not in session.periods:
            raise InvalidSpanError(
                f"{session.class_id} does not cover {day} period {period_index}",
                day=day,
                period=period_index,
            )
        if not self.grid.has_day(day):
            raise InvalidSpanError(f"Unknown day: {day!r}", day=day)
        self._check_period(day, period_index, session.kind)

    def _check_period(self, day: str, period_index: int, kind: SessionKind) -> None:
        if not self.grid.has_period(period_index):
            raise InvalidSpanError(
                f"{day} has no period {period_index} for a {kind.value} session",
                day=day,
                period=period_index,
            )
        if self.grid.is_lunch(period_index):
            raise InvalidSpanError(
                f"{day} period {period_index} is the lunch period",
                day=day,
                period=period_index,
            )

    def _drop_key(self, key: Key) -> None:
        current = self._slots.pop(key, None)
        if current is None:
            return
        day, p = key
        self._rooms.pop((day, p, current.room), None)
        self._teachers.pop((day, p, current.teacher_id), None)

    def _restore_key(self, key: Key, session: Session) -> None:
        day, p = key
        self._slots[key] = session
        self._rooms[(day, p, session.room)] = session
        self._teachers[(day, p, session.teacher_id)] = session
