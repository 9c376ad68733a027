"""
Slot mutation API.

A Timetable wraps one OccupancyIndex (one section's draft for one term)
and is the only way callers should change it:

    add(class_ref, kind, day, start, room)  -> Session
    edit(session, day, start, room)         -> Session
    remove(session)

Every request is validated against the availability queries before anything
is written. A failed add or edit raises a ConflictError subclass and leaves
the index untouched.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, Optional

from weekgrid import availability
from weekgrid.errors import (
    InvalidSpanError,
    NoLegalPlacementError,
    RoomConflictError,
    SlotOccupiedError,
    TeacherConflictError,
    UnknownSessionError,
)
from weekgrid.grid import DEFAULT_GRID, TimeGrid
from weekgrid.model import ClassRef, Session, SessionKind
from weekgrid.occupancy import OccupancyIndex

logger = logging.getLogger(__name__)

Identity = tuple[str, str, int]


def make_session(grid: TimeGrid, class_ref: ClassRef, kind: SessionKind, day: str, start: int, room: str) -> Session:
    """
    Build a session for `class_ref`, copying its teacher and display fields.
    Lab sessions are marked in their course name and code.
    """
    kind = SessionKind.parse(kind)
    start_time, end_time = grid.times_for(kind, start)
    name = class_ref.course_name or "Unknown"
    code = class_ref.course_code or "---"
    if kind is SessionKind.LAB:
        name = f"{name} LAB"
        code = f"{code}-LAB"
    return Session(
        class_id=class_ref.class_id,
        teacher_id=class_ref.teacher_id,
        day=day,
        start_period=start,
        room=room,
        kind=kind,
        course_name=name,
        course_code=code,
        section=class_ref.section,
        faculty_name=class_ref.faculty_name or "TBA",
        start_time=start_time,
        end_time=end_time,
    )


class Timetable:
    def __init__(self, grid: TimeGrid = DEFAULT_GRID, external: Iterable[Session] = ()) -> None:
        self.grid = grid
        self.index = OccupancyIndex(grid, external)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, day: str, period_index: int) -> Optional[Session]:
        return self.index.get(day, period_index)

    def sessions(self) -> list[Session]:
        return self.index.sessions()

    def sessions_of_class(self, class_id: str) -> list[Session]:
        return [s for s in self.sessions() if s.class_id == class_id]

    def find(self, class_id: str, day: str, start_period: int) -> Optional[Session]:
        s = self.index.get(day, start_period)
        if s is not None and s.identity == (class_id, day, start_period):
            return s
        return None

    def legal_starts(
        self, day: str, kind: "SessionKind | str", exclude: "Session | Identity | None" = None
    ) -> list[int]:
        return availability.legal_starts(self.index, day, kind, exclude)

    def free_rooms(
        self, day: str, kind: "SessionKind | str", start: int, exclude: "Session | Identity | None" = None
    ) -> list[str]:
        return availability.free_rooms(self.index, day, kind, start, exclude)

    def __len__(self) -> int:
        return len(self.sessions())

    def __contains__(self, session: object) -> bool:
        return session in self.index

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, class_ref: ClassRef, kind: "SessionKind | str", day: str, start_period: int, room: str) -> Session:
        """
        Place a new session. Raises a ConflictError subclass if the placement
        is not legal; nothing is written in that case.
        """
        kind = SessionKind.parse(kind)
        self._validate(class_ref.teacher_id, kind, day, start_period, room)
        session = make_session(self.grid, class_ref, kind, day, start_period, room)
        self.index.place(session)
        logger.debug("Added %s (%s) on %s period %d in %s", session.class_id, kind.value, day, start_period, room)
        return session

    def insert(self, session: Session) -> Session:
        """
        Place an already built session (e.g. one loaded from disk) under the
        same validation as add(). Display fields are kept as they are.
        """
        self._validate(session.teacher_id, session.kind, session.day, session.start_period, session.room)
        start_time, end_time = self.grid.times_for(session.kind, session.start_period)
        if not session.start_time or not session.end_time:
            session = dataclasses.replace(session, start_time=start_time, end_time=end_time)
        self.index.place(session)
        return session

    def edit(self, session: Session, day: str, start_period: int, room: str) -> Session:
        """
        Move `session` to new coordinates; its kind is kept.

        The move is validated with the session excluded from its own conflict
        check. The old keys are only freed once the new placement is known to
        be legal, so a failed edit never leaves a hole in the grid.
        """
        current = self.index.get(session.day, session.start_period)
        if current is None or current.identity != session.identity:
            raise UnknownSessionError(f"No session {session.identity} in this timetable")

        if (day, start_period, room) == (current.day, current.start_period, current.room):
            return current

        self._validate(current.teacher_id, current.kind, day, start_period, room, exclude=current.identity)

        start_time, end_time = self.grid.times_for(current.kind, start_period)
        updated = dataclasses.replace(
            current, day=day, start_period=start_period, room=room, start_time=start_time, end_time=end_time
        )
        self.index.discard(current)
        try:
            self.index.place(updated)
        except Exception:
            self.index.place(current)
            raise
        logger.debug("Moved %s from %s/%d to %s/%d", current.class_id, current.day, current.start_period, day, start_period)
        return updated

    def remove(self, session: Session) -> None:
        """
        Remove every key held by `session`. Removing twice is harmless.
        """
        self.index.discard(session)

    def clear(self) -> None:
        self.index.clear()

    def load(self, sessions: Iterable[Session]) -> int:
        """
        Insert a persisted session list. Stops at the first invalid session
        and raises; sessions inserted before it stay in place.
        """
        count = 0
        for s in sessions:
            self.insert(s)
            count += 1
        return count

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(
        self,
        teacher_id: str,
        kind: SessionKind,
        day: str,
        start: int,
        room: str,
        exclude: Optional[Identity] = None,
    ) -> None:
        grid = self.grid
        if not grid.has_day(day):
            raise InvalidSpanError(f"Unknown day: {day!r}", day=day)

        periods = grid.span(kind, start)
        for p in periods:
            if not grid.has_period(p):
                raise InvalidSpanError(
                    f"{day} has no period {p} for a {kind.value} starting at {start}", day=day, period=p
                )
            if grid.is_lunch(p):
                raise InvalidSpanError(f"{day} period {p} is the lunch period", day=day, period=p)

        legal = availability.legal_starts(self.index, day, kind, exclude)
        if not legal:
            raise NoLegalPlacementError(f"No free start on {day} for a {kind.value} session", day=day)

        if start not in legal:
            blocked = availability.first_conflict(self.index, day, periods, exclude)
            period, holder = blocked if blocked else (start, None)
            raise SlotOccupiedError(
                f"{day} period {period} is already held by {holder.class_id if holder else 'another session'}",
                day=day,
                period=period,
                conflicting=holder.identity if holder else None,
            )

        for p in periods:
            holder = self.index.teacher_holder(day, p, teacher_id)
            if holder is not None and holder.identity != exclude:
                raise TeacherConflictError(
                    f"Teacher {teacher_id} already teaches {holder.class_id} on {day} period {p}",
                    day=day,
                    period=p,
                    conflicting=holder.identity,
                )

        if room not in grid.pool_for(kind):
            raise RoomConflictError(f"{room!r} is not a {kind.value} room", day=day, room=room)
        for p in periods:
            holder = self.index.room_holder(day, p, room)
            if holder is not None and holder.identity != exclude:
                raise RoomConflictError(
                    f"{room} is already used on {day} period {p} by {holder.class_id}",
                    day=day,
                    period=p,
                    room=room,
                    conflicting=holder.identity,
                )
