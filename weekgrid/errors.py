"""
Error kinds raised by the scheduling engine.

Every placement failure is a ConflictError carrying the coordinates that
failed, so a caller can show it to a user and let them pick another slot.
None of these errors leave the occupancy index half-written.
"""

from __future__ import annotations

from typing import Optional, Tuple

Identity = Tuple[str, str, int]


class WeekgridError(Exception):
    """Base class for all errors raised by weekgrid."""


class GridConfigError(WeekgridError, ValueError):
    """The time grid or room pools are not a valid configuration."""


class StorageError(WeekgridError):
    """A roster, session or grid file could not be read in strict mode."""


class UnknownSessionError(WeekgridError, KeyError):
    """An edit referred to a session that is not in the timetable."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown session"


class ConflictError(WeekgridError):
    """
    A requested placement is not legal.

    Attributes:
        day, period: the first coordinate that failed (period may be None
            when the whole day was rejected)
        room: the room involved, if the failure concerns a room
        conflicting: identity (class_id, day, start_period) of the session
            already holding the coordinate, if any
    """

    def __init__(
        self,
        message: str,
        *,
        day: Optional[str] = None,
        period: Optional[int] = None,
        room: Optional[str] = None,
        conflicting: Optional[Identity] = None,
    ) -> None:
        super().__init__(message)
        self.day = day
        self.period = period
        self.room = room
        self.conflicting = conflicting


class SlotOccupiedError(ConflictError):
    """The day/period is already held by a different session."""


class RoomConflictError(ConflictError):
    """The room is not usable for the session or is committed elsewhere."""


class TeacherConflictError(ConflictError):
    """The teacher already teaches somewhere else at that day/period."""


class InvalidSpanError(ConflictError):
    """The requested periods do not exist, or touch the lunch period."""


class NoLegalPlacementError(ConflictError):
    """No start period on the requested day is legal for the session kind."""
