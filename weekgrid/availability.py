"""
Availability queries.

Pure functions over an occupancy index and its grid. They answer
"where could this go?" without changing anything, so a UI can call them
on every change of day, kind or room.

Passing `exclude` (the identity of a session being edited) lets a session
be moved onto coordinates it currently holds itself.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from weekgrid.model import Session, SessionKind
from weekgrid.occupancy import OccupancyIndex

Identity = tuple[str, str, int]


def _identity_of(exclude: "Session | Identity | None") -> Optional[Identity]:
    if exclude is None:
        return None
    if isinstance(exclude, Session):
        return exclude.identity
    return tuple(exclude)  # type: ignore[return-value]


def _free_for(holder: Optional[Session], exclude: Optional[Identity]) -> bool:
    return holder is None or (exclude is not None and holder.identity == exclude)


def span_is_valid(index: OccupancyIndex, kind: SessionKind, start: int) -> bool:
    """
    True if every period of the span exists and none of them is lunch.
    """
    grid = index.grid
    return all(grid.has_period(p) and not grid.is_lunch(p) for p in grid.span(kind, start))


def legal_starts(
    index: OccupancyIndex,
    day: str,
    kind: "SessionKind | str",
    exclude: "Session | Identity | None" = None,
) -> list[int]:
    """
    Ordered start periods on `day` where a session of `kind` fits the grid.

    Theory: the key is empty or held by `exclude`.
    Lab: the next period exists and is not lunch, and both keys are empty
    or held by `exclude`.
    Room and teacher availability are not part of this answer.
    """
    kind = SessionKind.parse(kind)
    grid = index.grid
    if not grid.has_day(day):
        return []
    skip = _identity_of(exclude)

    out: list[int] = []
    for period in grid.periods:
        if period.is_lunch:
            continue
        if not span_is_valid(index, kind, period.index):
            continue
        if all(_free_for(index.get(day, p), skip) for p in grid.span(kind, period.index)):
            out.append(period.index)
    return out


def room_is_free(
    index: OccupancyIndex,
    day: str,
    periods: Iterable[int],
    room: str,
    exclude: "Session | Identity | None" = None,
) -> bool:
    """
    True if no other session (internal or external) has `room` at any of `periods`.
    """
    skip = _identity_of(exclude)
    return all(_free_for(index.room_holder(day, p, room), skip) for p in periods)


def teacher_is_free(
    index: OccupancyIndex,
    day: str,
    periods: Iterable[int],
    teacher_id: str,
    exclude: "Session | Identity | None" = None,
) -> bool:
    skip = _identity_of(exclude)
    return all(_free_for(index.teacher_holder(day, p, teacher_id), skip) for p in periods)


def free_rooms(
    index: OccupancyIndex,
    day: str,
    kind: "SessionKind | str",
    start: int,
    exclude: "Session | Identity | None" = None,
    pool: Optional[Sequence[str]] = None,
) -> list[str]:
    """
    Rooms of the kind's pool that are free for the whole span, in pool order.
    """
    kind = SessionKind.parse(kind)
    periods = index.grid.span(kind, start)
    candidates = pool if pool is not None else index.grid.pool_for(kind)
    return [r for r in candidates if room_is_free(index, day, periods, r, exclude)]


def first_conflict(
    index: OccupancyIndex,
    day: str,
    periods: Iterable[int],
    exclude: "Session | Identity | None" = None,
) -> Optional[tuple[int, Session]]:
    """
    The first (period, holder) pair blocking the span, or None.
    """
    skip = _identity_of(exclude)
    for p in periods:
        holder = index.get(day, p)
        if not _free_for(holder, skip):
            assert holder is not None
            return p, holder
    return None
