"""
Time grid and resource pools.

A TimeGrid is the static definition of one week: ordered days, ordered
periods (exactly one of them lunch) and the two disjoint room pools.
Grids are built explicitly and passed around, so several departments can
keep different grids side by side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from weekgrid.errors import GridConfigError
from weekgrid.model import Period, SessionKind


DEFAULT_DAYS: Tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

DEFAULT_PERIODS: Tuple[Period, ...] = (
    Period(0, "09:15", "10:05", "9:15 - 10:05"),
    Period(1, "10:05", "10:55", "10:05 - 10:55"),
    Period(2, "11:05", "11:55", "11:05 - 11:55"),
    Period(3, "11:55", "12:45", "11:55 - 12:45"),
    Period(4, "12:45", "13:25", "12:45 - 1:25", is_lunch=True),
    Period(5, "13:25", "14:15", "1:25 - 2:15"),
    Period(6, "14:15", "15:05", "2:15 - 3:05"),
    Period(7, "15:05", "15:55", "3:05 - 3:55"),
)

DEFAULT_ROOMS: Tuple[str, ...] = ("Room 101", "Room 102", "Room 103", "Room 201", "Room 202", "Room 203")
DEFAULT_LABS: Tuple[str, ...] = ("Lab 1", "Lab 2", "Lab 3", "Lab 4")


def _check_unique(values: Sequence[str], what: str) -> None:
    seen: set[str] = set()
    for v in values:
        if v in seen:
            raise GridConfigError(f"Duplicate {what}: {v!r}")
        seen.add(v)


@dataclass(frozen=True)
class TimeGrid:
    """
    Immutable week structure plus room pools.

    Construction validates the configuration and raises GridConfigError
    if it is not usable.
    """

    days: Tuple[str, ...] = DEFAULT_DAYS
    periods: Tuple[Period, ...] = DEFAULT_PERIODS
    rooms: Tuple[str, ...] = DEFAULT_ROOMS
    labs: Tuple[str, ...] = DEFAULT_LABS

    def __post_init__(self) -> None:
        # accept lists from callers, store tuples
        object.__setattr__(self, "days", tuple(self.days))
        object.__setattr__(self, "periods", tuple(self.periods))
        object.__setattr__(self, "rooms", tuple(self.rooms))
        object.__setattr__(self, "labs", tuple(self.labs))

        if not self.days:
            raise GridConfigError("A grid needs at least one day")
        _check_unique(self.days, "day")

        if not self.periods:
            raise GridConfigError("A grid needs at least one period")
        for i, p in enumerate(self.periods):
            if p.index != i:
                raise GridConfigError(f"Period indices must be contiguous from 0 (got {p.index} at position {i})")
        lunches = [p.index for p in self.periods if p.is_lunch]
        if len(lunches) != 1:
            raise GridConfigError(f"Exactly one lunch period is required (got {len(lunches)})")

        if not self.rooms:
            raise GridConfigError("The ordinary room pool is empty")
        if not self.labs:
            raise GridConfigError("The lab room pool is empty")
        _check_unique(self.rooms, "room")
        _check_unique(self.labs, "lab")
        shared = set(self.rooms) & set(self.labs)
        if shared:
            raise GridConfigError(f"Room pools must be disjoint, shared: {sorted(shared)}")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def lunch_index(self) -> int:
        for p in self.periods:
            if p.is_lunch:
                return p.index
        raise GridConfigError("grid has no lunch period")  # pragma: no cover

    @property
    def class_periods(self) -> Tuple[Period, ...]:
        return tuple(p for p in self.periods if not p.is_lunch)

    def has_day(self, day: str) -> bool:
        return day in self.days

    def has_period(self, index: int) -> bool:
        return 0 <= index < len(self.periods)

    def period(self, index: int) -> Period:
        if not self.has_period(index):
            raise IndexError(f"No period with index {index}")
        return self.periods[index]

    def is_lunch(self, index: int) -> bool:
        return self.has_period(index) and self.periods[index].is_lunch

    def is_morning(self, index: int) -> bool:
        return self.has_period(index) and index < self.lunch_index

    def is_afternoon(self, index: int) -> bool:
        return self.has_period(index) and index > self.lunch_index

    def day_order(self, day: str) -> int:
        return self.days.index(day)

    def pool_for(self, kind: SessionKind) -> Tuple[str, ...]:
        return self.labs if SessionKind.parse(kind) is SessionKind.LAB else self.rooms

    def span(self, kind: SessionKind, start: int) -> Tuple[int, ...]:
        """
        Period indices a session of this kind starting at `start` would hold.
        Indices are not checked against the grid here.
        """
        return tuple(range(start, start + SessionKind.parse(kind).length))

    def times_for(self, kind: SessionKind, start: int) -> Tuple[str, str]:
        indices = self.span(kind, start)
        return self.period(indices[0]).start, self.period(indices[-1]).end

    def normalize_day(self, day: str) -> Optional[str]:
        """
        Map user input like 'mon' or ' monday ' onto a grid day name.
        Returns None if nothing matches unambiguously.
        """
        text = (day or "").strip().lower()
        if not text:
            return None
        for d in self.days:
            if d.lower() == text:
                return d
        matches = [d for d in self.days if d.lower().startswith(text)]
        return matches[0] if len(matches) == 1 else None


DEFAULT_GRID = TimeGrid()


def build_grid(
    days: Iterable[str],
    periods: Iterable[Period],
    rooms: Iterable[str],
    labs: Iterable[str],
) -> TimeGrid:
    return TimeGrid(days=tuple(days), periods=tuple(periods), rooms=tuple(rooms), labs=tuple(labs))
