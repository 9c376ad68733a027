"""
Faculty workload.

Read-only projection of a timetable (or any session list) onto one teacher:
periods per day, sessions per day, morning/afternoon split and totals.
Used by reports; nothing here writes to a timetable.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from weekgrid.grid import TimeGrid
from weekgrid.model import FacultyWorkload, Session
from weekgrid.timetable import Timetable

Source = Union[Timetable, Iterable[Session]]


def _sessions_of(source: Source) -> list[Session]:
    if isinstance(source, Timetable):
        return source.sessions()
    return list(source)


def workload_for(grid: TimeGrid, source: Source, teacher_id: str, teacher_name: Optional[str] = None) -> FacultyWorkload:
    """
    Aggregate the sessions of `teacher_id`.

    Every grid day is present in the result, with 0 periods and an empty list
    on idle days, so a teacher with no sessions gets an all-empty workload.
    """
    wl = FacultyWorkload(
        teacher_id=teacher_id,
        teacher_name=teacher_name,
        periods_per_day={d: 0 for d in grid.days},
        day_schedule={d: [] for d in grid.days},
    )

    for s in _sessions_of(source):
        if s.teacher_id != teacher_id or s.day not in wl.day_schedule:
            continue
        if wl.teacher_name is None and s.faculty_name:
            wl.teacher_name = s.faculty_name

        wl.day_schedule[s.day].append(s)
        wl.periods_per_day[s.day] += len(s.periods)
        wl.total_periods += len(s.periods)
        for p in s.periods:
            if grid.is_morning(p):
                wl.morning_periods += 1
            elif grid.is_afternoon(p):
                wl.afternoon_periods += 1

    for day_sessions in wl.day_schedule.values():
        day_sessions.sort(key=lambda s: (s.start_period, s.class_id))
    return wl


def all_workloads(grid: TimeGrid, source: Source) -> list[FacultyWorkload]:
    """
    One workload per teacher, in order of first appearance.
    """
    sessions = _sessions_of(source)
    teachers: dict[str, Optional[str]] = {}
    for s in sessions:
        teachers.setdefault(s.teacher_id, s.faculty_name or None)
    return [workload_for(grid, sessions, tid, name) for tid, name in teachers.items()]


def busiest_day(workload: FacultyWorkload) -> Optional[str]:
    """
    Day with the most periods (first in week order on ties), or None if idle.
    """
    best: Optional[str] = None
    for day, n in workload.periods_per_day.items():
        if n and (best is None or n > workload.periods_per_day[best]):
            best = day
    return best
