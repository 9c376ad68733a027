"""
Conflict detection over a plain session list.

The Timetable never lets an illegal placement in, but session lists also
come from files and other tools. This module audits such a list without
building a Timetable:

- shape: known day, existing non-lunch periods, labs on two consecutive periods
- room pools: theory in an ordinary room, labs in a lab room
- double booking: two sessions sharing a (day, period) with the same teacher
  or the same room
- slot clash: two sessions of the same section sharing a (day, period)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from weekgrid.grid import TimeGrid
from weekgrid.model import Session, SessionKind


@dataclass(frozen=True)
class Problem:
    kind: str
    message: str
    first: Session
    second: Optional[Session] = None


def _shape_problems(grid: TimeGrid, s: Session) -> list[Problem]:
    out: list[Problem] = []
    if not grid.has_day(s.day):
        out.append(Problem("span", f"{s.class_id}: unknown day {s.day!r}", s))
        return out
    for p in s.periods:
        if not grid.has_period(p):
            out.append(Problem("span", f"{s.class_id}: {s.day} has no period {p}", s))
        elif grid.is_lunch(p):
            out.append(Problem("lunch", f"{s.class_id}: {s.day} period {p} is the lunch period", s))
    if s.room not in grid.pool_for(s.kind):
        pool = "lab" if s.kind is SessionKind.LAB else "ordinary"
        out.append(Problem("room", f"{s.class_id}: {s.room!r} is not an {pool} room", s))
    return out


def find_conflicts(sessions: Iterable[Session], grid: TimeGrid) -> list[Problem]:
    """
    Return every problem found. Pairs are reported once, in list order.
    """
    sessions = list(sessions)
    problems: list[Problem] = []

    for s in sessions:
        problems.extend(_shape_problems(grid, s))

    # (day, period) -> sessions holding it
    by_key: dict[tuple[str, int], list[Session]] = defaultdict(list)
    for s in sessions:
        for p in s.periods:
            by_key[(s.day, p)].append(s)

    reported: set[tuple[str, tuple, tuple]] = set()

    def report(kind: str, a: Session, b: Session, message: str) -> None:
        key = (kind, a.identity, b.identity)
        if key in reported:
            return
        reported.add(key)
        problems.append(Problem(kind, message, a, b))

    for (day, p), holders in by_key.items():
        for i in range(len(holders)):
            a = holders[i]
            for j in range(i + 1, len(holders)):
                b = holders[j]
                where = f"{day} period {p}"
                if a.teacher_id == b.teacher_id:
                    report("teacher", a, b, f"teacher {a.teacher_id} double-booked on {where}: {a.class_id} / {b.class_id}")
                if a.room == b.room:
                    report("room", a, b, f"{a.room} double-booked on {where}: {a.class_id} / {b.class_id}")
                if a.section and a.section == b.section:
                    report("slot", a, b, f"section {a.section} has two sessions on {where}: {a.class_id} / {b.class_id}")

    return problems
