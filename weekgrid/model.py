"""
Central data model definitions used across the project.

This module defines the canonical structure of the scheduling objects so that:
- all modules share the same field names
- sessions look the same whether they come from the generator, a manual edit
  or a JSON file on disk
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class SessionKind(str, Enum):
    """
    Kind of a scheduled occurrence.

    A theory session holds one period, a lab session two consecutive periods.
    """

    THEORY = "theory"
    LAB = "lab"

    @property
    def length(self) -> int:
        return 2 if self is SessionKind.LAB else 1

    @classmethod
    def parse(cls, value: "str | SessionKind") -> "SessionKind":
        if isinstance(value, SessionKind):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class Period:
    """
    One fixed time interval of the daily grid, addressed by index.
    """

    index: int
    start: str
    end: str
    label: str = ""
    is_lunch: bool = False

    @property
    def display(self) -> str:
        return self.label or f"{self.start} - {self.end}"


@dataclass(frozen=True)
class ClassRef:
    """
    A teaching assignment as supplied by the course/class registry.

    Only class_id and teacher_id take part in conflict checks;
    the remaining fields are copied onto sessions for display.
    """

    class_id: str
    teacher_id: str
    course_name: str = ""
    course_code: str = ""
    section: str = ""
    faculty_name: str = ""


@dataclass(frozen=True)
class Session:
    """
    One scheduled occurrence of a class (a "generated slot").

    The identity of a session is (class_id, day, start_period).
    """

    class_id: str
    teacher_id: str
    day: str
    start_period: int
    room: str
    kind: SessionKind = SessionKind.THEORY
    course_name: str = ""
    course_code: str = ""
    section: str = ""
    faculty_name: str = ""
    start_time: str = ""
    end_time: str = ""

    def __post_init__(self) -> None:
        # accept "lab" / "theory" strings from callers and JSON
        object.__setattr__(self, "kind", SessionKind.parse(self.kind))

    @property
    def end_period(self) -> int:
        return self.start_period + self.kind.length - 1

    @property
    def periods(self) -> Tuple[int, ...]:
        return tuple(range(self.start_period, self.end_period + 1))

    @property
    def is_lab(self) -> bool:
        return self.kind is SessionKind.LAB

    @property
    def identity(self) -> Tuple[str, str, int]:
        return (self.class_id, self.day, self.start_period)

    def keys(self) -> set[tuple[str, int]]:
        return {(self.day, p) for p in self.periods}


@dataclass(frozen=True)
class Requirement:
    """
    Weekly demand of one class, as handed to the generator.

    The counts come from the registry; nothing here derives them from credits.
    """

    class_ref: ClassRef
    theory_per_week: int = 0
    labs_per_week: int = 0


@dataclass(frozen=True)
class Unplaced:
    """
    A required session the generator could not legally place anywhere.
    """

    class_ref: ClassRef
    kind: SessionKind
    reason: str = ""


@dataclass
class FacultyWorkload:
    """
    Read-side projection of one teacher's week.
    """

    teacher_id: str
    teacher_name: Optional[str]
    periods_per_day: dict[str, int] = field(default_factory=dict)
    day_schedule: dict[str, list[Session]] = field(default_factory=dict)
    total_periods: int = 0
    morning_periods: int = 0
    afternoon_periods: int = 0

    @property
    def session_count(self) -> int:
        return sum(len(v) for v in self.day_schedule.values())
