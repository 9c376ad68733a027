"""
Timetable generation.

Greedy, deterministic, day-major first fit over the mutation API:

- requirements are handled in input order, lab blocks before theory periods
  (labs need two contiguous periods and are the hardest to fit late);
  core subjects come before light ones, and regular theory goes last
- for every required session the week is scanned day by day, preferring
  days on which the class has nothing yet and the teacher is least loaded
- the first legal (day, start, room) that also keeps the faculty rules
  wins and is written with Timetable.add
- if no spot keeps the faculty rules, the session is retried with only the
  hard rules (slot, teacher, room) before it is given up
- a session that fits nowhere is reported as unplaced; the run goes on

This is a best-effort heuristic, not a solver. An over-subscribed grid
leaves some sessions unplaced, and that is a normal result.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from weekgrid import availability
from weekgrid.errors import ConflictError
from weekgrid.grid import DEFAULT_GRID, TimeGrid
from weekgrid.model import ClassRef, Requirement, Session, SessionKind, Unplaced
from weekgrid.timetable import Timetable

logger = logging.getLogger(__name__)

# heavy subjects that should be taught while students are fresh
CORE_SUBJECT_KEYWORDS = (
    "Data Structures",
    "Algorithms",
    "Database",
    "Operating Systems",
    "Computer Networks",
    "Machine Learning",
    "Artificial Intelligence",
)
LIGHT_SUBJECT_KEYWORDS = ("seminar", "soft skills", "mini project", "project work", "internship")
LIGHT_DAYS = ("Friday", "Saturday")


def is_core_subject(course_name: str) -> bool:
    name = (course_name or "").lower()
    return any(k.lower() in name for k in CORE_SUBJECT_KEYWORDS)


def is_light_subject(course_name: str) -> bool:
    name = (course_name or "").lower()
    return any(k in name for k in LIGHT_SUBJECT_KEYWORDS)


@dataclass(frozen=True)
class GeneratorPolicy:
    """
    Placement preferences. None of these are hard rules; the hard rules live
    in the occupancy index and are always enforced.

    The faculty and subject limits are kept on a first pass. A session that
    cannot be placed under them is retried without them when
    `relax_when_stuck` is set. A limit of None switches that rule off.
    """

    spread_days: bool = True
    labs_first: bool = True
    prefer_afternoon_labs: bool = True
    max_periods_per_class_per_day: Optional[int] = 2

    # faculty rules (theory only, counted within this timetable)
    max_theory_per_teacher_per_day: Optional[int] = 3
    max_continuous_theory: Optional[int] = 2
    min_free_periods_per_teacher_per_day: Optional[int] = 1
    avoid_theory_around_labs: bool = True
    distribute_workload_evenly: bool = True

    # subject placement
    core_subjects_in_morning: bool = True
    light_subjects_on_light_days: bool = True
    light_days: tuple[str, ...] = LIGHT_DAYS

    relax_when_stuck: bool = True


@dataclass
class GenerationResult:
    timetable: Timetable
    unplaced: list[Unplaced] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def sessions(self) -> list[Session]:
        return self.timetable.sessions()

    @property
    def complete(self) -> bool:
        return not self.unplaced


def _theory_rank(class_ref: ClassRef, policy: GeneratorPolicy) -> int:
    if policy.core_subjects_in_morning and is_core_subject(class_ref.course_name):
        return 0
    if policy.light_subjects_on_light_days and is_light_subject(class_ref.course_name):
        return 1
    return 2


def _demand(requirements: Sequence[Requirement], policy: GeneratorPolicy) -> list[tuple[ClassRef, SessionKind]]:
    if not policy.labs_first:
        out: list[tuple[ClassRef, SessionKind]] = []
        for r in requirements:
            out.extend((r.class_ref, SessionKind.LAB) for _ in range(max(r.labs_per_week, 0)))
            out.extend((r.class_ref, SessionKind.THEORY) for _ in range(max(r.theory_per_week, 0)))
        return out

    labs = [(r.class_ref, SessionKind.LAB) for r in requirements for _ in range(max(r.labs_per_week, 0))]
    ordered = sorted(requirements, key=lambda r: _theory_rank(r.class_ref, policy))
    theory = [(r.class_ref, SessionKind.THEORY) for r in ordered for _ in range(max(r.theory_per_week, 0))]
    return labs + theory


class Generator:
    def __init__(self, timetable: Timetable, policy: Optional[GeneratorPolicy] = None) -> None:
        self.timetable = timetable
        self.grid = timetable.grid
        self.policy = policy or GeneratorPolicy()
        # sessions placed only by dropping the faculty and subject rules
        self.relaxed = 0

        # class_id -> day -> periods already placed
        self._load: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        # teacher_id -> day -> ...
        self._teacher_periods: dict[str, dict[str, set[int]]] = defaultdict(lambda: defaultdict(set))
        self._teacher_theory: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._teacher_labs: dict[str, dict[str, set[int]]] = defaultdict(lambda: defaultdict(set))
        for s in timetable.sessions():
            self._track(s)

    def _track(self, s: Session) -> None:
        self._load[s.class_id][s.day] += len(s.periods)
        self._teacher_periods[s.teacher_id][s.day].update(s.periods)
        if s.is_lab:
            self._teacher_labs[s.teacher_id][s.day].update(s.periods)
        else:
            self._teacher_theory[s.teacher_id][s.day] += 1

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def _ordered_days(self, class_ref: ClassRef, kind: SessionKind) -> list[str]:
        policy = self.policy
        light: tuple[str, ...] = ()
        if kind is SessionKind.THEORY and policy.light_subjects_on_light_days and is_light_subject(class_ref.course_name):
            light = policy.light_days
        used = self._load[class_ref.class_id]
        busy = self._teacher_periods[class_ref.teacher_id]

        def rank(day: str) -> tuple[int, int, int]:
            return (
                0 if day in light else 1,
                1 if policy.spread_days and used.get(day) else 0,
                len(busy.get(day, ())) if policy.distribute_workload_evenly else 0,
            )

        return sorted(self.grid.days, key=rank)

    def _ordered_starts(self, starts: list[int], kind: SessionKind) -> list[int]:
        if kind is SessionKind.LAB and self.policy.prefer_afternoon_labs:
            return [s for s in starts if self.grid.is_afternoon(s)] + [s for s in starts if not self.grid.is_afternoon(s)]
        return starts

    # ------------------------------------------------------------------
    # Soft rules
    # ------------------------------------------------------------------

    def _day_allows(self, class_ref: ClassRef, kind: SessionKind, day: str) -> bool:
        policy = self.policy
        cap = policy.max_periods_per_class_per_day
        if cap is not None and self._load[class_ref.class_id].get(day, 0) + kind.length > cap:
            return False
        if kind is SessionKind.LAB:
            return True

        teacher = class_ref.teacher_id
        most = policy.max_theory_per_teacher_per_day
        if most is not None and self._teacher_theory[teacher].get(day, 0) >= most:
            return False
        min_free = policy.min_free_periods_per_teacher_per_day
        if min_free is not None:
            held = len(self._teacher_periods[teacher].get(day, ()))
            # at least `min_free` periods must stay free after this one
            if len(self.grid.class_periods) - held < min_free + 1:
                return False
        return True

    def _start_allows(self, class_ref: ClassRef, kind: SessionKind, day: str, start: int) -> bool:
        if kind is SessionKind.LAB:
            return True
        policy = self.policy
        teacher = class_ref.teacher_id

        if policy.core_subjects_in_morning and is_core_subject(class_ref.course_name) and not self.grid.is_morning(start):
            return False
        if policy.avoid_theory_around_labs:
            labs = self._teacher_labs[teacher].get(day, ())
            if any(abs(start - p) <= 1 for p in labs):
                return False
        limit = policy.max_continuous_theory
        if limit is not None and self._run_length(teacher, day, start) > limit:
            return False
        return True

    def _run_length(self, teacher_id: str, day: str, start: int) -> int:
        """
        Length of the teacher's unbroken run of periods if `start` were taken.
        Lunch breaks a run.
        """
        held = self._teacher_periods[teacher_id].get(day, set())
        n = 1
        for step in (-1, 1):
            p = start + step
            while p in held and not self.grid.is_lunch(p):
                n += 1
                p += step
        return n

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place_one(self, class_ref: ClassRef, kind: SessionKind) -> Optional[Session]:
        """
        Place one session of `class_ref` at the first legal spot, or return None.
        """
        session = self._place(class_ref, kind, strict=True)
        if session is None and self.policy.relax_when_stuck:
            session = self._place(class_ref, kind, strict=False)
            if session is not None:
                self.relaxed += 1
                logger.info(
                    "Placed %s %s on %s period %d only by relaxing preferences",
                    class_ref.class_id, kind.value, session.day, session.start_period,
                )
        return session

    def _place(self, class_ref: ClassRef, kind: SessionKind, strict: bool) -> Optional[Session]:
        index = self.timetable.index
        for day in self._ordered_days(class_ref, kind):
            if strict and not self._day_allows(class_ref, kind, day):
                continue

            starts = self._ordered_starts(self.timetable.legal_starts(day, kind), kind)
            for start in starts:
                if strict and not self._start_allows(class_ref, kind, day, start):
                    continue
                periods = self.grid.span(kind, start)
                if not availability.teacher_is_free(index, day, periods, class_ref.teacher_id):
                    continue
                rooms = availability.free_rooms(index, day, kind, start)
                if not rooms:
                    continue
                try:
                    session = self.timetable.add(class_ref, kind, day, start, rooms[0])
                except ConflictError as e:
                    logger.debug("Skipping %s %s/%d: %s", class_ref.class_id, day, start, e)
                    continue
                self._track(session)
                return session
        return None

    def _policy_notes(self, demand: list[tuple[ClassRef, SessionKind]]) -> list[str]:
        policy = self.policy
        notes: list[str] = []
        if policy.max_theory_per_teacher_per_day is not None or policy.max_continuous_theory is not None:
            most = policy.max_theory_per_teacher_per_day
            run = policy.max_continuous_theory
            notes.append(
                "Faculty rules: max {} theory/day, at most {} continuous".format(
                    "-" if most is None else most, "-" if run is None else run
                )
            )
        if policy.min_free_periods_per_teacher_per_day:
            notes.append(f"Faculty keep at least {policy.min_free_periods_per_teacher_per_day} free period(s) per day")
        if policy.max_periods_per_class_per_day is not None:
            notes.append(f"Subject rule: max {policy.max_periods_per_class_per_day} periods of the same class per day")
        theory = [c for c, k in demand if k is SessionKind.THEORY]
        if policy.core_subjects_in_morning and any(is_core_subject(c.course_name) for c in theory):
            notes.append("Core subjects kept to morning periods")
        if policy.light_subjects_on_light_days and any(is_light_subject(c.course_name) for c in theory):
            notes.append(f"Light subjects placed on {'/'.join(policy.light_days)} first")
        return notes

    def run(self, requirements: Iterable[Requirement]) -> GenerationResult:
        requirements = list(requirements)
        result = GenerationResult(timetable=self.timetable)
        demand = _demand(requirements, self.policy)

        n_labs = sum(1 for _, k in demand if k is SessionKind.LAB)
        n_theory = len(demand) - n_labs
        result.notes.append(f"Requested {n_theory} theory periods and {n_labs} lab blocks for {len(requirements)} classes")
        if n_labs and self.policy.labs_first:
            where = "afternoon-first" if self.policy.prefer_afternoon_labs else "first free"
            result.notes.append(f"Labs placed before theory in {where} pairs of consecutive periods")
        result.notes.extend(self._policy_notes(demand))

        placed: dict[tuple[str, SessionKind], int] = defaultdict(int)
        for class_ref, kind in demand:
            session = self.place_one(class_ref, kind)
            if session is None:
                reason = f"no legal day, period and room left in the week for a {kind.value} session"
                result.unplaced.append(Unplaced(class_ref=class_ref, kind=kind, reason=reason))
                logger.warning("Unplaced %s session for %s (%s)", kind.value, class_ref.class_id, class_ref.course_name)
            else:
                placed[(class_ref.class_id, kind)] += 1

        for r in requirements:
            for kind, wanted in ((SessionKind.LAB, r.labs_per_week), (SessionKind.THEORY, r.theory_per_week)):
                got = placed[(r.class_ref.class_id, kind)]
                if wanted > 0 and got < wanted:
                    name = r.class_ref.course_name or r.class_ref.class_id
                    result.notes.append(f"Could only assign {got}/{wanted} {kind.value} sessions for {name}")

        if self.relaxed:
            result.notes.append(f"{self.relaxed} sessions placed by relaxing faculty and subject preferences")
        total = len(self.timetable.sessions())
        result.notes.append(f"Generated {total} sessions, {len(result.unplaced)} unplaced")
        logger.info("Generated %d sessions (%d unplaced, %d relaxed)", total, len(result.unplaced), self.relaxed)
        return result


def generate(
    requirements: Iterable[Requirement],
    grid: TimeGrid = DEFAULT_GRID,
    external: Iterable[Session] = (),
    policy: Optional[GeneratorPolicy] = None,
) -> GenerationResult:
    """
    Build a fresh timetable for `requirements` and return it with the list
    of sessions that could not be placed.
    """
    return Generator(Timetable(grid, external), policy).run(requirements)
