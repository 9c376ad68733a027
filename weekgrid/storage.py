"""
Persistent storage for rosters, grids and generated sessions.

The engine itself never touches the disk. This module is the glue a caller
(the CLI, a web backend, a script) uses to keep a draft timetable in plain
JSON files:

    data/roster.json     the classes to schedule and their weekly counts
    data/sessions.json   the current draft, {"sessions": [...]}
    data/grid.json       optional; days, periods and room pools

Default locations live in the package data directory and are computed by
functions so tests (and the CLI's --data-dir) can point elsewhere.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from weekgrid.errors import GridConfigError, StorageError
from weekgrid.grid import DEFAULT_GRID, TimeGrid
from weekgrid.model import ClassRef, Period, Requirement, Session, SessionKind

logger = logging.getLogger(__name__)


def default_data_dir() -> Path:
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data"


def _resolve(path: str | Path | None, filename: str) -> Path:
    return Path(path) if path is not None else default_data_dir() / filename


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _text(d: dict[str, Any], key: str) -> str:
    value = d.get(key)
    return "" if value is None else str(value).strip()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def session_to_dict(s: Session) -> dict[str, Any]:
    return {
        "class_id": s.class_id,
        "teacher_id": s.teacher_id,
        "day": s.day,
        "start_period": s.start_period,
        "end_period": s.end_period,
        "periods": list(s.periods),
        "room": s.room,
        "kind": s.kind.value,
        "course_name": s.course_name,
        "course_code": s.course_code,
        "section": s.section,
        "faculty_name": s.faculty_name,
        "start_time": s.start_time,
        "end_time": s.end_time,
    }


def session_from_dict(d: dict[str, Any]) -> Session:
    """
    Build a Session from its JSON form.

    Raises ValueError (or KeyError/TypeError) if a required field is missing
    or the stored period list does not match the session kind.
    """
    class_id = _text(d, "class_id")
    teacher_id = _text(d, "teacher_id")
    day = _text(d, "day")
    room = _text(d, "room")
    if not (class_id and teacher_id and day and room):
        raise ValueError("class_id, teacher_id, day and room are required")

    kind = SessionKind.parse(d.get("kind") or ("lab" if d.get("is_lab") else "theory"))
    start = int(d["start_period"])
    s = Session(
        class_id=class_id,
        teacher_id=teacher_id,
        day=day,
        start_period=start,
        room=room,
        kind=kind,
        course_name=_text(d, "course_name"),
        course_code=_text(d, "course_code"),
        section=_text(d, "section"),
        faculty_name=_text(d, "faculty_name"),
        start_time=_text(d, "start_time"),
        end_time=_text(d, "end_time"),
    )

    stored = d.get("periods")
    if stored is not None and [int(x) for x in stored] != list(s.periods):
        raise ValueError(f"periods {stored!r} do not match a {kind.value} starting at {start}")
    return s


def load_sessions(path: str | Path | None = None, strict: bool = False) -> list[Session]:
    """
    Load the session list from sessions.json.

    Missing file -> []. Malformed records are skipped with a warning,
    or raise StorageError when strict=True.
    """
    sessions_path = _resolve(path, "sessions.json")
    if not sessions_path.exists():
        return []

    try:
        data = _read_json(sessions_path)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        if strict:
            raise StorageError(f"Cannot read {sessions_path}: {e}") from e
        logger.warning("Cannot read %s: %s", sessions_path, e)
        return []

    raw = data.get("sessions", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        if strict:
            raise StorageError(f"{sessions_path}: 'sessions' must be a list")
        return []

    out: list[Session] = []
    for i, item in enumerate(raw):
        try:
            if not isinstance(item, dict):
                raise ValueError("not an object")
            out.append(session_from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            if strict:
                raise StorageError(f"{sessions_path}: session #{i} is invalid: {e}") from e
            logger.warning("Skipping session #%d in %s: %s", i, sessions_path, e)
    return out


def save_sessions(
    sessions: Iterable[Session],
    path: str | Path | None = None,
    grid: Optional[TimeGrid] = None,
) -> None:
    """
    Save sessions to sessions.json in week order: the grid's day order
    (days it does not know go last), then start period, then class.
    Creates parent directories if needed.
    """
    sessions_path = _resolve(path, "sessions.json")
    days = (grid or DEFAULT_GRID).days

    def order(s: Session) -> tuple[int, str, int, str]:
        rank = days.index(s.day) if s.day in days else len(days)
        return (rank, s.day, s.start_period, s.class_id)

    items = sorted(sessions, key=order)
    _write_json(sessions_path, {"sessions": [session_to_dict(s) for s in items]})


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------


def requirement_from_dict(d: dict[str, Any]) -> Requirement:
    class_id = _text(d, "class_id")
    teacher_id = _text(d, "teacher_id")
    if not (class_id and teacher_id):
        raise ValueError("class_id and teacher_id are required")
    ref = ClassRef(
        class_id=class_id,
        teacher_id=teacher_id,
        course_name=_text(d, "course_name"),
        course_code=_text(d, "course_code"),
        section=_text(d, "section"),
        faculty_name=_text(d, "faculty_name"),
    )
    theory = int(d.get("theory_per_week", 0) or 0)
    labs = int(d.get("labs_per_week", 0) or 0)
    if theory < 0 or labs < 0:
        raise ValueError("weekly counts must not be negative")
    return Requirement(class_ref=ref, theory_per_week=theory, labs_per_week=labs)


def load_roster(path: str | Path | None = None, strict: bool = False) -> list[Requirement]:
    """
    Load roster.json, keeping file order (the generator relies on it).
    """
    roster_path = _resolve(path, "roster.json")
    if not roster_path.exists():
        if strict:
            raise StorageError(f"Roster not found: {roster_path}")
        return []

    try:
        data = _read_json(roster_path)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError(f"Cannot read {roster_path}: {e}") from e

    raw = data.get("classes", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        raise StorageError(f"{roster_path}: expected a list of classes")

    out: list[Requirement] = []
    for i, item in enumerate(raw):
        try:
            if not isinstance(item, dict):
                raise ValueError("not an object")
            out.append(requirement_from_dict(item))
        except (TypeError, ValueError) as e:
            if strict:
                raise StorageError(f"{roster_path}: class #{i} is invalid: {e}") from e
            logger.warning("Skipping class #%d in %s: %s", i, roster_path, e)
    return out


def roster_index(requirements: Iterable[Requirement]) -> dict[str, ClassRef]:
    return {r.class_ref.class_id: r.class_ref for r in requirements}


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


def _names(d: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = d.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise TypeError(f"'{key}' must be a list of strings")
    return tuple(value)


def grid_from_dict(d: dict[str, Any]) -> TimeGrid:
    """
    Build a TimeGrid from its JSON form. Absent keys fall back to DEFAULT_GRID.

    Raises TypeError or ValueError for values of the wrong shape, and
    GridConfigError when the values are well-formed but not a legal grid.
    """
    raw_periods = d.get("periods", [])
    if not isinstance(raw_periods, list):
        raise TypeError("'periods' must be a list")

    periods: list[Period] = []
    for i, p in enumerate(raw_periods):
        if not isinstance(p, dict):
            raise TypeError(f"period #{i} must be an object, got {type(p).__name__}")
        index = p.get("index", i)
        if isinstance(index, bool) or not isinstance(index, (int, str)):
            raise TypeError(f"period #{i}: 'index' must be an integer")
        periods.append(
            Period(
                index=int(index),
                start=_text(p, "start"),
                end=_text(p, "end"),
                label=_text(p, "label"),
                is_lunch=bool(p.get("is_lunch", False)),
            )
        )
    return TimeGrid(
        days=_names(d, "days", DEFAULT_GRID.days),
        periods=tuple(periods) if periods else DEFAULT_GRID.periods,
        rooms=_names(d, "rooms", DEFAULT_GRID.rooms),
        labs=_names(d, "labs", DEFAULT_GRID.labs),
    )


def load_grid(path: str | Path | None = None) -> TimeGrid:
    """
    Load grid.json. Missing file -> DEFAULT_GRID.
    A present but invalid file raises StorageError or GridConfigError.
    """
    grid_path = _resolve(path, "grid.json")
    if not grid_path.exists():
        return DEFAULT_GRID
    try:
        data = _read_json(grid_path)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError(f"Cannot read {grid_path}: {e}") from e
    if not isinstance(data, dict):
        raise StorageError(f"{grid_path}: expected an object")
    try:
        return grid_from_dict(data)
    except GridConfigError:
        raise
    except (AttributeError, TypeError, ValueError) as e:
        raise StorageError(f"{grid_path}: invalid grid: {e}") from e


def grid_to_dict(grid: TimeGrid) -> dict[str, Any]:
    return {
        "days": list(grid.days),
        "periods": [
            {"index": p.index, "start": p.start, "end": p.end, "label": p.label, "is_lunch": p.is_lunch}
            for p in grid.periods
        ],
        "rooms": list(grid.rooms),
        "labs": list(grid.labs),
    }


def save_grid(grid: TimeGrid, path: Optional[str | Path] = None) -> None:
    _write_json(_resolve(path, "grid.json"), grid_to_dict(grid))
