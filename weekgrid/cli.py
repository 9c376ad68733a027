"""
CLI (Command Line Interface).

Terminal commands over a draft timetable kept as JSON files in a data
directory (see weekgrid.storage):

    weekgrid generate <roster.json>
    weekgrid show [--day Monday]
    weekgrid free <day> <theory|lab> [--start N]
    weekgrid add <class_id> <theory|lab> <day> <start> <room>
    weekgrid move <class_id> <day> <start> <to_day> <to_start> [--room R]
    weekgrid remove <class_id> <day> <start>
    weekgrid workload [teacher_id]
    weekgrid check
    weekgrid export <file.ics> --term-start YYYY-MM-DD

Periods are given by their 0-based index in the grid.
Every handler returns an exit code; main() raises SystemExit with it.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from weekgrid.conflicts import find_conflicts
from weekgrid.errors import ConflictError, WeekgridError
from weekgrid.export_ics import export_sessions_to_ics
from weekgrid.generator import GeneratorPolicy, generate
from weekgrid.grid import TimeGrid
from weekgrid.model import SessionKind
from weekgrid.storage import (
    default_data_dir,
    load_grid,
    load_roster,
    load_sessions,
    roster_index,
    save_sessions,
)
from weekgrid.timetable import Timetable
from weekgrid.workload import all_workloads, workload_for

logger = logging.getLogger(__name__)

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _data_dir(args: argparse.Namespace) -> Path:
    return Path(args.data_dir) if args.data_dir else default_data_dir()


def _sessions_path(args: argparse.Namespace) -> Path:
    return _data_dir(args) / "sessions.json"


def _roster_path(args: argparse.Namespace) -> Path:
    roster = getattr(args, "roster", None)
    return Path(roster) if roster else _data_dir(args) / "roster.json"


def _grid(args: argparse.Namespace) -> TimeGrid:
    return load_grid(Path(args.grid) if args.grid else _data_dir(args) / "grid.json")


def _open_timetable(args: argparse.Namespace, grid: TimeGrid) -> Timetable:
    """
    Rebuild the saved draft. Raises WeekgridError if the saved file holds
    sessions that are not legal on this grid (use `check` to list them).
    """
    external = load_sessions(args.external, strict=True) if getattr(args, "external", None) else []
    tt = Timetable(grid, external)
    tt.load(load_sessions(_sessions_path(args), strict=True))
    return tt


def _day(grid: TimeGrid, text: str) -> Optional[str]:
    day = grid.normalize_day(text)
    if day is None:
        print(f"Unknown day: {text!r} (expected one of: {', '.join(grid.days)})")
    return day


def _describe(e: ConflictError) -> str:
    msg = f"{type(e).__name__}: {e}"
    if e.conflicting:
        cid, day, start = e.conflicting
        msg += f" [held by {cid} starting {day} period {start}]"
    return msg


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_generate(args: argparse.Namespace) -> int:
    """
    Generate a fresh draft from a roster and save it.
    """
    grid = _grid(args)
    requirements = load_roster(args.roster_file, strict=True)
    if not requirements:
        print("Roster is empty.")
        return 1

    external = load_sessions(args.external, strict=True) if args.external else []
    policy = GeneratorPolicy(
        spread_days=not args.no_spread,
        prefer_afternoon_labs=not args.no_afternoon_labs,
        max_periods_per_class_per_day=args.max_per_day or None,
        relax_when_stuck=not args.strict,
    )
    if args.no_faculty_rules:
        policy = replace(
            policy,
            max_theory_per_teacher_per_day=None,
            max_continuous_theory=None,
            min_free_periods_per_teacher_per_day=None,
            avoid_theory_around_labs=False,
        )
    result = generate(requirements, grid, external, policy)
    save_sessions(result.sessions, _sessions_path(args), grid)

    for note in result.notes:
        print(f"- {note}")
    if result.unplaced:
        print(f"Unplaced sessions: {len(result.unplaced)}")
        for u in result.unplaced:
            label = u.class_ref.course_code or u.class_ref.class_id
            print(f"  {label} ({u.kind.value}) - {u.reason}")
    print(f"Saved {len(result.sessions)} sessions to: {_sessions_path(args)}")
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    grid = _grid(args)
    tt = _open_timetable(args, grid)

    days = list(grid.days)
    if args.day:
        day = _day(grid, args.day)
        if day is None:
            return 1
        days = [day]

    table = Table(title="Weekly timetable", box=box.SIMPLE_HEAVY, show_lines=True)
    table.add_column("Period", style="bold")
    for d in days:
        table.add_column(d)

    for period in grid.periods:
        if period.is_lunch:
            table.add_row(f"[dim]{period.display}[/dim]", *["[dim]LUNCH[/dim]"] * len(days))
            continue
        cells: list[str] = []
        for d in days:
            s = tt.get(d, period.index)
            if s is None:
                cells.append("")
            else:
                style = "magenta" if s.is_lab else "cyan"
                cells.append(f"[{style}]{s.course_code}[/{style}]\n{s.room}\n[dim]{s.faculty_name}[/dim]")
        table.add_row(f"{period.index}: {period.display}", *cells)

    console.print(table)
    return 0


def _cmd_free(args: argparse.Namespace) -> int:
    """
    Print legal start periods for a day/kind, or the free rooms for one start.
    """
    grid = _grid(args)
    tt = _open_timetable(args, grid)
    day = _day(grid, args.day)
    if day is None:
        return 1
    kind = SessionKind.parse(args.kind)

    if args.start is None:
        starts = tt.legal_starts(day, kind)
        if not starts:
            print(f"No free {kind.value} start on {day}.")
            return 0
        for p in starts:
            print(f"{p}: {grid.period(p).display}")
        return 0

    if args.start not in tt.legal_starts(day, kind):
        print(f"Period {args.start} is not a legal {kind.value} start on {day}.")
        return 1
    rooms = tt.free_rooms(day, kind, args.start)
    if not rooms:
        print("No free room.")
        return 0
    for r in rooms:
        print(r)
    return 0


def _cmd_add(args: argparse.Namespace) -> int:
    grid = _grid(args)
    tt = _open_timetable(args, grid)
    day = _day(grid, args.day)
    if day is None:
        return 1

    refs = roster_index(load_roster(_roster_path(args)))
    cid = (args.class_id or "").strip()
    ref = refs.get(cid)
    if ref is None:
        print(f"Unknown class_id '{cid}' (not in {_roster_path(args)}).")
        return 1

    try:
        s = tt.add(ref, SessionKind.parse(args.kind), day, args.start, args.room)
    except ConflictError as e:
        print(_describe(e))
        return 1

    save_sessions(tt.sessions(), _sessions_path(args), grid)
    print(f"Added: {s.course_code} {s.day} {s.start_time}-{s.end_time} {s.room}")
    return 0


def _cmd_move(args: argparse.Namespace) -> int:
    grid = _grid(args)
    tt = _open_timetable(args, grid)
    day = _day(grid, args.day)
    to_day = _day(grid, args.to_day)
    if day is None or to_day is None:
        return 1

    current = tt.find(args.class_id.strip(), day, args.start)
    if current is None:
        print(f"No session of {args.class_id} starting {day} period {args.start}.")
        return 1

    try:
        s = tt.edit(current, to_day, args.to_start, args.room or current.room)
    except ConflictError as e:
        print(_describe(e))
        return 1

    save_sessions(tt.sessions(), _sessions_path(args), grid)
    print(f"Moved: {s.course_code} -> {s.day} {s.start_time}-{s.end_time} {s.room}")
    return 0


def _cmd_remove(args: argparse.Namespace) -> int:
    grid = _grid(args)
    tt = _open_timetable(args, grid)
    day = _day(grid, args.day)
    if day is None:
        return 1

    current = tt.find(args.class_id.strip(), day, args.start)
    if current is None:
        print(f"Not scheduled: {args.class_id} {day} period {args.start}")
        return 0

    tt.remove(current)
    save_sessions(tt.sessions(), _sessions_path(args), grid)
    print(f"Removed: {current.course_code} {day} {current.start_time}-{current.end_time} (sessions: {len(tt)})")
    return 0


def _cmd_workload(args: argparse.Namespace) -> int:
    grid = _grid(args)
    tt = _open_timetable(args, grid)

    if args.teacher_id:
        workloads = [workload_for(grid, tt, args.teacher_id.strip())]
    else:
        workloads = all_workloads(grid, tt)

    if not workloads:
        print("No sessions scheduled.")
        return 0

    table = Table(title="Faculty workload", box=box.SIMPLE_HEAVY)
    table.add_column("Teacher", style="bold")
    for d in grid.days:
        table.add_column(d[:3], justify="right")
    table.add_column("Morning", justify="right")
    table.add_column("Afternoon", justify="right")
    table.add_column("Total", justify="right", style="bold")

    for wl in workloads:
        name = wl.teacher_name or wl.teacher_id
        per_day = [str(wl.periods_per_day.get(d, 0)) for d in grid.days]
        table.add_row(name, *per_day, str(wl.morning_periods), str(wl.afternoon_periods), str(wl.total_periods))

    console.print(table)
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """
    Audit the saved session list and print every problem found.
    """
    grid = _grid(args)
    sessions = load_sessions(_sessions_path(args), strict=True)
    problems = find_conflicts(sessions, grid)
    if not problems:
        print(f"No conflicts found ({len(sessions)} sessions).")
        return 0

    print(f"Problems found: {len(problems)}")
    for p in problems:
        print(f"- [{p.kind}] {p.message}")
    return 1


def _cmd_export(args: argparse.Namespace) -> int:
    grid = _grid(args)
    sessions = load_sessions(_sessions_path(args), strict=True)
    if not sessions:
        print("No sessions to export.")
        return 0

    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .ics path.")
        return 1
    try:
        term_start = date.fromisoformat(args.term_start)
    except ValueError:
        print(f"Invalid --term-start: {args.term_start!r} (expected YYYY-MM-DD)")
        return 1

    n = export_sessions_to_ics(sessions, grid, out_path, term_start, weeks=args.weeks)
    print(f"Exported {n} sessions to: {out_path}")
    return 0


# ---------------------------------------------------------------------------
# Parser / entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="weekgrid", description="Weekly timetable scheduler")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory holding roster/sessions/grid JSON")
    parser.add_argument("--grid", type=str, default=None, help="Grid JSON file (default: <data-dir>/grid.json)")
    parser.add_argument("--external", type=str, default=None, help="Sessions JSON of other sections to respect")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log placement decisions")
    sub = parser.add_subparsers(dest="command", required=True)

    p_gen = sub.add_parser("generate", help="Generate a draft timetable from a roster")
    p_gen.add_argument("roster_file", type=str, help="Roster JSON file")
    p_gen.add_argument("--no-spread", action="store_true", help="Do not prefer unused days")
    p_gen.add_argument("--no-afternoon-labs", action="store_true", help="Do not prefer afternoon labs")
    p_gen.add_argument("--max-per-day", type=int, default=2, help="Max periods of one class per day (0: no limit)")
    p_gen.add_argument("--no-faculty-rules", action="store_true", help="Ignore faculty daily and continuous limits")
    p_gen.add_argument("--strict", action="store_true", help="Leave sessions unplaced rather than relax preferences")

    p_show = sub.add_parser("show", help="Show the draft as a grid")
    p_show.add_argument("--day", type=str, default=None, help="Only this day")

    p_free = sub.add_parser("free", help="List legal start periods or free rooms")
    p_free.add_argument("day", type=str)
    p_free.add_argument("kind", choices=[k.value for k in SessionKind])
    p_free.add_argument("--start", type=int, default=None, help="List free rooms for this start period")

    p_add = sub.add_parser("add", help="Add one session")
    p_add.add_argument("class_id", type=str)
    p_add.add_argument("kind", choices=[k.value for k in SessionKind])
    p_add.add_argument("day", type=str)
    p_add.add_argument("start", type=int)
    p_add.add_argument("room", type=str)
    p_add.add_argument("--roster", type=str, default=None, help="Roster JSON (default: <data-dir>/roster.json)")

    p_move = sub.add_parser("move", help="Move (edit) one session")
    p_move.add_argument("class_id", type=str)
    p_move.add_argument("day", type=str)
    p_move.add_argument("start", type=int)
    p_move.add_argument("to_day", type=str)
    p_move.add_argument("to_start", type=int)
    p_move.add_argument("--room", type=str, default=None, help="New room (default: keep)")

    p_remove = sub.add_parser("remove", help="Remove one session")
    p_remove.add_argument("class_id", type=str)
    p_remove.add_argument("day", type=str)
    p_remove.add_argument("start", type=int)

    p_wl = sub.add_parser("workload", help="Per-faculty workload")
    p_wl.add_argument("teacher_id", type=str, nargs="?", default=None)

    sub.add_parser("check", help="Audit the saved sessions for conflicts")

    p_export = sub.add_parser("export", help="Export the draft to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")
    p_export.add_argument("--term-start", type=str, required=True, help="First day of term (YYYY-MM-DD)")
    p_export.add_argument("--weeks", type=int, default=16, help="Number of teaching weeks")

    return parser


COMMANDS = {
    "generate": _cmd_generate,
    "show": _cmd_show,
    "free": _cmd_free,
    "add": _cmd_add,
    "move": _cmd_move,
    "remove": _cmd_remove,
    "workload": _cmd_workload,
    "check": _cmd_check,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args)
    except WeekgridError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}")
        code = 1
    raise SystemExit(code)
