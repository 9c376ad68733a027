"""
iCalendar (.ics) export.

A weekly timetable becomes one recurring event per session, so the draft
can be imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

from weekgrid.grid import TimeGrid
from weekgrid.model import Session

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def first_date_on(day: str, term_start: date) -> date:
    """
    First date on or after term_start that falls on `day` (an English weekday name).
    """
    target = WEEKDAYS.index(day.strip().lower())
    return term_start + timedelta(days=(target - term_start.weekday()) % 7)


def _dt_local(d: date, time_hh_mm: str) -> str:
    dt = datetime.strptime(f"{d.isoformat()} {time_hh_mm}", "%Y-%m-%d %H:%M")
    return dt.strftime("%Y%m%dT%H%M00")


def export_sessions_to_ics(
    sessions: Iterable[Session], grid: TimeGrid, out_path: str | Path, term_start: date, weeks: int = 16
) -> int:
    """
    Export sessions to an .ics file, each repeating weekly for `weeks` weeks.
    Sessions on days that are not weekday names are skipped.
    Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//weekgrid//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for s in sessions:
        try:
            first = first_date_on(s.day, term_start)
            start_time, end_time = grid.times_for(s.kind, s.start_period)
            dtstart = _dt_local(first, start_time)
            dtend = _dt_local(first, end_time)
        except (ValueError, IndexError):
            continue

        summary = f"{s.course_code} {s.course_name}".strip() or s.class_id
        uid = f"{s.class_id}-{s.day}-{s.start_period}@weekgrid"

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(uid)}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{dtstart}")
        lines.append(f"DTEND:{dtend}")
        lines.append(f"RRULE:FREQ=WEEKLY;COUNT={max(weeks, 1)}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        lines.append(f"LOCATION:{_ics_escape(s.room)}")
        details = ", ".join(x for x in (s.section and f"Section {s.section}", s.faculty_name) if x)
        if details:
            lines.append(f"DESCRIPTION:{_ics_escape(details)}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
