from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Optional

from echampo.core.models import ScheduleEntry, Subject, WEEK_TYPES
from echampo.core.palette import FALLBACK_BLOCK_COLOR

DAYS: tuple[str, ...] = ("Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi", "Dimanche")
HOURS: tuple[int, ...] = tuple(range(7, 21))

WEEK_FILTERS: tuple[str, ...] = ("all", "week1", "week2")

WEEK_BADGES: dict[str, str] = {"week1": "S1", "week2": "S2"}
RECURRENCE_LABELS: dict[str, str] = {"weekly": "Hebdo", "biweekly": "Bihebdo"}


def parse_time(value: str) -> tuple[int, int]:
    """Split ``HH:MM`` or ``HH:MM:SS`` into (hour, minute)."""
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}. Use HH:MM.")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ValueError(f"Invalid time: {value!r}. Use HH:MM.") from exc
    if hour < 0 or not 0 <= minute < 60:
        raise ValueError(f"Invalid time: {value!r}. Use HH:MM.")
    return hour, minute


def format_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def to_minutes(value: str) -> int:
    hour, minute = parse_time(value)
    return hour * 60 + minute


def validate_entry_times(start_time: str, end_time: str) -> tuple[str, str]:
    start_hour, start_minute = parse_time(start_time)
    end_hour, end_minute = parse_time(end_time)
    if start_hour > 23 or end_hour > 23:
        raise ValueError("Times must fall within a single day.")
    if end_hour * 60 + end_minute <= start_hour * 60 + start_minute:
        raise ValueError("End time must be after start time.")
    return format_time(start_hour, start_minute), format_time(end_hour, end_minute)


def validate_day(day: int) -> int:
    if not 0 <= day < len(DAYS):
        raise ValueError(f"day_of_week must be between 0 and {len(DAYS) - 1}")
    return day


def validate_week_filter(week_filter: str) -> str:
    if week_filter not in WEEK_FILTERS:
        raise ValueError(f"Unsupported week filter: {week_filter}. Use {', '.join(WEEK_FILTERS)}.")
    return week_filter


def matches_week(entry: ScheduleEntry, week_filter: str) -> bool:
    return week_filter == "all" or entry.week_type == "both" or entry.week_type == week_filter


def entries_for_cell(
    entries: Iterable[ScheduleEntry],
    day: int,
    hour: int,
    week_filter: str = "all",
) -> list[ScheduleEntry]:
    """Entries occupying the (day, hour) cell, in input order.

    An entry occupies the cell when its [start, end) interval overlaps
    [hour:00, hour+1:00) and its week parity passes the filter.
    """
    cell_start = hour * 60
    cell_end = (hour + 1) * 60

    results: list[ScheduleEntry] = []
    for entry in entries:
        if entry.day_of_week != day:
            continue
        entry_start = to_minutes(entry.start_time)
        entry_end = to_minutes(entry.end_time)
        if not (entry_start < cell_end and entry_end > cell_start):
            continue
        if not matches_week(entry, week_filter):
            continue
        results.append(entry)
    return results


def is_block_start(entry: ScheduleEntry, hour: int) -> bool:
    return parse_time(entry.start_time)[0] == hour


def duration(entry: ScheduleEntry) -> int:
    """Block height in whole hours; minutes only matter for the time label."""
    return parse_time(entry.end_time)[0] - parse_time(entry.start_time)[0]


def reschedule(entry: ScheduleEntry, new_day: int, new_hour: int) -> ScheduleEntry:
    """Return a copy of ``entry`` moved to ``new_day`` at ``new_hour``.

    The hour span and both minute components are kept. Collisions and the
    visible hour range are not checked.
    """
    _, start_minute = parse_time(entry.start_time)
    _, end_minute = parse_time(entry.end_time)
    span = duration(entry)
    return replace(
        entry,
        day_of_week=new_day,
        start_time=format_time(new_hour, start_minute),
        end_time=format_time(new_hour + span, end_minute),
    )


def default_slot(hour: int) -> tuple[str, str]:
    return format_time(hour, 0), format_time(hour + 1, 0)


@dataclass(frozen=True)
class GridCell:
    day: int
    hour: int
    kind: str  # "start", "covered" or "empty"
    entry: Optional[ScheduleEntry] = None
    subject_name: str = ""
    color: str = ""
    span: int = 0
    week_badge: str = ""
    time_label: str = ""
    recurrence_label: str = ""

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "hour": self.hour,
            "kind": self.kind,
            "entry_id": self.entry.id if self.entry else None,
            "subject_id": self.entry.subject_id if self.entry else None,
            "subject_name": self.subject_name,
            "color": self.color,
            "span": self.span,
            "week_badge": self.week_badge,
            "time_label": self.time_label,
            "recurrence_label": self.recurrence_label,
        }


def _start_cell(entry: ScheduleEntry, subject: Subject, day: int, hour: int) -> GridCell:
    return GridCell(
        day=day,
        hour=hour,
        kind="start",
        entry=entry,
        subject_name=subject.name,
        color=subject.color or FALLBACK_BLOCK_COLOR,
        span=duration(entry),
        week_badge=WEEK_BADGES.get(entry.week_type, ""),
        time_label=f"{entry.start_time[:5]} - {entry.end_time[:5]}",
        recurrence_label=RECURRENCE_LABELS.get(entry.recurrence, ""),
    )


def build_grid(
    entries: Iterable[ScheduleEntry],
    subjects: Iterable[Subject],
    week_filter: str = "all",
) -> list[list[GridCell]]:
    """One row per displayed hour, one cell per day.

    Only the first matching entry of a cell is rendered. Entries pointing at
    an unknown subject are dropped.
    """
    subject_map: Mapping[str, Subject] = {s.id: s for s in subjects}
    placeable = [e for e in entries if e.subject_id in subject_map and e.week_type in WEEK_TYPES]

    rows: list[list[GridCell]] = []
    for hour in HOURS:
        row: list[GridCell] = []
        for day in range(len(DAYS)):
            matches = entries_for_cell(placeable, day, hour, week_filter)
            if not matches:
                row.append(GridCell(day=day, hour=hour, kind="empty"))
                continue
            first = matches[0]
            if is_block_start(first, hour):
                row.append(_start_cell(first, subject_map[first.subject_id], day, hour))
            else:
                row.append(GridCell(day=day, hour=hour, kind="covered", entry=first))
        rows.append(row)
    return rows
