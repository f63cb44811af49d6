from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
import json
from typing import Any, Mapping

WEEK_TYPES: tuple[str, ...] = ("both", "week1", "week2")
RECURRENCES: tuple[str, ...] = ("none", "weekly", "biweekly")
PRIORITIES: tuple[str, ...] = ("low", "medium", "high")


def _parse_date(value: Any) -> dt.date | None:
    if value is None or value == "":
        return None
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _number(value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Subject:
    id: str
    user_id: str
    name: str
    color: str
    coefficient: float = 1.0
    is_default: bool = False
    created_at: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Subject:
        return cls(
            id=str(doc.get("$id") or doc.get("id") or ""),
            user_id=str(doc.get("user_id") or ""),
            name=str(doc.get("name") or ""),
            color=str(doc.get("color") or ""),
            coefficient=_number(doc.get("subject_coefficient"), 1.0),
            is_default=bool(doc.get("is_default", False)),
            created_at=doc.get("$createdAt") or doc.get("created_at"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "color": self.color,
            "subject_coefficient": self.coefficient,
            "is_default": self.is_default,
        }


@dataclass(frozen=True)
class Grade:
    id: str
    user_id: str
    subject_id: str
    value: float
    max: float
    coefficient: float = 1.0
    description: str | None = None
    date: dt.date | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Grade:
        return cls(
            id=str(doc.get("$id") or doc.get("id") or ""),
            user_id=str(doc.get("user_id") or ""),
            subject_id=str(doc.get("subject_id") or ""),
            value=_number(doc.get("grade_value"), 0.0),
            max=_number(doc.get("grade_max"), 20.0),
            coefficient=_number(doc.get("coefficient"), 1.0),
            description=doc.get("description") or None,
            date=_parse_date(doc.get("date")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "subject_id": self.subject_id,
            "grade_value": self.value,
            "grade_max": self.max,
            "coefficient": self.coefficient,
            "description": self.description or "",
            "date": self.date.isoformat() if self.date else None,
        }


@dataclass(frozen=True)
class ScheduleEntry:
    id: str
    user_id: str
    subject_id: str
    day_of_week: int
    start_time: str
    end_time: str
    week_type: str = "both"
    recurrence: str = "none"
    created_at: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> ScheduleEntry:
        return cls(
            id=str(doc.get("$id") or doc.get("id") or ""),
            user_id=str(doc.get("user_id") or ""),
            subject_id=str(doc.get("subject_id") or ""),
            day_of_week=int(doc.get("day_of_week", 0)),
            start_time=str(doc.get("start_time") or "00:00"),
            end_time=str(doc.get("end_time") or "00:00"),
            week_type=str(doc.get("week_type") or "both"),
            recurrence=str(doc.get("recurrence") or "none"),
            created_at=doc.get("$createdAt") or doc.get("created_at"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "subject_id": self.subject_id,
            "day_of_week": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "week_type": self.week_type,
            "recurrence": self.recurrence,
        }


@dataclass(frozen=True)
class TodoFormatting:
    """Presentation flags for a to-do title. A missing flag means "not applied"."""

    bold: bool = False
    italic: bool = False
    underline: bool = False
    highlight: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> TodoFormatting:
        if isinstance(value, str):
            if not value:
                return cls()
            try:
                value = json.loads(value)
            except ValueError:
                return cls()
        if not isinstance(value, Mapping):
            return cls()
        return cls(
            bold=bool(value.get("bold", False)),
            italic=bool(value.get("italic", False)),
            underline=bool(value.get("underline", False)),
            highlight=value.get("highlight") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.bold:
            data["bold"] = True
        if self.italic:
            data["italic"] = True
        if self.underline:
            data["underline"] = True
        if self.highlight:
            data["highlight"] = self.highlight
        return data


@dataclass(frozen=True)
class Todo:
    id: str
    user_id: str
    title: str
    completed: bool = False
    priority: str = "medium"
    due_date: dt.date | None = None
    formatting: TodoFormatting = field(default_factory=TodoFormatting)
    created_at: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Todo:
        return cls(
            id=str(doc.get("$id") or doc.get("id") or ""),
            user_id=str(doc.get("user_id") or ""),
            title=str(doc.get("title") or ""),
            completed=bool(doc.get("completed", False)),
            priority=str(doc.get("priority") or "medium"),
            due_date=_parse_date(doc.get("due_date")),
            formatting=TodoFormatting.from_value(doc.get("formatting")),
            created_at=doc.get("$createdAt") or doc.get("created_at"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "title": self.title,
            "completed": self.completed,
            "priority": self.priority,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "formatting": json.dumps(self.formatting.to_dict()),
        }
