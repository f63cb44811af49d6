from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Iterable, Optional

from echampo.core.models import PRIORITIES, Todo, TodoFormatting
from echampo.core.palette import validate_color

STYLE_KEYS: tuple[str, ...] = ("bold", "italic", "underline")
SOON_DAYS = 3


def sort_todos(todos: Iterable[Todo]) -> list[Todo]:
    """Due date ascending with undated todos last; ties go to the newest created."""
    newest_first = sorted(todos, key=lambda t: t.created_at or "", reverse=True)
    return sorted(newest_first, key=lambda t: (t.due_date is None, t.due_date or date.max))


def split_todos(todos: Iterable[Todo]) -> tuple[list[Todo], list[Todo]]:
    active: list[Todo] = []
    completed: list[Todo] = []
    for todo in todos:
        (completed if todo.completed else active).append(todo)
    return active, completed


def days_until_due(due: date, today: date) -> int:
    return (due - today).days


def is_overdue(todo: Todo, today: date) -> bool:
    if todo.due_date is None or todo.completed:
        return False
    return todo.due_date < today


def urgency(todo: Todo, today: date) -> str:
    if is_overdue(todo, today):
        return "overdue"
    if todo.due_date is not None and not todo.completed:
        if 0 <= days_until_due(todo.due_date, today) <= SOON_DAYS:
            return "soon"
    return "normal"


def toggle_style(formatting: TodoFormatting, key: str) -> TodoFormatting:
    if key not in STYLE_KEYS:
        raise ValueError(f"Unsupported style: {key}. Use {', '.join(STYLE_KEYS)}.")
    return replace(formatting, **{key: not getattr(formatting, key)})


def with_highlight(formatting: TodoFormatting, color: Optional[str]) -> TodoFormatting:
    return replace(formatting, highlight=validate_color(color) if color else None)


def validate_formatting(formatting: TodoFormatting) -> TodoFormatting:
    if formatting.highlight is not None:
        validate_color(formatting.highlight)
    return formatting


def validate_todo_title(title: str) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValueError("Todo title is required.")
    return cleaned


def validate_priority(priority: str) -> str:
    if priority not in PRIORITIES:
        raise ValueError(f"Unsupported priority: {priority}. Use {', '.join(PRIORITIES)}.")
    return priority
