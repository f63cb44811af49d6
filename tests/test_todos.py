from datetime import date
import json
import unittest

from echampo.core.models import Todo, TodoFormatting
from echampo.core.todos import (
    days_until_due,
    is_overdue,
    sort_todos,
    split_todos,
    toggle_style,
    urgency,
    validate_priority,
    validate_todo_title,
    with_highlight,
)

TODAY = date(2024, 5, 10)


def _todo(todo_id, due=None, created="2024-05-01T10:00:00.000+00:00", completed=False, **kwargs):
    return Todo(
        id=todo_id,
        user_id="u1",
        title=kwargs.pop("title", todo_id),
        completed=completed,
        due_date=due,
        created_at=created,
        **kwargs,
    )


class OrderingTests(unittest.TestCase):
    def test_due_date_first_then_newest(self):
        todos = [
            _todo("undated-old", created="2024-04-01T00:00:00.000+00:00"),
            _todo("late", due=date(2024, 6, 1)),
            _todo("undated-new", created="2024-05-05T00:00:00.000+00:00"),
            _todo("soon-old", due=date(2024, 5, 12), created="2024-04-02T00:00:00.000+00:00"),
            _todo("soon-new", due=date(2024, 5, 12), created="2024-05-02T00:00:00.000+00:00"),
        ]
        self.assertEqual(
            [t.id for t in sort_todos(todos)],
            ["soon-new", "soon-old", "late", "undated-new", "undated-old"],
        )

    def test_split(self):
        todos = [_todo("a"), _todo("b", completed=True), _todo("c")]
        active, completed = split_todos(todos)
        self.assertEqual([t.id for t in active], ["a", "c"])
        self.assertEqual([t.id for t in completed], ["b"])


class DueDateTests(unittest.TestCase):
    def test_days_until_due(self):
        self.assertEqual(days_until_due(date(2024, 5, 13), TODAY), 3)
        self.assertEqual(days_until_due(date(2024, 5, 9), TODAY), -1)

    def test_overdue(self):
        self.assertTrue(is_overdue(_todo("a", due=date(2024, 5, 9)), TODAY))
        self.assertFalse(is_overdue(_todo("a", due=TODAY), TODAY))
        self.assertFalse(is_overdue(_todo("a"), TODAY))
        self.assertFalse(is_overdue(_todo("a", due=date(2024, 5, 1), completed=True), TODAY))

    def test_urgency(self):
        self.assertEqual(urgency(_todo("a", due=date(2024, 5, 1)), TODAY), "overdue")
        self.assertEqual(urgency(_todo("a", due=TODAY), TODAY), "soon")
        self.assertEqual(urgency(_todo("a", due=date(2024, 5, 13)), TODAY), "soon")
        self.assertEqual(urgency(_todo("a", due=date(2024, 5, 14)), TODAY), "normal")
        self.assertEqual(urgency(_todo("a"), TODAY), "normal")


class FormattingTests(unittest.TestCase):
    def test_toggle_returns_new_value(self):
        plain = TodoFormatting()
        bold = toggle_style(plain, "bold")
        self.assertTrue(bold.bold)
        self.assertFalse(plain.bold)
        self.assertFalse(toggle_style(bold, "bold").bold)

    def test_toggle_rejects_unknown_style(self):
        with self.assertRaises(ValueError):
            toggle_style(TodoFormatting(), "strike")

    def test_highlight(self):
        marked = with_highlight(TodoFormatting(italic=True), "#fef08a")
        self.assertEqual(marked.highlight, "#FEF08A")
        self.assertTrue(marked.italic)
        self.assertIsNone(with_highlight(marked, None).highlight)
        with self.assertRaises(ValueError):
            with_highlight(marked, "yellow")

    def test_absent_flags_are_not_serialized(self):
        self.assertEqual(TodoFormatting().to_dict(), {})
        self.assertEqual(TodoFormatting(bold=True, highlight="#BBF7D0").to_dict(), {"bold": True, "highlight": "#BBF7D0"})

    def test_from_stored_json(self):
        formatting = TodoFormatting.from_value(json.dumps({"underline": True}))
        self.assertEqual(formatting, TodoFormatting(underline=True))
        self.assertEqual(TodoFormatting.from_value("not json"), TodoFormatting())
        self.assertEqual(TodoFormatting.from_value(None), TodoFormatting())


class ValidationTests(unittest.TestCase):
    def test_title(self):
        self.assertEqual(validate_todo_title("  Réviser  "), "Réviser")
        with self.assertRaises(ValueError):
            validate_todo_title("   ")

    def test_priority(self):
        self.assertEqual(validate_priority("high"), "high")
        with self.assertRaises(ValueError):
            validate_priority("urgent")


if __name__ == "__main__":
    unittest.main()
