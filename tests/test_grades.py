from datetime import date
import unittest

from echampo.core.grades import (
    format_average,
    general_average,
    grades_for_subject,
    normalize_grade,
    subject_average,
    subject_averages,
    validate_grade_input,
)
from echampo.core.models import Grade, Subject


def _grade(subject_id: str, value: float, grade_max: float = 20, coefficient: float = 1, **kwargs) -> Grade:
    return Grade(
        id=kwargs.pop("id", f"{subject_id}-{value}-{grade_max}"),
        user_id="u1",
        subject_id=subject_id,
        value=value,
        max=grade_max,
        coefficient=coefficient,
        **kwargs,
    )


def _subject(subject_id: str, coefficient: float = 1) -> Subject:
    return Subject(id=subject_id, user_id="u1", name=subject_id.upper(), color="#FF6B9D", coefficient=coefficient)


class NormalizeTests(unittest.TestCase):
    def test_full_marks_is_twenty(self):
        for grade_max in (5, 10, 20, 100, 7.5):
            self.assertAlmostEqual(normalize_grade(_grade("a", grade_max, grade_max)), 20.0)

    def test_other_scales(self):
        self.assertAlmostEqual(normalize_grade(_grade("a", 7, 10)), 14.0)
        self.assertAlmostEqual(normalize_grade(_grade("a", 45, 100)), 9.0)

    def test_value_above_max_is_not_clamped(self):
        self.assertAlmostEqual(normalize_grade(_grade("a", 25, 20)), 25.0)


class SubjectAverageTests(unittest.TestCase):
    def test_no_grades_is_absent(self):
        self.assertIsNone(subject_average([], "math"))
        self.assertIsNone(subject_average([_grade("french", 12)], "math"))

    def test_weighted_mean(self):
        grades = [_grade("math", 10, 20, 1), _grade("math", 18, 20, 2)]
        self.assertAlmostEqual(subject_average(grades, "math"), 46 / 3)

    def test_mixed_denominators(self):
        grades = [_grade("math", 5, 10), _grade("math", 75, 100)]
        self.assertAlmostEqual(subject_average(grades, "math"), 12.5)

    def test_zero_coefficients_is_absent(self):
        grades = [_grade("math", 10, 20, 0), _grade("math", 18, 20, 0)]
        self.assertIsNone(subject_average(grades, "math"))

    def test_order_does_not_matter(self):
        grades = [_grade("math", 3, 20, 2), _grade("math", 17, 20, 1), _grade("math", 9, 10, 0.5)]
        self.assertAlmostEqual(subject_average(grades, "math"), subject_average(list(reversed(grades)), "math"))

    def test_repeated_calls_give_same_result(self):
        grades = [_grade("math", 14, 20)]
        self.assertEqual(subject_average(grades, "math"), subject_average(grades, "math"))

    def test_accepts_a_generator(self):
        self.assertAlmostEqual(subject_average((g for g in [_grade("math", 8, 10)]), "math"), 16.0)


class GeneralAverageTests(unittest.TestCase):
    def test_subjects_without_grades_are_excluded(self):
        subjects = [_subject("a"), _subject("b")]
        grades = [_grade("b", 15, 20, 1)]
        self.assertAlmostEqual(general_average(subjects, grades), 15.0)
        self.assertAlmostEqual(general_average(subjects, grades), subject_average(grades, "b"))

    def test_no_averages_is_absent(self):
        self.assertIsNone(general_average([_subject("a")], []))
        self.assertIsNone(general_average([], [_grade("a", 10)]))

    def test_subject_coefficients(self):
        subjects = [_subject("math", 4), _subject("sport", 1)]
        grades = [_grade("math", 10), _grade("sport", 20)]
        self.assertAlmostEqual(general_average(subjects, grades), (10 * 4 + 20 * 1) / 5)

    def test_zero_subject_coefficient_counts_as_one(self):
        subjects = [_subject("math", 0), _subject("sport", 1)]
        grades = [_grade("math", 10), _grade("sport", 20)]
        self.assertAlmostEqual(general_average(subjects, grades), 15.0)

    def test_grade_and_subject_coefficients_are_independent(self):
        # Grade weights only shape the subject average.
        subjects = [_subject("math", 1), _subject("french", 1)]
        grades = [_grade("math", 10, 20, 9), _grade("french", 20, 20, 1)]
        self.assertAlmostEqual(general_average(subjects, grades), 15.0)

    def test_subject_averages_map(self):
        subjects = [_subject("a"), _subject("b")]
        averages = subject_averages(subjects, [_grade("a", 12)])
        self.assertEqual(set(averages), {"a", "b"})
        self.assertAlmostEqual(averages["a"], 12.0)
        self.assertIsNone(averages["b"])


class HelperTests(unittest.TestCase):
    def test_grades_for_subject_newest_first(self):
        grades = [
            _grade("a", 10, id="old", date=date(2024, 1, 10)),
            _grade("a", 11, id="none"),
            _grade("a", 12, id="new", date=date(2024, 3, 2)),
            _grade("b", 13, id="other", date=date(2024, 5, 1)),
        ]
        self.assertEqual([g.id for g in grades_for_subject(grades, "a")], ["new", "old", "none"])

    def test_format_average(self):
        self.assertEqual(format_average(None), "-")
        self.assertEqual(format_average(46 / 3), "15.33")

    def test_validate_grade_input(self):
        validate_grade_input(25, 20, 1)
        with self.assertRaises(ValueError):
            validate_grade_input(10, 0)
        with self.assertRaises(ValueError):
            validate_grade_input(10, -5)
        with self.assertRaises(ValueError):
            validate_grade_input(10, 20, -1)
        with self.assertRaises(ValueError):
            validate_grade_input(float("nan"), 20)
        with self.assertRaises(ValueError):
            validate_grade_input("12", 20)

    def test_validate_grade_input_rejects_overflowing_ratio(self):
        with self.assertRaises(ValueError):
            validate_grade_input(10, 1e-310)
        with self.assertRaises(ValueError):
            validate_grade_input(1e300, 1e-10)
        with self.assertRaises(ValueError):
            validate_grade_input(1e300, 1, 1e300)
        validate_grade_input(0, 1e-310)


if __name__ == "__main__":
    unittest.main()
