from __future__ import annotations

import math
from typing import Iterable, Optional

from echampo.core.models import Grade, Subject

SCALE = 20.0


def normalize_grade(grade: Grade) -> float:
    """Bring a grade onto the 20-point scale. ``value`` above ``max`` is kept as is."""
    return (grade.value / grade.max) * SCALE


def grades_for_subject(grades: Iterable[Grade], subject_id: str) -> list[Grade]:
    """Grades of one subject, most recent first (undated grades last)."""
    matching = [g for g in grades if g.subject_id == subject_id]
    return sorted(matching, key=lambda g: (g.date is None, -(g.date.toordinal() if g.date else 0)))


def subject_average(grades: Iterable[Grade], subject_id: str) -> Optional[float]:
    """
    Weighted mean of one subject's grades on the 20-point scale.
    average = Σ(normalized * coefficient) / Σ(coefficient)

    Returns None when the subject has no grades or every coefficient is zero.
    """
    weighted_sum = 0.0
    total_coefficients = 0.0
    found = False

    for grade in grades:
        if grade.subject_id != subject_id:
            continue
        found = True
        weighted_sum += normalize_grade(grade) * grade.coefficient
        total_coefficients += grade.coefficient

    if not found or total_coefficients == 0:
        return None
    return weighted_sum / total_coefficients


def subject_averages(subjects: Iterable[Subject], grades: Iterable[Grade]) -> dict[str, Optional[float]]:
    snapshot = list(grades)
    return {subject.id: subject_average(snapshot, subject.id) for subject in subjects}


def general_average(subjects: Iterable[Subject], grades: Iterable[Grade]) -> Optional[float]:
    """
    Weighted mean of subject averages, weighted by subject coefficient.
    general = Σ(subject_average * subject_coefficient) / Σ(subject_coefficient)

    Subjects without an average are left out entirely. An unset or zero
    subject coefficient counts as 1.
    """
    snapshot = list(grades)
    weighted_sum = 0.0
    total_coefficients = 0.0
    included = 0

    for subject in subjects:
        average = subject_average(snapshot, subject.id)
        if average is None:
            continue
        coefficient = subject.coefficient or 1
        weighted_sum += average * coefficient
        total_coefficients += coefficient
        included += 1

    if included == 0 or total_coefficients == 0:
        return None
    return weighted_sum / total_coefficients


def format_average(value: Optional[float], *, round_to: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:.{round_to}f}"


def validate_grade_input(value: float, grade_max: float, coefficient: float = 1.0) -> None:
    for name, number in (("value", value), ("max", grade_max), ("coefficient", coefficient)):
        if isinstance(number, bool) or not isinstance(number, (int, float)) or not math.isfinite(number):
            raise ValueError(f"Grade {name} must be a finite number")
    if grade_max <= 0:
        raise ValueError("Grade max must be greater than 0")
    if coefficient < 0:
        raise ValueError("Grade coefficient cannot be negative")
    normalized = value / grade_max * SCALE
    if not math.isfinite(normalized) or not math.isfinite(normalized * coefficient):
        raise ValueError("Grade value is out of range for its max")
