"""
Best-attempt selection for a single course record.

A course record holds one original attempt and up to two retakes. Only the
best graded attempt represents the course in GPA, prerequisite and
remaining-course checks.
"""

from normalizer import semester_ordinal

GRADE_POINTS = {"A": 5, "B": 4, "C": 3, "D": 2, "E": 1, "F": 0}
PASSING_GRADES = frozenset({"A", "B", "C", "D"})
UNGRADED = "N/A"
MAX_RETAKES = 2
RETAKE_DISPLAY_CAP = 50


def grade_point(grade: str) -> int:
    return GRADE_POINTS[grade]


def is_passing(attempt: dict | None) -> bool:
    return attempt is not None and attempt.get("grade") in PASSING_GRADES


def iter_attempts(record: dict):
    """Yield (source, position, attempt) for the original and every retake, in taken order."""
    original = record.get("original_attempt")
    if original is not None:
        yield "original", 0, original
    for i, attempt in enumerate(record.get("retake_attempts") or [], start=1):
        yield "retake", i, attempt


def _rank_key(item):
    _, position, attempt = item
    return (
        -int(attempt["marks"]),
        -GRADE_POINTS[attempt["grade"]],
        int(attempt.get("year_taken") or 0),
        semester_ordinal(attempt.get("semester_taken")),
        position,
    )


def _best_item(record: dict):
    graded = [
        item for item in iter_attempts(record)
        if item[2].get("grade") in GRADE_POINTS
    ]
    if not graded:
        return None
    return min(graded, key=_rank_key)


def best_attempt(record: dict) -> dict | None:
    """
    Highest marks wins; equal marks fall back to the higher grade point, then
    to the earliest-taken attempt (year, semester, then original before
    retakes). N/A attempts never participate. None when nothing is graded.
    """
    item = _best_item(record)
    return None if item is None else item[2]


def best_attempt_source(record: dict) -> str | None:
    """'original' or 'retake' for the selected attempt, None when ungraded."""
    item = _best_item(record)
    return None if item is None else item[0]


def retake_count(record: dict) -> int:
    return len(record.get("retake_attempts") or [])


def retakes_exhausted(record: dict) -> bool:
    return retake_count(record) >= MAX_RETAKES


def display_marks(record: dict) -> int | None:
    """
    Marks shown on progress views and transcripts. When the best attempt is a
    retake, marks above 50 are shown as 50; GPA still uses the retake's own
    letter grade.
    """
    item = _best_item(record)
    if item is None:
        return None
    source, _, attempt = item
    marks = int(attempt["marks"])
    if source == "retake" and marks > RETAKE_DISPLAY_CAP:
        return RETAKE_DISPLAY_CAP
    return marks
