"""
Pure validation for course-record mutations.
No Flask or store imports; every check works on plain student/catalog dicts.
"""

from typing import Dict, Optional, Set

from attempts import MAX_RETAKES, best_attempt, is_passing, retake_count
from catalog import prerequisites_of
from errors import (
    DuplicateAssignment,
    InvalidAttemptData,
    NoOriginalRecord,
    PrerequisiteNotMet,
    RetakeLimitExceeded,
)
from normalizer import GRADES, normalize_grade, normalize_semester

ATTEMPT_FIELDS = ("marks", "grade", "year_taken", "semester_taken")

# Accept the camelCase keys used by the legacy admin UI.
_FIELD_ALIASES = {
    "letter_grade": "grade",
    "letterGrade": "grade",
    "yearTaken": "year_taken",
    "semesterTaken": "semester_taken",
}


def _canonical_fields(raw: Dict) -> Dict:
    if not isinstance(raw, dict):
        raise InvalidAttemptData("attempt", "Attempt must be an object.")
    fields = {}
    for key, value in raw.items():
        name = _FIELD_ALIASES.get(key, key)
        if name not in ATTEMPT_FIELDS:
            raise InvalidAttemptData(name, f"Unknown attempt field '{key}'.")
        fields[name] = value
    return fields


def _is_int(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _validate_field(name: str, value):
    if name == "marks":
        if not _is_int(value) or not 0 <= int(value) <= 100:
            raise InvalidAttemptData("marks", f"marks must be an integer between 0 and 100 (got {value!r}).")
        return int(value)
    if name == "grade":
        grade = normalize_grade(value)
        if grade is None:
            raise InvalidAttemptData("grade", f"grade must be one of {', '.join(GRADES)} (got {value!r}).")
        return grade
    if name == "year_taken":
        if not _is_int(value) or int(value) <= 0:
            raise InvalidAttemptData("year_taken", f"year_taken must be a positive integer (got {value!r}).")
        return int(value)
    semester = normalize_semester(value)
    if semester is None:
        raise InvalidAttemptData(
            "semester_taken",
            f"semester_taken must be Semester 1, 2 or 3 (got {value!r}).",
        )
    return semester


def validate_attempt(raw: Dict) -> Dict:
    """
    Return a normalized attempt dict or raise InvalidAttemptData.

    Marks and grade are checked independently; a grade that disagrees with
    the marks (e.g. 90 with F) is accepted as supplied.
    """
    fields = _canonical_fields(raw)
    for name in ATTEMPT_FIELDS:
        if fields.get(name) is None:
            raise InvalidAttemptData(name, f"{name} is required.")
    return {name: _validate_field(name, fields[name]) for name in ATTEMPT_FIELDS}


def validate_correction(raw: Dict) -> Dict:
    """Validate a partial update of an original attempt. At least one field is required."""
    fields = _canonical_fields(raw)
    if not fields:
        raise InvalidAttemptData("attempt", "Correction must change at least one field.")
    return {name: _validate_field(name, value) for name, value in fields.items()}


def find_record(student: Dict, course_code: str) -> Optional[Dict]:
    for record in student.get("courses") or []:
        if record.get("course_code") == course_code:
            return record
    return None


def passed_course_codes(student: Dict) -> Set[str]:
    """Codes whose best attempt carries a passing grade (A-D)."""
    return {
        record["course_code"]
        for record in student.get("courses") or []
        if is_passing(best_attempt(record))
    }


def first_unmet_prerequisite(student: Dict, course_code: str, catalog: Dict) -> Optional[str]:
    passed = passed_course_codes(student)
    for prereq in prerequisites_of(catalog, course_code):
        if prereq not in passed:
            return prereq
    return None


def check_original_assignment(student: Dict, course_code: str, attempt: Dict, catalog: Dict) -> Dict:
    """
    Return the normalized attempt if course_code may be assigned as a new
    original attempt. Checks run in this order:
      - DuplicateAssignment if the student already has a record for it
      - InvalidAttemptData if the attempt is malformed
      - PrerequisiteNotMet naming the first prerequisite (catalog order)
        without a passing best attempt
    """
    if find_record(student, course_code) is not None:
        raise DuplicateAssignment(student["student_id"], course_code)
    normalized = validate_attempt(attempt)
    missing = first_unmet_prerequisite(student, course_code, catalog)
    if missing is not None:
        raise PrerequisiteNotMet(course_code, missing)
    return normalized


def check_retake_append(student: Dict, course_code: str) -> Dict:
    """Return the record a retake may be appended to, or raise."""
    record = find_record(student, course_code)
    if record is None:
        raise NoOriginalRecord(student["student_id"], course_code)
    count = retake_count(record)
    if count >= MAX_RETAKES:
        raise RetakeLimitExceeded(course_code, count, MAX_RETAKES)
    return record
