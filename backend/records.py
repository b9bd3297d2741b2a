"""
Caller-facing course-record operations.

Every mutation follows the same path: load a snapshot of the student,
validate, mutate the snapshot, recompute the cached GPA, then save with the
version that was read. A concurrent writer makes the save fail with
ConcurrentModification and nothing is written; the caller may reload and
resubmit. Reads never lock beyond the store's snapshot copy.
"""

from decimal import Decimal

from catalog import credits_by_code, resolve_code
from eligibility import check_can_take, continuation_eligible, remaining_courses
from errors import NoOriginalRecord
from gpa import compute_gpa
from normalizer import normalize_code
from progress import build_progress_report
from store import StudentStore
from validators import (
    check_original_assignment,
    check_retake_append,
    find_record,
    validate_attempt,
    validate_correction,
)


def _record_code(raw_code: str) -> str:
    # Records may outlive their catalog entry, so no catalog lookup here.
    raw = str(raw_code or "").strip()
    return normalize_code(raw) or raw.upper()


def _commit(store: StudentStore, student: dict, catalog: dict, operation: str, course_code: str) -> dict:
    expected_version = student["version"]
    student["gpa"] = str(compute_gpa(student["courses"], credits_by_code(catalog)))
    saved = store.save_student(student, expected_version)
    print(
        f"[AUDIT] {operation} student={saved['student_id']} course={course_code} "
        f"version={saved['version']} gpa={saved['gpa']}"
    )
    return saved


def assign_original_course(
    store: StudentStore,
    catalog: dict,
    student_id: str,
    course_code: str,
    attempt: dict,
) -> dict:
    """Create the student's record for a course from its original attempt."""
    student = store.load_student(student_id)
    code = resolve_code(catalog, course_code)
    normalized = check_original_assignment(student, code, attempt, catalog)

    record = {
        "course_code": code,
        "original_attempt": normalized,
        "retake_attempts": [],
    }
    student["courses"].append(record)
    saved = _commit(store, student, catalog, "assign", code)
    return find_record(saved, code)


def append_retake(
    store: StudentStore,
    catalog: dict,
    student_id: str,
    course_code: str,
    attempt: dict,
) -> dict:
    """Append a retake attempt; the original attempt is kept."""
    student = store.load_student(student_id)
    code = _record_code(course_code)
    record = check_retake_append(student, code)
    record.setdefault("retake_attempts", []).append(validate_attempt(attempt))
    saved = _commit(store, student, catalog, "retake", code)
    return find_record(saved, code)


def correct_original(
    store: StudentStore,
    catalog: dict,
    student_id: str,
    course_code: str,
    fields: dict,
) -> dict:
    """
    Overwrite fields of the original attempt. Retakes are untouched and
    prerequisites are not re-checked.
    """
    student = store.load_student(student_id)
    code = _record_code(course_code)
    record = find_record(student, code)
    if record is None:
        raise NoOriginalRecord(student["student_id"], code)
    record["original_attempt"].update(validate_correction(fields))
    saved = _commit(store, student, catalog, "correct", code)
    return find_record(saved, code)


def delete_course_record(
    store: StudentStore,
    catalog: dict,
    student_id: str,
    course_code: str,
) -> None:
    """Remove a course record together with all of its retakes."""
    student = store.load_student(student_id)
    code = _record_code(course_code)
    if find_record(student, code) is None:
        raise NoOriginalRecord(student["student_id"], code)
    student["courses"] = [r for r in student["courses"] if r.get("course_code") != code]
    _commit(store, student, catalog, "delete", code)


def get_course_record(store: StudentStore, student_id: str, course_code: str) -> dict:
    student = store.load_student(student_id)
    code = _record_code(course_code)
    record = find_record(student, code)
    if record is None:
        raise NoOriginalRecord(student["student_id"], code)
    return record


def get_gpa(store: StudentStore, catalog: dict, student_id: str) -> Decimal:
    student = store.load_student(student_id)
    return compute_gpa(student["courses"], credits_by_code(catalog))


def get_remaining_courses(store: StudentStore, catalog: dict, student_id: str) -> list[dict]:
    return remaining_courses(store.load_student(student_id), catalog)


def get_continuation_eligibility(store: StudentStore, student_id: str) -> bool:
    return continuation_eligible(store.load_student(student_id))


def get_progress_report(store: StudentStore, catalog: dict, student_id: str) -> dict:
    return build_progress_report(store.load_student(student_id), catalog)


def get_can_take(store: StudentStore, catalog: dict, student_id: str, course_code: str) -> dict:
    return check_can_take(store.load_student(student_id), course_code, catalog)
