from attempts import (
    MAX_RETAKES,
    best_attempt,
    best_attempt_source,
    display_marks,
    is_passing,
    retake_count,
)
from catalog import credits_by_code
from eligibility import MAX_TOTAL_RETAKES, continuation_eligible, total_retakes
from gpa import compute_gpa, counted_credits, format_gpa

UNKNOWN_TIER = "Unassigned"


def _record_status(attempt: dict | None) -> str:
    if attempt is None:
        return "ungraded"
    return "passed" if is_passing(attempt) else "failed"


def _tier_label(year_tier) -> str:
    return f"Year {year_tier}" if year_tier else UNKNOWN_TIER


def build_record_row(record: dict, catalog: dict) -> dict:
    code = record.get("course_code")
    course = catalog["courses"].get(code, {})
    attempt = best_attempt(record)
    retakes = retake_count(record)
    return {
        "course_code": code,
        "course_name": course.get("course_name", ""),
        "credits": course.get("credits"),
        "year_tier": course.get("year_tier"),
        "in_catalog": bool(course),
        "best_grade": attempt["grade"] if attempt else None,
        "display_marks": display_marks(record),
        "best_source": best_attempt_source(record),
        "status": _record_status(attempt),
        "retake_count": retakes,
        "retakes_exhausted": retakes >= MAX_RETAKES,
        "original_attempt": record.get("original_attempt"),
        "retake_attempts": list(record.get("retake_attempts") or []),
    }


def build_progress_report(student: dict, catalog: dict) -> dict:
    """
    Summarize a student's standing for progress views and transcripts.

    Rows are grouped by the course's year tier (Year 1 … Year 4, then
    courses without a tier) and sorted by code within each group. GPA is
    recomputed from the records rather than read from the cached value.
    """
    records = student.get("courses") or []
    credit_map = credits_by_code(catalog)

    groups: dict[str, list[dict]] = {}
    for record in records:
        row = build_record_row(record, catalog)
        groups.setdefault(_tier_label(row["year_tier"]), []).append(row)

    def _group_key(label: str):
        return (label == UNKNOWN_TIER, label)

    years = [
        {
            "year": label,
            "courses": sorted(groups[label], key=lambda r: str(r["course_code"])),
        }
        for label in sorted(groups, key=_group_key)
    ]

    retakes = total_retakes(student)
    eligible = continuation_eligible(student)
    warning = None
    if not eligible:
        warning = (
            f"Student has accumulated {retakes} retakes, reaching the limit of "
            f"{MAX_TOTAL_RETAKES}. The student is no longer eligible to continue."
        )

    return {
        "student_id": student.get("student_id"),
        "name": " ".join(
            part for part in (student.get("first_name"), student.get("last_name")) if part
        ),
        "program": student.get("program"),
        "department": student.get("department"),
        "enrollment_year": student.get("enrollment_year"),
        "years": years,
        "gpa": format_gpa(compute_gpa(records, credit_map)),
        "credits_counted": counted_credits(records, credit_map),
        "total_retakes": retakes,
        "continuation_eligible": eligible,
        "retake_warning": warning,
    }
