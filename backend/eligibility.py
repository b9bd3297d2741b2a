from attempts import best_attempt, is_passing, retake_count, retakes_exhausted
from catalog import list_courses, resolve_code
from errors import NotFound
from prereq_parser import build_prereq_check_string, prereqs_satisfied, unmet_prereqs
from validators import find_record, passed_course_codes

MAX_TOTAL_RETAKES = 3


def remaining_courses(student: dict, catalog: dict) -> list[dict]:
    """
    Courses the student still has to pass, in catalog order.

    A course is remaining when either:
      - the student has a record for it whose best attempt is not passing
        (failed or ungraded); exhausted retakes are NOT filtered out here
      - the student has no record for it and has passed every prerequisite
    Passed courses never appear.
    """
    passed = passed_course_codes(student)
    records = {r.get("course_code"): r for r in student.get("courses") or []}

    result = []
    for course in list_courses(catalog):
        code = course["course_code"]
        if code in passed:
            continue
        if code in records:
            result.append(course)
        elif prereqs_satisfied(course["prerequisites"], passed):
            result.append(course)
    return result


def total_retakes(student: dict) -> int:
    return sum(retake_count(record) for record in student.get("courses") or [])


def continuation_eligible(student: dict) -> bool:
    """Fewer than three retakes across all courses. Derived on every call."""
    return total_retakes(student) < MAX_TOTAL_RETAKES


def check_can_take(student: dict, requested_code: str, catalog: dict) -> dict:
    """
    Returns a can-take assessment for a specific requested course.

    Returns:
    {
      "course_code": str,
      "can_take": bool,
      "action": "assign" | "retake" | None,
      "why_not": str | None,
      "missing_prereqs": [str],
      "prereq_check": str,
      "already_passed": bool,
      "retake_available": bool,
    }
    """
    try:
        code = resolve_code(catalog, requested_code)
    except NotFound as exc:
        return {
            "course_code": exc.key,
            "can_take": False,
            "action": None,
            "why_not": f"{exc.key} is not in the course catalog.",
            "missing_prereqs": [],
            "prereq_check": "",
            "already_passed": False,
            "retake_available": False,
        }

    course = catalog["courses"][code]
    passed = passed_course_codes(student)
    prereq_check = build_prereq_check_string(course["prerequisites"], passed)
    result = {
        "course_code": code,
        "can_take": False,
        "action": None,
        "why_not": None,
        "missing_prereqs": [],
        "prereq_check": prereq_check,
        "already_passed": False,
        "retake_available": False,
    }

    record = find_record(student, code)
    if record is not None:
        if is_passing(best_attempt(record)):
            result["already_passed"] = True
            result["why_not"] = f"{code} has already been passed."
            return result
        if retakes_exhausted(record):
            result["why_not"] = (
                f"{code} has used all {retake_count(record)} retake attempts."
            )
            return result
        result["can_take"] = True
        result["action"] = "retake"
        result["retake_available"] = True
        return result

    missing = unmet_prereqs(course["prerequisites"], passed)
    if missing:
        result["missing_prereqs"] = missing
        result["why_not"] = f"Missing prerequisite(s): {', '.join(missing)}."
        return result

    result["can_take"] = True
    result["action"] = "assign"
    return result
