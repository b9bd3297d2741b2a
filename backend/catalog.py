"""
Read-only course catalog built from the loaded courses table.

Catalog order (the row order of the source file) is preserved everywhere a
list of courses is returned, so prerequisite evaluation and remaining-course
listings are deterministic.
"""

import pandas as pd

from errors import NotFound
from normalizer import normalize_code, normalize_year_tier


def _row_to_course(row, prereq_codes: list[str]) -> dict:
    year_tier = row.get("year_tier")
    return {
        "course_code": row["course_code"],
        "course_name": row.get("course_name") or "",
        "credits": int(row["credits"]),
        "semester": row.get("semester"),
        "year_tier": normalize_year_tier(year_tier),
        "prerequisites": list(prereq_codes),
    }


def build_catalog(courses_df: pd.DataFrame, prereq_map: dict) -> dict:
    """
    Index the courses table by code.

    Returns:
      {
        "courses": {"CS101": {...course...}, ...},   # catalog order
        "catalog_codes": {"CS101", ...},
      }
    """
    courses: dict[str, dict] = {}
    for _, row in courses_df.iterrows():
        code = row["course_code"]
        if code in courses:
            continue
        courses[code] = _row_to_course(row, prereq_map.get(code, []))
    return {"courses": courses, "catalog_codes": set(courses)}


def resolve_code(catalog: dict, raw_code: str) -> str:
    """Map user input onto a catalog code, raising NotFound when unknown."""
    raw = str(raw_code or "").strip()
    code = normalize_code(raw) or raw.upper()
    if code not in catalog["courses"]:
        raise NotFound("course", code or raw)
    return code


def get_course(catalog: dict, code: str) -> dict:
    return catalog["courses"][resolve_code(catalog, code)]


def prerequisites_of(catalog: dict, code: str) -> list[str]:
    """Direct prerequisites of a course, in the order the catalog lists them."""
    return list(get_course(catalog, code)["prerequisites"])


def list_courses(catalog: dict) -> list[dict]:
    return list(catalog["courses"].values())


def credits_by_code(catalog: dict) -> dict[str, int]:
    return {code: course["credits"] for code, course in catalog["courses"].items()}
