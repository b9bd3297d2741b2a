"""
One-time migration: convert legacy student documents to course records.

Legacy documents come in two shapes, often mixed within one export:

  - nested:  {"course": <ref>, "originalMarks", "originalGrade",
              "originalYearTaken", "originalSemesterTaken",
              "retakeAttempts": [{"marks", "grade", "yearTaken", "semesterTaken"}]}
  - flat:    {"course": <ref>, "marks", "grade", "isRetake",
              "yearTaken", "semesterTaken"}  (one entry per attempt)

Entries are merged to one record per course: the earliest attempt becomes
the original and later attempts become retakes (at most 2; extras are
dropped with a warning). Attempts that fail validation are skipped with a
warning. GPA is recomputed against the catalog.

Course refs may be a course code, {"code": ...}, or a Mongo ObjectId
({"$oid": ...} or a hex string) resolved through --courses-export.

Usage:
    python scripts/migrate_student_records.py --input legacy.json --output data/students.json
    python scripts/migrate_student_records.py --input legacy.json --courses-export courses.json --dry-run
"""

import argparse
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))

from attempts import MAX_RETAKES  # noqa: E402
from catalog import build_catalog, credits_by_code  # noqa: E402
from data_loader import load_data  # noqa: E402
from errors import InvalidAttemptData  # noqa: E402
from gpa import compute_gpa  # noqa: E402
from normalizer import normalize_code, semester_ordinal  # noqa: E402
from validators import validate_attempt  # noqa: E402

DEFAULT_CATALOG = os.path.join(os.path.dirname(__file__), "..", "data", "courses.csv")


def _oid(value) -> str | None:
    if isinstance(value, dict) and "$oid" in value:
        return str(value["$oid"])
    if isinstance(value, str) and len(value) == 24:
        try:
            int(value, 16)
            return value
        except ValueError:
            return None
    return None


def load_course_id_map(path: str | None) -> dict[str, str]:
    """Map legacy course ObjectIds to course codes from a courses export."""
    if not path:
        return {}
    with open(path, encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        payload = payload.get("courses", [])
    id_map = {}
    for course in payload:
        oid = _oid(course.get("_id"))
        code = normalize_code(course.get("code")) or str(course.get("code") or "").strip().upper()
        if oid and code:
            id_map[oid] = code
    return id_map


def legacy_course_code(ref, id_map: dict[str, str]) -> str | None:
    if isinstance(ref, dict) and ref.get("code"):
        return normalize_code(ref["code"]) or str(ref["code"]).strip().upper()
    oid = _oid(ref.get("_id") if isinstance(ref, dict) and "_id" in ref else ref)
    if oid:
        return id_map.get(oid)
    if isinstance(ref, str):
        return normalize_code(ref)
    return None


def legacy_attempts(entry: dict) -> list[dict]:
    """Flatten one legacy course entry into raw attempts, in recorded order."""
    if "originalGrade" in entry or "originalMarks" in entry:
        attempts = [{
            "marks": entry.get("originalMarks", 0),
            "grade": entry.get("originalGrade", "N/A"),
            "year_taken": entry.get("originalYearTaken"),
            "semester_taken": entry.get("originalSemesterTaken"),
            "is_retake": False,
        }]
    else:
        attempts = [{
            "marks": entry.get("marks", 0),
            "grade": entry.get("grade", "N/A"),
            "year_taken": entry.get("yearTaken"),
            "semester_taken": entry.get("semesterTaken"),
            "is_retake": bool(entry.get("isRetake")),
        }]
    for retake in entry.get("retakeAttempts") or []:
        attempts.append({
            "marks": retake.get("marks"),
            "grade": retake.get("grade", "N/A"),
            "year_taken": retake.get("yearTaken"),
            "semester_taken": retake.get("semesterTaken"),
            "is_retake": True,
        })
    return attempts


def migrate_student(legacy: dict, catalog: dict, id_map: dict[str, str]) -> tuple[dict, list[str]]:
    """Return (student document, warnings) for one legacy student."""
    student_id = str(legacy.get("studentId") or legacy.get("student_id") or _oid(legacy.get("_id")) or "")
    warnings: list[str] = []

    by_code: dict[str, list[tuple[int, bool, dict]]] = {}
    seq = 0
    for entry in legacy.get("courses") or []:
        code = legacy_course_code(entry.get("course"), id_map)
        if code is None:
            warnings.append(f"{student_id}: skipped entry with unresolvable course ref {entry.get('course')!r}.")
            continue
        for raw in legacy_attempts(entry):
            is_retake = raw.pop("is_retake")
            try:
                attempt = validate_attempt(raw)
            except InvalidAttemptData as exc:
                warnings.append(f"{student_id}/{code}: skipped attempt ({exc.message})")
                continue
            by_code.setdefault(code, []).append((seq, is_retake, attempt))
            seq += 1

    courses = []
    for code, items in by_code.items():
        # Originals first, then by when the attempt was taken, then recorded order.
        items.sort(key=lambda it: (
            it[1],
            it[2]["year_taken"],
            semester_ordinal(it[2]["semester_taken"]),
            it[0],
        ))
        attempts = [it[2] for it in items]
        retakes = attempts[1:]
        if len(retakes) > MAX_RETAKES:
            warnings.append(
                f"{student_id}/{code}: {len(retakes)} retakes recorded; "
                f"kept the first {MAX_RETAKES}."
            )
            retakes = retakes[:MAX_RETAKES]
        if code not in catalog["courses"]:
            warnings.append(f"{student_id}/{code}: course not in catalog; record kept but excluded from GPA.")
        courses.append({
            "course_code": code,
            "original_attempt": attempts[0],
            "retake_attempts": retakes,
        })

    doc = {
        "student_id": student_id,
        "first_name": legacy.get("firstName") or legacy.get("first_name"),
        "last_name": legacy.get("lastName") or legacy.get("last_name"),
        "department": legacy.get("department"),
        "program": legacy.get("program"),
        "enrollment_year": legacy.get("enrollmentYear") or legacy.get("enrollment_year"),
        "courses": courses,
        "gpa": str(compute_gpa(courses, credits_by_code(catalog))),
        "version": 0,
    }
    return doc, warnings


def main(args=None):
    parser = argparse.ArgumentParser(description="Migrate legacy student documents to course records.")
    parser.add_argument("--input", required=True, help="Legacy students JSON export")
    parser.add_argument("--output", default=None, help="Where to write the migrated students JSON")
    parser.add_argument("--catalog", default=DEFAULT_CATALOG, help="Catalog CSV, workbook, or data directory")
    parser.add_argument("--courses-export", default=None, help="Legacy courses JSON export (for ObjectId refs)")
    parser.add_argument("--dry-run", action="store_true", help="Preview without saving")
    opts = parser.parse_args(args)

    if not opts.dry_run and not opts.output:
        parser.error("Provide --output or --dry-run.")

    data = load_data(opts.catalog)
    catalog = build_catalog(data["courses_df"], data["prereq_map"])
    id_map = load_course_id_map(opts.courses_export)

    with open(opts.input, encoding="utf-8") as fh:
        payload = json.load(fh)
    legacy_students = payload.get("students", []) if isinstance(payload, dict) else payload

    migrated = []
    all_warnings = []
    for legacy in legacy_students:
        doc, warnings = migrate_student(legacy, catalog, id_map)
        if not doc["student_id"]:
            all_warnings.append("Skipped a legacy document with no student id.")
            continue
        migrated.append(doc)
        all_warnings.extend(warnings)

    for w in all_warnings:
        print(f"[WARN] {w}")
    print(f"[INFO] Migrated {len(migrated)} student(s); {len(all_warnings)} warning(s).")

    if opts.dry_run:
        print("[DRY RUN] No file written.")
        return 0

    with open(opts.output, "w", encoding="utf-8") as fh:
        json.dump({"students": migrated}, fh, indent=2, ensure_ascii=False)
    print(f"[OK] Wrote {opts.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
