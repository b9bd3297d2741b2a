"""
Publish gate validator for the course catalog.

Checks data-quality rules a catalog file must pass before it replaces the
live catalog. Designed to be importable for tests and runnable as a
standalone CLI.

Usage:
    python scripts/validate_catalog.py
    python scripts/validate_catalog.py --path path/to/courses.csv
    python scripts/validate_catalog.py --path path/to/catalog.xlsx
"""

import argparse
import os
import sys

import pandas as pd


# ── Validation result ─────────────────────────────────────────────────────────

class ValidationResult:
    """Collects errors and warnings for a single catalog validation run."""

    def __init__(self, source: str):
        self.source = source
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def error(self, msg: str) -> None:
        self.errors.append(msg)

    def warn(self, msg: str) -> None:
        self.warnings.append(msg)

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        lines = [f"[{status}] Catalog '{self.source}'"]
        for e in self.errors:
            lines.append(f"  [ERROR] {e}")
        for w in self.warnings:
            lines.append(f"  [WARN]  {w}")
        if self.passed and not self.warnings:
            lines.append("  All checks passed.")
        return "\n".join(lines)


# ── Individual checks ─────────────────────────────────────────────────────────

def _codes(raw_df: pd.DataFrame) -> list[tuple[str, str | None]]:
    from normalizer import normalize_code

    rows = []
    for raw in raw_df["course_code"].tolist():
        if raw is None or pd.isna(raw) or not str(raw).strip():
            rows.append(("", None))
        else:
            rows.append((str(raw).strip(), normalize_code(raw)))
    return rows


def check_codes(raw_df: pd.DataFrame, result: ValidationResult) -> None:
    """Every row needs a parsable, unique course code."""
    seen: set[str] = set()
    for i, (raw, code) in enumerate(_codes(raw_df), start=2):
        if not raw:
            result.error(f"Row {i}: blank course_code.")
            continue
        if code is None:
            result.warn(f"Row {i}: course_code '{raw}' is not in DEPTNNN form.")
            code = raw.upper()
        if code in seen:
            result.error(f"Row {i}: duplicate course_code '{code}'.")
        seen.add(code)


def check_credits(raw_df: pd.DataFrame, result: ValidationResult) -> None:
    """Credits must be positive whole numbers."""
    for i, (raw_code, raw_credits) in enumerate(
        zip(raw_df["course_code"].tolist(), raw_df["credits"].tolist()), start=2
    ):
        value = pd.to_numeric(pd.Series([raw_credits]), errors="coerce").iloc[0]
        if pd.isna(value) or value <= 0 or float(value) != int(value):
            result.error(f"Row {i}: '{raw_code}' has invalid credits {raw_credits!r}.")


def check_offering_fields(raw_df: pd.DataFrame, result: ValidationResult) -> None:
    """Semester must be Semester 1-3 and year tier Year 1-4 when present."""
    from normalizer import normalize_semester, normalize_year_tier

    for i, row in enumerate(raw_df.to_dict(orient="records"), start=2):
        semester = row.get("semester")
        if semester is not None and not pd.isna(semester) and normalize_semester(semester) is None:
            result.warn(f"Row {i}: '{row.get('course_code')}' has unrecognized semester {semester!r}.")
        year = row.get("year_tier")
        if year is not None and not pd.isna(year) and normalize_year_tier(year) is None:
            result.warn(f"Row {i}: '{row.get('course_code')}' has unrecognized year tier {year!r}.")


def check_prerequisites(prereq_map: dict, raw_df: pd.DataFrame, result: ValidationResult) -> None:
    """Prerequisites must reference catalog courses and never the course itself."""
    from prereq_parser import parse_prereqs

    known = set(prereq_map)
    for row in raw_df.to_dict(orient="records"):
        parsed = parse_prereqs(row.get("prerequisites"), row.get("course_code"))
        code = str(row.get("course_code") or "").strip()
        if parsed["self_reference"]:
            result.error(f"'{code}' lists itself as a prerequisite.")
        for tok in parsed["unparsed"]:
            result.error(f"'{code}' has an unparsable prerequisite token '{tok}'.")
    for code, prereqs in prereq_map.items():
        for prereq in prereqs:
            if prereq not in known:
                result.error(f"'{code}' requires '{prereq}', which is not in the catalog.")


def find_prereq_cycles(prereq_map: dict) -> list[list[str]]:
    """
    Return prerequisite cycles as code paths, e.g. [["CS201", "CS301", "CS201"]].
    Each cycle is reported once, starting from its first node in catalog order.
    """
    cycles: list[list[str]] = []
    reported: set[frozenset] = set()
    state: dict[str, int] = {}  # 1 = on stack, 2 = done
    stack: list[str] = []

    def _visit(course: str) -> None:
        state[course] = 1
        stack.append(course)
        for prereq in prereq_map.get(course, []):
            if state.get(prereq) == 1:
                cycle = stack[stack.index(prereq):] + [prereq]
                key = frozenset(cycle)
                if key not in reported:
                    reported.add(key)
                    cycles.append(cycle)
            elif prereq in prereq_map and state.get(prereq) is None:
                _visit(prereq)
        stack.pop()
        state[course] = 2

    for course in prereq_map:
        if state.get(course) is None:
            _visit(course)
    return cycles


def check_no_cycles(prereq_map: dict, result: ValidationResult) -> None:
    """A prerequisite cycle makes every course on it permanently unassignable."""
    for cycle in find_prereq_cycles(prereq_map):
        result.error(f"Prerequisite cycle: {' -> '.join(cycle)}.")


def validate_catalog(raw_df: pd.DataFrame, source: str = "catalog") -> ValidationResult:
    from data_loader import _normalize_columns, prepare_courses_df

    result = ValidationResult(source)
    try:
        df = _normalize_columns(raw_df)
    except ValueError as exc:
        result.error(str(exc))
        return result

    if len(df) == 0:
        result.error("Catalog has no course rows.")
        return result

    check_codes(df, result)
    check_credits(df, result)
    check_offering_fields(df, result)

    _, prereq_map = prepare_courses_df(df)
    check_prerequisites(prereq_map, df, result)
    check_no_cycles(prereq_map, result)
    return result


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Validate a course catalog before publishing it.",
    )
    parser.add_argument(
        "--path", type=str,
        default=os.path.join(os.path.dirname(__file__), "..", "data", "courses.csv"),
        help="Path to the catalog CSV, workbook, or data directory.",
    )
    opts = parser.parse_args(args)

    # Import backend modules (add backend/ to path)
    backend_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend")
    sys.path.insert(0, backend_dir)
    from data_loader import _read_courses_frame

    try:
        raw_df = _read_courses_frame(opts.path)
    except (OSError, ValueError) as exc:
        print(f"[FATAL] Could not read catalog {opts.path}: {exc}", file=sys.stderr)
        return 1

    result = validate_catalog(raw_df, source=opts.path)
    print(result.summary())
    return 0 if result.passed else 1


if __name__ == "__main__":
    sys.exit(main())
