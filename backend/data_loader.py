import os
import sys
import pandas as pd
from normalizer import normalize_code, normalize_semester, normalize_year_tier
from prereq_parser import parse_prereqs


CATALOG_COLUMNS = ["course_code", "course_name", "credits", "semester", "year_tier", "prerequisites"]

# Accept the column names used by older catalog exports.
_COLUMN_ALIASES = {
    "code": "course_code",
    "name": "course_name",
    "title": "course_name",
    "course_title": "course_name",
    "credit": "credits",
    "credit_weight": "credits",
    "year": "year_tier",
    "prereqs": "prerequisites",
    "prereq_hard": "prerequisites",
}


def _read_courses_frame(data_path: str) -> pd.DataFrame:
    """Read the raw courses table from a CSV file, a workbook, or a data directory."""
    if os.path.isdir(data_path):
        return pd.read_csv(os.path.join(data_path, "courses.csv"), dtype=str)
    if data_path.lower().endswith((".xlsx", ".xls")):
        xl = pd.ExcelFile(data_path)
        sheet = "courses" if "courses" in xl.sheet_names else xl.sheet_names[0]
        return xl.parse(sheet, dtype=str)
    return pd.read_csv(data_path, dtype=str)


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    rename_map = {
        src: dst for src, dst in _COLUMN_ALIASES.items()
        if src in df.columns and dst not in df.columns
    }
    if rename_map:
        df = df.rename(columns=rename_map)
    if "course_code" not in df.columns:
        raise ValueError("Catalog is missing the required 'course_code' column.")
    if "credits" not in df.columns:
        raise ValueError("Catalog is missing the required 'credits' column.")
    for col in CATALOG_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df


def _coerce_credits(raw) -> int | None:
    value = pd.to_numeric(pd.Series([raw]), errors="coerce").iloc[0]
    if pd.isna(value) or value <= 0 or float(value) != int(value):
        return None
    return int(value)


def prepare_courses_df(raw_df: pd.DataFrame) -> tuple[pd.DataFrame, dict]:
    """
    Normalize a raw courses table into catalog rows and a prereq map.

    Rows with a blank code or non-positive credits are excluded; duplicate
    codes keep their first row. Returns (courses_df, prereq_map) where
    prereq_map is course_code → ordered list of prerequisite codes.
    """
    df = _normalize_columns(raw_df)

    rows: list[dict] = []
    prereq_map: dict[str, list[str]] = {}
    duplicates: list[str] = []
    bad_credits: list[str] = []
    bad_semesters: list[str] = []
    bad_years: list[str] = []
    self_refs: list[str] = []
    unparsed: dict[str, list[str]] = {}

    for _, row in df.iterrows():
        raw_code = row.get("course_code")
        if raw_code is None or pd.isna(raw_code) or not str(raw_code).strip():
            continue
        code = normalize_code(raw_code) or str(raw_code).strip().upper()
        if code in prereq_map:
            duplicates.append(code)
            continue

        credits = _coerce_credits(row.get("credits"))
        if credits is None:
            bad_credits.append(code)
            continue

        raw_semester = row.get("semester")
        semester = normalize_semester(raw_semester)
        if semester is None and raw_semester is not None and not pd.isna(raw_semester):
            bad_semesters.append(code)
            semester = str(raw_semester).strip()

        raw_year = row.get("year_tier")
        year_tier = normalize_year_tier(raw_year)
        if year_tier is None and raw_year is not None and not pd.isna(raw_year):
            bad_years.append(code)

        parsed = parse_prereqs(row.get("prerequisites"), code)
        if parsed["self_reference"]:
            self_refs.append(code)
        if parsed["unparsed"]:
            unparsed[code] = parsed["unparsed"]

        name = row.get("course_name")
        rows.append({
            "course_code": code,
            "course_name": "" if name is None or pd.isna(name) else str(name).strip(),
            "credits": credits,
            "semester": semester,
            "year_tier": year_tier,
            "prerequisites": "; ".join(parsed["courses"]),
        })
        prereq_map[code] = parsed["courses"]

    # object dtype keeps ints as ints and missing year tiers as None.
    courses_df = pd.DataFrame(rows, columns=CATALOG_COLUMNS, dtype=object)

    # ── Data integrity warnings ────────────────────────────────────────────
    if duplicates:
        print(f"[WARN] {len(duplicates)} duplicate course code(s) ignored: {sorted(set(duplicates))}", file=sys.stderr)
    if bad_credits:
        print(f"[WARN] {len(bad_credits)} course(s) excluded for non-positive credits: {sorted(bad_credits)}", file=sys.stderr)
    if bad_semesters:
        print(f"[WARN] {len(bad_semesters)} course(s) have an unrecognized semester: {sorted(bad_semesters)}", file=sys.stderr)
    if bad_years:
        print(f"[WARN] {len(bad_years)} course(s) have an unrecognized year tier: {sorted(bad_years)}", file=sys.stderr)
    if self_refs:
        print(f"[WARN] {len(self_refs)} course(s) listed themselves as a prerequisite (dropped): {sorted(self_refs)}", file=sys.stderr)
    if unparsed:
        print(f"[WARN] {len(unparsed)} course(s) have unparsable prerequisite tokens: {sorted(unparsed)}", file=sys.stderr)

    known = set(prereq_map)
    unknown = sorted({p for prereqs in prereq_map.values() for p in prereqs if p not in known})
    if unknown:
        print(f"[WARN] {len(unknown)} prerequisite code(s) not found in catalog: {unknown}", file=sys.stderr)

    return courses_df, prereq_map


def load_data(data_path: str) -> dict:
    """Load and parse the course catalog. Raises on file/schema errors."""
    raw_df = _read_courses_frame(data_path)
    courses_df, prereq_map = prepare_courses_df(raw_df)
    print(f"[INFO] Catalog source: {data_path}")
    return {
        "courses_df": courses_df,
        "catalog_codes": set(courses_df["course_code"].tolist()),
        "prereq_map": prereq_map,
    }
