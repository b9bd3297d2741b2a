import re

# Matches: CS101, cs 101, CS-101, MATH1201, ENGL 210A, etc.
CANONICAL = re.compile(r'^([A-Za-z]{2,6})\s*[-]?\s*(\d{3,4}[A-Za-z]?)$')
SEMESTER_RE = re.compile(r'^(?:semester|sem|term|t|s)?\s*[-_]?\s*([1-3])$', re.IGNORECASE)
YEAR_TIER_RE = re.compile(r'^(?:year|yr|y)?\s*[-_]?\s*([1-4])$', re.IGNORECASE)

GRADES = ("A", "B", "C", "D", "E", "F", "N/A")
_NA_ALIASES = {"N/A", "NA", "N.A.", "N-A"}


def normalize_code(raw: str) -> str | None:
    """
    Normalizes a course code to canonical 'DEPTNNN' format.
    Handles: 'cs101', 'CS-101', 'CS 101', 'MATH 1201', 'engl210a'
    Returns None if the string cannot be parsed as a course code.
    """
    if not raw or not str(raw).strip():
        return None
    m = CANONICAL.match(str(raw).strip())
    if m:
        dept = m.group(1).upper()
        num = m.group(2).upper()
        return f"{dept}{num}"
    return None


def normalize_grade(raw) -> str | None:
    """'b' → 'B', 'na' → 'N/A'. Returns None for anything outside A-F and N/A."""
    if raw is None:
        return None
    s = str(raw).strip().upper()
    if s in _NA_ALIASES:
        return "N/A"
    if s in GRADES:
        return s
    return None


def normalize_semester(raw) -> str | None:
    """'1', 'term-1', 'Sem 2', 'Semester 3' → 'Semester N'."""
    if raw is None or isinstance(raw, bool):
        return None
    m = SEMESTER_RE.match(str(raw).strip())
    if m:
        return f"Semester {m.group(1)}"
    return None


def semester_ordinal(label: str | None) -> int:
    """'Semester 2' → 2. Unknown labels sort after every real semester."""
    normalized = normalize_semester(label)
    if normalized is None:
        return 99
    return int(normalized.rsplit(" ", 1)[-1])


def normalize_year_tier(raw) -> int | None:
    """'Year 2', 'y2', 2, 2.0 → 2. Returns None outside 1-4."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        if raw != raw or not raw.is_integer():
            return None
        raw = int(raw)
    m = YEAR_TIER_RE.match(str(raw).strip())
    if m:
        return int(m.group(1))
    return None


def normalize_input(raw_str: str, catalog_codes: set) -> dict:
    """
    Splits comma/newline/semicolon-separated input and normalizes each code.

    Returns:
      {
        "valid":         ["CS101", "MATH110"],   # normalized + found in catalog
        "invalid":       ["asdfasdf"],           # failed regex
        "not_in_catalog": ["CS999"]              # valid format but unknown course
      }
    """
    if not raw_str or not raw_str.strip():
        return {"valid": [], "invalid": [], "not_in_catalog": []}

    tokens = re.split(r'[,\n;]+', raw_str)
    valid = []
    invalid = []
    not_in_catalog = []
    seen: set[str] = set()

    for token in tokens:
        token = token.strip()
        if not token:
            continue
        normalized = normalize_code(token)
        if normalized is None:
            if token not in seen:
                invalid.append(token)
                seen.add(token)
        elif normalized in seen:
            pass  # deduplicate silently
        elif normalized not in catalog_codes:
            not_in_catalog.append(normalized)
            seen.add(normalized)
        else:
            valid.append(normalized)
            seen.add(normalized)

    return {"valid": valid, "invalid": invalid, "not_in_catalog": not_in_catalog}
