import re
import pandas as pd
from normalizer import normalize_code

# Prerequisite cells list every required course; all of them must be passed.
LIST_SPLIT = re.compile(r'\s*(?:[;,\n]|\band\b)\s*', re.IGNORECASE)

# Regex to strip parenthetical annotation clauses, e.g. "(Year 1)"
ANNOTATION_RE = re.compile(r'\s*\([^)]*\)')

NONE_VALUES = {"none", "none listed", "n/a", "nan", "-", ""}


def _strip_annotations(s: str) -> str:
    """Remove parenthetical annotation clauses, e.g. '(Year 1)'."""
    return ANNOTATION_RE.sub('', s).strip()


def parse_prereqs(prereq_str, course_code: str | None = None) -> dict:
    """
    Parses the prerequisites field of a catalog row.

    Supported grammar:
      none / none listed / blank   → {"courses": [], "unparsed": [], "self_reference": False}
      CODE                         → {"courses": ["CS101"], ...}
      CODE;CODE / CODE, CODE       → {"courses": ["CS101", "MATH110"], ...}
      CODE and CODE                → same as above

    Tokens are normalized via normalize_code() so 'cs-101' or 'CS 101' in the
    sheet still map to canonical 'CS101'. Duplicates are dropped while keeping
    first-seen order. A course listing itself is dropped and flagged through
    "self_reference". Tokens that are not course codes land in "unparsed".
    """
    result = {"courses": [], "unparsed": [], "self_reference": False}
    if prereq_str is None or (isinstance(prereq_str, float) and pd.isna(prereq_str)):
        return result

    if isinstance(prereq_str, (list, tuple, set)):
        raw_tokens = [str(t) for t in prereq_str]
    else:
        s = _strip_annotations(str(prereq_str).strip())
        if s.lower() in NONE_VALUES:
            return result
        raw_tokens = LIST_SPLIT.split(s)

    own_code = normalize_code(course_code) if course_code else None
    for tok in raw_tokens:
        tok = tok.strip()
        if not tok or tok.lower() in NONE_VALUES:
            continue
        code = normalize_code(tok)
        if code is None:
            result["unparsed"].append(tok)
        elif own_code is not None and code == own_code:
            result["self_reference"] = True
        elif code not in result["courses"]:
            result["courses"].append(code)
    return result


def unmet_prereqs(prereq_codes: list[str], satisfied_codes: set) -> list[str]:
    """Prerequisites not in satisfied_codes, in the order they were listed."""
    return [c for c in prereq_codes if c not in satisfied_codes]


def prereqs_satisfied(prereq_codes: list[str], satisfied_codes: set) -> bool:
    """
    Returns True if every listed prerequisite is in satisfied_codes.
    satisfied_codes = courses whose best attempt is passing.
    """
    return not unmet_prereqs(prereq_codes, satisfied_codes)


def build_prereq_check_string(prereq_codes: list[str], satisfied_codes: set) -> str:
    """
    Returns a human-readable string showing which prereqs are satisfied.
    Examples:
      "No prerequisites"
      "CS101 ✓"
      "CS101 ✓; MATH110 ✗"
    """
    if not prereq_codes:
        return "No prerequisites"
    return "; ".join(
        f"{code} ✓" if code in satisfied_codes else f"{code} ✗"
        for code in prereq_codes
    )
