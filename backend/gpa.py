from decimal import Decimal, ROUND_HALF_UP

from attempts import best_attempt, grade_point

_DISPLAY_QUANTUM = Decimal("0.01")


def compute_gpa(course_records: list[dict], credits_by_code: dict[str, int]) -> Decimal:
    """
    Credit-weighted mean grade point over every record's best attempt.

    Records without a graded attempt, or whose course is not in
    credits_by_code, are skipped. Returns Decimal(0) when nothing counts.
    Full precision is kept; use format_gpa() for display.
    """
    points = 0
    credits = 0
    for record in course_records:
        course_credits = credits_by_code.get(record.get("course_code"))
        if not course_credits:
            continue
        attempt = best_attempt(record)
        if attempt is None:
            continue
        points += grade_point(attempt["grade"]) * course_credits
        credits += course_credits
    if credits == 0:
        return Decimal(0)
    return Decimal(points) / Decimal(credits)


def counted_credits(course_records: list[dict], credits_by_code: dict[str, int]) -> int:
    """Credits that contribute to the GPA denominator."""
    return sum(
        credits_by_code[record["course_code"]]
        for record in course_records
        if credits_by_code.get(record.get("course_code")) and best_attempt(record) is not None
    )


def format_gpa(value) -> str:
    """Two-decimal display string, rounded half-up: Decimal('3.666…') → '3.67'."""
    return str(Decimal(value).quantize(_DISPLAY_QUANTUM, rounding=ROUND_HALF_UP))
