from progress import build_progress_report, build_record_row


def _attempt(marks, grade, year=1):
    return {"marks": marks, "grade": grade, "year_taken": year, "semester_taken": "Semester 1"}


def _record(code, original, *retakes):
    return {
        "course_code": code,
        "original_attempt": _attempt(*original),
        "retake_attempts": [_attempt(m, g, 2) for m, g in retakes],
    }


def _student(*records):
    return {
        "student_id": "S300",
        "first_name": "Ada",
        "last_name": "Okafor",
        "program": "BSc Computer Science",
        "department": "Computing",
        "enrollment_year": 2023,
        "courses": list(records),
    }


class TestBuildRecordRow:
    def test_original_row(self, catalog):
        row = build_record_row(_record("CS101", (72, "B")), catalog)
        assert row["course_name"] == "Intro Programming"
        assert row["credits"] == 4
        assert row["best_grade"] == "B"
        assert row["display_marks"] == 72
        assert row["best_source"] == "original"
        assert row["status"] == "passed"
        assert row["retake_count"] == 0

    def test_retake_row_caps_marks(self, catalog):
        row = build_record_row(_record("CS102", (40, "F"), (68, "C")), catalog)
        assert row["display_marks"] == 50
        assert row["best_grade"] == "C"
        assert row["best_source"] == "retake"
        assert row["retake_count"] == 1
        assert row["retakes_exhausted"] is False

    def test_failed_exhausted_row(self, catalog):
        row = build_record_row(_record("MATH110", (30, "F"), (35, "F"), (38, "E")), catalog)
        assert row["status"] == "failed"
        assert row["retakes_exhausted"] is True
        assert row["best_grade"] == "E"

    def test_ungraded_row(self, catalog):
        row = build_record_row(_record("ENG101", (0, "N/A")), catalog)
        assert row["status"] == "ungraded"
        assert row["best_grade"] is None

    def test_unknown_course_row(self, catalog):
        row = build_record_row(_record("HIST100", (70, "B")), catalog)
        assert row["in_catalog"] is False
        assert row["credits"] is None


class TestBuildProgressReport:
    def test_groups_by_year_then_code(self, catalog):
        student = _student(
            _record("CS201", (60, "C")),
            _record("MATH110", (58, "C")),
            _record("CS101", (72, "B")),
        )
        report = build_progress_report(student, catalog)
        assert [y["year"] for y in report["years"]] == ["Year 1", "Year 2"]
        assert [r["course_code"] for r in report["years"][0]["courses"]] == ["CS101", "MATH110"]

    def test_unassigned_group_last(self, catalog):
        student = _student(_record("HIST100", (70, "B")), _record("CS101", (72, "B")))
        report = build_progress_report(student, catalog)
        assert [y["year"] for y in report["years"]] == ["Year 1", "Unassigned"]

    def test_summary_fields(self, catalog):
        student = _student(_record("CS101", (85, "A")), _record("MATH110", (58, "C")))
        report = build_progress_report(student, catalog)
        assert report["name"] == "Ada Okafor"
        assert report["gpa"] == "4.14"
        assert report["credits_counted"] == 7
        assert report["total_retakes"] == 0
        assert report["continuation_eligible"] is True
        assert report["retake_warning"] is None

    def test_gpa_ignores_stale_cache(self, catalog):
        student = _student(_record("CS101", (85, "A")))
        student["gpa"] = "1.0"
        assert build_progress_report(student, catalog)["gpa"] == "5.00"

    def test_retake_warning(self, catalog):
        student = _student(
            _record("CS101", (40, "F"), (45, "F"), (60, "C")),
            _record("MATH110", (30, "F"), (55, "D")),
        )
        report = build_progress_report(student, catalog)
        assert report["total_retakes"] == 3
        assert report["continuation_eligible"] is False
        assert report["retake_warning"] == (
            "Student has accumulated 3 retakes, reaching the limit of 3. "
            "The student is no longer eligible to continue."
        )

    def test_empty_student(self, catalog):
        report = build_progress_report({"student_id": "S0"}, catalog)
        assert report["years"] == []
        assert report["gpa"] == "0.00"
        assert report["name"] == ""
