import pytest
from normalizer import (
    normalize_code,
    normalize_grade,
    normalize_input,
    normalize_semester,
    normalize_year_tier,
    semester_ordinal,
)


class TestNormalizeCode:
    def test_canonical(self):
        assert normalize_code("CS101") == "CS101"

    def test_lowercase(self):
        assert normalize_code("cs101") == "CS101"

    def test_hyphen(self):
        assert normalize_code("CS-101") == "CS101"

    def test_space(self):
        assert normalize_code("MATH 110") == "MATH110"

    def test_spaces_around_hyphen(self):
        assert normalize_code("CS - 201") == "CS201"

    def test_four_digits_with_suffix(self):
        assert normalize_code("engl 2101a") == "ENGL2101A"

    def test_invalid_no_digits(self):
        assert normalize_code("CS") is None

    def test_invalid_garbage(self):
        assert normalize_code("asdfasdf") is None

    def test_invalid_empty(self):
        assert normalize_code("") is None

    def test_invalid_none(self):
        assert normalize_code(None) is None


class TestNormalizeGrade:
    @pytest.mark.parametrize("raw,expected", [
        ("A", "A"), ("b", "B"), (" f ", "F"), ("E", "E"),
        ("N/A", "N/A"), ("na", "N/A"), ("n/a", "N/A"),
    ])
    def test_recognized(self, raw, expected):
        assert normalize_grade(raw) == expected

    @pytest.mark.parametrize("raw", ["A+", "G", "", None, "pass"])
    def test_unrecognized(self, raw):
        assert normalize_grade(raw) is None


class TestNormalizeSemester:
    @pytest.mark.parametrize("raw", ["Semester 2", "semester 2", "2", "term-2", "Sem 2", "S2", 2])
    def test_variants(self, raw):
        assert normalize_semester(raw) == "Semester 2"

    @pytest.mark.parametrize("raw", ["Semester 4", "Fall", "", None, True])
    def test_unrecognized(self, raw):
        assert normalize_semester(raw) is None

    def test_ordinal(self):
        assert semester_ordinal("Semester 3") == 3
        assert semester_ordinal("term-1") == 1

    def test_unknown_ordinal_sorts_last(self):
        assert semester_ordinal("Fall") > semester_ordinal("Semester 3")


class TestNormalizeYearTier:
    @pytest.mark.parametrize("raw,expected", [
        ("Year 1", 1), ("year 4", 4), ("Y2", 2), (3, 3), (3.0, 3), ("2", 2),
    ])
    def test_variants(self, raw, expected):
        assert normalize_year_tier(raw) == expected

    @pytest.mark.parametrize("raw", ["Year 5", 0, 2.5, float("nan"), None, "senior"])
    def test_unrecognized(self, raw):
        assert normalize_year_tier(raw) is None


class TestNormalizeInput:
    CATALOG = {"CS101", "CS201", "MATH110"}

    def test_comma_separated(self):
        result = normalize_input("CS101, MATH110", self.CATALOG)
        assert set(result["valid"]) == {"CS101", "MATH110"}
        assert result["invalid"] == []
        assert result["not_in_catalog"] == []

    def test_messy_codes(self):
        result = normalize_input("cs-101; math 110", self.CATALOG)
        assert result["valid"] == ["CS101", "MATH110"]

    def test_invalid_code(self):
        result = normalize_input("asdfasdf, CS101", self.CATALOG)
        assert "asdfasdf" in result["invalid"]
        assert "CS101" in result["valid"]

    def test_not_in_catalog(self):
        result = normalize_input("CS999", self.CATALOG)
        assert result["not_in_catalog"] == ["CS999"]
        assert result["valid"] == []

    def test_deduplication(self):
        result = normalize_input("CS101, cs101, CS-101", self.CATALOG)
        assert result["valid"].count("CS101") == 1

    def test_empty_input(self):
        assert normalize_input("", self.CATALOG) == {"valid": [], "invalid": [], "not_in_catalog": []}

    def test_none_input(self):
        assert normalize_input(None, self.CATALOG) == {"valid": [], "invalid": [], "not_in_catalog": []}
