import sys
import os

import pandas as pd
import pytest

# Add backend/ to path so tests can import backend modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

# Add scripts/ to path so tests can import script modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))


@pytest.fixture
def courses_df():
    return pd.DataFrame([
        {"course_code": "CS101",   "course_name": "Intro Programming", "credits": 4, "semester": "Semester 1", "year_tier": 1, "prerequisites": ""},
        {"course_code": "MATH110", "course_name": "Calculus I",        "credits": 3, "semester": "Semester 1", "year_tier": 1, "prerequisites": ""},
        {"course_code": "ENG101",  "course_name": "Academic Writing",  "credits": 3, "semester": "Semester 2", "year_tier": 1, "prerequisites": "none"},
        {"course_code": "CS102",   "course_name": "Data Structures",   "credits": 4, "semester": "Semester 2", "year_tier": 1, "prerequisites": "CS101"},
        {"course_code": "CS201",   "course_name": "OOP",               "credits": 4, "semester": "Semester 1", "year_tier": 2, "prerequisites": "CS101"},
        {"course_code": "MATH210", "course_name": "Linear Algebra",    "credits": 3, "semester": "Semester 1", "year_tier": 2, "prerequisites": "MATH110"},
        {"course_code": "CS202",   "course_name": "Algorithms",        "credits": 4, "semester": "Semester 2", "year_tier": 2, "prerequisites": "CS102; MATH210"},
    ])


@pytest.fixture
def catalog(courses_df):
    from catalog import build_catalog
    from data_loader import prepare_courses_df

    df, prereq_map = prepare_courses_df(courses_df)
    return build_catalog(df, prereq_map)
