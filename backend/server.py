import os
import sys
import time
import threading

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from catalog import build_catalog, credits_by_code, list_courses
from data_loader import load_data
from errors import EngineError
from gpa import compute_gpa, format_gpa
from normalizer import normalize_input
from records import (
    append_retake,
    assign_original_course,
    correct_original,
    delete_course_record,
    get_course_record,
    get_can_take,
    get_continuation_eligibility,
    get_gpa,
    get_progress_report,
    get_remaining_courses,
)
from eligibility import MAX_TOTAL_RETAKES, continuation_eligible, total_retakes
from store import StudentStore, load_students_file

load_dotenv()

app = Flask(__name__)

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
_DEFAULT_DATA_PATH = os.path.join(PROJECT_ROOT, "data", "courses.csv")
_DEFAULT_STUDENTS_SEED = os.path.join(PROJECT_ROOT, "data", "students.json")


def _resolve_path(raw: str | None) -> str | None:
    if not raw:
        return None
    if not os.path.isabs(raw):
        return os.path.join(PROJECT_ROOT, raw)
    return raw


DATA_PATH = _resolve_path(os.environ.get("DATA_PATH")) or _DEFAULT_DATA_PATH
STUDENTS_PATH = _resolve_path(os.environ.get("STUDENTS_PATH"))
_data_lock = threading.Lock()
_data_mtime = None


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


_SLOW_REQUEST_LOG_MS = _env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0)


def _data_file_mtime(path: str):
    try:
        if os.path.isdir(path):
            mtimes = [
                os.path.getmtime(os.path.join(path, f))
                for f in os.listdir(path)
                if f.endswith(".csv")
            ]
            return max(mtimes) if mtimes else None
        return os.path.getmtime(path)
    except OSError:
        return None


def _build_store() -> StudentStore:
    if STUDENTS_PATH:
        store = StudentStore(path=STUDENTS_PATH)
        print(f"[OK] Loaded {len(store.list_students())} students from {STUDENTS_PATH}")
        return store
    seed = load_students_file(_DEFAULT_STUDENTS_SEED) if os.path.exists(_DEFAULT_STUDENTS_SEED) else []
    print(f"[INFO] STUDENTS_PATH not set; using in-memory store seeded with {len(seed)} students.")
    return StudentStore(students=seed)


# ── Startup data load ──────────────────────────────────────────────────────────
try:
    _data = load_data(DATA_PATH)
    _data_mtime = _data_file_mtime(DATA_PATH)
    print(f"[OK] Loaded {len(_data['catalog_codes'])} courses from {DATA_PATH}")
except FileNotFoundError:
    # Fall back to the bundled catalog if DATA_PATH is stale.
    if DATA_PATH != _DEFAULT_DATA_PATH and os.path.exists(_DEFAULT_DATA_PATH):
        print(
            f"[WARN] DATA_PATH not found ({DATA_PATH}); "
            f"falling back to default catalog ({_DEFAULT_DATA_PATH}).",
            file=sys.stderr,
        )
        DATA_PATH = _DEFAULT_DATA_PATH
        _data = load_data(DATA_PATH)
        _data_mtime = _data_file_mtime(DATA_PATH)
        print(f"[OK] Loaded {len(_data['catalog_codes'])} courses from {DATA_PATH}")
    else:
        print(f"[FATAL] Catalog file not found: {DATA_PATH}", file=sys.stderr)
        sys.exit(1)
except Exception as exc:
    print(f"[FATAL] Failed to load catalog: {exc}", file=sys.stderr)
    sys.exit(1)

_catalog = build_catalog(_data["courses_df"], _data["prereq_map"])

try:
    _store = _build_store()
except (OSError, ValueError) as exc:
    print(f"[FATAL] Failed to load students: {exc}", file=sys.stderr)
    sys.exit(1)


def _reload_data_if_changed(force: bool = False) -> bool:
    """
    Hot-reload the course catalog when DATA_PATH changes on disk.

    Returns True when a reload occurred, else False.
    """
    global _data, _catalog, _data_mtime

    candidate_mtime = _data_file_mtime(DATA_PATH)
    if not force:
        if candidate_mtime is None:
            return False
        if _data_mtime is not None and candidate_mtime <= _data_mtime:
            return False

    with _data_lock:
        latest_mtime = _data_file_mtime(DATA_PATH)
        if not force:
            if latest_mtime is None:
                return False
            if _data_mtime is not None and latest_mtime <= _data_mtime:
                return False

        try:
            new_data = load_data(DATA_PATH)
            new_catalog = build_catalog(new_data["courses_df"], new_data["prereq_map"])
        except Exception as exc:
            print(f"[WARN] Catalog reload failed; keeping previous catalog: {exc}", file=sys.stderr)
            return False

        _data = new_data
        _catalog = new_catalog
        _data_mtime = latest_mtime if latest_mtime is not None else candidate_mtime
        print(f"[OK] Reloaded {len(new_data['catalog_codes'])} courses from {DATA_PATH}")
        return True


def _refresh_data_if_needed() -> None:
    try:
        _reload_data_if_changed()
    except Exception as exc:
        print(f"[WARN] Catalog reload check failed: {exc}", file=sys.stderr)


# -- Request timing / security headers -------------------------------------
@app.before_request
def _start_request_timer():
    g._request_start_time = time.perf_counter()


@app.after_request
def _add_security_headers(response):
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "same-origin"

    started = getattr(g, "_request_start_time", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms >= _SLOW_REQUEST_LOG_MS:
            endpoint = request.endpoint or "unknown"
            print(
                f"[SLOW] {request.method} {request.path} "
                f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
            )
    return response


# ── Error handlers ─────────────────────────────────────────────────────────────
def _error_response(error_code: str, message: str, status: int):
    return jsonify({
        "mode": "error",
        "error": {
            "error_code": error_code,
            "message": message,
        },
    }), status


@app.errorhandler(EngineError)
def handle_engine_error(e):
    return jsonify(e.to_dict()), e.status


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return _error_response(e.name.upper().replace(" ", "_"), e.description, e.code)
    print(f"[ERROR] Unhandled {type(e).__name__} on {request.method} {request.path}: {e}", file=sys.stderr)
    return _error_response("SERVER_ERROR", "An unexpected server error occurred.", 500)


def _json_body():
    """Returns (body, None) or (None, error_response)."""
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        return None, _error_response("INVALID_INPUT", "Request body must be a JSON object.", 400)
    return body, None


def _attempt_from_body(body: dict) -> dict:
    attempt = body.get("attempt")
    if attempt is None:
        attempt = {k: v for k, v in body.items() if k not in ("course_code", "courseId")}
    return attempt


def _current_gpa(student: dict) -> str:
    return format_gpa(compute_gpa(student.get("courses") or [], credits_by_code(_catalog)))


def _student_summary(student: dict) -> dict:
    return {
        "student_id": student["student_id"],
        "first_name": student.get("first_name"),
        "last_name": student.get("last_name"),
        "department": student.get("department"),
        "program": student.get("program"),
        "gpa": _current_gpa(student),
    }


def _gpa_payload(student_id: str) -> dict:
    value = get_gpa(_store, _catalog, student_id)
    return {"gpa": format_gpa(value), "gpa_exact": str(value)}


# -- Health endpoint --------------------------------------------------------
@app.route("/health", methods=["GET"])
def health_endpoint():
    return jsonify({
        "status": "ok",
        "version": "1.0.0",
        "courses": len(_catalog["catalog_codes"]),
    })


# ── Routes ─────────────────────────────────────────────────────────────────────
@app.route("/api/courses", methods=["GET"])
def get_courses():
    _refresh_data_if_needed()
    return jsonify({"courses": list_courses(_catalog)})


@app.route("/api/students", methods=["GET"])
def get_students():
    _refresh_data_if_needed()
    students = sorted(_store.list_students(), key=lambda s: str(s["student_id"]))
    return jsonify({"students": [_student_summary(s) for s in students]})


STUDENT_FIELDS = ("first_name", "last_name", "department", "program", "enrollment_year")


@app.route("/api/students", methods=["POST"])
def create_student():
    """Enroll a student with no course records."""
    body, error = _json_body()
    if error:
        return error
    student_id = str(body.get("student_id") or body.get("studentId") or "").strip()
    if not student_id:
        return _error_response("INVALID_INPUT", "student_id is required.", 400)

    doc = {"student_id": student_id, "courses": [], "gpa": "0"}
    doc.update({field: body.get(field) for field in STUDENT_FIELDS})
    student = _store.add_student(doc)
    print(f"[AUDIT] enroll student={student_id} version={student['version']}")
    return jsonify({"student": _student_summary(student)}), 201


@app.route("/api/students/<student_id>", methods=["GET"])
def get_student(student_id):
    _refresh_data_if_needed()
    student = _store.load_student(student_id)
    payload = dict(student)
    payload["gpa"] = _current_gpa(student)
    payload["total_retakes"] = total_retakes(student)
    payload["continuation_eligible"] = continuation_eligible(student)
    return jsonify({"student": payload})


@app.route("/api/students/<student_id>/courses", methods=["POST"])
def assign_course_endpoint(student_id):
    """Assign a course with its original attempt."""
    _refresh_data_if_needed()
    body, error = _json_body()
    if error:
        return error
    course_code = str(body.get("course_code") or body.get("courseId") or "").strip()
    if not course_code:
        return _error_response("INVALID_INPUT", "course_code is required.", 400)

    record = assign_original_course(_store, _catalog, student_id, course_code, _attempt_from_body(body))
    return jsonify({"record": record, **_gpa_payload(student_id)}), 201


@app.route("/api/students/<student_id>/courses/<course_code>/retakes", methods=["POST"])
def append_retake_endpoint(student_id, course_code):
    _refresh_data_if_needed()
    body, error = _json_body()
    if error:
        return error
    record = append_retake(_store, _catalog, student_id, course_code, _attempt_from_body(body))
    return jsonify({"record": record, **_gpa_payload(student_id)}), 201


@app.route("/api/students/<student_id>/courses/<course_code>", methods=["PATCH", "PUT"])
def correct_original_endpoint(student_id, course_code):
    """Correct the original attempt's marks, grade, year or semester."""
    _refresh_data_if_needed()
    body, error = _json_body()
    if error:
        return error
    record = correct_original(_store, _catalog, student_id, course_code, _attempt_from_body(body))
    return jsonify({"record": record, **_gpa_payload(student_id)})


@app.route("/api/students/<student_id>/courses/<course_code>", methods=["DELETE"])
def delete_course_endpoint(student_id, course_code):
    _refresh_data_if_needed()
    delete_course_record(_store, _catalog, student_id, course_code)
    return jsonify({"deleted": course_code, **_gpa_payload(student_id)})


@app.route("/api/students/<student_id>/courses/<course_code>", methods=["GET"])
def get_course_record_endpoint(student_id, course_code):
    record = get_course_record(_store, student_id, course_code)
    return jsonify({"record": record})


@app.route("/api/students/<student_id>/gpa", methods=["GET"])
def gpa_endpoint(student_id):
    _refresh_data_if_needed()
    return jsonify({"student_id": student_id, **_gpa_payload(student_id)})


@app.route("/api/students/<student_id>/remaining-courses", methods=["GET"])
def remaining_courses_endpoint(student_id):
    _refresh_data_if_needed()
    courses = get_remaining_courses(_store, _catalog, student_id)
    return jsonify({"student_id": student_id, "courses": courses})


@app.route("/api/students/<student_id>/eligibility", methods=["GET"])
def eligibility_endpoint(student_id):
    eligible = get_continuation_eligibility(_store, student_id)
    student = _store.load_student(student_id)
    return jsonify({
        "student_id": student_id,
        "continuation_eligible": eligible,
        "total_retakes": total_retakes(student),
        "retake_limit": MAX_TOTAL_RETAKES,
    })


@app.route("/api/students/<student_id>/progress", methods=["GET"])
def progress_endpoint(student_id):
    """Progress view / transcript data: grouped records, GPA and eligibility."""
    _refresh_data_if_needed()
    return jsonify(get_progress_report(_store, _catalog, student_id))


@app.route("/api/can-take", methods=["POST"])
def can_take_endpoint():
    """Standalone check for a single course. Does not modify the student."""
    _refresh_data_if_needed()
    body, error = _json_body()
    if error:
        return jsonify({"mode": "can_take", "error": "Invalid JSON body."}), 400

    student_id = str(body.get("student_id") or "").strip()
    requested_course_raw = str(body.get("requested_course") or "").strip()
    if not student_id or not requested_course_raw:
        return jsonify({"mode": "can_take", "error": "student_id and requested_course are required."}), 400

    parsed = normalize_input(requested_course_raw, _catalog["catalog_codes"])
    codes = parsed["valid"] + parsed["not_in_catalog"]
    if parsed["invalid"] or len(codes) != 1:
        return jsonify({
            "mode": "can_take",
            "error": f"'{requested_course_raw}' is not a single valid course code.",
        }), 400

    result = get_can_take(_store, _catalog, student_id, codes[0])
    return jsonify({"mode": "can_take", "student_id": student_id, **result})


app.add_url_rule("/api/health", endpoint="api_health", view_func=health_endpoint, methods=["GET"])


# -- API catch-all (404 for unknown /api/* routes) -------------------
@app.route("/api/<path:rest>", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
def api_catch_all(rest):
    return jsonify({"error": f"/api/{rest} not found"}), 404


if __name__ == "__main__":
    port = _env_int("PORT", 5000)
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
