import copy
import json
import os
import tempfile
import threading

from errors import ConcurrentModification, DuplicateStudent, NotFound


class StudentStore:
    """
    Thread-safe student document store keyed by student_id.

    Documents are deep-copied on the way in and out, so callers always work
    on a private snapshot. save_student() is a compare-and-swap on the
    document's integer "version": the write only lands if the stored version
    still equals expected_version, after which the version is bumped.

    When `path` is given, the store loads from and writes through to a JSON
    file ({"students": [...]}) using an atomic replace.
    """

    def __init__(self, path: str | None = None, students: list[dict] | None = None):
        self.path = path
        self._lock = threading.Lock()
        self._docs: dict[str, dict] = {}
        if path and os.path.exists(path):
            for doc in load_students_file(path):
                self._put(doc)
        for doc in students or []:
            self._put(doc)

    def _put(self, doc: dict) -> None:
        doc = copy.deepcopy(doc)
        doc.setdefault("courses", [])
        doc["version"] = int(doc.get("version") or 0)
        self._docs[str(doc["student_id"])] = doc

    def add_student(self, doc: dict) -> dict:
        """Insert a new student document at version 0. Existing ids are rejected."""
        if not doc.get("student_id"):
            raise ValueError("student document requires a student_id")
        with self._lock:
            if str(doc["student_id"]) in self._docs:
                raise DuplicateStudent(str(doc["student_id"]))
            doc = {**doc, "version": 0}
            self._put(doc)
            self._flush()
            return copy.deepcopy(self._docs[str(doc["student_id"])])

    def load_student(self, student_id: str) -> dict:
        with self._lock:
            doc = self._docs.get(str(student_id))
            if doc is None:
                raise NotFound("student", str(student_id))
            return copy.deepcopy(doc)

    def list_students(self) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._docs.values()]

    def save_student(self, doc: dict, expected_version: int) -> dict:
        """Persist doc if nobody saved since expected_version. Returns the stored copy."""
        student_id = str(doc["student_id"])
        with self._lock:
            current = self._docs.get(student_id)
            if current is None:
                raise NotFound("student", student_id)
            if current["version"] != expected_version:
                raise ConcurrentModification(student_id, expected_version, current["version"])
            stored = copy.deepcopy(doc)
            stored["version"] = expected_version + 1
            self._docs[student_id] = stored
            self._flush()
            return copy.deepcopy(stored)

    def _flush(self) -> None:
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump({"students": list(self._docs.values())}, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


def load_students_file(path: str) -> list[dict]:
    """Read student documents from a JSON file holding a list or {"students": [...]}."""
    with open(path, encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        payload = payload.get("students", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a list of student documents")
    return payload
