import json
import threading

import pytest
from errors import ConcurrentModification, DuplicateStudent, NotFound
from store import StudentStore, load_students_file


def _doc(student_id="S1", **extra):
    return {"student_id": student_id, "courses": [], **extra}


class TestStudentStore:
    def test_add_and_load(self):
        store = StudentStore()
        store.add_student(_doc("S1", first_name="Lin"))
        doc = store.load_student("S1")
        assert doc["first_name"] == "Lin"
        assert doc["version"] == 0

    def test_load_missing(self):
        with pytest.raises(NotFound) as exc_info:
            StudentStore().load_student("nobody")
        assert exc_info.value.kind == "student"

    def test_add_requires_id(self):
        with pytest.raises(ValueError):
            StudentStore().add_student({"courses": []})

    def test_add_existing_id_rejected(self):
        store = StudentStore(students=[_doc("S1", first_name="Lin")])
        with pytest.raises(DuplicateStudent) as exc_info:
            store.add_student(_doc("S1", first_name="Other"))
        assert exc_info.value.status == 409
        assert store.load_student("S1")["first_name"] == "Lin"

    def test_snapshots_are_private(self):
        store = StudentStore(students=[_doc("S1")])
        doc = store.load_student("S1")
        doc["courses"].append({"course_code": "CS101"})
        assert store.load_student("S1")["courses"] == []

    def test_save_bumps_version(self):
        store = StudentStore(students=[_doc("S1")])
        doc = store.load_student("S1")
        doc["program"] = "BSc"
        saved = store.save_student(doc, expected_version=0)
        assert saved["version"] == 1
        assert store.load_student("S1")["program"] == "BSc"

    def test_stale_save_rejected(self):
        store = StudentStore(students=[_doc("S1")])
        first = store.load_student("S1")
        second = store.load_student("S1")
        store.save_student(first, first["version"])

        second["program"] = "lost update"
        with pytest.raises(ConcurrentModification) as exc_info:
            store.save_student(second, second["version"])
        assert exc_info.value.expected_version == 0
        assert exc_info.value.actual_version == 1
        assert store.load_student("S1").get("program") is None

    def test_save_unknown_student(self):
        with pytest.raises(NotFound):
            StudentStore().save_student(_doc("S9"), 0)

    def test_list_students(self):
        store = StudentStore(students=[_doc("S1"), _doc("S2")])
        assert sorted(d["student_id"] for d in store.list_students()) == ["S1", "S2"]

    def test_only_one_concurrent_writer_wins(self):
        store = StudentStore(students=[_doc("S1")])
        snapshots = [store.load_student("S1") for _ in range(8)]
        outcomes = []

        def _write(doc):
            try:
                store.save_student(doc, doc["version"])
                outcomes.append("ok")
            except ConcurrentModification:
                outcomes.append("conflict")

        threads = [threading.Thread(target=_write, args=(s,)) for s in snapshots]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 7
        assert store.load_student("S1")["version"] == 1


class TestPersistence:
    def test_writes_through_to_file(self, tmp_path):
        path = tmp_path / "students.json"
        store = StudentStore(path=str(path))
        store.add_student(_doc("S1"))
        doc = store.load_student("S1")
        store.save_student(doc, 0)

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["students"][0]["student_id"] == "S1"
        assert payload["students"][0]["version"] == 1

    def test_reloads_from_file(self, tmp_path):
        path = tmp_path / "students.json"
        StudentStore(path=str(path)).add_student(_doc("S1", program="BSc"))
        reopened = StudentStore(path=str(path))
        assert reopened.load_student("S1")["program"] == "BSc"

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "students.json"
        StudentStore(path=str(path)).add_student(_doc("S1"))
        assert [p.name for p in tmp_path.iterdir()] == ["students.json"]

    def test_load_students_file_accepts_list(self, tmp_path):
        path = tmp_path / "students.json"
        path.write_text(json.dumps([_doc("S1")]), encoding="utf-8")
        assert load_students_file(str(path))[0]["student_id"] == "S1"

    def test_load_students_file_rejects_scalar(self, tmp_path):
        path = tmp_path / "students.json"
        path.write_text(json.dumps({"students": "nope"}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_students_file(str(path))
