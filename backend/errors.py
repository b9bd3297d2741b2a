"""
Typed rejections raised by the progress engine.

Every error carries the context a caller needs to build an actionable
message (course code, missing prerequisite, retake count, versions) and
serializes to the same {"mode": "error", "error": {...}} envelope the HTTP
layer returns for every other failure.
"""


class EngineError(Exception):
    error_code = "ENGINE_ERROR"
    status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def context(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        payload = {"error_code": self.error_code, "message": self.message}
        payload.update(self.context())
        return {"mode": "error", "error": payload}


class NotFound(EngineError):
    error_code = "NOT_FOUND"
    status = 404

    def __init__(self, kind: str, key: str, message: str | None = None):
        self.kind = kind
        self.key = key
        super().__init__(message or f"{kind.capitalize()} {key!r} not found.")

    def context(self) -> dict:
        return {"kind": self.kind, "key": self.key}


class NoOriginalRecord(NotFound):
    error_code = "NO_ORIGINAL_RECORD"

    def __init__(self, student_id: str, course_code: str):
        self.student_id = student_id
        self.course_code = course_code
        super().__init__(
            "course_record",
            course_code,
            f"Student {student_id} has no record for {course_code}; "
            "assign the course before recording a retake or correction.",
        )

    def context(self) -> dict:
        return {"student_id": self.student_id, "course_code": self.course_code}


class DuplicateAssignment(EngineError):
    error_code = "DUPLICATE_ASSIGNMENT"
    status = 409

    def __init__(self, student_id: str, course_code: str):
        self.student_id = student_id
        self.course_code = course_code
        super().__init__(
            f"{course_code} is already assigned to student {student_id}; "
            "record a retake or correct the original attempt instead."
        )

    def context(self) -> dict:
        return {"student_id": self.student_id, "course_code": self.course_code}


class PrerequisiteNotMet(EngineError):
    error_code = "PREREQUISITE_NOT_MET"
    status = 422

    def __init__(self, course_code: str, missing_prereq: str):
        self.course_code = course_code
        self.missing_prereq = missing_prereq
        super().__init__(
            f"Prerequisite {missing_prereq} has not been passed; "
            f"{course_code} cannot be assigned."
        )

    def context(self) -> dict:
        return {"course_code": self.course_code, "missing_prereq": self.missing_prereq}


class RetakeLimitExceeded(EngineError):
    error_code = "RETAKE_LIMIT_EXCEEDED"
    status = 422

    def __init__(self, course_code: str, retake_count: int, limit: int):
        self.course_code = course_code
        self.retake_count = retake_count
        self.limit = limit
        super().__init__(
            f"{course_code} already has {retake_count} retake attempt(s); "
            f"the limit is {limit}."
        )

    def context(self) -> dict:
        return {
            "course_code": self.course_code,
            "retake_count": self.retake_count,
            "limit": self.limit,
        }


class InvalidAttemptData(EngineError):
    error_code = "INVALID_ATTEMPT_DATA"
    status = 400

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)

    def context(self) -> dict:
        return {"field": self.field}


class ConcurrentModification(EngineError):
    error_code = "CONCURRENT_MODIFICATION"
    status = 409

    def __init__(self, student_id: str, expected_version: int, actual_version: int):
        self.student_id = student_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Student {student_id} changed while this update was in flight "
            f"(expected version {expected_version}, found {actual_version}); "
            "reload and resubmit."
        )

    def context(self) -> dict:
        return {
            "student_id": self.student_id,
            "expected_version": self.expected_version,
            "actual_version": self.actual_version,
        }


class DuplicateStudent(EngineError):
    error_code = "DUPLICATE_STUDENT"
    status = 409

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Student {student_id} already exists.")

    def context(self) -> dict:
        return {"student_id": self.student_id}
