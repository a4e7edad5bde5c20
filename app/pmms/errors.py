from __future__ import annotations


class PMMSError(Exception):
    """Base class for errors the API surfaces to callers."""

    status_code = 500
    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(PMMSError):
    status_code = 400
    code = "validation_error"

    def __init__(self, errors: dict[str, str], message: str = "Validation failed.") -> None:
        super().__init__(message)
        self.errors = dict(errors)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["errors"] = self.errors
        return d


class NotFoundError(PMMSError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found.")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateError(PMMSError):
    status_code = 409
    code = "duplicate"

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"A record with {field} {value!r} already exists.")
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["field"] = self.field
        return d


class ConflictError(PMMSError):
    status_code = 409
    code = "conflict"


class TransitionError(PMMSError):
    status_code = 409
    code = "invalid_transition"


class PermissionDeniedError(PMMSError):
    status_code = 403
    code = "forbidden"

    def __init__(self, permission: str) -> None:
        super().__init__(f"Missing permission: {permission}")
        self.permission = permission
