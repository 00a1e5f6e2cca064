"""
Administrative error taxonomy.

Every failure that reaches an operator carries a machine-checkable ``kind``, an HTTP-style ``status`` and a stable,
human-readable ``description``. The service layer raises these exceptions and the API layer translates them into
``{"error": kind, "error_description": description}`` bodies without inspecting anything else.

The coded prefixes (``error-admin-1xxx``) are stable across releases so that operators can grep logs for them.
"""

from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError


class AdminException(Exception):
    """Base class for failures surfaced to the administration API caller."""

    kind: str = "internal_error"
    status: int = 500

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description

    def to_dict(self) -> dict:
        return {"error": self.kind, "error_description": self.description}


class ValidationError(AdminException):
    """The request is malformed or is missing a required field. Nothing was applied."""

    kind = "validation_error"
    status = 400

    @staticmethod
    def invalid_json() -> "ValidationError":
        return ValidationError("error-admin-1000 Request body is not valid JSON")

    @staticmethod
    def invalid_fields(problems: Iterable[str]) -> "ValidationError":
        return ValidationError(
            "error-admin-1001 Invalid request: " + "; ".join(problems)
        )

    @staticmethod
    def immutable_field(field: str) -> "ValidationError":
        return ValidationError(
            f"error-admin-1002 Field {field} is immutable and cannot be changed"
        )

    @staticmethod
    def missing_identifier(field: str) -> "ValidationError":
        return ValidationError(f"error-admin-1003 Missing {field}")


class AuthorizationError(AdminException):
    """The anti-forgery token is missing or does not match the operator session."""

    kind = "forbidden"
    status = 403

    @staticmethod
    def csrf_token_missing() -> "AuthorizationError":
        return AuthorizationError("error-admin-1100 Anti-forgery token missing")

    @staticmethod
    def csrf_token_invalid() -> "AuthorizationError":
        return AuthorizationError("error-admin-1101 Anti-forgery token invalid")


class NotFound(AdminException):
    """The operation targets an identifier that does not exist."""

    kind = "not_found"
    status = 404

    @staticmethod
    def record(record_type: str, key: str) -> "NotFound":
        return NotFound(f"error-admin-1200 {record_type} {key} does not exist")

    @staticmethod
    def route(path: str) -> "NotFound":
        return NotFound(f"error-admin-1201 No route matches {path}")


class MethodNotAllowed(AdminException):
    """The route exists but does not accept the request method."""

    kind = "method_not_allowed"
    status = 405

    @staticmethod
    def method(method: str, path: str) -> "MethodNotAllowed":
        return MethodNotAllowed(f"error-admin-1202 {method} is not allowed on {path}")


class ConflictError(AdminException):
    """A uniqueness constraint rejected the write. Retry with a different value."""

    kind = "conflict"
    status = 409

    @staticmethod
    def duplicate(record_type: str, field: Optional[str] = None) -> "ConflictError":
        if field is None:
            return ConflictError(
                f"error-admin-1300 {record_type} violates a uniqueness constraint"
            )
        return ConflictError(f"error-admin-1301 {record_type} {field} is already taken")


class InternalError(AdminException):
    """An unexpected failure. The description never includes store internals."""

    kind = "internal_error"
    status = 500

    @staticmethod
    def unexpected() -> "InternalError":
        return InternalError("error-admin-1999 An internal server error occurred")


def from_pydantic(e: PydanticValidationError) -> ValidationError:
    """Collapse a pydantic validation failure into a single ValidationError naming each bad field."""
    problems = []
    for error in e.errors(include_url=False):
        if error.get("type") == "json_invalid":
            return ValidationError.invalid_json()
        location = ".".join(str(part) for part in error.get("loc", ())) or "body"
        problems.append(f"{location}: {error.get('msg', 'invalid')}")
    return ValidationError.invalid_fields(problems)
