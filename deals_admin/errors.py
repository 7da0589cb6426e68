"""Review workflow errors.

Every error carries a stable `code`, the HTTP status the API renders it with,
and a public `message`. Internals (SQL, driver errors) never go into these;
they are logged where the error is raised.
"""

from typing import Any


class ApprovalError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "APPROVAL_ERROR"
    status_code = 400

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class UnauthorizedError(ApprovalError):
    """No valid session, or the session lacks the admin role."""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Unauthorized", *, forbidden: bool = False) -> None:
        super().__init__(message)
        # Authenticated but not an admin.
        if forbidden:
            self.status_code = 403


class NotFoundError(ApprovalError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(
            f"{kind.capitalize()} not found",
            detail={"kind": kind, "id": entity_id},
        )


class ValidationFailedError(ApprovalError):
    """Payload failed validation; `detail.errors` maps field -> message."""

    code = "VALIDATION_FAILED"
    status_code = 400

    def __init__(self, errors: dict[str, str], message: str = "Validation failed") -> None:
        super().__init__(message, detail={"errors": errors})
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailedError":
        return cls({field: message}, message=message)


class InvalidTransitionError(ApprovalError):
    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, kind: str, entity_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move {kind} from {current} to {target}",
            detail={"kind": kind, "id": entity_id, "from": current, "to": target},
        )


class ConflictError(ApprovalError):
    """Catalog precondition failed (duplicate slug, entity still referenced)."""

    code = "CONFLICT"
    status_code = 409


class PersistenceFailedError(ApprovalError):
    """Store read/write failed. The public message is deliberately generic."""

    code = "PERSISTENCE_FAILED"
    status_code = 500

    def __init__(self, message: str = "Failed to save changes") -> None:
        super().__init__(message)
