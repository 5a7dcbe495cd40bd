"""Domain errors raised by the services and mapped to HTTP responses in main.py.

Every error carries the HTTP status it is reported with and a JSON-safe
payload, so routers never translate them by hand.
"""
from typing import Any, Optional


class ECMError(Exception):
    """Base class for every contract violation reported by the core."""

    status_code = 500
    error = "error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "error": self.error, **self.extra}


class ValidationError(ECMError):
    """Malformed or inconsistent input."""

    status_code = 400
    error = "validation_error"

    def __init__(self, message: str, errors: Optional[list[Any]] = None):
        super().__init__(message, errors=errors or [])
        self.errors = errors or []


class NotFound(ECMError):
    status_code = 404
    error = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", entity=entity, entity_id=str(entity_id))


class PermissionDenied(ECMError):
    status_code = 403
    error = "permission_denied"


class InvalidTransition(ECMError):
    """Raised when a workflow edge is not permitted from the current state."""

    status_code = 409
    error = "invalid_transition"

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        current_status: str,
        attempted_status: str,
        reason: Optional[str] = None,
    ):
        msg = f"Cannot move {entity_type} {entity_id} from '{current_status}' to '{attempted_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(
            msg,
            entity_type=entity_type,
            entity_id=str(entity_id),
            current_status=current_status,
            attempted_status=attempted_status,
            reason=reason,
        )
        self.entity_type = entity_type
        self.current_status = current_status
        self.attempted_status = attempted_status
        self.reason = reason


class DuplicateApproval(ECMError):
    status_code = 409
    error = "duplicate_approval"


class AlreadyResolved(ECMError):
    status_code = 409
    error = "already_resolved"

    def __init__(self, approval_id: Any, current_status: str):
        super().__init__(
            f"Approval {approval_id} is already {current_status}",
            approval_id=str(approval_id),
            current_status=current_status,
        )
        self.current_status = current_status


class AllocationConflict(ECMError):
    """Numbering contention outlasted the bounded retries; retry the whole request."""

    status_code = 503
    error = "allocation_conflict"


class PersistenceFailure(ECMError):
    status_code = 500
    error = "persistence_failure"
