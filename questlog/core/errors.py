# questlog/core/errors.py
"""
Typed errors raised by the report and quest lifecycle.

Every error is an expected, user-facing condition. Callers branch on the
class (or on ``kind`` once serialized), never on the message text.
"""
from datetime import date
from typing import Any, Dict, Optional


class LifecycleError(Exception):
    kind = "lifecycle-error"
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def extra(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"kind": self.kind, "detail": self.message, "errors": self.errors}
        body.update(self.extra())
        return body


class InputValidationError(LifecycleError):
    """Structurally invalid input. The caller re-prompts the user."""

    kind = "validation"
    status_code = 422


class DependencyError(LifecycleError):
    """A prerequisite record is missing (end-of-day without a daily report)."""

    kind = "dependency"
    status_code = 409


class AlreadySubmittedError(LifecycleError):
    kind = "already-submitted"
    status_code = 409


class AlreadyCompletedError(LifecycleError):
    kind = "already-completed"
    status_code = 409


class AlreadyAssignedError(LifecycleError):
    kind = "already-assigned"
    status_code = 409


class OutsideWindowError(LifecycleError):
    kind = "outside-window"
    status_code = 409

    def __init__(self, message: str, next_eligible: Optional[date] = None):
        super().__init__(message)
        self.next_eligible = next_eligible

    def extra(self) -> Dict[str, Any]:
        return {"next_eligible": self.next_eligible.isoformat() if self.next_eligible else None}


class IllegalTransitionError(LifecycleError):
    kind = "illegal-transition"
    status_code = 403

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot move task from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested

    def extra(self) -> Dict[str, Any]:
        return {"from": self.current, "to": self.requested}


class PermissionDeniedError(LifecycleError):
    kind = "permission-denied"
    status_code = 403


class NotFoundError(LifecycleError):
    kind = "not-found"
    status_code = 404


class InconsistentRecordError(LifecycleError):
    """A stored record violates an invariant (e.g. half-filled end-of-day fields)."""

    kind = "inconsistent-record"
    status_code = 500
