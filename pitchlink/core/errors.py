"""
Business outcomes raised by the relationship & messaging services.

Services raise these; the exception handler registered in main.py renders
them as JSON with the matching HTTP status. StateError additionally carries a
machine-readable flag (``blocked``, ``inactive``, ``requestPending``,
``requestRejected``) that clients branch on.
"""
from typing import Any, Dict


class PitchlinkError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(PitchlinkError):
    """Malformed or missing input."""

    status_code = 400


class AuthorizationError(PitchlinkError):
    """Actor is not a participant, or the action targets the actor."""

    status_code = 403


class NotFoundError(PitchlinkError):
    status_code = 404


class ConflictError(PitchlinkError):
    """Duplicate block/connection/interest or repeated acceptance."""

    status_code = 409


class StateError(PitchlinkError):
    status_code = 403

    def __init__(self, message: str, flag: str):
        super().__init__(message)
        self.flag = flag

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, self.flag: True}


class UpstreamError(PitchlinkError):
    """Attachment storage, push or summary backend failed."""

    status_code = 502


BLOCKED = "blocked"
INACTIVE = "inactive"
REQUEST_PENDING = "requestPending"
REQUEST_REJECTED = "requestRejected"
