"""Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to, a user-facing message and an
optional machine readable ``reason`` so callers can explain *why* a request
was rejected.
"""
from typing import Any, Optional


class ProofPassError(Exception):
    status_code = 500
    reason = "error"

    def __init__(self, message: str, reason: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        if reason:
            self.reason = reason
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "reason": self.reason, **self.details}


class NotFound(ProofPassError):
    status_code = 404
    reason = "not_found"


class FailedPrecondition(ProofPassError):
    status_code = 400
    reason = "failed_precondition"


class Unauthorized(ProofPassError):
    status_code = 401
    reason = "unauthorized"


class Forbidden(ProofPassError):
    status_code = 403
    reason = "forbidden"


class Internal(ProofPassError):
    """Collaborator failure. ``public_message`` is what the caller sees."""

    status_code = 500
    reason = "internal"
    public_message = "Something went wrong while issuing the badge. Please try again."

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.public_message, "reason": self.reason}


class FailedDependency(Internal):
    status_code = 424
    reason = "transfer_failed"
    public_message = (
        "The badge could not be delivered to your wallet. "
        "Make sure the wallet can receive the badge token and try again."
    )
