"""
Typed service errors.

Services raise these; app.main turns them into the JSON error body
``{"success": false, "kind": ..., "message": ...}`` with a matching status code.
Clients classify failures by ``kind`` (and ``code`` where one is set)
instead of parsing message text.
"""
from typing import Any, Optional


ERROR_KINDS = ("validation", "conflict", "not_found", "unauthorized", "forbidden", "internal")


class BookingError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    kind: str = "internal"
    status_code: int = 500
    # Stable machine-readable reason, sent as "code" when set
    code: Optional[str] = None

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        details: Optional[list[Any]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details = details
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": False,
            "kind": self.kind,
            "message": self.message,
        }
        if self.code:
            body["code"] = self.code
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailed(BookingError):
    kind = "validation"
    status_code = 400


class ConflictError(BookingError):
    kind = "conflict"
    status_code = 409


class NotFoundError(BookingError):
    kind = "not_found"
    status_code = 404


class ForbiddenError(BookingError):
    kind = "forbidden"
    status_code = 403


class ConsignmentExhausted(ConflictError):
    """The caller has no assigned consignment pool, or every number in it is used."""

    code = "consignment_exhausted"


class UploadError(ValidationFailed):
    """An uploaded file was rejected or could not be stored."""


def kind_for_status(status_code: int) -> str:
    """Error kind for a plain HTTP status (HTTPException and friends)."""
    if status_code == 401:
        return "unauthorized"
    if status_code == 403:
        return "forbidden"
    if status_code == 404:
        return "not_found"
    if status_code == 409:
        return "conflict"
    if 400 <= status_code < 500:
        return "validation"
    return "internal"
