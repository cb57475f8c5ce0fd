from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base class for expected business outcomes raised by the services.

    Every subclass carries a stable ``kind`` the HTTP layer maps to a status
    code. Message text is informational only.
    """

    kind = "ServiceError"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation failed."

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class LeaveError(ServiceError):
    kind = "LeaveError"
    default_message = "Leave operation failed."


class InvalidDate(LeaveError):
    kind = "InvalidDate"
    default_message = "Invalid dates provided."


class InvalidRange(LeaveError):
    kind = "InvalidRange"
    default_message = "End date cannot be before start date."


class InsufficientBalance(LeaveError):
    kind = "InsufficientBalance"
    default_message = "Insufficient leave balance for this request."

    def __init__(self, available: int, requested: int, message: Optional[str] = None):
        super().__init__(message, {"available": available, "requested": requested})
        self.available = available
        self.requested = requested


class OverlappingRequest(LeaveError):
    kind = "OverlappingRequest"
    default_message = "Overlapping leave dates. You already have a pending or approved leave in this period."


class LeaveRequestNotFound(LeaveError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Leave request not found."


class RequesterNotFound(LeaveError):
    kind = "RequesterNotFound"
    default_message = "User associated with this leave request no longer exists."


class AlreadyApproved(LeaveError):
    kind = "AlreadyApproved"
    default_message = "This leave request has already been approved."


class AlreadyRejected(LeaveError):
    kind = "AlreadyRejected"
    default_message = "Rejected leave requests cannot be approved."


class NotPending(LeaveError):
    kind = "NotPending"
    default_message = "Only pending leave requests can be rejected."


class NegativeBalance(LeaveError):
    kind = "NegativeBalance"
    default_message = "Approval would result in a negative leave balance."


class UserError(ServiceError):
    kind = "UserError"


class DuplicateEmail(UserError):
    kind = "DuplicateEmail"
    default_message = "A user with this email already exists."


class InvalidRole(UserError):
    kind = "InvalidRole"
    default_message = "Invalid role. Must be one of: ADMIN, MANAGER, STAFF."


def to_http_exception(error: ServiceError) -> HTTPException:
    detail: Dict[str, Any] = {"message": error.message, "kind": error.kind}
    if error.details:
        detail["details"] = error.details
    return HTTPException(status_code=error.status_code, detail=detail)
