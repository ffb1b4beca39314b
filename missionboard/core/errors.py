"""Error classification: transition rejections and service exceptions to structured responses."""

from enum import Enum

from pydantic import BaseModel

from missionboard.core.config import Constants
from missionboard.domain.mission import MissionError, MissionErrorKind


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Mission errors
    ERR_MISSION_NOT_FOUND = "ERR_MISSION_NOT_FOUND"
    ERR_NOT_OWNER = "ERR_NOT_OWNER"
    ERR_NOT_AUTHORIZED = "ERR_NOT_AUTHORIZED"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_DUPLICATE_MISSION = "ERR_DUPLICATE_MISSION"
    ERR_QUOTA_EXCEEDED = "ERR_QUOTA_EXCEEDED"
    ERR_NOT_ASSIGNED_WORKER = "ERR_NOT_ASSIGNED_WORKER"
    ERR_TOO_EARLY_TO_START = "ERR_TOO_EARLY_TO_START"

    # Generic errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_STORAGE = "ERR_STORAGE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_MISSION_ERRORS: dict[MissionErrorKind, tuple[str, str, ErrorSeverity]] = {
    MissionErrorKind.NOT_FOUND: (
        ErrorCode.ERR_MISSION_NOT_FOUND,
        "Refresh the mission list; it may have been deleted.",
        ErrorSeverity.LOW,
    ),
    MissionErrorKind.NOT_OWNER: (
        ErrorCode.ERR_NOT_OWNER,
        "Only the conciergerie that posted the mission can do this.",
        ErrorSeverity.MEDIUM,
    ),
    MissionErrorKind.NOT_AUTHORIZED: (
        ErrorCode.ERR_NOT_AUTHORIZED,
        "Ask the conciergerie to approve your account or add you to the mission.",
        ErrorSeverity.MEDIUM,
    ),
    MissionErrorKind.INVALID_TRANSITION: (
        ErrorCode.ERR_INVALID_STATE_TRANSITION,
        "Refresh the mission to see its current status.",
        ErrorSeverity.LOW,
    ),
    MissionErrorKind.DUPLICATE_MISSION: (
        ErrorCode.ERR_DUPLICATE_MISSION,
        "Change the tasks or dates, or edit the existing mission instead.",
        ErrorSeverity.LOW,
    ),
    MissionErrorKind.QUOTA_EXCEEDED: (
        ErrorCode.ERR_QUOTA_EXCEEDED,
        "Finish or release another mission on the listed days first.",
        ErrorSeverity.LOW,
    ),
    MissionErrorKind.NOT_ASSIGNED_WORKER: (
        ErrorCode.ERR_NOT_ASSIGNED_WORKER,
        "Only the worker who accepted the mission can do this.",
        ErrorSeverity.MEDIUM,
    ),
    MissionErrorKind.TOO_EARLY_TO_START: (
        ErrorCode.ERR_TOO_EARLY_TO_START,
        "Wait until the mission start time.",
        ErrorSeverity.LOW,
    ),
    MissionErrorKind.VALIDATION_ERROR: (
        ErrorCode.ERR_VALIDATION,
        "Check the tasks and the start and end times.",
        ErrorSeverity.LOW,
    ),
    MissionErrorKind.STORAGE_ERROR: (
        ErrorCode.ERR_STORAGE,
        "Please try again in a moment.",
        ErrorSeverity.HIGH,
    ),
}


HTTP_STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.ERR_MISSION_NOT_FOUND: Constants.HTTP_NOT_FOUND,
    ErrorCode.ERR_NOT_FOUND: Constants.HTTP_NOT_FOUND,
    ErrorCode.ERR_NOT_OWNER: Constants.HTTP_FORBIDDEN,
    ErrorCode.ERR_NOT_AUTHORIZED: Constants.HTTP_FORBIDDEN,
    ErrorCode.ERR_NOT_ASSIGNED_WORKER: Constants.HTTP_FORBIDDEN,
    ErrorCode.ERR_PERMISSION_DENIED: Constants.HTTP_FORBIDDEN,
    ErrorCode.ERR_INVALID_STATE_TRANSITION: Constants.HTTP_CONFLICT,
    ErrorCode.ERR_DUPLICATE_MISSION: Constants.HTTP_CONFLICT,
    ErrorCode.ERR_QUOTA_EXCEEDED: Constants.HTTP_CONFLICT,
    ErrorCode.ERR_TOO_EARLY_TO_START: Constants.HTTP_CONFLICT,
    ErrorCode.ERR_VALIDATION: Constants.HTTP_UNPROCESSABLE,
    ErrorCode.ERR_STORAGE: Constants.HTTP_SERVICE_UNAVAILABLE,
    ErrorCode.ERR_UNKNOWN: Constants.HTTP_SERVER_ERROR,
}


def classify_mission_error(error: MissionError) -> ErrorResponse:
    """Turn a rejected transition into a structured response."""
    code, suggestion, severity = _MISSION_ERRORS[error.kind]
    return ErrorResponse(code=code, message=error.message, suggestion=suggestion, severity=severity)


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify a service exception and return a structured response with recovery suggestions.

    Args:
        exception: Exception raised by a CRUD service or the storage client

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    message = exception.args[0] if exception.args else str(exception)

    if isinstance(exception, KeyError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=str(message),
            suggestion="Check the identifier and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, PermissionError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message=str(message),
            suggestion="Only the owner of this record can change it.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(message),
            suggestion="Fix the highlighted fields and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RuntimeError | ConnectionError | TimeoutError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE,
            message="The service is temporarily unavailable.",
            suggestion="Please try again in a moment.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )


def http_status_for(response: ErrorResponse) -> int:
    """HTTP status code matching an error response."""
    return HTTP_STATUS_BY_CODE.get(response.code, Constants.HTTP_SERVER_ERROR)
