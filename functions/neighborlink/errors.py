"""
Error types raised by the service, plus a classifier that buckets any caught
exception into a coarse category with a user-facing message.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Callable, Optional, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorType(StrEnum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NETWORK = "network"
    DATABASE = "database"
    NOT_FOUND = "not_found"
    SERVER = "server"
    ABORTED = "aborted"
    UNKNOWN = "unknown"


class ErrorSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NeighborLinkError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    status = "error"
    error_type = ErrorType.SERVER

    def __init__(self, message: str, *, status: str | None = None):
        super().__init__(message)
        self.message = message
        if status:
            self.status = status


class ValidationError(NeighborLinkError):
    status_code = 400
    error_type = ErrorType.VALIDATION


class FeatureDisabledError(ValidationError):
    """A feature switched off in app configuration, or missing user setup."""

    status = "disabled"


class PaymentError(NeighborLinkError):
    status_code = 400
    error_type = ErrorType.VALIDATION


class AuthenticationError(NeighborLinkError):
    status_code = 401
    error_type = ErrorType.AUTHENTICATION


class AuthorizationError(NeighborLinkError):
    status_code = 403
    error_type = ErrorType.AUTHORIZATION


class NotFoundError(NeighborLinkError):
    status_code = 404
    error_type = ErrorType.NOT_FOUND


class ExternalServiceError(NeighborLinkError):
    status_code = 502
    error_type = ErrorType.NETWORK


@dataclass
class ErrorInfo:
    type: ErrorType
    severity: ErrorSeverity
    message: str
    user_message: str
    code: str
    details: Any = None
    user_id: Optional[str] = None
    route: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


_USER_MESSAGES = {
    ErrorType.VALIDATION: "Please check your input and try again.",
    ErrorType.AUTHENTICATION: "Your session has expired. Please sign in again.",
    ErrorType.AUTHORIZATION: "You don't have permission to perform this action.",
    ErrorType.NETWORK: (
        "We're having trouble connecting. Please check your internet and try again."
    ),
    ErrorType.NOT_FOUND: "The requested item could not be found.",
    ErrorType.SERVER: (
        "Something went wrong on our end. We've been notified and are working to fix it."
    ),
}

_SERVICE_ERROR_CODES = {
    ErrorType.VALIDATION: ("VAL_001", ErrorSeverity.LOW),
    ErrorType.AUTHENTICATION: ("AUTH_002", ErrorSeverity.HIGH),
    ErrorType.AUTHORIZATION: ("AUTH_004", ErrorSeverity.MEDIUM),
    ErrorType.NETWORK: ("NET_001", ErrorSeverity.HIGH),
    ErrorType.NOT_FOUND: ("NF_001", ErrorSeverity.LOW),
    ErrorType.SERVER: ("SRV_001", ErrorSeverity.CRITICAL),
}

_NO_RETRY = (ErrorType.AUTHENTICATION, ErrorType.AUTHORIZATION, ErrorType.VALIDATION)


def _status_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    if isinstance(status, int):
        return status
    response = getattr(error, "response", None)
    code = getattr(response, "status_code", None)
    return code if isinstance(code, int) else None


def _db_code_of(error: BaseException) -> Optional[str]:
    for candidate in (error, getattr(error, "orig", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "pgcode", None) or getattr(candidate, "sqlstate", None)
        if code:
            return str(code)
    code = getattr(error, "code", None)
    return str(code) if isinstance(code, (str, int)) else None


def _database_user_message(code: Optional[str], lowered: str) -> str:
    if code == "23505" or "duplicate key" in lowered or "unique" in lowered:
        if "profiles_username_key" in lowered:
            return "This username is already taken."
        if "profiles_email_key" in lowered:
            return "This email is already registered."
        return "This item already exists."
    if code == "23503" or "foreign key" in lowered:
        return "This action cannot be completed because this item is being used elsewhere."
    if code == "23502":
        return "Some required information is missing."
    return "A data error occurred. Please try again."


def classify_error(
    error: BaseException,
    *,
    route: Optional[str] = None,
    user_id: Optional[str] = None,
) -> ErrorInfo:
    """
    Bucket an exception into an ``ErrorInfo``.

    Errors raised by this service already know their category. Anything else
    (SDK, HTTP and database errors) is matched on its type, status code,
    SQLSTATE and message, in that order of precedence.
    """
    message = str(error) or error.__class__.__name__
    lowered = message.lower()

    def info(error_type, severity, user_message, code, details=None) -> ErrorInfo:
        return ErrorInfo(
            type=error_type,
            severity=severity,
            message=message,
            user_message=user_message,
            code=code,
            details=details,
            user_id=user_id,
            route=route,
        )

    if isinstance(error, NeighborLinkError):
        code, severity = _SERVICE_ERROR_CODES.get(
            error.error_type, ("UNK_001", ErrorSeverity.MEDIUM)
        )
        user_message = (
            error.message
            if error.error_type == ErrorType.VALIDATION
            else _USER_MESSAGES.get(error.error_type, "An unexpected error occurred.")
        )
        return info(error.error_type, severity, user_message, code)

    status = _status_of(error)

    if (
        error.__class__.__name__ in ("CancelledError", "AbortError")
        or "aborted" in lowered
        or "cancelled" in lowered
    ):
        return info(ErrorType.ABORTED, ErrorSeverity.LOW, "", "ABORT_001")

    if (
        isinstance(
            error,
            (
                ConnectionError,
                TimeoutError,
                requests.exceptions.ConnectionError,
                requests.exceptions.Timeout,
            ),
        )
        or "fetch" in lowered
        or "network" in lowered
        or "connection reset" in lowered
    ):
        return info(
            ErrorType.NETWORK,
            ErrorSeverity.HIGH,
            _USER_MESSAGES[ErrorType.NETWORK],
            "NET_001",
        )

    if (
        "invalid login credentials" in lowered
        or "invalid credentials" in lowered
        or ("password" in lowered and "incorrect" in lowered)
    ):
        return info(
            ErrorType.AUTHENTICATION,
            ErrorSeverity.MEDIUM,
            "Incorrect email or password. Please try again.",
            "AUTH_001",
        )

    if "email not confirmed" in lowered:
        return info(
            ErrorType.AUTHENTICATION,
            ErrorSeverity.MEDIUM,
            "Please confirm your email address before logging in.",
            "AUTH_003",
        )

    if (
        status == 401
        or "jwt" in lowered
        or "session" in lowered
        or "token" in lowered
    ):
        return info(
            ErrorType.AUTHENTICATION,
            ErrorSeverity.HIGH,
            _USER_MESSAGES[ErrorType.AUTHENTICATION],
            "AUTH_002",
        )

    if (
        status == 403
        or "permission" in lowered
        or "unauthorized" in lowered
        or "policy" in lowered
    ):
        return info(
            ErrorType.AUTHORIZATION,
            ErrorSeverity.MEDIUM,
            _USER_MESSAGES[ErrorType.AUTHORIZATION],
            "AUTH_004",
        )

    db_code = _db_code_of(error)
    if (
        (db_code and db_code.startswith("23"))
        or "duplicate" in lowered
        or "constraint" in lowered
    ):
        return info(
            ErrorType.DATABASE,
            ErrorSeverity.MEDIUM,
            _database_user_message(db_code, lowered),
            db_code if db_code and db_code.startswith("23") else "DB_001",
            details=getattr(error, "details", None),
        )

    if status == 404 or "not found" in lowered:
        return info(
            ErrorType.NOT_FOUND,
            ErrorSeverity.LOW,
            _USER_MESSAGES[ErrorType.NOT_FOUND],
            "NF_001",
        )

    if (status is not None and status >= 500) or "server" in lowered:
        return info(
            ErrorType.SERVER,
            ErrorSeverity.CRITICAL,
            _USER_MESSAGES[ErrorType.SERVER],
            "SRV_001",
        )

    if (
        error.__class__.__name__ == "ValidationError"
        or isinstance(error, ValueError)
        or "validation" in lowered
        or "required" in lowered
    ):
        return info(
            ErrorType.VALIDATION,
            ErrorSeverity.LOW,
            getattr(error, "user_message", None) or _USER_MESSAGES[ErrorType.VALIDATION],
            "VAL_001",
            details=getattr(error, "details", None),
        )

    return info(
        ErrorType.UNKNOWN,
        ErrorSeverity.MEDIUM,
        "An unexpected error occurred. Please try again.",
        "UNK_001",
    )


def report_error(
    error: BaseException,
    *,
    route: Optional[str] = None,
    user_id: Optional[str] = None,
) -> ErrorInfo:
    """Classify and log an error. Critical errors are logged at CRITICAL level."""
    error_info = classify_error(error, route=route, user_id=user_id)
    if error_info.type == ErrorType.ABORTED:
        logger.debug("Request aborted on %s: %s", route, error_info.message)
        return error_info
    level = (
        logging.CRITICAL
        if error_info.severity == ErrorSeverity.CRITICAL
        else logging.ERROR
    )
    logger.log(
        level,
        "%s error [%s] on %s (user=%s): %s",
        error_info.type,
        error_info.code,
        route,
        user_id,
        error_info.message,
    )
    return error_info


def with_retry(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` with exponential backoff, up to ``max_retries`` extra attempts.

    Authentication, authorization and validation failures are raised
    immediately since retrying cannot fix them.
    """
    last_error: Optional[BaseException] = None
    for attempt in range(max_retries + 1):
        try:
            return fn()
        except Exception as exc:
            last_error = exc
            if attempt == max_retries:
                break
            if classify_error(exc).type in _NO_RETRY:
                break
            delay = base_delay * (2**attempt)
            logger.info(
                "Attempt %d failed (%s); retrying in %.1fs", attempt + 1, exc, delay
            )
            sleep(delay)
    assert last_error is not None
    raise last_error
