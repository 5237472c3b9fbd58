"""
Centralized error handling and classification for the photoframe application.

Every failure that leaves a service is one of the classes below. Remote failures
are normalised at the HTTP boundary into ``RemoteApiError`` so callers only ever
deal with ``{name, code, message}`` regardless of whether the library raised,
the server answered with an error document, or the connection timed out.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .logging_config import get_logger, log_error, log_security_event

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    AUTHENTICATION = "authentication"
    CONFLICT = "conflict"
    REMOTE_API = "remote_api"
    FILESYSTEM = "filesystem"
    VALIDATION = "validation"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }


class PhotoFrameError(Exception):
    """Base exception class for the photoframe application."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
        retry_suggested: bool = False,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or self._generate_user_message()
        self.details = details or {}
        self.recoverable = recoverable
        self.retry_suggested = retry_suggested
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    def _generate_user_message(self) -> str:
        """Generate user-friendly error message."""
        user_messages = {
            ErrorCategory.AUTHENTICATION: "Your Google session expired. Please sign in again.",
            ErrorCategory.CONFLICT: "The request conflicts with the current import state.",
            ErrorCategory.REMOTE_API: "Google Photos returned an error. Please try again later.",
            ErrorCategory.FILESYSTEM: "A local folder could not be read.",
            ErrorCategory.VALIDATION: "The request is not valid.",
            ErrorCategory.SYSTEM: "A system error occurred.",
            ErrorCategory.UNKNOWN: "An unexpected error occurred.",
        }
        return user_messages.get(self.category, "An error occurred.")

    def _log_error(self) -> None:
        """Log the error with appropriate level."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
            **self.details,
        }

        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        log_error(self, error_context)

        if self.category is ErrorCategory.AUTHENTICATION:
            log_security_event(self.category.value, context=error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class AuthError(PhotoFrameError):
    """Missing, expired or unrefreshable credential."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            code=code or "auth_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )


class ConflictError(PhotoFrameError):
    """Import refused because of the selection or a non-empty dead letter."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFLICT,
            severity=ErrorSeverity.MEDIUM,
            code=code or "conflict",
            user_message=user_message or message,
            details=details,
            recoverable=True,
            retry_suggested=False,
        )


class RemoteApiError(PhotoFrameError):
    """Normalised failure of any call to Google Photos or the OAuth endpoint."""

    def __init__(
        self,
        message: str,
        name: str = "RemoteApiError",
        code: int | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        self.name = name
        self.status_code = code
        super().__init__(
            message=message,
            category=ErrorCategory.REMOTE_API,
            severity=ErrorSeverity.HIGH,
            code=f"remote_{code}" if code else "remote_api_error",
            details={"remote_name": name, "status_code": code, **(details or {})},
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )

    def to_dict(self) -> dict[str, Any]:
        """The ``{name, code, message}`` shape returned to callers."""
        return {"name": self.name, "code": self.status_code, "message": str(self)}

    @classmethod
    def from_response(cls, response: Any) -> "RemoteApiError":
        """Build from an HTTP response carrying a Google style error document."""
        status_code = getattr(response, "status_code", None)
        name = getattr(response, "reason", None) or "HTTPError"
        message = f"Remote call failed with status {status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error = body["error"]
            name = error.get("status") or name
            message = error.get("message") or message
            status_code = error.get("code") or status_code
        elif isinstance(body, dict) and body.get("error"):
            # OAuth endpoint: {"error": "invalid_grant", "error_description": "..."}
            name = str(body["error"])
            message = body.get("error_description") or message
        elif getattr(response, "text", None):
            message = response.text
        return cls(message, name=name, code=status_code)

    @classmethod
    def from_exception(cls, exc: Exception) -> "RemoteApiError":
        """Normalise a transport or library exception."""
        if isinstance(exc, RemoteApiError):
            return exc
        response = getattr(exc, "response", None)
        if response is not None:
            return cls.from_response(response)
        return cls(str(exc) or type(exc).__name__, name=type(exc).__name__, original_exception=exc)


class FileSystemError(PhotoFrameError):
    """A local folder or file could not be read."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        original_exception: Exception | None = None,
    ):
        self.path = path
        super().__init__(
            message=message,
            category=ErrorCategory.FILESYSTEM,
            severity=ErrorSeverity.MEDIUM,
            code="filesystem_error",
            details={"path": path},
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class OperationCancelledError(PhotoFrameError):
    """An import was cancelled between two batches."""

    def __init__(self, message: str = "Operation cancelled", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            category=ErrorCategory.SYSTEM,
            severity=ErrorSeverity.LOW,
            code="operation_cancelled",
            details=details,
            recoverable=True,
            retry_suggested=True,
        )
