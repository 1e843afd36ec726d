"""Custom exception hierarchy for AutoDoc."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses and logs."""

    # Task validation errors
    INVALID_TASK = "INVALID_TASK"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    INVALID_PATH = "INVALID_PATH"

    # Source reader errors
    COMMIT_NOT_FOUND = "COMMIT_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"

    # Page store errors
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    PAGE_STORE_ERROR = "PAGE_STORE_ERROR"

    # Text conversion
    CONVERSION_ERROR = "CONVERSION_ERROR"

    # Action invocation
    INVALID_ACTION_ARGUMENTS = "INVALID_ACTION_ARGUMENTS"

    # Reasoning engine
    ENGINE_UNAVAILABLE = "ENGINE_UNAVAILABLE"
    MODEL_CONFIG_ERROR = "MODEL_CONFIG_ERROR"

    # Webhook errors
    WEBHOOK_VALIDATION_FAILED = "WEBHOOK_VALIDATION_FAILED"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AutodocError(Exception):
    """
    Base exception for all AutoDoc errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code to return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class InvalidTaskError(AutodocError):
    """Documentation task is missing required fields or mixes incompatible ones."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.INVALID_TASK,
            status_code=400,
            details=details
        )


class InvalidReferenceError(AutodocError):
    """Commit identifier is empty, a known placeholder, or not a revision token."""

    def __init__(self, commit_id: str, reason: str = "Invalid commit ID format"):
        super().__init__(
            f"{reason}: {commit_id!r}. Please provide a valid Git commit hash.",
            ErrorCode.INVALID_REFERENCE,
            status_code=400,
            details={"commit_id": commit_id}
        )


class InvalidPathError(AutodocError):
    """File path is outside the repository or contains disallowed characters."""

    def __init__(self, path: str):
        super().__init__(
            f"Invalid file path format: {path!r}",
            ErrorCode.INVALID_PATH,
            status_code=400,
            details={"path": path}
        )


class CommitNotFoundError(AutodocError):
    """Commit does not resolve in the repository."""

    def __init__(self, commit_id: str):
        super().__init__(
            f"Commit not found: {commit_id}. Please verify the commit ID exists in the repository.",
            ErrorCode.COMMIT_NOT_FOUND,
            status_code=404,
            details={"commit_id": commit_id}
        )


class SourceFileNotFoundError(AutodocError):
    """File does not exist in the working tree or at the requested revision."""

    def __init__(self, path: str, revision: Optional[str] = None):
        where = f" at {revision}" if revision else ""
        details = {"path": path}
        if revision:
            details["revision"] = revision
        super().__init__(
            f"File not found{where}: {path}",
            ErrorCode.FILE_NOT_FOUND,
            status_code=404,
            details=details
        )


class PageNotFoundError(AutodocError):
    """Page not found in the page store."""

    def __init__(self, page_id: str):
        super().__init__(
            f"Page not found: {page_id}",
            ErrorCode.PAGE_NOT_FOUND,
            status_code=404,
            details={"page_id": page_id}
        )


class VersionConflictError(AutodocError):
    """Update was sent with a stale page version."""

    def __init__(self, page_id: str, version: int):
        super().__init__(
            f"Version conflict updating page {page_id} from version {version}",
            ErrorCode.VERSION_CONFLICT,
            status_code=409,
            details={"page_id": page_id, "version": version}
        )


class PageStoreError(AutodocError):
    """Page store request failed for a reason other than absence or conflict."""

    def __init__(self, message: str, status_code: int = 0):
        details = {"upstream_status": status_code} if status_code else {}
        super().__init__(
            message,
            ErrorCode.PAGE_STORE_ERROR,
            status_code=502,
            details=details
        )


class ConversionError(AutodocError):
    """Markdown could not be converted to the page storage format."""

    def __init__(self, message: str = "Cannot convert empty markdown to storage format"):
        super().__init__(
            message,
            ErrorCode.CONVERSION_ERROR,
            status_code=422,
        )


class ActionArgumentError(AutodocError):
    """Reasoning engine requested an action with unknown name or invalid arguments."""

    def __init__(self, action: str, message: str):
        super().__init__(
            f"Invalid arguments for {action}: {message}",
            ErrorCode.INVALID_ACTION_ARGUMENTS,
            status_code=400,
            details={"action": action}
        )


class EngineUnavailableError(AutodocError):
    """Reasoning engine could not be reached or returned a malformed response."""

    def __init__(self, message: str, endpoint: str = ""):
        details = {"endpoint": endpoint} if endpoint else {}
        super().__init__(
            message,
            ErrorCode.ENGINE_UNAVAILABLE,
            status_code=503,
            details=details
        )


class WebhookValidationError(AutodocError):
    """Webhook signature validation failed."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(
            message,
            ErrorCode.WEBHOOK_VALIDATION_FAILED,
            status_code=401,
        )
