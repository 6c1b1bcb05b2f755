"""
Custom exceptions for the MindPlace snippet store.

Remote stores, the local mirror and the repository raise these
so callers can tell caller bugs apart from availability problems.
"""


class MindPlaceError(Exception):
    """Base exception for all MindPlace storage errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(MindPlaceError):
    """Raised when a required field is missing or empty.

    Never triggers a fallback: the same input is rejected in every mode.
    """

    def __init__(self, field: str, reason: str = "is required"):
        super().__init__(f"{field} {reason}", {"field": field, "reason": reason})
        self.field = field
        self.reason = reason


class UnavailableError(MindPlaceError):
    """Raised when the remote store cannot serve a request.

    Covers network failures, non-success responses and responses in which
    the backend asks the client to use local storage.
    """

    def __init__(self, operation: str, reason: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if reason:
            details["reason"] = reason
        if cause:
            details["cause"] = str(cause)
        message = f"Remote store unavailable during {operation}"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)
        self.operation = operation
        self.reason = reason
        self.cause = cause


class PersistenceError(MindPlaceError):
    """Raised when the local mirror cannot write to disk."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Local persistence failed during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class LocalDataParseError(MindPlaceError):
    """Raised when a persisted local collection cannot be decoded."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Unreadable local data in {path}: {reason}", {"path": path, "reason": reason})
        self.path = path
        self.reason = reason


class UnsupportedOperationError(MindPlaceError):
    """Raised when an operation is not available in the current store mode."""

    def __init__(self, operation: str, mode: str):
        super().__init__(
            f"{operation} is not supported in {mode} mode",
            {"operation": operation, "mode": mode},
        )
        self.operation = operation
        self.mode = mode


class AuthenticationError(MindPlaceError):
    """Raised when credentials for the remote database cannot be created."""

    def __init__(self, endpoint: str | None, reason: str | None = None):
        details = {"endpoint": endpoint}
        if reason:
            details["reason"] = reason
        super().__init__(f"Authentication failed for {endpoint}: {reason or 'unknown'}", details)
        self.endpoint = endpoint
        self.reason = reason
