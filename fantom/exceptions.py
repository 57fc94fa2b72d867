"""
Custom exceptions for the Fantom search core.
"""


class FantomException(Exception):
    """Base exception for all Fantom search errors."""

    pass


class ConfigLoadError(FantomException):
    """Configuration document is missing, unreadable or malformed."""

    pass


class StoreConnectionError(FantomException):
    """Store connection could not be established or was lost mid-scan."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.operation = operation


class RecordDecodeError(FantomException):
    """A single stored value could not be decoded. Never escapes a scan."""

    def __init__(self, key: str, message: str):
        super().__init__(f"Failed to decode value for key {key}: {message}")
        self.key = key


class InvalidSearchParams(FantomException):
    """Raised by the search service when a query fails validation."""

    pass


def get_error_message(error: object) -> str:
    """Extract a readable message from an exception or arbitrary value."""
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)
