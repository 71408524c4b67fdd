"""Custom exception types for pr-cadence."""


class PRCadenceError(Exception):
    """Base exception for all recoverable pr-cadence errors."""


class ConfigurationError(PRCadenceError):
    """Raised when runtime configuration values are missing or invalid."""


class DateRangeError(ConfigurationError):
    """Raised when a date bound cannot be parsed or the range is inverted."""


class AuthenticationError(PRCadenceError):
    """Raised when GitHub credentials are unavailable or rejected."""


class ApiError(PRCadenceError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class DataValidationError(ApiError):
    """Raised when API payloads do not meet expected constraints."""


class ExportError(PRCadenceError):
    """Raised when records cannot be written to the export destination."""
