"""
Error types
Every error carries the HTTP status the API layer answers with.
"""
from typing import Any, Optional


class SalesCoachError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigError(SalesCoachError):
    status_code = 500


class ValidationFailed(SalesCoachError):
    status_code = 400


class NotFoundError(SalesCoachError):
    status_code = 404


class StorageError(SalesCoachError):
    """A database or object-store call failed."""

    status_code = 400


class EmbeddingError(SalesCoachError):
    """The embedding call failed or returned no vector."""

    status_code = 502


class SearchError(SalesCoachError):
    """The similarity-search RPC failed."""

    status_code = 502


class CompletionError(SalesCoachError):
    """The chat completion (or speech) call failed."""

    status_code = 502


class RequestTimeoutError(SalesCoachError):
    status_code = 504

    def __init__(self, timeout: float):
        super().__init__(f"Request timed out after {timeout:g}s")
        self.timeout = timeout


class ApiError(SalesCoachError):
    """An outbound HTTP request answered with a non-2xx status."""

    def __init__(self, status: int, message: str, data: Any = None):
        super().__init__(message, status_code=502)
        self.status = status
        self.data = data
