"""
Custom exceptions for the GenAI SDK.

Every exception carries an ``ErrorKind`` discriminator, so callers can
dispatch on ``err.kind`` with a ``match`` statement instead of a chain of
``except`` clauses:

    >>> try:
    ...     await client.models.generate_content(model, contents)
    ... except GenAISDKError as err:
    ...     match err.kind:
    ...         case ErrorKind.RATE_LIMIT:
    ...             ...
    ...         case ErrorKind.SERVER | ErrorKind.CONNECTION:
    ...             ...
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminator shared by every SDK exception."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    API = "api"
    AUTHENTICATION = "authentication"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    CANCELLED = "cancelled"
    DESERIALIZATION = "deserialization"
    CONTENT_FILTERED = "content_filtered"
    CLOSED = "closed"


class GenAISDKError(Exception):
    """Base exception for all GenAI SDK errors."""

    kind: ErrorKind = ErrorKind.API

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(GenAISDKError):
    """Raised when client options are invalid or incomplete."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details)
        self.config_key = config_key


class ValidationError(GenAISDKError):
    """Raised when a caller passes invalid arguments."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class APIError(GenAISDKError):
    """Raised when the API returns an error that has no more specific class."""

    kind = ErrorKind.API

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        endpoint: str | None = None,
    ):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body
        if endpoint:
            details["endpoint"] = endpoint
        super().__init__(message, details)
        self.status_code = status_code
        self.response_body = response_body
        self.endpoint = endpoint
        self.attempts: int | None = None

    def with_attempts(self, attempts: int) -> APIError:
        """Mark this error as the terminal failure after ``attempts`` retries."""
        self.attempts = attempts
        self.details["attempts"] = attempts
        self.message = f"Request failed after {attempts} retry attempts: {self.message}"
        self.args = (self.message,)
        return self


class AuthenticationError(APIError):
    """Raised when the credential is missing or rejected (HTTP 401)."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(
        self,
        message: str = "Authentication failed",
        response_body: str | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message, 401, response_body, endpoint)


class ForbiddenError(APIError):
    """Raised when permission is denied (HTTP 403)."""

    kind = ErrorKind.FORBIDDEN

    def __init__(
        self,
        message: str = "Permission denied",
        response_body: str | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message, 403, response_body, endpoint)


class NotFoundError(APIError):
    """Raised when a resource is not found (HTTP 404)."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str = "Resource not found",
        response_body: str | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message, 404, response_body, endpoint)


class BadRequestError(APIError):
    """Raised when the API rejects the request (HTTP 400)."""

    kind = ErrorKind.BAD_REQUEST

    def __init__(
        self,
        message: str = "Bad request",
        response_body: str | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message, 400, response_body, endpoint)


class RateLimitError(APIError):
    """Raised when API rate limit is exceeded (HTTP 429)."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: datetime | None = None,
        response_body: str | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message, 429, response_body, endpoint)
        self.retry_after = retry_after
        if retry_after:
            self.details["retry_after"] = retry_after.isoformat()

    @property
    def retry_after_seconds(self) -> float | None:
        """Seconds from now until the server allows another request."""
        if self.retry_after is None:
            return None
        delta = self.retry_after - datetime.now(timezone.utc)
        return max(delta.total_seconds(), 0.0)


class ServerError(APIError):
    """Raised when the server fails (HTTP 5xx)."""

    kind = ErrorKind.SERVER

    def __init__(
        self,
        message: str = "Server error",
        status_code: int = 500,
        response_body: str | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message, status_code, response_body, endpoint)


class TimeoutError(GenAISDKError):
    """Raised when an operation times out."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str = "Operation timed out",
        timeout: float | None = None,
    ):
        details = {}
        if timeout:
            details["timeout"] = timeout
        super().__init__(message, details)
        self.timeout = timeout


class ConnectionError(GenAISDKError):
    """Raised when connection to the API fails."""

    kind = ErrorKind.CONNECTION

    def __init__(
        self,
        message: str = "Failed to connect to the API",
        endpoint: str | None = None,
        attempts: int | None = None,
    ):
        details: dict[str, Any] = {}
        if endpoint:
            details["endpoint"] = endpoint
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(message, details)
        self.endpoint = endpoint
        self.attempts = attempts


class CancellationError(GenAISDKError):
    """Raised when an operation is cancelled through its cancel event."""

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Operation was cancelled"):
        super().__init__(message)


class DeserializationError(GenAISDKError):
    """Raised when a response body does not match the expected shape."""

    kind = ErrorKind.DESERIALIZATION

    def __init__(
        self,
        message: str,
        response_body: str | None = None,
    ):
        details = {}
        if response_body:
            details["response_body"] = response_body[:500]
        super().__init__(message, details)
        self.response_body = response_body


class ContentFilteredError(GenAISDKError):
    """Raised when content is blocked by safety filters."""

    kind = ErrorKind.CONTENT_FILTERED

    def __init__(
        self,
        message: str = "Content was blocked by safety filters",
        blocked_categories: list[str] | None = None,
    ):
        categories = list(blocked_categories or [])
        super().__init__(message, {"blocked_categories": categories})
        self.blocked_categories = categories


class ClientClosedError(GenAISDKError):
    """Raised when a closed client is used."""

    kind = ErrorKind.CLOSED

    def __init__(self, message: str = "Client is closed"):
        super().__init__(message)
