"""
Error classification for HTTP failures.

``classify`` turns a status code and an error body into exactly one of the
SDK exception types. It is shared by unary calls, stream establishment and
in-stream error payloads, and it never raises.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from .exceptions import (
    APIError,
    AuthenticationError,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from .types import (
    HTTP_BAD_REQUEST,
    HTTP_FORBIDDEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNAUTHORIZED,
)


def parse_retry_after(value: str | None, now: datetime | None = None) -> datetime | None:
    """Parse a ``Retry-After`` header into an absolute UTC instant.

    Delta-seconds (``"30"``) is tried before the HTTP-date form.

    Args:
        value: Raw header value.
        now: Reference time for delta-seconds. Defaults to the current time.

    Returns:
        When the server allows another request, or None if the value is
        missing or unparseable.
    """
    if not value or not value.strip():
        return None
    raw = value.strip()
    now = now or datetime.now(timezone.utc)

    try:
        seconds = float(raw)
    except ValueError:
        seconds = None
    if seconds is not None:
        if seconds < 0 or not math.isfinite(seconds):
            return None
        try:
            return now + timedelta(seconds=seconds)
        except (OverflowError, ValueError):
            return None

    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def extract_error_message(status_code: int, body: Any) -> str:
    """Pick a human-readable message out of an error body.

    Prefers ``error.message``, then the raw body text, then a generic
    message naming the status.
    """
    fallback = f"Request failed with status {status_code}"

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    parsed: Any = body
    if isinstance(body, str):
        if not body.strip():
            return fallback
        try:
            parsed = json.loads(body)
        except ValueError:
            return body

    if isinstance(parsed, Mapping):
        error = parsed.get("error")
        if isinstance(error, Mapping):
            message = error.get("message")
            if isinstance(message, str) and message:
                return message
        elif isinstance(error, str) and error:
            return error
        return _body_text(body) or fallback

    if isinstance(body, str):
        return body
    return fallback


def classify(
    status_code: int,
    body: Any = None,
    headers: Mapping[str, str] | None = None,
    *,
    endpoint: str | None = None,
) -> APIError:
    """Map an HTTP failure onto the SDK error taxonomy.

    Args:
        status_code: HTTP status of the failed response.
        body: Parsed JSON, raw text, raw bytes or None.
        headers: Response headers; only ``Retry-After`` is consulted.
        endpoint: Endpoint the request was sent to, for diagnostics.

    Returns:
        The exception instance to raise. Never raises itself.
    """
    message = extract_error_message(status_code, body)
    response_body = _body_text(body)

    if status_code == HTTP_UNAUTHORIZED:
        return AuthenticationError(message, response_body, endpoint)
    if status_code == HTTP_FORBIDDEN:
        return ForbiddenError(message, response_body, endpoint)
    if status_code == HTTP_NOT_FOUND:
        return NotFoundError(message, response_body, endpoint)
    if status_code == HTTP_BAD_REQUEST:
        return BadRequestError(message, response_body, endpoint)
    if status_code == HTTP_TOO_MANY_REQUESTS:
        retry_after = parse_retry_after(_header(headers, "Retry-After"))
        return RateLimitError(message, retry_after, response_body, endpoint)
    if status_code >= HTTP_INTERNAL_SERVER_ERROR:
        return ServerError(message, status_code, response_body, endpoint)
    return APIError(message, status_code, response_body, endpoint)


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    if not headers:
        return None
    try:
        value = headers.get(name)
        if value is None:
            value = headers.get(name.lower())
    except (AttributeError, TypeError):
        return None
    return value if isinstance(value, str) else None


def _body_text(body: Any) -> str | None:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return str(body)
