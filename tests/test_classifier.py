from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from genaisdk.classifier import classify, extract_error_message, parse_retry_after
from genaisdk.exceptions import (
    APIError,
    AuthenticationError,
    BadRequestError,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServerError,
)

pytestmark = pytest.mark.unit

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("status", "error_type", "kind"),
    [
        (400, BadRequestError, ErrorKind.BAD_REQUEST),
        (401, AuthenticationError, ErrorKind.AUTHENTICATION),
        (403, ForbiddenError, ErrorKind.FORBIDDEN),
        (404, NotFoundError, ErrorKind.NOT_FOUND),
        (429, RateLimitError, ErrorKind.RATE_LIMIT),
        (500, ServerError, ErrorKind.SERVER),
        (503, ServerError, ErrorKind.SERVER),
        (418, APIError, ErrorKind.API),
    ],
)
def test_classify_maps_status_to_error_type(status: int, error_type: type, kind: ErrorKind) -> None:
    err = classify(status, {"error": {"code": status, "message": "nope"}}, endpoint="/v1/x")

    assert type(err) is error_type
    assert err.kind is kind
    assert err.status_code == status
    assert err.endpoint == "/v1/x"
    assert err.message == "nope"


def test_classify_404_uses_error_message_from_json_text() -> None:
    body = json.dumps({"error": {"code": 404, "message": "Model not found"}})

    err = classify(404, body)

    assert isinstance(err, NotFoundError)
    assert err.message == "Model not found"
    assert err.response_body == body


def test_classify_429_reads_retry_after_header() -> None:
    before = datetime.now(timezone.utc)
    err = classify(429, None, {"Retry-After": "30"})

    assert isinstance(err, RateLimitError)
    assert err.retry_after is not None
    assert before + timedelta(seconds=29) <= err.retry_after
    assert err.retry_after <= datetime.now(timezone.utc) + timedelta(seconds=31)
    assert 25 <= err.retry_after_seconds <= 30


def test_classify_429_without_retry_after() -> None:
    err = classify(429, "slow down")

    assert isinstance(err, RateLimitError)
    assert err.retry_after is None
    assert err.retry_after_seconds is None


def test_classify_5xx_keeps_exact_status() -> None:
    err = classify(502, b"bad gateway")

    assert isinstance(err, ServerError)
    assert err.status_code == 502
    assert err.message == "bad gateway"


def test_extract_error_message_falls_back_to_raw_text_then_status() -> None:
    assert extract_error_message(500, "plain failure") == "plain failure"
    assert extract_error_message(500, "") == "Request failed with status 500"
    assert extract_error_message(500, None) == "Request failed with status 500"
    assert extract_error_message(400, '{"other": 1}') == '{"other": 1}'
    assert extract_error_message(400, {"error": "flat message"}) == "flat message"


def test_parse_retry_after_delta_seconds() -> None:
    assert parse_retry_after("30", now=NOW) == NOW + timedelta(seconds=30)
    assert parse_retry_after(" 1.5 ", now=NOW) == NOW + timedelta(seconds=1.5)


def test_parse_retry_after_http_date() -> None:
    parsed = parse_retry_after("Wed, 01 Jan 2025 12:00:45 GMT", now=NOW)
    assert parsed == NOW + timedelta(seconds=45)
    assert parsed.tzinfo is not None


@pytest.mark.parametrize("value", [None, "", "   ", "soon", "-5", "nan", "inf"])
def test_parse_retry_after_rejects_garbage(value: str | None) -> None:
    assert parse_retry_after(value, now=NOW) is None


def test_parse_retry_after_out_of_range_delta() -> None:
    assert parse_retry_after("999999999999", now=NOW) is None


def test_classify_429_with_huge_retry_after_still_classifies() -> None:
    err = classify(429, b'{"error":{"message":"quota"}}', {"Retry-After": "999999999999"})

    assert isinstance(err, RateLimitError)
    assert err.message == "quota"
    assert err.retry_after is None


def test_classify_mapping_body_with_unserializable_values() -> None:
    body = {"detail": object()}

    err = classify(500, body)

    assert isinstance(err, ServerError)
    assert err.message.startswith("{'detail': <object object")
