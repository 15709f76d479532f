"""Tests for Google API error parsing."""

from __future__ import annotations

from types import SimpleNamespace

from googleapiclient.errors import HttpError  # type: ignore[import-untyped]

from gsc_indexer.services.google_errors import (
    AuthenticationError,
    GoogleAPIError,
    InvalidURLError,
    NotFoundError,
    QuotaExceededError,
    parse_google_http_error,
)


def _http_error(status: int, reason: str, content: str) -> HttpError:
    response = SimpleNamespace(status=status, reason=reason)
    return HttpError(response, content.encode("utf-8"), uri=None)


def test_parse_google_http_error_extracts_quota_details() -> None:
    error = _http_error(
        429,
        "Too Many Requests",
        '{"error": {"code": 429, "message": "Quota exceeded", '
        '"errors": [{"reason": "rateLimitExceeded"}]}}',
    )

    parsed_error = parse_google_http_error(
        error,
        operation="urlInspection.index.inspect",
        service="searchconsole",
    )

    assert isinstance(parsed_error, QuotaExceededError)
    assert parsed_error.status_code == 429
    assert parsed_error.message == "Quota exceeded"
    assert parsed_error.operation == "urlInspection.index.inspect"
    assert parsed_error.service == "searchconsole"
    assert parsed_error.details is not None
    assert parsed_error.details["code"] == 429


def test_quota_reason_wins_over_forbidden_status() -> None:
    error = _http_error(
        403,
        "Forbidden",
        '{"error": {"message": "Daily limit", '
        '"errors": [{"reason": "dailyLimitExceeded"}]}}',
    )

    assert isinstance(parse_google_http_error(error), QuotaExceededError)


def test_parse_google_http_error_classifies_auth_not_found_and_invalid_url() -> None:
    auth_error = _http_error(
        403,
        "Forbidden",
        '{"error": {"message": "Permission denied", '
        '"errors": [{"reason": "forbidden"}]}}',
    )
    not_found_error = _http_error(
        404,
        "Not Found",
        '{"error": {"code": 404, "message": "Requested entity was not found."}}',
    )
    invalid_url_error = _http_error(
        400,
        "Bad Request",
        '{"error": {"message": "Invalid value for inspectionUrl", '
        '"errors": [{"reason": "invalidArgument"}]}}',
    )

    assert isinstance(parse_google_http_error(auth_error), AuthenticationError)
    assert isinstance(parse_google_http_error(not_found_error), NotFoundError)
    assert isinstance(parse_google_http_error(invalid_url_error), InvalidURLError)


def test_non_json_payload_falls_back_to_generic_error() -> None:
    error = _http_error(502, "Bad Gateway", "<html>upstream failure</html>")

    parsed_error = parse_google_http_error(error)

    assert type(parsed_error) is GoogleAPIError
    assert parsed_error.status_code == 502
    assert parsed_error.details is None
    assert parsed_error.reason == "Bad Gateway"
