"""Typed exceptions for failed Google API calls."""

from __future__ import annotations

import json
import logging
from typing import Any

from googleapiclient.errors import HttpError  # type: ignore[import-untyped]

QUOTA_ERROR_REASONS = frozenset(
    {
        "ratelimitexceeded",
        "userratelimitexceeded",
        "quotaexceeded",
        "dailylimitexceeded",
    }
)
AUTH_ERROR_REASONS = frozenset(
    {
        "autherror",
        "forbidden",
        "insufficientpermissions",
        "insufficientauthenticationscopes",
        "unauthorized",
    }
)

_LOGGER = logging.getLogger("gsc_indexer.google_api")


class GoogleAPIError(Exception):
    """A failed Google API call with whatever the response told us about it."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None,
        reason: str | None,
        details: dict[str, Any] | None,
        operation: str | None,
        service: str | None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason
        self.details = details
        self.operation = operation
        self.service = service


class QuotaExceededError(GoogleAPIError):
    """Per-minute or daily quota exhausted."""


class AuthenticationError(GoogleAPIError):
    """Token rejected or missing permission on the property."""


class InvalidURLError(GoogleAPIError):
    """The API refused the URL argument itself."""


class NotFoundError(GoogleAPIError):
    """The API has no record of the requested resource."""


def _response_status(error: HttpError) -> int | None:
    status = getattr(getattr(error, "resp", None), "status", None)
    return int(status) if status is not None else None


def _error_body(error: HttpError) -> dict[str, Any] | None:
    """Return the ``error`` object of a JSON error response, if there is one."""

    content = getattr(error, "content", None) or b""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")

    try:
        body = json.loads(content)
    except (TypeError, json.JSONDecodeError):
        return None

    if not isinstance(body, dict):
        return None
    inner = body.get("error")
    return inner if isinstance(inner, dict) else body


def _reasons(body: dict[str, Any] | None) -> set[str]:
    if not body:
        return set()

    candidates = [body.get("reason")]
    errors = body.get("errors")
    if isinstance(errors, list):
        candidates.extend(
            item.get("reason") for item in errors if isinstance(item, dict)
        )
    return {value.strip().lower() for value in candidates if isinstance(value, str)}


def _classify(
    status_code: int | None, reasons: set[str], message: str
) -> type[GoogleAPIError]:
    if status_code == 429 or reasons & QUOTA_ERROR_REASONS:
        return QuotaExceededError
    if status_code in (401, 403) and (not reasons or reasons & AUTH_ERROR_REASONS):
        return AuthenticationError
    if status_code == 404:
        return NotFoundError
    if status_code in (400, 422) and "url" in message.lower():
        return InvalidURLError
    return GoogleAPIError


def parse_google_http_error(
    error: HttpError,
    *,
    operation: str | None = None,
    service: str | None = None,
) -> GoogleAPIError:
    """Turn a googleapiclient HttpError into the matching GoogleAPIError subclass."""

    status_code = _response_status(error)
    body = _error_body(error)
    message = str(body["message"]) if body and "message" in body else str(error)
    error_class = _classify(status_code, _reasons(body), message)

    parsed = error_class(
        message,
        status_code=status_code,
        reason=str(getattr(error, "reason", "") or "") or None,
        details=body,
        operation=operation,
        service=service,
    )
    _LOGGER.debug(
        "google_api_http_error",
        extra={
            "service": service,
            "operation": operation,
            "status_code": status_code,
            "error_type": error_class.__name__,
            "error_message": message,
        },
    )
    return parsed


__all__ = [
    "AuthenticationError",
    "GoogleAPIError",
    "InvalidURLError",
    "NotFoundError",
    "QuotaExceededError",
    "parse_google_http_error",
]
