"""Google service account key loading and access token exchange."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import google_auth_httplib2  # type: ignore[import-untyped]
import httplib2  # type: ignore[import-untyped]
from google.auth import exceptions as google_auth_exceptions
from google.oauth2 import service_account

from gsc_indexer.config import ConfigurationError

WEBMASTERS_READONLY_SCOPE = "https://www.googleapis.com/auth/webmasters.readonly"
INDEXING_SCOPE = "https://www.googleapis.com/auth/indexing"
DEFAULT_SCOPES = (WEBMASTERS_READONLY_SCOPE, INDEXING_SCOPE)
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_CREDENTIALS_FILENAME = "service_account.json"
REQUIRED_SERVICE_ACCOUNT_FIELDS = frozenset({"client_email", "private_key"})


class GoogleCredentialsError(Exception):
    """Base exception for service account key and token exchange failures."""


@dataclass(slots=True, frozen=True)
class ServiceAccountCredential:
    """A service account identity and the key used to sign token requests."""

    client_email: str
    private_key: str = field(repr=False)
    token_uri: str = DEFAULT_TOKEN_URI

    def as_service_account_info(self) -> dict[str, str]:
        return {
            "type": "service_account",
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": self.token_uri,
        }


def _default_credentials_paths() -> tuple[Path, ...]:
    return (
        Path(DEFAULT_CREDENTIALS_FILENAME),
        Path.home() / ".gis" / DEFAULT_CREDENTIALS_FILENAME,
    )


def resolve_credentials_path(custom_path: str | Path | None = None) -> Path:
    """Pick the key file: custom path, then ./service_account.json, then ~/.gis."""

    candidates: list[Path] = []
    if custom_path is not None:
        candidates.append(Path(custom_path).expanduser())
    candidates.extend(_default_credentials_paths())

    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()

    raise ConfigurationError(
        f"{DEFAULT_CREDENTIALS_FILENAME} not found; pass a key file path or set "
        "GIS_CLIENT_EMAIL and GIS_PRIVATE_KEY"
    )


def _normalize_private_key(private_key: str) -> str:
    # keys pasted into env vars usually carry escaped newlines
    return private_key.replace("\\n", "\n")


def credential_from_key(
    client_email: str, private_key: str
) -> ServiceAccountCredential:
    """Build a credential from an explicit client email and private key."""

    if not client_email.strip():
        raise ConfigurationError("Missing client_email in service account credentials")
    if not private_key.strip():
        raise ConfigurationError("Missing private_key in service account credentials")

    return ServiceAccountCredential(
        client_email=client_email.strip(),
        private_key=_normalize_private_key(private_key),
    )


def _credential_from_payload(
    *, payload: Any, credentials_path: Path, position: int
) -> ServiceAccountCredential:
    if not isinstance(payload, dict):
        raise GoogleCredentialsError(
            "Service account entries must be JSON objects "
            f"(entry {position}): {credentials_path}"
        )

    missing_fields = sorted(REQUIRED_SERVICE_ACCOUNT_FIELDS.difference(payload.keys()))
    if missing_fields:
        missing_fields_text = ", ".join(missing_fields)
        raise GoogleCredentialsError(
            "Service account entry is missing required fields "
            f"({missing_fields_text}) (entry {position}): {credentials_path}"
        )

    return ServiceAccountCredential(
        client_email=str(payload["client_email"]),
        private_key=_normalize_private_key(str(payload["private_key"])),
        token_uri=str(payload.get("token_uri") or DEFAULT_TOKEN_URI),
    )


def load_service_account_credentials(
    custom_path: str | Path | None = None,
) -> list[ServiceAccountCredential]:
    """Load one or more service account keys from a JSON object or array file."""

    credentials_path = resolve_credentials_path(custom_path)

    try:
        with credentials_path.open("r", encoding="utf-8") as credentials_file:
            parsed_payload: Any = json.load(credentials_file)
    except OSError as error:
        raise GoogleCredentialsError(
            f"Unable to read service account file {credentials_path}: {error}"
        ) from error
    except json.JSONDecodeError as error:
        raise GoogleCredentialsError(
            "Service account file contains invalid JSON "
            f"at line {error.lineno}, column {error.colno}: {credentials_path}"
        ) from error

    entries = parsed_payload if isinstance(parsed_payload, list) else [parsed_payload]
    if not entries:
        raise ConfigurationError(
            f"Service account file does not contain any keys: {credentials_path}"
        )

    return [
        _credential_from_payload(
            payload=entry, credentials_path=credentials_path, position=position
        )
        for position, entry in enumerate(entries)
    ]


def build_google_credentials(
    credential: ServiceAccountCredential,
    *,
    scopes: tuple[str, ...] = DEFAULT_SCOPES,
) -> service_account.Credentials:
    """Construct google-auth service account credentials for the given scopes."""

    try:
        google_credentials = service_account.Credentials.from_service_account_info(  # type: ignore[no-untyped-call]
            credential.as_service_account_info(),
            scopes=list(scopes),
        )
    except (ValueError, KeyError) as error:
        raise GoogleCredentialsError(
            f"Invalid service account key for {credential.client_email}: {error}"
        ) from error
    return cast(service_account.Credentials, google_credentials)


def fetch_access_token_sync(
    credential: ServiceAccountCredential,
    *,
    scopes: tuple[str, ...] = DEFAULT_SCOPES,
    timeout_seconds: float = 60.0,
) -> str:
    """Exchange a signed service account assertion for a bearer token."""

    google_credentials = build_google_credentials(credential, scopes=scopes)
    request = google_auth_httplib2.Request(httplib2.Http(timeout=timeout_seconds))
    try:
        google_credentials.refresh(request)
    except (
        google_auth_exceptions.RefreshError,
        google_auth_exceptions.TransportError,
    ) as error:
        raise GoogleCredentialsError(
            f"Unable to obtain access token for {credential.client_email}: {error}"
        ) from error

    token = google_credentials.token
    if not token:
        raise GoogleCredentialsError(
            f"Token endpoint returned no access token for {credential.client_email}"
        )
    return cast(str, token)


async def obtain_access_token(
    credential: ServiceAccountCredential,
    *,
    scopes: tuple[str, ...] = DEFAULT_SCOPES,
    timeout_seconds: float = 60.0,
) -> str:
    """Async wrapper for access token exchange."""

    return await asyncio.to_thread(
        fetch_access_token_sync,
        credential,
        scopes=scopes,
        timeout_seconds=timeout_seconds,
    )


__all__ = [
    "DEFAULT_SCOPES",
    "GoogleCredentialsError",
    "INDEXING_SCOPE",
    "ServiceAccountCredential",
    "WEBMASTERS_READONLY_SCOPE",
    "build_google_credentials",
    "credential_from_key",
    "fetch_access_token_sync",
    "load_service_account_credentials",
    "obtain_access_token",
    "resolve_credentials_path",
]
