"""Pool of verified service account sessions with round-robin rotation."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from gsc_indexer.services.google_credentials import (
    GoogleCredentialsError,
    ServiceAccountCredential,
)
from gsc_indexer.services.google_search_console_client import SiteAccessError

TokenProvider = Callable[[ServiceAccountCredential], Awaitable[str]]
SiteVerifier = Callable[[str, str], Awaitable[str]]

_LOGGER = logging.getLogger("gsc_indexer.session_pool")


class IndexingRunError(Exception):
    """Base exception for conditions that end an indexing run."""


class NoUsableServiceAccountError(IndexingRunError):
    """Raised when no service account can access the requested site."""


@dataclass(slots=True)
class AccountSession:
    """A verified service account and its current bearer token."""

    credential: ServiceAccountCredential
    token: str

    @property
    def client_email(self) -> str:
        return self.credential.client_email


class SessionPool:
    """Round-robin pool of sessions that can read one Search Console property.

    The pool owns the sessions; rotation refreshes the token of the shared
    session object so concurrent callers see the new token immediately.
    """

    def __init__(
        self,
        *,
        sessions: Sequence[AccountSession],
        site_url: str,
        token_provider: TokenProvider,
    ) -> None:
        if not sessions:
            raise NoUsableServiceAccountError(
                "Session pool requires at least one session"
            )

        self._sessions = list(sessions)
        self._site_url = site_url
        self._token_provider = token_provider
        self._current_index = 0

    @classmethod
    async def build(
        cls,
        credentials: Sequence[ServiceAccountCredential],
        site_url: str,
        *,
        token_provider: TokenProvider,
        site_verifier: SiteVerifier,
    ) -> SessionPool:
        """Verify every credential against the site and keep the ones that pass.

        The canonical site form returned by the first successful check is used
        for the whole run.
        """

        sessions: list[AccountSession] = []
        verified_site_url: str | None = None

        for credential in credentials:
            try:
                token = await token_provider(credential)
                canonical_site_url = await site_verifier(token, site_url)
            except (GoogleCredentialsError, SiteAccessError) as error:
                _LOGGER.warning(
                    "service_account_rejected",
                    extra={
                        "client_email": credential.client_email,
                        "site_url": site_url,
                        "error_message": str(error),
                    },
                )
                continue

            if verified_site_url is None:
                verified_site_url = canonical_site_url
            sessions.append(AccountSession(credential=credential, token=token))

        if verified_site_url is None:
            raise NoUsableServiceAccountError(
                f"Failed to find any service account with access to {site_url}"
            )

        return cls(
            sessions=sessions,
            site_url=verified_site_url,
            token_provider=token_provider,
        )

    @property
    def site_url(self) -> str:
        return self._site_url

    @property
    def size(self) -> int:
        return len(self._sessions)

    @property
    def sessions(self) -> tuple[AccountSession, ...]:
        return tuple(self._sessions)

    @property
    def active(self) -> AccountSession:
        return self._sessions[self._current_index]

    async def rotate(self, expected: AccountSession | None = None) -> AccountSession:
        """Advance to the next session, refresh its token and return it.

        ``expected`` is the session the caller was throttled on. When another
        caller already rotated away from it the pool is left where it is and
        the current session is returned, so concurrent callers never undo each
        other's rotations.
        """

        if expected is not None and self.active is not expected:
            return self.active

        self._current_index = (self._current_index + 1) % len(self._sessions)
        session = self._sessions[self._current_index]
        _LOGGER.info(
            "service_account_rotated", extra={"client_email": session.client_email}
        )

        try:
            session.token = await self._token_provider(session.credential)
        except GoogleCredentialsError as error:
            _LOGGER.warning(
                "service_account_token_refresh_failed",
                extra={
                    "client_email": session.client_email,
                    "error_message": str(error),
                },
            )
        return session


__all__ = [
    "AccountSession",
    "IndexingRunError",
    "NoUsableServiceAccountError",
    "SessionPool",
    "SiteVerifier",
    "TokenProvider",
]
