"""Tests for service account verification and round-robin rotation."""

from __future__ import annotations

import pytest

from gsc_indexer.services.google_credentials import (
    GoogleCredentialsError,
    ServiceAccountCredential,
)
from gsc_indexer.services.google_search_console_client import SiteAccessError
from gsc_indexer.services.session_pool import (
    AccountSession,
    NoUsableServiceAccountError,
    SessionPool,
    SiteVerifier,
)


def _credential(name: str) -> ServiceAccountCredential:
    return ServiceAccountCredential(
        client_email=f"{name}@example.iam.gserviceaccount.com",
        private_key=f"{name}-key",
    )


class _TokenProvider:
    """Hands out numbered tokens per account; listed accounts fail."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self._failing = failing or set()
        self.calls: dict[str, int] = {}

    async def __call__(self, credential: ServiceAccountCredential) -> str:
        name = credential.client_email.split("@")[0]
        if name in self._failing:
            raise GoogleCredentialsError(f"Unable to obtain access token for {name}")
        self.calls[name] = self.calls.get(name, 0) + 1
        return f"{name}-token-{self.calls[name]}"


def _site_verifier(
    denied_tokens: set[str] | None = None, canonical: str = ""
) -> SiteVerifier:
    denied = denied_tokens or set()

    async def verify(token: str, site_url: str) -> str:
        if token in denied:
            raise SiteAccessError(f"No access to {site_url}")
        return canonical or site_url

    return verify


@pytest.mark.asyncio
async def test_build_keeps_only_accounts_with_site_access() -> None:
    token_provider = _TokenProvider(failing={"broken"})

    pool = await SessionPool.build(
        [_credential("a"), _credential("broken"), _credential("b"), _credential("c")],
        "https://example.com/",
        token_provider=token_provider,
        site_verifier=_site_verifier(denied_tokens={"b-token-1"}),
    )

    assert pool.size == 2
    assert [session.client_email for session in pool.sessions] == [
        "a@example.iam.gserviceaccount.com",
        "c@example.iam.gserviceaccount.com",
    ]
    assert pool.active.token == "a-token-1"


@pytest.mark.asyncio
async def test_build_uses_the_canonical_site_form() -> None:
    pool = await SessionPool.build(
        [_credential("a")],
        "https://example.com/",
        token_provider=_TokenProvider(),
        site_verifier=_site_verifier(canonical="sc-domain:example.com"),
    )

    assert pool.site_url == "sc-domain:example.com"


@pytest.mark.asyncio
async def test_build_fails_when_no_account_can_access_the_site() -> None:
    with pytest.raises(NoUsableServiceAccountError, match="https://example.com/"):
        await SessionPool.build(
            [_credential("a"), _credential("b")],
            "https://example.com/",
            token_provider=_TokenProvider(),
            site_verifier=_site_verifier(denied_tokens={"a-token-1", "b-token-1"}),
        )


@pytest.mark.asyncio
async def test_rotate_wraps_around_and_refreshes_tokens() -> None:
    token_provider = _TokenProvider()
    pool = await SessionPool.build(
        [_credential("a"), _credential("b")],
        "https://example.com/",
        token_provider=token_provider,
        site_verifier=_site_verifier(),
    )

    first = await pool.rotate()
    second = await pool.rotate()

    assert first.client_email == "b@example.iam.gserviceaccount.com"
    assert first.token == "b-token-2"
    assert second is pool.active
    assert second.client_email == "a@example.iam.gserviceaccount.com"
    assert second.token == "a-token-2"


@pytest.mark.asyncio
async def test_rotate_away_from_a_stale_session_keeps_the_current_one() -> None:
    token_provider = _TokenProvider()
    pool = await SessionPool.build(
        [_credential("a"), _credential("b"), _credential("c")],
        "https://example.com/",
        token_provider=token_provider,
        site_verifier=_site_verifier(),
    )
    throttled = pool.active

    first = await pool.rotate(expected=throttled)
    second = await pool.rotate(expected=throttled)

    assert first.client_email == "b@example.iam.gserviceaccount.com"
    assert second is first
    assert pool.active is first
    assert first.token == "b-token-2"
    assert token_provider.calls == {"a": 1, "b": 2, "c": 1}


@pytest.mark.asyncio
async def test_rotate_keeps_previous_token_when_refresh_fails() -> None:
    credential = _credential("a")
    pool = SessionPool(
        sessions=[AccountSession(credential=credential, token="a-token-1")],
        site_url="https://example.com/",
        token_provider=_TokenProvider(failing={"a"}),
    )

    session = await pool.rotate()

    assert session is pool.active
    assert session.token == "a-token-1"


def test_pool_requires_at_least_one_session() -> None:
    with pytest.raises(NoUsableServiceAccountError):
        SessionPool(
            sessions=[],
            site_url="https://example.com/",
            token_provider=_TokenProvider(),
        )
