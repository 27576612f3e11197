"""
Authentication tests — bearer token resolution, logout, and direct
token_service behaviour.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import AccessToken
from blog_api.services import token_service

LOGOUT = "/api/v1/logout"


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_guests_cannot_logout(async_client: AsyncClient):
    resp = await async_client.post(LOGOUT)
    assert resp.status_code == 401
    assert resp.json()["errors"][0]["title"] == "Unauthenticated"
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_logout_revokes_only_the_current_token(async_client: AsyncClient, factory, fetch):
    user = await factory.user()
    current = await factory.auth_headers(user)
    other = await factory.auth_headers(user)

    resp = await async_client.post(LOGOUT, headers=current)
    assert resp.status_code == 204
    assert resp.content == b""
    assert await fetch.count(AccessToken) == 1

    # The revoked token no longer authenticates...
    resp = await async_client.post(LOGOUT, headers=current)
    assert resp.status_code == 401

    # ...but the user's other token still does.
    resp = await async_client.post(LOGOUT, headers=other)
    assert resp.status_code == 204
    assert await fetch.count(AccessToken) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header",
    [
        "Bearer",
        "Basic dXNlcjpwYXNz",
        "Bearer abc|secret",
        "Bearer 1|",
        "Token 1|secret",
        "Bearer " + "9" * 30 + "|secret",
        "Bearer -1|secret",
        "Bearer \u00b2|abc".encode("latin-1"),
    ],
)
async def test_malformed_credentials_are_unauthenticated(async_client: AsyncClient, factory, header):
    await factory.token(await factory.user())
    resp = await async_client.post(LOGOUT, headers={"Authorization": header})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_with_wrong_secret_is_unauthenticated(async_client: AsyncClient, factory):
    plaintext = await factory.token(await factory.user())
    token_id, _, _ = plaintext.partition("|")
    resp = await async_client.post(LOGOUT, headers={"Authorization": f"Bearer {token_id}|wrong"})
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# token_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_issue_token_stores_only_the_hash(db_session: AsyncSession, factory):
    user = await factory.user()
    token, plaintext = await token_service.issue_token(db_session, user, name="cli", abilities=["article:create"])

    token_id, sep, secret = plaintext.partition("|")
    assert sep == "|"
    assert token_id == str(token.id)
    assert token.token == token_service.hash_secret(secret)
    assert secret not in token.token
    assert token.abilities == ["article:create"]
    assert token.name == "cli"


@pytest.mark.asyncio
async def test_issue_token_defaults_to_all_abilities(db_session: AsyncSession, factory):
    token, _ = await token_service.issue_token(db_session, await factory.user())
    assert token.abilities == ["*"]
    assert token.can("article:create")
    assert token.can("anything:else")


@pytest.mark.asyncio
async def test_authenticate_resolves_user_and_marks_usage(db_session: AsyncSession, factory):
    user = await factory.user()
    token, plaintext = await token_service.issue_token(db_session, user)
    assert token.last_used_at is None

    resolved = await token_service.authenticate(db_session, plaintext)
    assert resolved is not None
    assert resolved.id == token.id
    assert resolved.user.id == user.id
    assert resolved.last_used_at is not None


@pytest.mark.asyncio
async def test_authenticate_accepts_bare_secret(db_session: AsyncSession, factory):
    token, plaintext = await token_service.issue_token(db_session, await factory.user())
    _, _, secret = plaintext.partition("|")
    resolved = await token_service.authenticate(db_session, secret)
    assert resolved is not None and resolved.id == token.id


@pytest.mark.asyncio
async def test_authenticate_rejects_unknown_credentials(db_session: AsyncSession):
    assert await token_service.authenticate(db_session, None) is None
    assert await token_service.authenticate(db_session, "") is None
    assert await token_service.authenticate(db_session, "12|nope") is None
    assert await token_service.authenticate(db_session, "nope") is None
    assert await token_service.authenticate(db_session, "\u00b2|abc") is None
    assert await token_service.authenticate(db_session, "9" * 30 + "|abc") is None


def test_parse_bearer():
    assert token_service.parse_bearer("Bearer 1|abc") == "1|abc"
    assert token_service.parse_bearer("bearer  1|abc ") == "1|abc"
    assert token_service.parse_bearer(None) is None
    assert token_service.parse_bearer("Bearer ") is None
    assert token_service.parse_bearer("Basic abc") is None
