"""
Token service — issue, authenticate and revoke personal access tokens.

Plaintext tokens have the form ``<id>|<secret>`` and are shown exactly once,
at issue time.  Only ``sha256(secret)`` is persisted, so a leaked database
row cannot be replayed as a bearer credential.
"""
import hashlib
import hmac
import logging
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api.config import settings
from blog_api.models import AccessToken, User, parse_id, utcnow

logger = logging.getLogger(__name__)


def hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


def parse_bearer(header: str | None) -> str | None:
    """Return the credential from an ``Authorization: Bearer ...`` header."""
    if not header:
        return None
    scheme, _, credential = header.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        return None
    return credential.strip()


async def issue_token(
    db: AsyncSession,
    user: User,
    name: str = "api",
    abilities: list[str] | None = None,
) -> tuple[AccessToken, str]:
    """
    Create a token for *user* and return ``(row, plaintext)``.

    *abilities* defaults to ``["*"]`` (every scope).
    """
    secret = secrets.token_hex(settings.TOKEN_BYTES)
    token = AccessToken(
        user_id=user.id,
        name=name,
        token=hash_secret(secret),
        abilities=list(abilities) if abilities is not None else ["*"],
    )
    token.user = user
    db.add(token)
    await db.flush()
    logger.info("Issued token id=%s for user_id=%s", token.id, user.id)
    return token, f"{token.id}|{secret}"


async def authenticate(db: AsyncSession, credential: str | None) -> AccessToken | None:
    """
    Resolve a plaintext bearer credential to its token row (with ``user``
    loaded), or None when it is missing, malformed, or unknown.
    """
    if not credential:
        return None

    token_id, sep, secret = credential.partition("|")
    q = select(AccessToken).options(joinedload(AccessToken.user))
    if sep:
        pk = parse_id(token_id)
        if pk is None or not secret:
            return None
        q = q.where(AccessToken.id == pk)
    else:
        secret = credential
        q = q.where(AccessToken.token == hash_secret(secret))

    result = await db.execute(q)
    token = result.unique().scalar_one_or_none()
    if token is None or not hmac.compare_digest(token.token, hash_secret(secret)):
        logger.debug("Rejected bearer token")
        return None

    token.last_used_at = utcnow()
    await db.flush()
    return token


async def revoke(db: AsyncSession, token: AccessToken) -> None:
    """Delete *token* only; the user's other tokens stay valid."""
    await db.delete(token)
    await db.flush()
    logger.info("Revoked token id=%s for user_id=%s", token.id, token.user_id)
