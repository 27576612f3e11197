"""
Authorization policy.

``can(token, action, resource)`` answers allow/deny for an authenticated
caller; ``authorize`` raises ``Forbidden`` on deny.  Authentication is
checked before any policy runs, so *token* is never None here.

Ownership is the primary rule: only an article's author may update or
delete it, whatever abilities the token carries.  Token abilities are an
additional gate that applies only when ``settings.ENFORCE_TOKEN_SCOPES``
is enabled.
"""
import logging

from blog_api.config import settings
from blog_api.exceptions import Forbidden
from blog_api.models import AccessToken, Article

logger = logging.getLogger(__name__)

ARTICLE_CREATE = "article:create"
ARTICLE_UPDATE = "article:update"
ARTICLE_DELETE = "article:delete"
COMMENT_CREATE = "comment:create"
LOGOUT = "logout"


def _has_scope(token: AccessToken, ability: str) -> bool:
    if not settings.ENFORCE_TOKEN_SCOPES:
        return True
    return token.can(ability)


def _owns(token: AccessToken, article: Article | None) -> bool:
    return article is not None and article.user_id == token.user_id


def can(token: AccessToken, action: str, resource=None) -> bool:
    if action == ARTICLE_CREATE:
        return _has_scope(token, ARTICLE_CREATE)
    if action in (ARTICLE_UPDATE, ARTICLE_DELETE):
        return _owns(token, resource) and _has_scope(token, action)
    if action in (COMMENT_CREATE, LOGOUT):
        return True
    return False


def authorize(token: AccessToken, action: str, resource=None) -> None:
    if not can(token, action, resource):
        logger.info("Denied %s for user_id=%s", action, token.user_id)
        raise Forbidden()
