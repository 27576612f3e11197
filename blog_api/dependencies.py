from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings
from blog_api.database import get_db
from blog_api.exceptions import Unauthenticated
from blog_api.models import AccessToken
from blog_api.services import token_service


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def optional_token(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> AccessToken | None:
    """The access token presented with the request, or None."""
    credential = token_service.parse_bearer(authorization)
    return await token_service.authenticate(db, credential)


async def require_token(
    token: AccessToken | None = Depends(optional_token),
) -> AccessToken:
    """
    Reject the request with 401 unless it carries a valid bearer token.

    Declared ahead of the request body on write routes, so an anonymous
    request is refused before its payload is looked at.
    """
    if token is None:
        raise Unauthenticated()
    return token


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class PaginationParams:
    """
    Reusable FastAPI dependency that parses JSON:API pagination and
    sorting query parameters.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(pagination: PaginationParams = Depends()):
            ...

    Attributes
    ----------
    page:
        1-based page number from ``page[number]`` (minimum 1).
    page_size:
        Items per page from ``page[size]``, clamped to
        ``settings.MAX_PAGE_SIZE`` regardless of the value supplied.
    sort:
        JSON:API sort field; a leading ``-`` means descending.  The
        service layer maps it onto a whitelisted column.
    """

    def __init__(
        self,
        page: int = Query(
            1,
            alias="page[number]",
            ge=1,
            description="Page number (1-based).",
        ),
        page_size: int | None = Query(
            None,
            alias="page[size]",
            ge=1,
            description="Number of items returned per page.",
        ),
        sort: str = Query(
            "-created_at",
            pattern=r"^-?[a-z_]+$",
            description="Sort field; prefix with '-' for descending order.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        self.sort = sort
