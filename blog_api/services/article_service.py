"""
Article service — persistence for the Article aggregate.

Design notes
------------
- Writes receive an already validated ``ValidatedPayload`` whose
  relationship rows were resolved by the validator; nothing here re-checks
  referential integrity.
- The author is always the authenticated user passed in by the router,
  never a value from the request document.
- Reads eager-load only the relationships named in ``include`` (all
  relationships are ``lazy="noload"`` on the models).
- Single-article documents go through the cache-aside pattern (Redis →
  fallback to DB).  Routers invalidate them once an update or delete
  has committed.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging

from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api import presenter
from blog_api.cache import cache
from blog_api.config import settings
from blog_api.exceptions import FieldError, ValidationFailed
from blog_api.models import Article, User, parse_id
from blog_api.validation import ValidatedPayload

logger = logging.getLogger(__name__)

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset({"created_at", "updated_at", "title"})

_INCLUDE_OPTIONS = {
    "category": lambda: joinedload(Article.category),
    "author": lambda: joinedload(Article.author),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_sort(sort: str):
    """
    Return the ORDER BY expression for a JSON:API ``sort`` value.

    Falls back to newest-first for any unrecognised column name.
    """
    descending = sort.startswith("-")
    column_name = sort.lstrip("-")
    if column_name not in _SORTABLE_COLUMNS:
        return desc(Article.created_at)
    column = getattr(Article, column_name)
    return desc(column) if descending else asc(column)


def _load_options(includes: list[str]) -> list:
    return [_INCLUDE_OPTIONS[path]() for path in includes]


async def _flush_guarding_slug(db: AsyncSession) -> None:
    """
    Flush, reporting a lost slug race as the regular validation error.

    The validator checks uniqueness first; the unique index only fires
    when a concurrent request claimed the slug in between.
    """
    try:
        await db.flush()
    except IntegrityError as exc:
        logger.info("Slug conflict on flush: %s", exc.orig)
        raise ValidationFailed(
            [FieldError("slug", "unique", "The data.attributes.slug has already been taken.")]
        ) from exc


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_articles(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 15,
    sort: str = "-created_at",
    includes: list[str] | None = None,
) -> tuple[list[Article], int]:
    """Return one page of articles and the total article count."""
    total: int = (await db.execute(select(func.count()).select_from(Article))).scalar_one()

    q = (
        select(Article)
        .options(*_load_options(includes or []))
        .order_by(_resolve_sort(sort), Article.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(q)
    return list(result.unique().scalars().all()), total


async def get_article(
    db: AsyncSession, article_id: int, includes: list[str] | None = None
) -> Article | None:
    if parse_id(article_id) is None:
        return None
    q = select(Article).where(Article.id == article_id).options(*_load_options(includes or []))
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def get_article_document(
    db: AsyncSession, article_id: int, includes: list[str]
) -> dict | None:
    """
    Return the rendered JSON:API document for *article_id*, or None when
    the article does not exist.
    """
    cache_key = cache.article_key(article_id, includes)
    cached = await cache.get(cache_key)
    if cached:
        return cached

    article = await get_article(db, article_id, includes)
    if article is None:
        return None

    document = presenter.resource_document(article, includes)
    await cache.set(cache_key, document, ttl=settings.CACHE_TTL_DETAIL)
    return document


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, author: User, payload: ValidatedPayload) -> Article:
    category = payload.relationships["category"]
    article = Article(
        title=payload.attributes["title"],
        slug=payload.attributes["slug"],
        content=payload.attributes["content"],
        category_id=category.id,
        user_id=author.id,
    )
    article.category = category
    article.author = author

    db.add(article)
    await _flush_guarding_slug(db)
    logger.info("Created article id=%s by user_id=%s", article.id, author.id)
    return article


async def update_article(db: AsyncSession, article: Article, payload: ValidatedPayload) -> Article:
    """
    Apply validated attributes and relationships to *article*.

    Relationships absent from *payload* keep their stored values.
    """
    for name, value in payload.attributes.items():
        setattr(article, name, value)

    category = payload.relationships.get("category")
    if category is not None:
        article.category = category
        article.category_id = category.id

    await _flush_guarding_slug(db)
    logger.info("Updated article id=%s", article.id)
    return article


async def delete_article(db: AsyncSession, article: Article) -> None:
    article_id = article.id
    await db.delete(article)
    await db.flush()
    logger.info("Deleted article id=%s", article_id)
