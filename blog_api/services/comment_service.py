"""
Comment service — append-only comment creation and lookup.

Comments cannot be edited or deleted through the API.  The author of a
new comment is the authenticated user; the ``author`` relationship in the
request must still name an existing user to pass validation, but it is
not what gets stored.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api.models import Comment, User, parse_id
from blog_api.validation import ValidatedPayload

logger = logging.getLogger(__name__)

_INCLUDE_OPTIONS = {
    "article": lambda: joinedload(Comment.article),
    "author": lambda: joinedload(Comment.author),
}


async def create_comment(db: AsyncSession, author: User, payload: ValidatedPayload) -> Comment:
    article = payload.relationships["article"]
    comment = Comment(
        body=payload.attributes["body"],
        article_id=article.id,
        user_id=author.id,
    )
    comment.article = article
    comment.author = author

    db.add(comment)
    await db.flush()
    logger.info("Created comment id=%s on article id=%s by user_id=%s", comment.id, article.id, author.id)
    return comment


async def get_comment(
    db: AsyncSession, comment_id: int, includes: list[str] | None = None
) -> Comment | None:
    if parse_id(comment_id) is None:
        return None
    q = (
        select(Comment)
        .where(Comment.id == comment_id)
        .options(*[_INCLUDE_OPTIONS[path]() for path in includes or []])
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()
