from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import policies, presenter
from blog_api.cache import cache
from blog_api.config import settings
from blog_api.database import get_db
from blog_api.dependencies import PaginationParams, require_token
from blog_api.exceptions import NotFound
from blog_api.models import AccessToken
from blog_api.schemas import ResourceDocumentIn
from blog_api.services import article_service
from blog_api.validation import article_create_validator, article_update_validator

router = APIRouter(prefix=f"{settings.API_PREFIX}/articles", tags=["articles"])


async def _find_or_404(db: AsyncSession, article_id: int):
    article = await article_service.get_article(db, article_id)
    if article is None:
        raise NotFound.for_resource("articles", article_id)
    return article


@router.get("")
async def list_articles(
    pagination: PaginationParams = Depends(),
    include: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    includes = presenter.parse_includes(include, presenter.ARTICLE_INCLUDES)
    articles, total = await article_service.list_articles(
        db, pagination.page, pagination.page_size, pagination.sort, includes
    )
    return presenter.json_api_response(
        presenter.collection_document(
            articles,
            resource_type="articles",
            page=pagination.page,
            page_size=pagination.page_size,
            total=total,
            includes=includes,
        )
    )


@router.get("/{article_id}")
async def get_article(
    article_id: int,
    include: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    includes = presenter.parse_includes(include, presenter.ARTICLE_INCLUDES)
    document = await article_service.get_article_document(db, article_id, includes)
    if document is None:
        raise NotFound.for_resource("articles", article_id)
    return presenter.json_api_response(document)


@router.post("", status_code=201)
async def create_article(
    document: ResourceDocumentIn,
    token: AccessToken = Depends(require_token),
    db: AsyncSession = Depends(get_db),
):
    payload = await article_create_validator.validate(db, document.data)
    policies.authorize(token, policies.ARTICLE_CREATE)
    article = await article_service.create_article(db, token.user, payload)
    return presenter.created_response(presenter.resource_document(article))


@router.patch("/{article_id}")
async def update_article(
    article_id: int,
    document: ResourceDocumentIn,
    token: AccessToken = Depends(require_token),
    db: AsyncSession = Depends(get_db),
):
    article = await _find_or_404(db, article_id)
    payload = await article_update_validator.validate(db, document.data, ignore_id=article.id)
    policies.authorize(token, policies.ARTICLE_UPDATE, article)
    article = await article_service.update_article(db, article, payload)
    await db.commit()
    await cache.invalidate_article(article.id)
    return presenter.json_api_response(presenter.resource_document(article))


@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: int,
    token: AccessToken = Depends(require_token),
    db: AsyncSession = Depends(get_db),
):
    article = await _find_or_404(db, article_id)
    policies.authorize(token, policies.ARTICLE_DELETE, article)
    await article_service.delete_article(db, article)
    await db.commit()
    await cache.invalidate_article(article_id)
    return Response(status_code=204)
