from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import policies, presenter
from blog_api.config import settings
from blog_api.database import get_db
from blog_api.dependencies import require_token
from blog_api.exceptions import NotFound
from blog_api.models import AccessToken
from blog_api.schemas import ResourceDocumentIn
from blog_api.services import comment_service
from blog_api.validation import comment_create_validator

router = APIRouter(prefix=f"{settings.API_PREFIX}/comments", tags=["comments"])


@router.get("/{comment_id}")
async def get_comment(
    comment_id: int,
    include: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    includes = presenter.parse_includes(include, presenter.COMMENT_INCLUDES)
    comment = await comment_service.get_comment(db, comment_id, includes)
    if comment is None:
        raise NotFound.for_resource("comments", comment_id)
    return presenter.json_api_response(presenter.resource_document(comment, includes))


@router.post("", status_code=201)
async def create_comment(
    document: ResourceDocumentIn,
    token: AccessToken = Depends(require_token),
    db: AsyncSession = Depends(get_db),
):
    payload = await comment_create_validator.validate(db, document.data)
    policies.authorize(token, policies.COMMENT_CREATE)
    comment = await comment_service.create_comment(db, token.user, payload)
    return presenter.created_response(presenter.resource_document(comment))
