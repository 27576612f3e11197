from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import policies
from blog_api.config import settings
from blog_api.database import get_db
from blog_api.dependencies import require_token
from blog_api.models import AccessToken
from blog_api.services import token_service

router = APIRouter(prefix=settings.API_PREFIX, tags=["auth"])


@router.post("/logout", status_code=204)
async def logout(
    token: AccessToken = Depends(require_token),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the token used for this request; other tokens stay valid."""
    policies.authorize(token, policies.LOGOUT)
    await token_service.revoke(db, token)
    return Response(status_code=204)
