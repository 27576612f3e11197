from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import presenter
from blog_api.config import settings
from blog_api.database import get_db
from blog_api.exceptions import NotFound
from blog_api.services import category_service

router = APIRouter(prefix=f"{settings.API_PREFIX}/categories", tags=["categories"])


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    categories = await category_service.list_categories(db)
    return presenter.json_api_response({"data": [presenter.to_resource(c) for c in categories]})


@router.get("/{category_id}")
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    category = await category_service.get_category(db, category_id)
    if category is None:
        raise NotFound.for_resource("categories", category_id)
    return presenter.json_api_response(presenter.resource_document(category))
