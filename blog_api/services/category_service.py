"""Category service — read-only; categories are seeded, not created through the API."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import Category, parse_id


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name, Category.id))
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: int) -> Category | None:
    if parse_id(category_id) is None:
        return None
    return await db.get(Category, category_id)
