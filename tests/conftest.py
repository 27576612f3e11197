"""
Test infrastructure for the blog JSON:API.

Strategy
--------
- SQLite in-memory via aiosqlite, so no Postgres instance is needed.
- StaticPool forces every session onto the same in-memory connection;
  SQLite in-memory databases are connection-scoped, and a new connection
  would see an empty database.
- The app's get_db dependency is overridden so every request uses the test
  session factory.
- All tables are created before each test and dropped after.
- Redis is disabled by setting cache._redis = None; CacheManager treats that
  as "no cache" and every read goes to the database.
- ``factory`` persists rows directly (users, categories, articles, tokens);
  assertions about stored state go through ``fetch`` which opens a fresh
  session, so nothing is served from a stale identity map.
"""
import itertools

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.database import Base, get_db
from blog_api.main import app
from blog_api.models import Article, Category, User
from blog_api.services import token_service

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class Factory:
    """Persist test rows with unique defaults; every call commits."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._seq = itertools.count(1)

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def user(self, **overrides) -> User:
        n = next(self._seq)
        data = {"name": f"User {n}", "email": f"user{n}@example.com"}
        data.update(overrides)
        return await self._save(User(**data))

    async def category(self, **overrides) -> Category:
        n = next(self._seq)
        data = {"name": f"Category {n}", "slug": f"category-{n}"}
        data.update(overrides)
        return await self._save(Category(**data))

    async def article(self, author: User | None = None, category: Category | None = None, **overrides) -> Article:
        author = author or await self.user()
        category = category or await self.category()
        n = next(self._seq)
        data = {
            "title": f"Article number {n}",
            "slug": f"article-number-{n}",
            "content": f"Content of article {n}",
            "user_id": author.id,
            "category_id": category.id,
        }
        data.update(overrides)
        return await self._save(Article(**data))

    async def token(self, user: User, abilities: list[str] | None = None) -> str:
        _, plaintext = await token_service.issue_token(self.session, user, abilities=abilities)
        await self.session.commit()
        return plaintext

    async def auth_headers(self, user: User, abilities: list[str] | None = None) -> dict:
        return {"Authorization": f"Bearer {await self.token(user, abilities)}"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def default_scope_setting(monkeypatch):
    """Scope enforcement is off unless a test turns it on."""
    monkeypatch.setattr(settings, "ENFORCE_TOKEN_SCOPES", False)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


@pytest.fixture
def fetch():
    """
    Return a helper that reads committed state through a fresh session::

        article = await fetch(Article, slug="nuevo-articulo")
        count = await fetch.count(Comment)
    """

    class _Fetch:
        async def __call__(self, model, **filters):
            async with async_session_test() as session:
                result = await session.execute(select(model).filter_by(**filters))
                return result.scalars().first()

        async def count(self, model) -> int:
            async with async_session_test() as session:
                return (await session.execute(select(func.count()).select_from(model))).scalar_one()

    return _Fetch()


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """httpx.AsyncClient wired to the app via ASGITransport, Redis disabled."""
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
