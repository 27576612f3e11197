"""Seed a development database and print a bearer token per user."""
import argparse
import asyncio
import random
import time

from blog_api.database import engine, async_session, Base
from blog_api.models import User, Category, Article, Comment
from blog_api.services import token_service

CATEGORIES = ["Python", "Databases", "Web APIs", "DevOps", "Testing"]


def _slug(text: str) -> str:
    return "-".join(text.lower().split())


async def seed(num_users: int, num_articles: int) -> None:
    print(f"Seeding: {len(CATEGORIES)} categories, {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        categories = [Category(name=name, slug=_slug(name)) for name in CATEGORIES]
        session.add_all(categories)

        users = [
            User(name=f"User {i}", email=f"user_{i:03d}@example.com")
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()

        articles = []
        for i in range(num_articles):
            category = random.choice(categories)
            article = Article(
                title=f"Article {i} about {category.name}",
                slug=f"article-{i}-{category.slug}",
                content=f"This is the full content of article {i}. " * 10,
                category_id=category.id,
                user_id=random.choice(users).id,
            )
            articles.append(article)
        session.add_all(articles)
        await session.flush()

        for article in articles:
            for _ in range(random.randint(0, 3)):
                session.add(
                    Comment(
                        body="Great article, very helpful.",
                        article_id=article.id,
                        user_id=random.choice(users).id,
                    )
                )

        tokens = []
        for user in users:
            _, plaintext = await token_service.issue_token(
                session, user, name="seed", abilities=["article:create", "article:update", "article:delete"]
            )
            tokens.append((user, plaintext))

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s\n")
    for user, plaintext in tokens:
        print(f"  {user.email}: Bearer {plaintext}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--users", type=int, default=3)
    parser.add_argument("--articles", type=int, default=20)
    args = parser.parse_args()
    asyncio.run(seed(args.users, args.articles))


if __name__ == "__main__":
    main()
