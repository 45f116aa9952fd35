"""Seed a development database with users, access tokens, articles and comments.

Users normally arrive through ``POST /login``; seeding creates them (and
their bearer tokens) directly so the API can be exercised without an OAuth
provider.  The tokens are printed at the end.
"""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from blog_api.database import Base, async_session, engine
from blog_api.models import AccessToken, Article, Comment, User

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "testing",
          "performance", "security", "json-api", "sqlalchemy"]


async def seed(num_users: int, num_articles: int, max_comments: int) -> None:
    print(f"Seeding: {num_users} users, {num_articles} articles, up to {max_comments} comments each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = User(
                login=f"user_{i:04d}",
                provider="seed",
                name=f"User {i}",
                url=f"https://example.com/user_{i:04d}",
                avatar_url=f"https://example.com/avatars/{i}.png",
            )
            session.add(user)
            users.append(user)
        await session.flush()

        tokens = []
        for user in users:
            access_token = AccessToken(user_id=user.id)
            session.add(access_token)
            tokens.append((user.login, access_token.token))
        await session.flush()

        total_comments = 0
        now = datetime.now(timezone.utc)
        for i in range(num_articles):
            topic = random.choice(TOPICS)
            article = Article(
                title=f"Article {i}: notes on {topic}",
                slug=f"article-{i}-{topic}",
                content=f"This is the full content of article {i}. " * 20,
                created_at=now - timedelta(minutes=num_articles - i),
                user_id=random.choice(users).id,
            )
            session.add(article)
            await session.flush()

            for _ in range(random.randint(0, max_comments)):
                session.add(Comment(
                    content=f"Comment on {topic}, very helpful.",
                    article_id=article.id,
                    user_id=random.choice(users).id,
                ))
                total_comments += 1
        await session.flush()
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Articles: {num_articles}")
    print(f"  Comments: {total_comments}")
    print("\nBearer tokens:")
    for login, token in tokens:
        print(f"  {login}: {token}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--users", type=int, default=5)
    parser.add_argument("--articles", type=int, default=50)
    parser.add_argument("--max-comments", type=int, default=4)
    args = parser.parse_args()
    asyncio.run(seed(args.users, args.articles, args.max_comments))


if __name__ == "__main__":
    main()
