"""
Test infrastructure for the Blog JSON:API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- Foreign keys are switched on for every connection so ON DELETE CASCADE
  behaves as it does on Postgres.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- The OAuth code exchanger is replaced by ``FakeCodeExchanger``; no test
  talks to GitHub.
- The Redis cache is disabled by setting cache._redis = None; the
  CacheManager handles a None _redis as a no-op.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.cache import cache
from blog_api.database import Base, get_db
from blog_api.errors import AuthenticationError
from blog_api.main import app
from blog_api.middleware import install_query_counter
from blog_api.models import AccessToken, Article, Comment, User
from blog_api.oauth import UserProfile, get_code_exchanger

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)


@event.listens_for(engine_test.sync_engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            cache.discard_pending(session)
            raise
        await cache.apply_pending(session)


class FakeCodeExchanger:
    """Accepts the codes registered in ``profiles``; rejects everything else."""

    def __init__(self) -> None:
        self.profiles: dict[str, UserProfile] = {
            "valid-code": UserProfile(
                login="octocat",
                provider="github",
                name="The Octocat",
                url="https://github.com/octocat",
                avatar_url="https://avatars.example.com/octocat.png",
            ),
        }

    async def exchange(self, code: str) -> UserProfile:
        try:
            return self.profiles[code]
        except KeyError:
            raise AuthenticationError() from None


fake_exchanger = FakeCodeExchanger()

app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_code_exchanger] = lambda: fake_exchanger


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


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with Redis disabled.
    """
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Data helpers: committed through their own session so that requests made
# via async_client see them.
# ---------------------------------------------------------------------------

async def create_user(login: str = "author", with_token: bool = True) -> tuple[User, str | None]:
    """Persist a user (and optionally an access token); return (user, token)."""
    async with async_session_test() as session:
        user = User(login=login, provider="github", name=login.title(), url=f"https://example.com/{login}")
        session.add(user)
        await session.flush()
        token = None
        if with_token:
            access_token = AccessToken(user_id=user.id)
            session.add(access_token)
            token = access_token.token
        await session.commit()
        return user, token


async def create_article(user: User, title: str = "Title", slug: str | None = None, content: str = "Content") -> Article:
    async with async_session_test() as session:
        article = Article(title=title, content=content, slug=slug or title.lower().replace(" ", "-"), user_id=user.id)
        session.add(article)
        await session.commit()
        return article


async def create_comment(article: Article, user: User, content: str = "Nice one") -> Comment:
    async with async_session_test() as session:
        comment = Comment(content=content, article_id=article.id, user_id=user.id)
        session.add(comment)
        await session.commit()
        return comment


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def author() -> tuple[User, str]:
    return await create_user("author")


@pytest_asyncio.fixture
async def other_user() -> tuple[User, str]:
    return await create_user("stranger")
