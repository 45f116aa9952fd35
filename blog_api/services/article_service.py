"""
Article service: business logic for the Article aggregate.

Design notes
------------
- List and detail reads return finished JSON:API documents and go through
  the cache-aside layer (Redis → fallback to DB).  Cache keys encode every
  dimension that affects the document (page, size, includes).
- Listing order is newest first with the primary key as tie-breaker, so a
  page is stable for an unmodified table even when timestamps collide.
- The ``comments`` relationship linkage needs the collection loaded; only
  comment ids are fetched unless the caller includes the comments.
- Writes return a ``SaveResult`` instead of raising on invalid input.
  Validation runs against the merged values *before* the ORM object is
  touched, so a rejected update leaves nothing dirty in the session.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blog_api import serializers
from blog_api.cache import cache
from blog_api.config import settings
from blog_api.models import Article, Comment, User
from blog_api.pagination import PageParams, paginate
from blog_api.schemas import ArticleAttributes
from blog_api.validation import TAKEN, FieldError, SaveResult, is_blank, require_present

REQUIRED_FIELDS = ("title", "content", "slug")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_options(include: tuple[str, ...]) -> list:
    """Eager loads needed to serialise articles with the given includes."""
    if "comments" in include:
        options = [selectinload(Article.comments)]
    else:
        options = [selectinload(Article.comments).load_only(Comment.id, Comment.article_id)]
    if "user" in include:
        options.append(joinedload(Article.user))
    return options


def _include_key(include: tuple[str, ...]) -> str:
    return ",".join(sorted(include)) or "-"


async def validate_article(
    db: AsyncSession, values: dict, article_id: int | None = None
) -> list[FieldError]:
    """
    ``title``, ``content`` and ``slug`` must not be blank; ``slug`` must not
    belong to another article.
    """
    errors = require_present(values, *REQUIRED_FIELDS)
    slug = values.get("slug")
    if not is_blank(slug):
        q = select(Article.id).where(Article.slug == slug)
        if article_id is not None:
            q = q.where(Article.id != article_id)
        if (await db.execute(q)).first() is not None:
            errors.append(FieldError("slug", TAKEN))
    return errors


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_articles(
    db: AsyncSession,
    params: PageParams | None = None,
    include: tuple[str, ...] = (),
) -> dict:
    """Return one page of articles, newest first, as a JSON:API document."""
    params = params or PageParams()
    cache_key = f"articles:list:{params.number}:{params.size}:{_include_key(include)}"
    cached = await cache.get(cache_key)
    if cached:
        return cached

    stmt = select(Article).order_by(Article.created_at.desc(), Article.id.desc())
    page = await paginate(db, stmt, params, *_load_options(include))

    extra_query = {"include": ",".join(include)} if include else None
    doc = serializers.document(
        list(page.items),
        include=include,
        links=page.links("/articles", extra_query),
        meta=page.meta(),
    )
    await cache.set(cache_key, doc, ttl=settings.CACHE_TTL_LIST)
    return doc


async def find_article(db: AsyncSession, article_id: int, include: tuple[str, ...] = ()) -> Article | None:
    q = select(Article).where(Article.id == article_id).options(*_load_options(include))
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def get_article(
    db: AsyncSession, article_id: int, include: tuple[str, ...] = ()
) -> dict | None:
    """
    Return the JSON:API document for *article_id*.

    Returns None when the article does not exist.
    """
    cache_key = f"articles:detail:{article_id}:{_include_key(include)}"
    cached = await cache.get(cache_key)
    if cached:
        return cached

    article = await find_article(db, article_id, include)
    if article is None:
        return None

    doc = serializers.document(article, include=include)
    await cache.set(cache_key, doc, ttl=settings.CACHE_TTL_DETAIL)
    return doc


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_article(
    db: AsyncSession, user: User, data: ArticleAttributes
) -> SaveResult[Article]:
    """Create an article owned by *user*."""
    values = data.model_dump(include=set(REQUIRED_FIELDS))
    errors = await validate_article(db, values)
    if errors:
        return SaveResult.invalid(errors)

    article = Article(**values, user_id=user.id)
    article.user = user
    db.add(article)
    await db.flush()

    cache.invalidate_article(db)
    return SaveResult.saved(article)


async def update_article(
    db: AsyncSession, article: Article, data: ArticleAttributes
) -> SaveResult[Article]:
    """
    Apply the attributes present in the request to *article*.

    PUT and PATCH share this partial semantics: attributes absent from the
    payload keep their current value.
    """
    changes = data.model_dump(exclude_unset=True, include=set(REQUIRED_FIELDS))
    values = {name: getattr(article, name) for name in REQUIRED_FIELDS}
    values.update(changes)

    errors = await validate_article(db, values, article_id=article.id)
    if errors:
        return SaveResult.invalid(errors)

    for field, value in changes.items():
        setattr(article, field, value)
    await db.flush()

    cache.invalidate_article(db, article.id)
    return SaveResult.saved(article)


async def delete_article(db: AsyncSession, article: Article) -> None:
    """Delete *article*; its comments go with it."""
    article_id = article.id
    await db.delete(article)
    await db.flush()
    cache.invalidate_article(db, article_id)
