"""
Comment service: paginated listing and creation of comments on an article.

Comments are append-only: there is no public edit or delete.  Listing is in
creation order with the primary key as tie-breaker.  Every write invalidates
the parent article's cached documents, whose ``comments`` linkage changes.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api import serializers
from blog_api.cache import cache
from blog_api.models import Article, Comment, User
from blog_api.pagination import PageParams, paginate
from blog_api.schemas import CommentAttributes
from blog_api.validation import SaveResult, require_present


async def get_comments(
    db: AsyncSession,
    article: Article,
    params: PageParams | None = None,
    include: tuple[str, ...] = (),
) -> dict:
    """Return one page of *article*'s comments as a JSON:API document."""
    params = params or PageParams()
    stmt = (
        select(Comment)
        .where(Comment.article_id == article.id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    options = []
    if "user" in include:
        options.append(joinedload(Comment.user))
    if "article" in include:
        options.append(joinedload(Comment.article))
    page = await paginate(db, stmt, params, *options)

    extra_query = {"include": ",".join(include)} if include else None
    return serializers.document(
        list(page.items),
        include=include,
        links=page.links(f"/articles/{article.id}/comments", extra_query),
        meta=page.meta(),
    )


async def create_comment(
    db: AsyncSession,
    article: Article,
    user: User,
    data: CommentAttributes,
) -> SaveResult[Comment]:
    """Append a comment by *user* to *article*."""
    values = data.model_dump()
    errors = require_present(values, "content")
    if errors:
        return SaveResult.invalid(errors)

    comment = Comment(content=values["content"], article_id=article.id, user_id=user.id)
    db.add(comment)
    await db.flush()

    cache.invalidate_article(db, article.id)
    return SaveResult.saved(comment)
