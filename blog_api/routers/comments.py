from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import serializers
from blog_api.auth import RequestContext
from blog_api.database import get_db
from blog_api.dependencies import IncludeParam, pagination_params, require_authenticated
from blog_api.errors import NotFoundError, validation_error_response
from blog_api.models import Article
from blog_api.pagination import PageParams
from blog_api.schemas import CommentDocument
from blog_api.serializers import CommentSerializer, JSONAPIResponse
from blog_api.services import comment_service

router = APIRouter(prefix="/articles/{article_id}/comments", tags=["comments"])


async def load_article(article_id: int, db: AsyncSession = Depends(get_db)) -> Article:
    """
    Parent article of the nested route; 404 when it does not exist.

    Only the article row is loaded: the comment page query must be the first
    to bring its comments into the session so its eager loads apply.
    """
    article = await db.get(Article, article_id)
    if article is None:
        raise NotFoundError("Article", pointer="/article_id")
    return article


@router.get("")
async def list_comments(
    page: PageParams = Depends(pagination_params),
    include: tuple[str, ...] = Depends(IncludeParam(CommentSerializer())),
    article: Article = Depends(load_article),
    db: AsyncSession = Depends(get_db),
):
    doc = await comment_service.get_comments(db, article, page, include)
    return JSONAPIResponse(doc)


@router.post("", status_code=201)
async def create_comment(
    request: Request,
    document: CommentDocument | None = None,
    context: RequestContext = Depends(require_authenticated),
    article: Article = Depends(load_article),
    db: AsyncSession = Depends(get_db),
):
    attributes = (document or CommentDocument()).data.attributes
    result = await comment_service.create_comment(db, article, context.user, attributes)
    if not result.ok:
        return validation_error_response(result.errors)
    return JSONAPIResponse(
        serializers.document(result.entity),
        status_code=201,
        headers={"Location": str(request.url_for("get_article", article_id=article.id))},
    )
