from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import serializers
from blog_api.auth import RequestContext, ensure_owner
from blog_api.database import get_db
from blog_api.dependencies import IncludeParam, pagination_params, require_authenticated
from blog_api.errors import NotFoundError, validation_error_response
from blog_api.pagination import PageParams
from blog_api.schemas import ArticleDocument
from blog_api.serializers import ArticleSerializer, JSONAPIResponse
from blog_api.services import article_service

router = APIRouter(prefix="/articles", tags=["articles"])

article_includes = IncludeParam(ArticleSerializer())


@router.get("")
async def list_articles(
    page: PageParams = Depends(pagination_params),
    include: tuple[str, ...] = Depends(article_includes),
    db: AsyncSession = Depends(get_db),
):
    doc = await article_service.get_articles(db, page, include)
    return JSONAPIResponse(doc)


@router.get("/{article_id}")
async def get_article(
    article_id: int,
    include: tuple[str, ...] = Depends(article_includes),
    db: AsyncSession = Depends(get_db),
):
    doc = await article_service.get_article(db, article_id, include)
    if doc is None:
        raise NotFoundError("Article")
    return JSONAPIResponse(doc)


@router.post("", status_code=201)
async def create_article(
    document: ArticleDocument | None = None,
    context: RequestContext = Depends(require_authenticated),
    db: AsyncSession = Depends(get_db),
):
    attributes = (document or ArticleDocument()).data.attributes
    result = await article_service.create_article(db, context.user, attributes)
    if not result.ok:
        return validation_error_response(result.errors)
    return JSONAPIResponse(serializers.document(result.entity), status_code=201)


@router.api_route("/{article_id}", methods=["PUT", "PATCH"])
async def update_article(
    article_id: int,
    document: ArticleDocument | None = None,
    context: RequestContext = Depends(require_authenticated),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.find_article(db, article_id)
    ensure_owner(context, article)

    attributes = (document or ArticleDocument()).data.attributes
    result = await article_service.update_article(db, article, attributes)
    if not result.ok:
        return validation_error_response(result.errors)
    return JSONAPIResponse(serializers.document(result.entity))


@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: int,
    context: RequestContext = Depends(require_authenticated),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.find_article(db, article_id)
    ensure_owner(context, article)
    await article_service.delete_article(db, article)
    return Response(status_code=204)
