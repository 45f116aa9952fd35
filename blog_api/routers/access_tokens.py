from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import serializers
from blog_api.auth import RequestContext
from blog_api.database import get_db
from blog_api.dependencies import require_authenticated
from blog_api.errors import AuthenticationError
from blog_api.oauth import CodeExchanger, get_code_exchanger
from blog_api.schemas import LoginRequest
from blog_api.serializers import JSONAPIResponse
from blog_api.services import token_service, user_service
from blog_api.validation import is_blank

router = APIRouter(tags=["access tokens"])


@router.post("/login", status_code=201)
async def login(
    data: LoginRequest | None = None,
    exchanger: CodeExchanger = Depends(get_code_exchanger),
    db: AsyncSession = Depends(get_db),
):
    """Exchange an OAuth code for this API's bearer token."""
    code = data.code if data else None
    if is_blank(code):
        raise AuthenticationError()

    profile = await exchanger.exchange(code)
    result = await user_service.find_or_create_user(db, profile)
    if not result.ok:
        raise AuthenticationError()

    access_token = await token_service.issue_token(db, result.entity)
    return JSONAPIResponse(
        serializers.document(access_token, include=("user",)),
        status_code=201,
    )


@router.delete("/logout", status_code=204)
async def logout(
    context: RequestContext = Depends(require_authenticated),
    db: AsyncSession = Depends(get_db),
):
    await token_service.revoke_token(db, context.access_token)
    return Response(status_code=204)
