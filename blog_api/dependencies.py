from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.auth import RequestContext, authenticate, require_user
from blog_api.config import settings
from blog_api.database import get_db
from blog_api.errors import InvalidParameterError
from blog_api.pagination import PageParams
from blog_api.serializers import ResourceSerializer, parse_include


def pagination_params(
    number: int = Query(
        1,
        alias="page[number]",
        description="Page number (1-based); numbers outside the collection yield an empty page.",
    ),
    size: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        alias="page[size]",
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description=f"Number of items returned per page (max {settings.MAX_PAGE_SIZE}).",
    ),
) -> PageParams:
    """
    Parse JSON:API ``page[number]`` / ``page[size]`` query parameters.

    Any integer page number is accepted; out-of-range numbers produce an
    empty page.  Non-integer values and sizes outside ``1..MAX_PAGE_SIZE`` are
    rejected by FastAPI before the handler runs and rendered as 422 errors
    with ``source.parameter``.
    """
    return PageParams(number=number, size=size)


class IncludeParam:
    """
    Dependency factory validating ``?include=`` against the relationships a
    resource type exposes::

        include: tuple[str, ...] = Depends(IncludeParam(ArticleSerializer()))
    """

    def __init__(self, serializer: ResourceSerializer) -> None:
        self.allowed = serializer.relationship_names

    def __call__(
        self,
        include: str | None = Query(None, description="Comma separated relationships to include."),
    ) -> tuple[str, ...]:
        names = parse_include(include)
        unknown = [name for name in names if name not in self.allowed]
        if unknown:
            raise InvalidParameterError(
                "include",
                f"Unsupported include: {', '.join(unknown)}. "
                f"Allowed: {', '.join(sorted(self.allowed))}.",
            )
        return names


async def get_request_context(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """Resolve the bearer token once per request; anonymous when it does not match."""
    return await authenticate(db, authorization)


async def require_authenticated(
    context: RequestContext = Depends(get_request_context),
) -> RequestContext:
    require_user(context)
    return context
