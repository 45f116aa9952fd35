"""
Bearer-token authentication and the two authorization gates.

``authenticate`` never raises: a missing header, a header without the
``Bearer`` prefix and an unknown token all produce an anonymous
``RequestContext``.  The gates turn that into a 403 where an action needs a
user (``require_user``) or needs the user to own the resource
(``ensure_owner``).  Both gates raise the same ``AuthorizationError``.
"""
import logging
import re
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import AuthorizationError
from blog_api.models import AccessToken, User
from blog_api.services import token_service

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"\ABearer\s+")


@dataclass(frozen=True)
class RequestContext:
    """Per-request identity, built once and passed to everything downstream."""

    user: User | None = None
    access_token: AccessToken | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


ANONYMOUS = RequestContext()


def extract_token(header: str | None) -> str | None:
    """Return the token carried by an ``Authorization: Bearer <token>`` header."""
    if not header:
        return None
    match = _BEARER_RE.match(header)
    if match is None:
        return None
    return header[match.end():].strip() or None


async def authenticate(db: AsyncSession, header: str | None) -> RequestContext:
    token = extract_token(header)
    if token is None:
        return ANONYMOUS
    access_token = await token_service.find_by_token(db, token)
    if access_token is None:
        logger.debug("Bearer token did not match any access token")
        return ANONYMOUS
    return RequestContext(user=access_token.user, access_token=access_token)


def require_user(context: RequestContext) -> User:
    if context.user is None:
        raise AuthorizationError()
    return context.user


def ensure_owner(context: RequestContext, resource) -> None:
    """Reject unless *resource* exists and belongs to the context's user."""
    user = require_user(context)
    if resource is None or resource.user_id != user.id:
        logger.info("User %s denied access to %r", user.login, resource)
        raise AuthorizationError()
