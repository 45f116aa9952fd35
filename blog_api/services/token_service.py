"""
Token store: persisted mapping from opaque token string to owning user.

A user holds at most one access token.  Logging in again returns the
existing token; logging out deletes it.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api.models import AccessToken, User, generate_token

logger = logging.getLogger(__name__)


async def find_by_token(db: AsyncSession, token: str) -> AccessToken | None:
    """Return the token record for *token* with its user loaded, or None."""
    q = (
        select(AccessToken)
        .where(AccessToken.token == token)
        .options(joinedload(AccessToken.user))
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def _token_taken(db: AsyncSession, token: str) -> bool:
    q = select(AccessToken.id).where(AccessToken.token == token)
    return (await db.execute(q)).first() is not None


async def create_access_token(db: AsyncSession, user: User) -> AccessToken:
    """
    Create and flush a new token for *user*.

    The random value is regenerated until it does not collide with an
    existing row; the unique constraint still guards concurrent inserts.
    """
    access_token = AccessToken(user_id=user.id)
    while await _token_taken(db, access_token.token):
        access_token.token = generate_token()
    db.add(access_token)
    await db.flush()
    logger.info("Issued access token for user %s", user.login)
    return access_token


async def find_for_user(db: AsyncSession, user: User) -> AccessToken | None:
    q = select(AccessToken).where(AccessToken.user_id == user.id)
    return (await db.execute(q)).scalar_one_or_none()


async def issue_token(db: AsyncSession, user: User) -> AccessToken:
    """
    Return the user's existing token, creating one on first login.

    The insert runs in a savepoint.  When a concurrent login for the same
    user inserted first, the one-token-per-user constraint rejects ours and
    the winner's token is returned instead.
    """
    access_token = await find_for_user(db, user)
    if access_token is None:
        try:
            async with db.begin_nested():
                access_token = await create_access_token(db, user)
        except IntegrityError:
            logger.info("Concurrent login for user %s; reusing its token", user.login)
            access_token = await find_for_user(db, user)
            if access_token is None:
                raise
    access_token.user = user
    return access_token


async def revoke_token(db: AsyncSession, access_token: AccessToken) -> None:
    """Delete *access_token*; subsequent requests bearing it resolve to no user."""
    await db.delete(access_token)
    await db.flush()
    logger.info("Revoked access token for user_id=%s", access_token.user_id)
