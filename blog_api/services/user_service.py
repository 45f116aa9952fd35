"""
User service: find-or-create users from an OAuth profile.

Users are never created through a public endpoint of their own; the login
exchange is their only entry point, and they are never deleted here.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import cache
from blog_api.models import User
from blog_api.oauth import UserProfile
from blog_api.validation import TAKEN, FieldError, SaveResult, require_present


async def get_user_by_login(db: AsyncSession, login: str) -> User | None:
    result = await db.execute(select(User).where(User.login == login))
    return result.scalar_one_or_none()


async def validate_user(db: AsyncSession, values: dict, user_id: int | None = None) -> list[FieldError]:
    """``login`` and ``provider`` are required and ``login`` is unique."""
    errors = require_present(values, "login", "provider")
    if not any(e.field == "login" for e in errors):
        q = select(User.id).where(User.login == values["login"])
        if user_id is not None:
            q = q.where(User.id != user_id)
        if (await db.execute(q)).first() is not None:
            errors.append(FieldError("login", TAKEN))
    return errors


async def create_user(db: AsyncSession, profile: UserProfile) -> SaveResult[User]:
    values = profile.as_dict()
    errors = await validate_user(db, values)
    if errors:
        return SaveResult.invalid(errors)

    user = User(**values)
    db.add(user)
    await db.flush()
    return SaveResult.saved(user)


async def find_or_create_user(db: AsyncSession, profile: UserProfile) -> SaveResult[User]:
    """
    Return the user whose ``login`` matches *profile*, refreshing the
    display fields from the provider, or create it.
    """
    user = await get_user_by_login(db, profile.login) if profile.login else None
    if user is None:
        return await create_user(db, profile)

    display = {"name": profile.name, "url": profile.url, "avatar_url": profile.avatar_url}
    if any(getattr(user, field) != value for field, value in display.items()):
        for field, value in display.items():
            setattr(user, field, value)
        await db.flush()
        # Article documents may embed the user via ?include=user.
        cache.invalidate_articles(db)
    return SaveResult.saved(user)
