"""
Model-level invariants enforced by the schema.
"""
import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import AccessToken, User


async def _user(db: AsyncSession, login: str) -> User:
    user = User(login=login, provider="github")
    db.add(user)
    await db.flush()
    return user


def test_access_token_value_generated_on_init():
    first = AccessToken(user_id=1)
    second = AccessToken(user_id=2)
    assert first.token
    assert second.token
    assert first.token != second.token


def test_access_token_explicit_value_kept():
    assert AccessToken(user_id=1, token="given").token == "given"


@pytest.mark.asyncio
async def test_access_token_value_is_unique(db_session: AsyncSession):
    first = await _user(db_session, "first")
    second = await _user(db_session, "second")
    db_session.add(AccessToken(user_id=first.id, token="same"))
    await db_session.flush()

    db_session.add(AccessToken(user_id=second.id, token="same"))
    with pytest.raises(IntegrityError):
        await db_session.flush()


@pytest.mark.asyncio
async def test_one_access_token_per_user(db_session: AsyncSession):
    user = await _user(db_session, "single")
    db_session.add(AccessToken(user_id=user.id))
    await db_session.flush()

    db_session.add(AccessToken(user_id=user.id))
    with pytest.raises(IntegrityError):
        await db_session.flush()


@pytest.mark.asyncio
async def test_user_login_is_unique(db_session: AsyncSession):
    await _user(db_session, "twin")
    db_session.add(User(login="twin", provider="github"))
    with pytest.raises(IntegrityError):
        await db_session.flush()
