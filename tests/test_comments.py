"""
Comment endpoint tests: nested listing under an article, pagination in
creation order, and comment creation with its authorization and validation
rules.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from blog_api.models import Comment
from conftest import async_session_test, bearer, create_article, create_comment


async def _comment_count() -> int:
    async with async_session_test() as session:
        return (await session.execute(select(func.count()).select_from(Comment))).scalar_one()


# ---------------------------------------------------------------------------
# List comments
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_comments_of_article(async_client: AsyncClient, author):
    """Only the requested article's comments are listed, oldest first."""
    user, _ = author
    article = await create_article(user, "Commented", "commented")
    other = await create_article(user, "Other", "other")
    first = await create_comment(article, user, "first")
    second = await create_comment(article, user, "second")
    await create_comment(other, user, "elsewhere")

    resp = await async_client.get(f"/articles/{article.id}/comments")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [c["id"] for c in data] == [str(first.id), str(second.id)]
    assert all(c["type"] == "comments" for c in data)
    assert set(data[0]["attributes"]) == {"content"}
    assert data[0]["relationships"]["article"]["data"] == {"type": "articles", "id": str(article.id)}
    assert data[0]["relationships"]["user"]["data"] == {"type": "users", "id": str(user.id)}


@pytest.mark.asyncio
async def test_list_comments_empty(async_client: AsyncClient, author):
    user, _ = author
    article = await create_article(user, "Quiet", "quiet")

    resp = await async_client.get(f"/articles/{article.id}/comments")
    assert resp.status_code == 200
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_list_comments_pagination(async_client: AsyncClient, author):
    """Paging walks the comments in creation order."""
    user, _ = author
    article = await create_article(user, "Busy", "busy")
    comments = [await create_comment(article, user, f"comment {i}") for i in range(5)]

    resp = await async_client.get(f"/articles/{article.id}/comments?page[number]=2&page[size]=2")
    assert resp.status_code == 200
    body = resp.json()
    assert [c["id"] for c in body["data"]] == [str(c.id) for c in comments[2:4]]
    assert body["meta"]["total"] == 5
    assert body["links"]["self"] == f"/articles/{article.id}/comments?page[number]=2&page[size]=2"

    resp = await async_client.get(f"/articles/{article.id}/comments?page[number]=4&page[size]=2")
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_list_comments_include_user(async_client: AsyncClient, author, other_user):
    user, _ = author
    stranger, _ = other_user
    article = await create_article(user, "Chatty", "chatty")
    await create_comment(article, user, "mine")
    await create_comment(article, stranger, "theirs")
    await create_comment(article, user, "mine again")

    resp = await async_client.get(f"/articles/{article.id}/comments?include=user")
    included = resp.json()["included"]
    assert sorted(u["attributes"]["login"] for u in included) == ["author", "stranger"]


@pytest.mark.asyncio
async def test_list_comments_include_user_and_article(async_client: AsyncClient, author):
    """Both to-one relationships of a comment can be included together."""
    user, _ = author
    article = await create_article(user, "Included", "included")
    await create_comment(article, user, "one")
    await create_comment(article, user, "two")

    resp = await async_client.get(f"/articles/{article.id}/comments?include=user,article")
    assert resp.status_code == 200
    included = {(r["type"], r["id"]) for r in resp.json()["included"]}
    assert included == {("users", str(user.id)), ("articles", str(article.id))}
    assert len(resp.json()["included"]) == 2


@pytest.mark.asyncio
async def test_list_comments_of_missing_article(async_client: AsyncClient):
    """Listing comments of a non-existent article is a 404."""
    resp = await async_client.get("/articles/99999/comments")
    assert resp.status_code == 404
    assert resp.json()["errors"][0]["status"] == "404"


# ---------------------------------------------------------------------------
# Create comment
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_comment_without_token(async_client: AsyncClient, author):
    """Unauthenticated comment creation is forbidden."""
    user, _ = author
    article = await create_article(user, "Closed", "closed")

    resp = await async_client.post(
        f"/articles/{article.id}/comments",
        json={"data": {"attributes": {"content": "Hello"}}},
    )
    assert resp.status_code == 403
    assert resp.json()["errors"][0]["source"] == {"pointer": "/headers/authorization"}
    assert await _comment_count() == 0


@pytest.mark.asyncio
async def test_create_comment_empty_content(async_client: AsyncClient, author):
    user, token = author
    article = await create_article(user, "Strict", "strict")

    resp = await async_client.post(
        f"/articles/{article.id}/comments",
        json={"data": {"attributes": {"content": ""}}},
        headers=bearer(token),
    )
    assert resp.status_code == 422
    assert resp.json()["errors"] == [{
        "status": "422",
        "source": {"pointer": "/data/attributes/content"},
        "title": "Invalid request",
        "detail": "can't be blank",
    }]
    assert await _comment_count() == 0


@pytest.mark.asyncio
async def test_create_comment(async_client: AsyncClient, author, other_user):
    """Any authenticated user may comment; Location points at the article."""
    user, _ = author
    stranger, stranger_token = other_user
    article = await create_article(user, "Open", "open")

    resp = await async_client.post(
        f"/articles/{article.id}/comments",
        json={"data": {"attributes": {"content": "Great article!"}}},
        headers=bearer(stranger_token),
    )
    assert resp.status_code == 201
    assert resp.headers["location"].endswith(f"/articles/{article.id}")
    data = resp.json()["data"]
    assert data["attributes"] == {"content": "Great article!"}
    assert data["relationships"]["user"]["data"] == {"type": "users", "id": str(stranger.id)}
    assert await _comment_count() == 1


@pytest.mark.asyncio
async def test_create_comment_on_missing_article(async_client: AsyncClient, author):
    _, token = author
    resp = await async_client.post(
        "/articles/99999/comments",
        json={"data": {"attributes": {"content": "Anyone?"}}},
        headers=bearer(token),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_new_comment_appears_in_article_linkage(async_client: AsyncClient, author):
    """The article's comments linkage reflects a comment created via the API."""
    user, token = author
    article = await create_article(user, "Linkage", "linkage")

    resp = await async_client.post(
        f"/articles/{article.id}/comments",
        json={"data": {"attributes": {"content": "Linked"}}},
        headers=bearer(token),
    )
    comment_id = resp.json()["data"]["id"]

    resp = await async_client.get(f"/articles/{article.id}")
    assert resp.json()["data"]["relationships"]["comments"]["data"] == [
        {"type": "comments", "id": comment_id}
    ]
