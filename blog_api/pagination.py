"""
Offset/limit pagination over an ordered SELECT.

A page is the slice ``(number - 1) * size .. number * size - 1`` of the
statement's ORDER BY.  Callers must order by a unique key (every list query
here ends its ORDER BY with the primary key) so the slice is identical across
calls against an unmodified table.  Page numbers past the end, zero and
negative numbers simply yield no rows.
"""
import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar
from urllib.parse import urlencode

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings

T = TypeVar("T")


@dataclass(frozen=True)
class PageParams:
    number: int = 1
    size: int = settings.DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        """SQL OFFSET value computed from the current page and page size."""
        return (self.number - 1) * self.size


@dataclass
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    params: PageParams

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.params.size) if self.total > 0 else 0

    def meta(self) -> dict:
        return {
            "total": self.total,
            "page": {
                "number": self.params.number,
                "size": self.params.size,
                "total_pages": self.total_pages,
            },
        }

    def links(self, path: str, extra_query: dict | None = None) -> dict:
        """
        Build JSON:API pagination links relative to *path*.

        ``prev`` and ``next`` are omitted on the first and last page.
        ``last`` points at page 1 for an empty collection.
        """
        def link(number: int) -> str:
            query = {"page[number]": number, "page[size]": self.params.size}
            query.update(extra_query or {})
            return f"{path}?{urlencode(query, safe='[],')}"

        last = max(self.total_pages, 1)
        links = {
            "self": link(self.params.number),
            "first": link(1),
            "last": link(last),
        }
        if self.params.number > 1:
            links["prev"] = link(min(self.params.number - 1, last))
        if 1 <= self.params.number < self.total_pages:
            links["next"] = link(self.params.number + 1)
        return links


async def paginate(db: AsyncSession, stmt: Select, params: PageParams, *options) -> Page:
    """
    Run *stmt* for one page and count the full result set.

    Two SQL statements are issued on top of any eager loads: a COUNT over
    the unordered statement and the SELECT with OFFSET/LIMIT.  Loader
    *options* are applied to the page query only.
    """
    count_q = select(func.count()).select_from(stmt.order_by(None).subquery())
    total: int = (await db.execute(count_q)).scalar_one()

    if params.number < 1:
        return Page(items=[], total=total, params=params)

    result = await db.execute(stmt.options(*options).offset(params.offset).limit(params.size))
    items = result.unique().scalars().all()
    return Page(items=items, total=total, params=params)
