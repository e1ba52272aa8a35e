"""Offset pagination shared by listing endpoints."""

from typing import Any, Generic, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of records plus the metadata needed to fetch the next one."""

    items: list[T]
    total: int
    skip: int
    limit: int


async def fetch_page(
    db: AsyncSession,
    query: Select,
    *,
    skip: int,
    limit: int,
    order_by: Sequence[Any] = (),
) -> tuple[list[Any], int]:
    """Run ``query`` for one page and count the unpaged result set."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    if order_by:
        query = query.order_by(*order_by)
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all()), total
