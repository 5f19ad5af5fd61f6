from math import ceil

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy.orm import Query as OrmQuery


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PageParams:
    """Query-string ``page``/``limit`` pair shared by every list endpoint."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def paginate(query: OrmQuery, params: PageParams) -> tuple[list, Pagination]:
    total = query.order_by(None).count()
    items = query.offset(params.offset).limit(params.limit).all()
    return items, Pagination(
        page=params.page,
        limit=params.limit,
        total=total,
        total_pages=ceil(total / params.limit) if total else 0,
    )
