import math
from typing import Annotated, Any

from fastapi import Depends, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import Session, select

from hanmo.models import Pagination

MAX_PAGE_SIZE = 100


class PageParams(BaseModel):
    page: int = 1
    page_size: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def page_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
) -> PageParams:
    return PageParams(page=page, page_size=page_size)


def public_page_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=MAX_PAGE_SIZE),
) -> PageParams:
    return PageParams(page=page, page_size=page_size)


PageDep = Annotated[PageParams, Depends(page_params)]
PublicPageDep = Annotated[PageParams, Depends(public_page_params)]


def paginate(total: int, page: int, page_size: int) -> Pagination:
    total_pages = math.ceil(total / page_size) if total else 0
    return Pagination(
        page=page, page_size=page_size, total=total, total_pages=total_pages
    )


def fetch_page(
    session: Session, statement: Any, params: PageParams
) -> tuple[list[Any], Pagination]:
    """Run ``statement`` for one page and count the rows it would return overall."""
    count_statement = select(func.count()).select_from(
        statement.order_by(None).subquery()
    )
    total = session.exec(count_statement).one()
    items = session.exec(
        statement.offset(params.offset).limit(params.page_size)
    ).all()
    return list(items), paginate(total, params.page, params.page_size)
