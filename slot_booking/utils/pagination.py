"""Pagination utilities for list endpoints."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session


T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
SORT_ORDERS = ("asc", "desc")


@dataclass
class PaginationParams:
    """Pagination and sort parameters from the query string."""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str | None = None
    sort_order: str = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description=f"Items per page (max {MAX_LIMIT})"),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
) -> PaginationParams:
    """
    Pagination dependency.

    Usage:
        @router.get("/items")
        def list_items(pagination: PaginationParams = Depends(get_pagination)):
            ...
    """
    return PaginationParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


@dataclass
class Page(Generic[T]):
    """One page of results plus the metadata the list endpoints return."""
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def meta(self) -> dict:
        return {"page": self.page, "limit": self.limit, "total": self.total}


def paginate(db: Session, statement: Select, pagination: PaginationParams) -> Page:
    """
    Apply offset/limit to a select statement.

    The count runs over the unpaginated statement with its ordering stripped.
    """
    total = db.execute(
        select(func.count()).select_from(statement.order_by(None).subquery())
    ).scalar_one()
    items = list(
        db.execute(statement.offset(pagination.offset).limit(pagination.limit)).scalars()
    )
    return Page(items=items, total=total, page=pagination.page, limit=pagination.limit)
