"""Response envelopes shared by all resources."""
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from grcportal.models.base import utcnow

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    data: T
    timestamp: datetime = Field(default_factory=utcnow)


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PageMeta":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class PagedResponse(BaseModel, Generic[T]):
    data: list[T]
    meta: PageMeta
    timestamp: datetime = Field(default_factory=utcnow)


class CountMeta(BaseModel):
    total: int


class ListResponse(BaseModel, Generic[T]):
    data: list[T]
    meta: CountMeta
    timestamp: datetime = Field(default_factory=utcnow)


class ErrorResponse(BaseModel):
    status_code: int
    message: str
    errors: list[dict[str, Any]] | None = None
    timestamp: datetime
    path: str
