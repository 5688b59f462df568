"""
Shared schema pieces: camelCase base model, response envelope, pagination.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
# Keeps offset = (page - 1) * limit inside a 64-bit integer
MAX_PAGE = 1_000_000


class CamelModel(BaseModel):
    """camelCase on the wire; snake_case or camelCase accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope: {success, data, pagination?, message?}."""

    success: bool = True
    data: T | None = None
    pagination: Pagination | None = None
    message: str | None = None


class ErrorBody(CamelModel):
    message: str
    status_code: int
    code: str


class ErrorResponse(CamelModel):
    success: bool = False
    error: ErrorBody


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def build_pagination(params: PageParams, total: int) -> Pagination:
    total_pages = math.ceil(total / params.limit) if params.limit else 0
    return Pagination(
        page=params.page,
        limit=params.limit,
        total=total,
        total_pages=total_pages,
        has_next=params.page < total_pages,
        has_prev=params.page > 1,
    )
