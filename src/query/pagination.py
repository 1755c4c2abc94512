from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from config import config

T = TypeVar("T")

DEFAULT_PAGE = 1


@dataclass(frozen=True)
class PaginatedResponse(Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def resolve_page(page: int | None, limit: int | None) -> tuple[int, int]:
    """Fill defaults and reject non-positive values."""
    page = DEFAULT_PAGE if page is None else page
    limit = config().default_page_size if limit is None else limit
    if page < 1:
        msg = "page must be >= 1"
        raise ValueError(msg)
    if limit < 1:
        msg = "limit must be >= 1"
        raise ValueError(msg)
    return page, limit


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def paginate(items: Sequence[T], total: int, page: int | None = None, limit: int | None = None) -> PaginatedResponse[T]:
    page, limit = resolve_page(page, limit)
    return PaginatedResponse(items=list(items), total=total, page=page, limit=limit)


__all__ = ["PaginatedResponse", "page_offset", "paginate", "resolve_page"]
