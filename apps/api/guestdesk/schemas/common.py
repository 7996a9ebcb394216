"""Shared response envelopes."""

from typing import Generic, TypeVar

from pydantic import BaseModel

from guestdesk.utils.pagination import PaginationParams, total_pages

ItemT = TypeVar("ItemT")


class PaginatedResponse(BaseModel, Generic[ItemT]):
    items: list[ItemT]
    total: int
    page: int
    per_page: int
    pages: int

    @classmethod
    def build(cls, items: list, total: int, pagination: PaginationParams):
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            per_page=pagination.per_page,
            pages=total_pages(total, pagination.per_page),
        )
