"""Utility modules."""

from guestdesk.utils.pagination import (
    PaginationParams,
    get_pagination,
    like_pattern,
    paginate_query,
    total_pages,
)

__all__ = [
    "PaginationParams",
    "get_pagination",
    "like_pattern",
    "paginate_query",
    "total_pages",
]
