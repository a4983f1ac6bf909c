"""
Pagination Utility Module

Provides standardized pagination helpers for lists that are merged
client-side from several Strapi queries.
"""
from typing import TypeVar, Generic, List, Any, Optional, Sequence
from pydantic import BaseModel

from learnhub.core.config import settings

T = TypeVar('T')


class PaginationParams(BaseModel):
    """Standard pagination parameters"""
    page: int = 1
    page_size: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard paginated response"""
    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
    next_page: Optional[int] = None


def paginate_sequence(items: Sequence[Any], page: int = 1, page_size: int = 10) -> dict:
    """
    Slice an already-sorted sequence into one page.

    Args:
        items: Full result set, in display order
        page: Page number (1-indexed), clamped into range
        page_size: Items per page, capped at MAX_PAGE_SIZE

    Returns:
        Dictionary with items, total, page, page_size, total_pages, has_next, has_previous
    """
    page_size = max(1, min(settings.MAX_PAGE_SIZE, page_size))
    total = len(items)
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1
    params = PaginationParams(page=min(max(1, page), total_pages), page_size=page_size)

    window = items[params.offset:params.offset + params.page_size]
    return create_paginated_response(list(window), total, params.page, params.page_size)


def create_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    page_size: int
) -> dict:
    """
    Create a paginated response dictionary.

    Args:
        items: List of items for current page
        total: Total count of all items
        page: Current page number
        page_size: Items per page

    Returns:
        Paginated response dictionary
    """
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
        "next_page": page + 1 if page < total_pages else None,
    }
