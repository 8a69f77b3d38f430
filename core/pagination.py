"""
Page-number pagination shared by every list operation.

``page`` starts at 1; ``page_size`` defaults to ``DEFAULT_PAGE_SIZE`` and
is clamped to ``MAX_PAGE_SIZE``.  A page past the end yields an empty
``results`` list rather than an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from django.core.paginator import EmptyPage, Paginator

from core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.domain.exceptions import DomainError


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_params(cls, params: Any) -> "PageRequest":
        """Build from query parameters, rejecting non-numeric or < 1 values."""
        try:
            page = int(params.get("page", 1))
            page_size = int(params.get("page_size", DEFAULT_PAGE_SIZE))
        except (TypeError, ValueError):
            raise DomainError("page and page_size must be integers.")
        if page < 1:
            raise DomainError("page must be 1 or greater.")
        if page_size < 1:
            raise DomainError("page_size must be 1 or greater.")
        return cls(page=page, page_size=min(page_size, MAX_PAGE_SIZE))


@dataclass(frozen=True)
class Page:
    count: int
    page: int
    page_size: int
    total_pages: int
    items: Sequence[Any]


def paginate(queryset, request: PageRequest) -> Page:
    paginator = Paginator(queryset, request.page_size)
    try:
        items = list(paginator.page(request.page).object_list)
    except EmptyPage:
        items = []
    return Page(
        count=paginator.count,
        page=request.page,
        page_size=request.page_size,
        total_pages=paginator.num_pages if paginator.count else 0,
        items=items,
    )


def page_payload(page: Page, serializer_class, *, context: dict | None = None) -> dict:
    """Response body for a paginated list endpoint."""
    return {
        "count": page.count,
        "page": page.page,
        "page_size": page.page_size,
        "total_pages": page.total_pages,
        "results": serializer_class(page.items, many=True, context=context or {}).data,
    }
