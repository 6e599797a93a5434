from __future__ import annotations

from typing import List, Sequence, TypeVar

from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.models import PaginationMeta

T = TypeVar("T")


def clamp_per_page(per_page: int) -> int:
    return max(1, min(int(per_page), config.MAX_PER_PAGE))


def total_pages_for(total: int, per_page: int) -> int:
    """ceil(total / per_page); 0 when there is nothing to show."""
    total = max(0, int(total))
    per_page = clamp_per_page(per_page)
    return (total + per_page - 1) // per_page


def clamp_page(page: int, total_pages: int) -> int:
    """Keep a 1-based page inside [1, max(total_pages, 1)]."""
    return max(1, min(int(page), max(total_pages, 1)))


def page_offset(page: int, per_page: int) -> int:
    return (max(1, int(page)) - 1) * clamp_per_page(per_page)


def paginate(
    total: int,
    page: int,
    per_page: int = config.DEFAULT_PER_PAGE,
) -> PaginationMeta:
    """
    Compute navigation metadata for one page of a result set.

    Out-of-range pages are clamped rather than rejected, so the window is
    always valid. An empty result has zero pages but is displayed as a
    single empty page with range (0, 0).
    """
    total = max(0, int(total))
    per_page = clamp_per_page(per_page)
    total_pages = total_pages_for(total, per_page)
    page = clamp_page(page, total_pages)

    if total:
        range_start = (page - 1) * per_page + 1
        range_end = min(page * per_page, total)
    else:
        range_start = range_end = 0

    return PaginationMeta(
        page=page,
        per_page=per_page,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
        range_start=range_start,
        range_end=range_end,
        display_pages=max(total_pages, 1),
    )


def slice_page(records: Sequence[T], page: int, per_page: int = config.DEFAULT_PER_PAGE) -> List[T]:
    """Client-side window of `records` for a (clamped) page."""
    meta = paginate(len(records), page, per_page)
    if not meta.total:
        return []
    return list(records[meta.range_start - 1:meta.range_end])
