"""Page-fetch loop for page-numbered listing APIs."""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")

# Tableau REST API default page size.
DEFAULT_PAGE_SIZE = 100


@dataclass
class PageResult(Generic[T]):
    items: List[T] = field(default_factory=list)
    total_available: Optional[int] = None


async def paginate(
    fetch: Callable[[int, int], Awaitable[PageResult[T]]],
    page_size: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[T]:
    """Accumulate items across pages, starting at page 1.

    Stops when ``limit`` items are collected, when a page comes back shorter than
    requested, or when ``total_available`` is reached. The page size is clamped
    by ``limit`` once and then held fixed, since page numbers are offsets in units
    of the page size; the last page is truncated in memory.

    Errors raised by ``fetch`` propagate unchanged.
    """
    size = page_size or DEFAULT_PAGE_SIZE
    if limit is not None:
        size = min(size, limit)

    results: List[T] = []
    page_number = 1
    while True:
        page = await fetch(page_number, size)
        results.extend(page.items)

        if limit is not None and len(results) >= limit:
            return results[:limit]
        if len(page.items) < size:
            return results
        if page.total_available is not None and len(results) >= page.total_available:
            return results
        page_number += 1
