"""
Pagination helpers for the channel grid
"""
import math


MAX_VISIBLE_PAGES = 7


def total_pages(item_count: int, per_page: int) -> int:
    """Number of pages needed to show item_count items, per_page at a time."""
    return math.ceil(item_count / per_page)


def page_slice(page: int, per_page: int) -> slice:
    start = (page - 1) * per_page
    return slice(start, start + per_page)


def page_window(current_page: int, page_count: int, max_visible: int = MAX_VISIBLE_PAGES) -> list[int | None]:
    """
    Page numbers to offer in a pagination bar

    Shows every page when they all fit. Otherwise keeps the first and last
    page and a few pages around the current one, with None marking a gap.

    Args:
        current_page: 1-based page being displayed
        page_count: Total number of pages
        max_visible: Page count at which gaps start being used

    Returns:
        List of page numbers, None where an ellipsis belongs
    """
    if page_count <= max_visible:
        return list(range(1, page_count + 1))

    if current_page <= 4:
        return [*range(1, 6), None, page_count]

    if current_page >= page_count - 3:
        return [1, None, *range(page_count - 4, page_count + 1)]

    return [1, None, current_page - 1, current_page, current_page + 1, None, page_count]
