"""Windowed page-number scheme for listing pagination controls."""

from typing import List, Union

ELLIPSIS = "..."
MAX_VISIBLE_PAGES = 5

PageItem = Union[int, str]


def page_window(current_page: int, total_pages: int) -> List[PageItem]:
    """
    Page numbers to show, with ELLIPSIS marking skipped ranges.

    All pages are listed when there are at most five. Otherwise the first
    four (near the start), the last four (near the end) or a three-page window
    around the current page is shown, always with the first and last page.

    Example:
        >>> page_window(5, 10)
        [1, '...', 4, 5, 6, '...', 10]
    """
    if total_pages <= 0:
        return []

    if total_pages <= MAX_VISIBLE_PAGES:
        return list(range(1, total_pages + 1))

    if current_page <= 3:
        return [1, 2, 3, 4, ELLIPSIS, total_pages]

    if current_page >= total_pages - 2:
        return [1, ELLIPSIS] + list(range(total_pages - 3, total_pages + 1))

    return [
        1,
        ELLIPSIS,
        current_page - 1,
        current_page,
        current_page + 1,
        ELLIPSIS,
        total_pages,
    ]
