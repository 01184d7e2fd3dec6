"""
Paginated Fetch Module
Bounded offset pagination over a page-fetching callable.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)

PageFetcher = Callable[[int, int], Optional[Dict[str, Any]]]

# Reasons a pagination loop ends
STOP_LAST_PAGE = 'last_page'
STOP_EMPTY_PAGE = 'empty_page'
STOP_TOTAL_REACHED = 'total_reached'
STOP_PAGE_CAP = 'page_cap'
STOP_ITEM_CAP = 'item_cap'
STOP_ERROR = 'error'

COMPLETE_REASONS = (STOP_LAST_PAGE, STOP_EMPTY_PAGE, STOP_TOTAL_REACHED)


@dataclass
class FetchResult:
    """Items gathered by a pagination run and why the run stopped."""
    items: List[Dict[str, Any]] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: str = STOP_EMPTY_PAGE

    @property
    def complete(self) -> bool:
        """True when the remote signalled the end of the sequence."""
        return self.stop_reason in COMPLETE_REASONS

    def __len__(self) -> int:
        return len(self.items)


def paginate(
    fetch_page: PageFetcher,
    items_key: str = 'values',
    page_size: int = 50,
    max_pages: int = 200,
    max_items: int = 10000,
    label: str = 'items'
) -> FetchResult:
    """
    Collect every item from an offset-paginated source.

    Stops when a page reports isLast, comes back empty, or the known total has
    been consumed. The page and item caps bound the loop against a remote that
    never reports completion; hitting a cap returns what was collected. A
    failed page (exception, None, or a body of the wrong shape) ends the loop and keeps earlier pages.

    Args:
        fetch_page: Callable taking (offset, limit) and returning a page dict
        items_key: Key holding the page's items
        page_size: Items requested per page, also the offset step
        max_pages: Maximum number of pages to request
        max_items: Maximum number of items to collect
        label: Name used in log messages

    Returns:
        FetchResult with the collected items
    """
    result = FetchResult()
    offset = 0

    while True:
        if result.pages_fetched >= max_pages:
            logger.warning(f"Stopping {label} fetch at page cap ({max_pages} pages, {len(result.items)} items)")
            result.stop_reason = STOP_PAGE_CAP
            break

        try:
            page = fetch_page(offset, page_size)
        except Exception as e:
            logger.error(f"Page fetch for {label} at offset {offset} failed: {e}")
            page = None

        if page is not None and not isinstance(page, dict):
            logger.error(f"Unexpected {type(page).__name__} page for {label} at offset {offset}")
            page = None

        page_items = page.get(items_key) if page is not None else None
        if page is not None and page_items is not None and not isinstance(page_items, list):
            logger.error(f"Unexpected {type(page_items).__name__} in '{items_key}' for {label} at offset {offset}")
            page = None

        if page is None:
            logger.warning(f"Returning {len(result.items)} {label} collected before the failed page")
            result.stop_reason = STOP_ERROR
            break

        result.pages_fetched += 1
        page_items = page_items or []

        if not page_items:
            result.stop_reason = STOP_EMPTY_PAGE
            break

        remaining = max_items - len(result.items)
        result.items.extend(page_items[:remaining])
        truncated = len(page_items) > remaining

        total = page.get('total')
        logger.debug(f"Fetched {len(result.items)}/{total if total is not None else '?'} {label}")

        if page.get('isLast') is True and not truncated:
            result.stop_reason = STOP_LAST_PAGE
            break

        if isinstance(total, int) and len(result.items) >= total:
            result.stop_reason = STOP_TOTAL_REACHED
            break

        if len(result.items) >= max_items:
            logger.warning(f"Stopping {label} fetch at item cap ({max_items} items)")
            result.stop_reason = STOP_ITEM_CAP
            break

        offset += page_size

    return result
