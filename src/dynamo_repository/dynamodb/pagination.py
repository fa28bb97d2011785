# src/dynamo_repository/dynamodb/pagination.py

"""
Client-side page windows over the backend's own result pages.

DynamoDB pages by size in bytes and continuation keys, never by page
number. A :class:`PageWindow` consumes every backend page, skips whole pages
that end before the window, copies the items of page ``page`` of size
``page_size`` and counts everything it sees so the total page count is
known.
"""

import math
from typing import Any, Dict, List

from dynamo_repository.dynamodb.marshal import WireItem


class PageWindow:
    """Collects one page-number page from a stream of backend pages."""

    def __init__(self, page_size: int, page: int):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        if page < 1:
            raise ValueError(f"page must be 1 or greater, got {page}")
        self.page_size = page_size
        self.page = page
        self.start = page_size * (page - 1)
        self.items: List[WireItem] = []
        self.seen = 0

    def collect(self, backend_page: Dict[str, Any], last_page: bool) -> bool:
        """
        Page callback for ``DynamoDriver.query_pages``.

        Always returns True: the remaining pages are still needed for the
        page count.
        """
        page_items = backend_page.get("Items") or []
        count = len(page_items)

        if self.seen + count <= self.start:
            self.seen += count
            return True

        for position, item in enumerate(page_items):
            if len(self.items) >= self.page_size:
                break
            if self.seen + position >= self.start:
                self.items.append(item)

        self.seen += count
        return True

    @property
    def page_count(self) -> int:
        return math.ceil(self.seen / self.page_size)

    def __repr__(self) -> str:
        return (
            f"PageWindow(page_size={self.page_size}, page={self.page}, "
            f"seen={self.seen}, collected={len(self.items)})"
        )
