"""Page slicing for record lists."""

import math
from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar

T = TypeVar("T")

PAGE_SIZES = (10, 25, 50, 100)


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return max(math.ceil(self.total / self.page_size), 1)

    @property
    def first_index(self) -> int:
        """1-based index of the first item shown ('Showing 11 to 20 of 42')."""
        return min((self.page - 1) * self.page_size + 1, self.total)

    @property
    def last_index(self) -> int:
        return min(self.page * self.page_size, self.total)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: Sequence[T], page: int = 1, page_size: int = PAGE_SIZES[0]) -> Page[T]:
    """Slice items to one page. Unknown page sizes fall back to the smallest."""
    if page_size not in PAGE_SIZES:
        page_size = PAGE_SIZES[0]
    total = len(items)
    total_pages = max(math.ceil(total / page_size), 1)
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size
    return Page(list(items[start:start + page_size]), page, page_size, total)
