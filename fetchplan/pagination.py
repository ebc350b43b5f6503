"""
Pagination planning.

A separate ``COUNT(*)`` query is only needed when the fetched page cannot
prove where the data ends. A short first page is also the last page, and a
short later page ends at ``offset + len(content)``; only a full page (or an
empty page past the end) leaves the total unknown.

Content and count run as separate queries. Without an enclosing transaction
they may observe different data, so an inferred or counted total can be stale.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from .core.exceptions import InvalidPaginationRequest
from .queries.description import SortTerm, parse_sort

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class PageRequest:
    """Offset/limit window plus the sort that makes it deterministic."""

    offset: int = 0
    limit: int = 20
    sort: Tuple[SortTerm, ...] = ()

    def __post_init__(self):
        if not _is_int(self.offset) or self.offset < 0:
            raise InvalidPaginationRequest(
                f"offset must be a non-negative integer, got {self.offset!r}",
                offset=self.offset,
                limit=self.limit,
            )
        if not _is_int(self.limit) or self.limit <= 0:
            raise InvalidPaginationRequest(
                f"limit must be a positive integer, got {self.limit!r}",
                offset=self.offset,
                limit=self.limit,
            )
        object.__setattr__(self, "sort", parse_sort(self.sort))

    @classmethod
    def of_page(cls, page: int = 1, per_page: int = 20, sort: Sequence = ()) -> "PageRequest":
        """Build a request from a 1-based page number."""
        if not _is_int(page) or page < 1:
            raise InvalidPaginationRequest(
                f"page must be a positive integer, got {page!r}", limit=per_page
            )
        if not _is_int(per_page) or per_page <= 0:
            raise InvalidPaginationRequest(
                f"per_page must be a positive integer, got {per_page!r}", limit=per_page
            )
        return cls(offset=(page - 1) * per_page, limit=per_page, sort=sort)

    @property
    def page_number(self) -> int:
        """1-based page number (offsets that are not page aligned round down)."""
        return self.offset // self.limit + 1

    def next(self) -> "PageRequest":
        return replace(self, offset=self.offset + self.limit)

    def previous(self) -> Optional["PageRequest"]:
        if self.offset == 0:
            return None
        return replace(self, offset=max(0, self.offset - self.limit))

    def with_sort(self, sort: Sequence) -> "PageRequest":
        return replace(self, sort=parse_sort(sort))


@dataclass
class PageResult(Generic[T]):
    """A page of content with its (possibly inferred) total."""

    content: List[T]
    offset: int
    limit: int
    total: Optional[int] = None

    @property
    def page_number(self) -> int:
        return self.offset // self.limit + 1

    @property
    def total_pages(self) -> Optional[int]:
        if self.total is None:
            return None
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_previous(self) -> bool:
        return self.offset > 0

    @property
    def has_next(self) -> bool:
        if self.total is None:
            return len(self.content) == self.limit
        return self.offset + len(self.content) < self.total

    @property
    def is_last(self) -> bool:
        return not self.has_next

    def map(self, converter: Callable[[T], U]) -> "PageResult[U]":
        """Convert the content, keeping paging metadata."""
        return PageResult(
            content=[converter(item) for item in self.content],
            offset=self.offset,
            limit=self.limit,
            total=self.total,
        )

    def __iter__(self):
        return iter(self.content)

    def __len__(self) -> int:
        return len(self.content)


@dataclass
class Slice(Generic[T]):
    """A page that only knows whether more data follows; never counts."""

    content: List[T]
    offset: int
    limit: int
    has_next: bool = False

    @property
    def page_number(self) -> int:
        return self.offset // self.limit + 1

    @property
    def has_previous(self) -> bool:
        return self.offset > 0

    def map(self, converter: Callable[[T], U]) -> "Slice[U]":
        return Slice(
            content=[converter(item) for item in self.content],
            offset=self.offset,
            limit=self.limit,
            has_next=self.has_next,
        )

    def __iter__(self):
        return iter(self.content)

    def __len__(self) -> int:
        return len(self.content)


def infer_total(offset: int, limit: int, content_size: int) -> Optional[int]:
    """
    Return the total when the fetched page proves it, else None.

    Examples:
        >>> infer_total(offset=0, limit=10, content_size=7)
        7
        >>> infer_total(offset=20, limit=10, content_size=4)
        24
        >>> infer_total(offset=20, limit=10, content_size=10) is None
        True
    """
    if content_size > limit:
        raise ValueError(f"content_size {content_size} exceeds limit {limit}")
    if offset == 0:
        if content_size < limit:
            return content_size
        return None
    # An empty page past the end says nothing about where the data stops.
    if 0 < content_size < limit:
        return offset + content_size
    return None


def needs_count_query(offset: int, limit: int, content_size: int) -> bool:
    return infer_total(offset, limit, content_size) is None


def resolve_page(
    content: List[T],
    request: PageRequest,
    count_supplier: Callable[[], int],
    always_count: bool = False,
) -> PageResult[T]:
    """
    Assemble a PageResult, calling ``count_supplier`` only when needed.

    Args:
        content: The fetched page (at most ``request.limit`` items)
        request: The page request the content was fetched for
        count_supplier: Issues the count query
        always_count: Skip inference and always run the count query
    """
    total = None if always_count else infer_total(request.offset, request.limit, len(content))
    if total is None:
        total = count_supplier()
        if total < request.offset + len(content):
            logger.warning(
                "Count query returned %s, fewer than the %s rows already seen; "
                "data changed between the content and count queries",
                total,
                request.offset + len(content),
            )
    else:
        logger.debug(
            f"Count query elided: total {total} inferred from page "
            f"(offset={request.offset}, limit={request.limit}, size={len(content)})"
        )
    return PageResult(content=content, offset=request.offset, limit=request.limit, total=total)
