"""
Pagination and aggregation of paged provider list calls.

A raw page fetcher returns one page of provider records plus the total
number of records the provider reports. ``paginate`` drives the fetcher from
page 1 until ``page_number * page_size >= total_count``, or until a page is
marked final, and maps every record into a canonical resource, preserving
provider order.

Providers that page with continuation tokens instead of page numbers are
projected onto the same contract with ``page_from_token``.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .models import CloudResource
from ..core.context import Context
from ..core.exceptions import ValidationError


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageCursor:
    """Position of one page request within an aggregation run."""
    page_number: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    page_token: Optional[str] = None

    def __post_init__(self):
        if self.page_number < 1:
            raise ValidationError(f"page_number must be >= 1, got {self.page_number}")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}")

    @property
    def offset(self) -> int:
        """Number of records on the pages before this one."""
        return (self.page_number - 1) * self.page_size

    def is_last(self, total_count: int) -> bool:
        """True once this page reaches the reported total count."""
        return self.page_number * self.page_size >= total_count

    def advance(self, page_token: Optional[str] = None) -> 'PageCursor':
        """Cursor for the following page; page_size is kept."""
        return PageCursor(self.page_number + 1, self.page_size, page_token)


@dataclass
class Page:
    """One page returned by a raw page fetcher."""
    records: Sequence[Any] = field(default_factory=list)
    total_count: int = 0
    next_token: Optional[str] = None
    # Provider reported that no records follow this page
    final: bool = False

    def ends_listing(self, cursor: PageCursor) -> bool:
        return self.final or cursor.is_last(self.total_count)


PageFetcher = Callable[[Context, str, PageCursor], Page]
FieldMapper = Callable[[Any, str], CloudResource]


def page_from_token(records: Sequence[Any], cursor: PageCursor, next_token: Optional[str]) -> Page:
    """Build a Page for a provider that pages with continuation tokens.

    While the provider returns a token the total is reported as one more
    than this page could hold, so the aggregation keeps going. Once the
    token is absent the total is exactly the number of records seen and the
    page is final, even when the provider returned more than page_size
    records on it.

    Args:
        records: Records on this page
        cursor: Cursor the page was fetched with
        next_token: Continuation token returned by the provider, if any

    Returns:
        Page carrying the projected total count and the token
    """
    if next_token:
        total_count = cursor.page_number * cursor.page_size + 1
    else:
        total_count = cursor.offset + len(records)
    return Page(
        records=list(records),
        total_count=total_count,
        next_token=next_token or None,
        final=not next_token
    )


def paginate(
    ctx: Context,
    fetch: PageFetcher,
    mapper: FieldMapper,
    region: str,
    page_size: int = DEFAULT_PAGE_SIZE
) -> List[CloudResource]:
    """Fetch every page for a region and map the records.

    The run is all-or-nothing: the first fetch error, or a cancelled
    context, aborts it and nothing fetched so far is returned. The most
    recently reported total count decides termination, so a total that
    shrinks between pages ends the run earlier and is never an error.

    Args:
        ctx: Cancellation context, checked before every page request
        fetch: Raw page fetcher
        mapper: Field mapper from one provider record (and its region) to a
            CloudResource
        region: Region passed through to the fetcher
        page_size: Records requested per page

    Returns:
        All mapped resources in provider order

    Raises:
        OperationCancelled: If ctx is cancelled before the run completes
        ValidationError: If page_size is out of range
    """
    cursor = PageCursor(page_number=1, page_size=page_size)
    resources: List[CloudResource] = []

    while True:
        ctx.check()
        page = fetch(ctx, region, cursor)
        resources.extend(mapper(record, region) for record in page.records)

        logger.debug(
            f"Fetched page {cursor.page_number} in {region}: "
            f"{len(page.records)} records, total {page.total_count}"
        )

        if page.ends_listing(cursor):
            break

        cursor = cursor.advance(page.next_token)

    return resources


def fetch_single_page(
    ctx: Context,
    fetch: PageFetcher,
    mapper: FieldMapper,
    region: str,
    cursor: PageCursor
) -> Tuple[List[CloudResource], Page]:
    """Fetch one page and report whether another follows.

    Returns:
        Tuple of (mapped resources, page)
    """
    ctx.check()
    page = fetch(ctx, region, cursor)
    return [mapper(record, region) for record in page.records], page
