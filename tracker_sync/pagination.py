"""Cursor-following pagination shared by the upstream clients."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional


@dataclass
class PageInfo:
    has_next_page: bool = False
    end_cursor: Optional[str] = None


@dataclass
class Connection:
    """One page of an upstream collection."""
    nodes: List[Any] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)

    @classmethod
    def from_graphql(cls, data: dict) -> 'Connection':
        """Build a connection from a GraphQL `{nodes, pageInfo}` object."""
        page_info = data.get('pageInfo') or {}
        return cls(
            nodes=list(data.get('nodes') or []),
            page_info=PageInfo(
                has_next_page=bool(page_info.get('hasNextPage')),
                end_cursor=page_info.get('endCursor'),
            ),
        )


FetchPage = Callable[[Optional[str]], Connection]


def iter_connection(fetch_page: FetchPage) -> Iterator[Any]:
    """Yield every node of a paginated collection in upstream order.

    Pages are requested lazily, so a caller that stops iterating stops
    fetching. Iteration ends when a page reports no next page or supplies
    no cursor, whichever comes first.

    Args:
        fetch_page: Callable taking the cursor of the previous page
            (None for the first page) and returning a Connection

    Yields:
        Nodes from each page, in order
    """
    cursor = None
    page = 1

    while True:
        logging.debug(f"Fetching page {page} (cursor={cursor})")
        connection = fetch_page(cursor)
        yield from connection.nodes

        page_info = connection.page_info
        if not (page_info.has_next_page and page_info.end_cursor):
            break

        cursor = page_info.end_cursor
        page += 1


def paginate_connection(fetch_page: FetchPage) -> List[Any]:
    """Drain a paginated collection into a list.

    A failing page fetch propagates and no partial list is returned.
    """
    items = list(iter_connection(fetch_page))
    logging.debug(f"Fetched {len(items)} total items")
    return items
