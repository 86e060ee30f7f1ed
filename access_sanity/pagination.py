"""Collect every item from a token-paginated query."""

from typing import Callable, List, Optional, Tuple, TypeVar

from .errors import AccessSanityError

T = TypeVar("T")

# Guard against servers that keep returning the same page token
MAX_PAGES = 10000


def all_pages(fetch: Callable[[Optional[str]], Tuple[List[T], Optional[str]]]) -> List[T]:
    """Call ``fetch(page_token)`` until it stops returning a next page token.

    ``fetch`` receives ``None`` for the first page and returns
    ``(items, next_page_token)``; an empty or ``None`` token ends the loop.
    Exceptions raised by ``fetch`` propagate unchanged.
    """
    items: List[T] = []
    token: Optional[str] = None
    for _ in range(MAX_PAGES):
        page, token = fetch(token)
        items.extend(page)
        if not token:
            return items
    raise AccessSanityError(f"pagination did not finish after {MAX_PAGES} pages")
