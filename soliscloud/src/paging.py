"""
Pagination aggregator for SolisCloud list endpoints.

SolisCloud list endpoints return one page at a time, in one of two shapes::

    {"data": {"page": {"records": [...], "pages": 3, "current": 1, "total": 25}}}
    {"data": {"records": [...], "pages": 3, "current": 1, "total": 25}}

:class:`PageAggregator` walks the pages sequentially and merges every page's
``records`` into the first response, rewriting ``pages`` to 1 and ``total`` to
the merged length, so callers consume a single synthetic response as if the
listing had fit on one page.

CHANGELOG:
- 2026-10-04: Persist the raw first page before merging continues (STORY-108)
- 2026-10-03: Initial creation (STORY-108)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

MAX_PAGES: int = 50
"""Hard ceiling on pages fetched per listing (guards against bogus ``pages``)."""

DEFAULT_PAGE_SIZE: int = 100

FirstPageHook = Callable[[str, dict[str, Any]], Awaitable[None]]


class SendsRequests(Protocol):
    """Anything with the :meth:`SolisCloudClient.send` signature."""

    async def send(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]: ...


def page_container(response: Any) -> dict[str, Any] | None:
    """Return the dict holding ``records``/``pages`` for either list shape."""
    if not isinstance(response, dict):
        return None
    data = response.get("data")
    if not isinstance(data, dict):
        return None
    page = data.get("page")
    if isinstance(page, dict):
        return page
    return data


def extract_records(response: Any) -> list[Any]:
    """Return the ``records`` list of a list response, or ``[]``."""
    container = page_container(response)
    records = container.get("records") if container is not None else None
    return records if isinstance(records, list) else []


def _declared_pages(container: dict[str, Any] | None) -> int:
    if container is None:
        return 1
    try:
        pages = int(container.get("pages") or 1)
    except (TypeError, ValueError):
        return 1
    return pages if pages > 0 else 1


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value) or default
    except (TypeError, ValueError):
        return default


class PageAggregator:
    """Fetch and merge every page of a paged SolisCloud listing.

    Args:
        client: The signed request client.
        on_first_page: Optional coroutine ``(tag, response)`` called with the
            raw first page as soon as it arrives, before later pages are
            requested.
        max_pages: Page ceiling; reaching it stops aggregation silently.
    """

    def __init__(
        self,
        client: SendsRequests,
        on_first_page: FirstPageHook | None = None,
        max_pages: int = MAX_PAGES,
    ) -> None:
        self._client = client
        self._on_first_page = on_first_page
        self._max_pages = max_pages

    async def fetch_all(
        self,
        path: str,
        base_body: dict[str, Any] | None = None,
        tag: str | None = None,
    ) -> dict[str, Any] | None:
        """Fetch all pages of *path* and return one merged response.

        Args:
            path: List endpoint path.
            base_body: Request fields; ``pageNo`` (default 1) and ``pageSize``
                (default 100) are taken from here.
            tag: Observability tag; when set, the first page is handed to
                the ``on_first_page`` hook under this tag.

        Returns:
            The first page's response with all records merged in, or
            ``None`` if the client returned nothing.
        """
        body = dict(base_body or {})
        page_size = _as_int(body.get("pageSize"), DEFAULT_PAGE_SIZE)
        page_no = _as_int(body.get("pageNo"), 1)
        first_page_no = page_no
        combined: dict[str, Any] | None = None

        for _ in range(self._max_pages):
            response = await self._client.send(path, {**body, "pageNo": page_no, "pageSize": page_size})
            container = page_container(response)
            records = container.get("records") if container is not None else None

            if combined is None:
                combined = response
            else:
                _merge_records(combined, records)

            if tag and page_no == first_page_no and self._on_first_page is not None:
                await self._on_first_page(tag, response)

            if not isinstance(records, list) or page_no >= _declared_pages(container):
                break
            page_no += 1
        else:
            logger.warning(
                "Stopped paging %s after %d pages (page ceiling reached)",
                path,
                self._max_pages,
            )

        return combined


def _merge_records(combined: dict[str, Any], records: Any) -> None:
    """Append *records* to the merged response and rewrite its counters."""
    if not isinstance(records, list):
        return
    target = page_container(combined)
    if target is None or not isinstance(target.get("records"), list):
        return
    target["records"] = target["records"] + records
    target["pages"] = 1
    target["total"] = len(target["records"])
