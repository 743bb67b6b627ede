# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Link-header pagination.

Paged endpoints answer with an RFC 8288 ``Link`` header:

    Link: <https://example.social/api/v1/timelines/home?max_id=99>; rel="next",
          <https://example.social/api/v1/timelines/home?min_id=120>; rel="prev"

``Paginator.page`` returns the decoded items plus opaque cursors for those
links. Pass a cursor back to ``page`` to fetch the neighbouring page. The
absence of ``next_cursor`` is the only end-of-listing signal; a page can be
empty mid-listing when the server filters items out.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .endpoints import Endpoint
from .executor import RequestExecutor
from .model.requests import RequestModel
from .utils import get_logger

_logger = get_logger("tusk.paging")

T = TypeVar("T")

_LINK_VALUE = re.compile(r"<([^>]*)>((?:\s*;\s*[^;,]+)*)")
_REL_PARAM = re.compile(r";\s*rel\s*=\s*(?:\"([^\"]*)\"|([^\s;,]+))", re.IGNORECASE)


def parse_link_header(value: str | None) -> dict[str, str]:
    """Map each ``rel`` of a ``Link`` header to its URL.

    A link may carry several space-separated relations. When a relation repeats,
    the first occurrence wins.

    Example:
        >>> parse_link_header('<https://a/?max_id=1>; rel="next"')
        {'next': 'https://a/?max_id=1'}
    """
    links: dict[str, str] = {}
    if not value:
        return links
    for match in _LINK_VALUE.finditer(value):
        url, params = match.group(1).strip(), match.group(2)
        rel = _REL_PARAM.search(params)
        if rel is None:
            continue
        for name in (rel.group(1) or rel.group(2) or "").lower().split():
            links.setdefault(name, url)
    return links


@dataclass(frozen=True, slots=True)
class PageCursor:
    """Opaque token for a neighbouring page.

    Only valid for the endpoint that produced it. Do not build or modify one.
    """

    url: str = field(repr=False)
    endpoint: str
    direction: str = "next"


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One page of a listing."""

    items: list[T]
    next_cursor: PageCursor | None = None
    prev_cursor: PageCursor | None = None

    @property
    def has_next(self) -> bool:
        return self.next_cursor is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class Paginator:
    """Fetches pages of paged endpoints through a ``RequestExecutor``."""

    def __init__(self, executor: RequestExecutor) -> None:
        self._executor = executor

    async def page(
        self,
        endpoint: Endpoint,
        filter: RequestModel | None = None,
        cursor: PageCursor | None = None,
        path_params: Mapping[str, object] | None = None,
    ) -> Page[Any]:
        """Fetch the first page, or the page ``cursor`` points to.

        Raises:
            ValueError: If ``endpoint`` is not paged, or ``cursor`` belongs to
                another endpoint
        """
        if not endpoint.paged:
            raise ValueError(f"{endpoint.name} is not a paged endpoint")
        if cursor is not None:
            if not isinstance(cursor, PageCursor) or cursor.endpoint != endpoint.name:
                raise ValueError(f"cursor does not belong to {endpoint.name}")
            items, response = await self._executor.send(endpoint, url=cursor.url)
        else:
            items, response = await self._executor.send(endpoint, path_params, filter)

        links = parse_link_header(response.headers.get("link"))
        prev_url = links.get("prev") or links.get("previous")
        return Page(
            items=items,
            next_cursor=PageCursor(links["next"], endpoint.name, "next") if "next" in links else None,
            prev_cursor=PageCursor(prev_url, endpoint.name, "prev") if prev_url else None,
        )

    async def iterate(
        self,
        endpoint: Endpoint,
        filter: RequestModel | None = None,
        path_params: Mapping[str, object] | None = None,
        *,
        max_pages: int | None = None,
    ) -> AsyncIterator[Any]:
        """Yield items across pages until there is no next page.

        Stops early if the server hands back a ``next`` link already followed,
        which would otherwise loop forever.
        """
        cursor: PageCursor | None = None
        followed: set[str] = set()
        pages = 0
        while True:
            page = await self.page(endpoint, filter, cursor, path_params)
            pages += 1
            for item in page.items:
                yield item
            cursor = page.next_cursor
            if cursor is None or (max_pages is not None and pages >= max_pages):
                return
            if cursor.url in followed:
                _logger.warning(
                    "pagination link repeated; stopping",
                    extra={"event": "paging.loop", "endpoint": endpoint.name, "pages": pages},
                )
                return
            followed.add(cursor.url)


__all__ = ["Page", "PageCursor", "Paginator", "parse_link_header"]
