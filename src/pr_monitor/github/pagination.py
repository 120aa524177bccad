"""GitHub API pagination utilities."""

import re
from collections.abc import AsyncIterator
from typing import Any

_LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')


class LinkHeader:
    """Parser for GitHub Link headers."""

    def __init__(self, link_header: str | None = None):
        """Initialize Link header parser.

        Args:
            link_header: Raw Link header value from response
        """
        self.links: dict[str, str] = {}
        if link_header:
            # Link header format: <url>; rel="next", <url>; rel="last"
            for match in _LINK_PATTERN.finditer(link_header):
                url, rel = match.groups()
                self.links[rel] = url

    @property
    def next_url(self) -> str | None:
        """Get URL for next page."""
        return self.links.get("next")

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return "next" in self.links


class PaginatedResponse:
    """One page of a paginated GitHub API response.

    Most list endpoints return a bare JSON array. The Actions endpoints wrap
    the array in an object (``{"total_count": n, "workflow_runs": [...]}``),
    in which case ``items_key`` names the member holding the page items.
    """

    def __init__(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: dict[str, str],
        url: str,
        items_key: str | None = None,
    ):
        self.data = data
        self.headers = headers
        self.url = url
        self.items_key = items_key
        self.link_header = LinkHeader(headers.get("Link"))

    @property
    def has_next_page(self) -> bool:
        """Check if there's a next page."""
        return self.link_header.has_next

    @property
    def next_page_url(self) -> str | None:
        """Get URL for next page."""
        return self.link_header.next_url

    @property
    def items(self) -> list[dict[str, Any]]:
        """Get items from current page."""
        if isinstance(self.data, dict):
            if self.items_key is None:
                return [self.data]
            return list(self.data.get(self.items_key) or [])
        return self.data


class AsyncPaginator:
    """Async iterator over every item of a paginated endpoint."""

    def __init__(
        self,
        client: Any,  # Avoid circular import
        initial_url: str,
        params: dict[str, Any] | None = None,
        max_pages: int | None = None,
        per_page: int = 100,
        items_key: str | None = None,
    ):
        """Initialize async paginator.

        Args:
            client: GitHub client instance
            initial_url: Initial URL to fetch
            params: Query parameters
            max_pages: Maximum number of pages to fetch
            per_page: Items per page (max 100 for GitHub)
            items_key: Member holding the items for wrapped responses
        """
        self.client = client
        self.initial_url = initial_url
        self.params = dict(params or {})
        self.max_pages = max_pages
        self.per_page = min(per_page, 100)
        self.items_key = items_key

        self.params["per_page"] = self.per_page

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        """Async iterator implementation."""
        next_url: str | None = self.initial_url
        params: dict[str, Any] | None = self.params
        pages = 0

        while next_url:
            if self.max_pages and pages >= self.max_pages:
                break

            response = await self.client._fetch_paginated(
                next_url, params, items_key=self.items_key
            )
            pages += 1

            for item in response.items:
                yield item

            # The next link already carries the query string
            next_url = response.next_page_url if response.has_next_page else None
            params = None

    async def collect_all(self) -> list[dict[str, Any]]:
        """Collect all items from all pages.

        Returns:
            List of all items
        """
        items = []
        async for item in self:
            items.append(item)
        return items
