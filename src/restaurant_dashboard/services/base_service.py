"""Shared plumbing for feature services.

Feature services wrap DashboardApiClient calls with the query cache:
reads are cached by key and tagged, mutations invalidate the tags they
affect. Authenticated reads are skipped (None is returned and nothing is
sent) while no bearer token is available.
"""

import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable
from typing import Any

from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.query_cache import LIST_ID, QueryCache, Tag

logger = logging.getLogger(__name__)


class CachedApiService:
    """Base class for services reading through the query cache."""

    def __init__(self, client: DashboardApiClient, cache: QueryCache, tag_type: str) -> None:
        """Initialize the service.

        Args:
            client: Dashboard API client
            cache: Query cache shared by every view
            tag_type: Tag type provided by this service's collections (e.g. 'Products')
        """
        self.client = client
        self.cache = cache
        self.tag_type = tag_type

    async def _query(
        self,
        key: Hashable,
        fetcher: Callable[[], Awaitable[Any]],
        tags: Iterable[Tag] = (),
        authenticated: bool = True,
        force: bool = False,
    ) -> Any:
        if authenticated and not self.client.token:
            logger.debug(f"Skipping {key!r}: no auth token")
            return None
        return await self.cache.fetch(key, fetcher, tags=tags, force=force)

    def _list_tag(self) -> tuple[str, str]:
        return (self.tag_type, LIST_ID)

    def _item_tag(self, item_id: str) -> tuple[str, str]:
        return (self.tag_type, item_id)

    def _invalidate(self, item_id: str | None = None, *extra: Tag) -> None:
        tags: list[Tag] = [self._list_tag(), *extra]
        if item_id:
            tags.append(self._item_tag(item_id))
        self.cache.invalidate(*tags)
