"""Keyed query cache with tag invalidation and in-flight de-duplication."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from restaurant_dashboard.observability.metrics import record_cache_hit

logger = logging.getLogger(__name__)

LIST_ID = "LIST"

Tag = str | tuple[str, str]


@dataclass
class QueryState:
    """Cached result of one query key.

    ``data`` always holds the last successful result; a failed refetch only
    sets ``error`` and leaves ``data`` in place. ``generation`` counts
    invalidations so a fetch that was already running when the entry was
    invalidated does not mark it fresh.
    """

    data: Any = None
    error: Exception | None = None
    is_loading: bool = False
    is_stale: bool = True
    fetched_at: datetime | None = None
    generation: int = 0
    tags: set[tuple[str, str]] = field(default_factory=set)


class QueryCache:
    """Single owner of remote collections for every view.

    Concurrent fetches of the same key share one request. Mutations call
    ``invalidate`` with the tags they affect so that the next fetch of any
    matching key goes back to the network.
    """

    def __init__(self) -> None:
        self._states: dict[Hashable, QueryState] = {}
        self._in_flight: dict[Hashable, asyncio.Task[Any]] = {}

    def state(self, key: Hashable) -> QueryState | None:
        """Return the cached state for a key, if the key was ever fetched."""
        return self._states.get(key)

    def data(self, key: Hashable) -> Any:
        """Return the last successful result for a key, or None."""
        state = self._states.get(key)
        return state.data if state else None

    async def fetch(
        self,
        key: Hashable,
        fetcher: Callable[[], Awaitable[Any]],
        tags: Iterable[Tag] = (),
        force: bool = False,
    ) -> Any:
        """Return the result for a key, fetching it when missing or stale.

        Args:
            key: Hashable cache key, usually a tuple of endpoint name and arguments
            fetcher: Coroutine factory performing the request
            tags: Tags provided by the result, as (type, id) pairs or a bare type
            force: Refetch even when a fresh result is cached

        Returns:
            The fetched or cached data

        Raises:
            Exception: Whatever the fetcher raised; previous data is kept
        """
        state = self._states.setdefault(key, QueryState())
        state.tags.update(_as_pair(tag) for tag in tags)

        task = self._in_flight.get(key)
        if task is not None:
            record_cache_hit("in_flight")
            return await asyncio.shield(task)

        if not force and not state.is_stale and state.error is None:
            record_cache_hit("fresh")
            return state.data

        task = asyncio.create_task(self._run(key, state, fetcher, state.generation))
        self._in_flight[key] = task
        return await asyncio.shield(task)

    async def _run(
        self, key: Hashable, state: QueryState, fetcher: Callable[[], Awaitable[Any]], started: int
    ) -> Any:
        state.is_loading = True
        try:
            result = await fetcher()
        except Exception as e:
            state.error = e
            logger.warning(f"Query {key!r} failed, keeping previous data: {e}")
            raise
        else:
            state.data = result
            state.error = None
            state.is_stale = state.generation != started
            state.fetched_at = datetime.now(UTC)
            return result
        finally:
            state.is_loading = False
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

    def invalidate(self, *tags: Tag) -> int:
        """Mark every entry providing one of the tags as stale.

        A bare type string matches all ids of that type.

        Returns:
            Number of entries marked stale
        """
        types = {tag for tag in tags if isinstance(tag, str)}
        pairs = {tag for tag in tags if isinstance(tag, tuple)}

        count = 0
        for state in self._states.values():
            if any(tag_type in types or (tag_type, tag_id) in pairs for tag_type, tag_id in state.tags):
                state.is_stale = True
                state.generation += 1
                count += 1

        logger.debug(f"Invalidated {count} queries for tags {tags!r}")
        return count

    def clear(self) -> None:
        """Drop every cached state (e.g. on logout).

        Requests still running finish into detached states; the next fetch of
        their key starts a new request.
        """
        self._states.clear()
        self._in_flight.clear()


def _as_pair(tag: Tag) -> tuple[str, str]:
    return (tag, LIST_ID) if isinstance(tag, str) else tag
