"""Self-clearing highlight state."""

import asyncio
from collections.abc import Iterable

LIST_HIGHLIGHT_SECONDS = 5.0
SUCCESS_BADGE_SECONDS = 3.0


class RecentlyAddedTracker:
    """Highlights ids that appear when a collection grows.

    Every highlighted id gets its own timer on the running event loop and is
    removed when it fires; no further update is needed to clear it.
    """

    def __init__(self, delay: float = LIST_HIGHLIGHT_SECONDS) -> None:
        self.delay = delay
        self._known: set[str] | None = None
        self._highlighted: set[str] = set()
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def highlighted(self) -> frozenset[str]:
        return frozenset(self._highlighted)

    def is_highlighted(self, item_id: str) -> bool:
        return item_id in self._highlighted

    def observe(self, ids: Iterable[str]) -> set[str]:
        """Record the current ids of the collection.

        The first observation only sets the baseline. Afterwards, when the
        collection has grown, ids not seen before are highlighted.

        Args:
            ids: Ids currently in the collection

        Returns:
            Ids highlighted by this observation
        """
        current = {item_id for item_id in ids if item_id}
        previous, self._known = self._known, current

        if previous is None or len(current) <= len(previous):
            return set()

        added = current - previous
        for item_id in added:
            self._highlight(item_id)
        return added

    def _highlight(self, item_id: str) -> None:
        self._highlighted.add(item_id)
        existing = self._timers.pop(item_id, None)
        if existing is not None:
            existing.cancel()
        loop = asyncio.get_running_loop()
        self._timers[item_id] = loop.call_later(self.delay, self._expire, item_id)

    def _expire(self, item_id: str) -> None:
        self._highlighted.discard(item_id)
        self._timers.pop(item_id, None)

    def clear(self) -> None:
        """Cancel every timer and drop all highlights."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._highlighted.clear()


class TransientFlag:
    """Boolean that resets itself a fixed delay after being raised.

    Used for success banners and badges.
    """

    def __init__(self, delay: float = SUCCESS_BADGE_SECONDS) -> None:
        self.delay = delay
        self.message: str | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def is_set(self) -> bool:
        return self.message is not None

    def show(self, message: str = "") -> None:
        """Raise the flag, restarting its timer if already raised."""
        self.dismiss()
        self.message = message
        self._timer = asyncio.get_running_loop().call_later(self.delay, self._reset)

    def dismiss(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._reset()

    def _reset(self) -> None:
        self.message = None
        self._timer = None
