"""Horizontal offer carousel position."""

from dataclasses import dataclass

from restaurant_dashboard.scheduling.task_scheduler import TaskScheduler

SCROLL_STEP = 350
AUTO_ADVANCE_SECONDS = 4.0
END_TOLERANCE = 10


@dataclass
class OfferCarousel:
    """Scroll state of the offers strip, in pixels.

    Attributes:
        viewport_width: Visible width of the strip
        content_width: Total scrollable width of the strip
        is_rtl: Whether the surrounding text direction is right-to-left
        position: Current scroll offset from the start
    """

    viewport_width: int
    content_width: int
    is_rtl: bool = False
    position: int = 0

    @property
    def max_position(self) -> int:
        return max(0, self.content_width - self.viewport_width)

    def at_end(self) -> bool:
        return self.position + self.viewport_width >= self.content_width - END_TOLERANCE

    def _scroll_to(self, position: int) -> int:
        self.position = min(max(0, position), self.max_position)
        return self.position

    def auto_advance(self) -> int:
        """Advance one step, or wrap to the start once the end is reached.

        Returns:
            The new position
        """
        if self.at_end():
            return self._scroll_to(0)
        return self._scroll_to(self.position + SCROLL_STEP)

    def scroll(self, direction: str) -> int:
        """Scroll one step for a "left" or "right" button press.

        Under right-to-left text the buttons are mirrored.

        Raises:
            ValueError: For any other direction
        """
        if direction not in ("left", "right"):
            raise ValueError(f"Unknown scroll direction: {direction}")

        step = -SCROLL_STEP if direction == "left" else SCROLL_STEP
        if self.is_rtl:
            step = -step
        return self._scroll_to(self.position + step)

    def resize(self, content_width: int, viewport_width: int | None = None) -> None:
        """Update the measured widths after the offer list changed."""
        self.content_width = content_width
        if viewport_width is not None:
            self.viewport_width = viewport_width
        self._scroll_to(self.position)

    def attach(self, scheduler: TaskScheduler) -> None:
        """Auto-advance every 4 seconds on the given scheduler."""
        scheduler.every("offer_carousel", AUTO_ADVANCE_SECONDS, self.auto_advance)
