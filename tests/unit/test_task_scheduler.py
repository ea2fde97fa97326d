"""Unit tests for TaskScheduler."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from restaurant_dashboard.scheduling.task_scheduler import TaskScheduler


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> TaskScheduler:
    return TaskScheduler(clock=clock)


@pytest.mark.unit
class TestTaskScheduler:
    """Test suite for TaskScheduler."""

    def test_interval_must_be_positive(self, scheduler: TaskScheduler) -> None:
        with pytest.raises(ValueError):
            scheduler.every("bad", 0, MagicMock())

    @pytest.mark.asyncio
    async def test_runs_when_due_and_reschedules(self, scheduler: TaskScheduler, clock: FakeClock) -> None:
        action = MagicMock(return_value=None)
        scheduler.every("refresh", 30, action)

        assert await scheduler.run_due() == []
        clock.advance(30)
        assert await scheduler.run_due() == ["refresh"]
        clock.advance(10)
        assert await scheduler.run_due() == []
        clock.advance(20)
        assert await scheduler.run_due() == ["refresh"]

        assert action.call_count == 2

    @pytest.mark.asyncio
    async def test_missed_intervals_run_once(self, scheduler: TaskScheduler, clock: FakeClock) -> None:
        action = AsyncMock()
        scheduler.every("refresh", 5, action, run_immediately=True)

        clock.advance(100)
        await scheduler.run_due()

        action.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_task_stays(self, scheduler: TaskScheduler, clock: FakeClock) -> None:
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock(return_value=None)
        scheduler.every("failing", 1, failing, run_immediately=True)
        scheduler.every("healthy", 1, healthy, run_immediately=True)

        assert await scheduler.run_due() == ["failing", "healthy"]
        clock.advance(1)
        assert await scheduler.run_due() == ["failing", "healthy"]

        assert failing.await_count == 2
        assert healthy.call_count == 2

    def test_replace_and_remove(self, scheduler: TaskScheduler) -> None:
        scheduler.every("refresh", 10, MagicMock())
        scheduler.every("refresh", 20, MagicMock())

        assert scheduler.task_names == ["refresh"]
        assert scheduler.remove("refresh") is True
        assert scheduler.remove("refresh") is False

    @pytest.mark.asyncio
    async def test_cancel_drops_tasks(self, scheduler: TaskScheduler) -> None:
        scheduler.every("refresh", 10, MagicMock())
        runner = scheduler.start(tick=0.01)

        scheduler.cancel()

        assert scheduler.task_names == []
        assert runner.cancelled() or runner.cancelling()
