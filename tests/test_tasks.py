"""Tests for session-owned background tasks."""
import asyncio

import pytest

from tour_navigator.models import Tour
from tour_navigator.tasks import SessionTasks
from tour_navigator.core.reconcile import ContentPoller


def _poller(interval_s=10.0):
    async def fetch():
        return Tour(id="t1")
    return ContentPoller(fetch, lambda t: False, lambda: False, interval_s=interval_s)


async def _feed(points, delay=0.0):
    for p in points:
        await asyncio.sleep(delay)
        yield p


@pytest.mark.anyio
async def test_only_one_poller_at_a_time():
    tasks = SessionTasks()
    assert tasks.start_polling(_poller()) is True
    assert tasks.start_polling(_poller()) is False
    assert tasks.polling
    tasks.stop_polling()
    assert not tasks.polling


@pytest.mark.anyio
async def test_watch_feeds_handler_until_exhausted():
    tasks = SessionTasks()
    seen = []
    tasks.watch_positions(_feed([1, 2, 3]), seen.append)
    for _ in range(50):
        if not tasks.watching:
            break
        await asyncio.sleep(0.01)
    assert seen == [1, 2, 3]
    assert not tasks.watching


@pytest.mark.anyio
async def test_new_watch_replaces_old():
    tasks = SessionTasks()
    first, second = [], []
    tasks.watch_positions(_feed(range(100), delay=0.05), first.append)
    tasks.watch_positions(_feed(["x"]), second.append)
    await asyncio.sleep(0.1)
    assert first == []
    assert second == ["x"]


@pytest.mark.anyio
async def test_handler_error_ends_watch(caplog):
    tasks = SessionTasks()

    def handler(fix):
        raise RuntimeError("bad fix")

    tasks.watch_positions(_feed([1]), handler)
    await asyncio.sleep(0.05)
    assert not tasks.watching
    assert "Position watch failed" in caplog.text


@pytest.mark.anyio
async def test_teardown_cancels_everything():
    tasks = SessionTasks()
    tasks.start_polling(_poller())
    tasks.watch_positions(_feed(range(100), delay=0.05), lambda fix: None)
    assert tasks.polling and tasks.watching
    tasks.teardown()
    assert not tasks.polling
    assert not tasks.watching
