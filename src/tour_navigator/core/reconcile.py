"""Reconcile backend-generated tour content into the locally held waypoints."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Optional

from tour_navigator.models import ContentNugget, Tour, Waypoint
from .backend import BackendError

logger = logging.getLogger(__name__)


def content_incomplete(waypoints: Sequence[Waypoint]) -> bool:
    """True while any waypoint has no content or an unready nugget."""
    return any(not wp.content_complete for wp in waypoints)


def _same_point(local: Waypoint, remote: Waypoint, epsilon: float) -> bool:
    return (
        local.name == remote.name
        and abs(local.lat - remote.lat) <= epsilon
        and abs(local.lng - remote.lng) <= epsilon
    )


def _pending_placeholders(
    local: Sequence[ContentNugget], remote: Sequence[ContentNugget],
) -> list[ContentNugget]:
    """Local unanswered questions the backend does not report yet."""
    remote_ids = {n.id for n in remote if n.id}
    local_ids = {n.id for n in local if n.id}
    # Remote follow-ups that can still absorb an id-less placeholder, newest first
    unclaimed = [n for n in reversed(remote) if n.is_follow_up and n.id not in local_ids]

    kept = []
    for nugget in reversed(local):
        if nugget.ready or not nugget.is_follow_up:
            continue
        if nugget.id:
            if nugget.id not in remote_ids:
                kept.append(nugget)
            continue
        match = next((n for n in unclaimed if n.question == nugget.question), None)
        if match is None:
            kept.append(nugget)
        else:
            unclaimed.remove(match)
    kept.reverse()
    return kept


def merge_tour_content(
    local: Sequence[Waypoint], remote: Sequence[Waypoint], epsilon: float = 1e-4,
) -> list[Waypoint]:
    """Fold backend waypoint content into the local waypoint list.

    Local order, ids, positions and ``visited`` flags win; the backend's
    content list wins, except that questions still in flight locally are
    kept until the backend reports them. Matching is one-to-one so repeated
    names at the same spot pair up in order.
    """
    unmatched = list(remote)
    merged = []
    for wp in local:
        match = next((r for r in unmatched if _same_point(wp, r, epsilon)), None)
        if match is None:
            merged.append(wp)
            continue
        unmatched.remove(match)
        content = [n.model_copy() for n in match.content]
        content.extend(_pending_placeholders(wp.content, match.content))
        merged.append(wp.model_copy(update={"content": content}))

    for r in unmatched:
        logger.debug("Backend point %r has no local counterpart; ignored", r.name)
    return merged


def add_follow_up_placeholder(
    waypoint: Waypoint, question: str, nugget_id: str = "",
    nugget: Optional[ContentNugget] = None,
) -> ContentNugget:
    """Append the optimistic nugget for an accepted follow-up question."""
    if nugget is not None and nugget.ready:
        placeholder = nugget.model_copy(update={"id": nugget.id or nugget_id})
    else:
        placeholder = ContentNugget(id=nugget_id, question=question, ready=False)
    waypoint.content.append(placeholder)
    return placeholder


class ContentPoller:
    """Periodically fetch the tour and merge it until all content is ready.

    Owned by the session (see tasks.SessionTasks) and cancelled on teardown.

    Args:
        fetch:      Coroutine function returning the backend's current Tour.
        apply:      Merges a fetched Tour into local state; returns True once
                    every waypoint's content is complete.
        is_blocked: True while a tour submission is in flight.
        interval_s: Seconds between polls.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Tour]],
        apply: Callable[[Tour], bool],
        is_blocked: Callable[[], bool],
        interval_s: float = 7.0,
    ) -> None:
        self.fetch = fetch
        self.apply = apply
        self.is_blocked = is_blocked
        self.interval_s = interval_s
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def poll_once(self) -> bool:
        """Run one poll cycle. Returns True if polling should continue."""
        if self.is_blocked():
            logger.info("Tour submission in progress; content polling stopped")
            return False
        try:
            tour = await self.fetch()
        except BackendError as exc:
            logger.warning("Content poll failed, polling stopped: %s", exc)
            return False
        if self.is_blocked():
            logger.info("Tour submission started during poll; result dropped")
            return False
        complete = self.apply(tour)
        if complete:
            logger.info("All tour content ready; polling stopped")
        return not complete

    async def _run(self) -> None:
        logger.info("Content polling every %.1fs", self.interval_s)
        while True:
            await asyncio.sleep(self.interval_s)
            if not await self.poll_once():
                break
