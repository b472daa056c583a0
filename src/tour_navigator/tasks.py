"""Background tasks owned by a session: the content poller and the position watch."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Optional

from tour_navigator.core.reconcile import ContentPoller

logger = logging.getLogger(__name__)


async def _consume_positions(feed: AsyncIterator, handler: Callable[[object], None]) -> None:
    try:
        async for fix in feed:
            handler(fix)
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Position watch failed; watch ended")
    else:
        logger.info("Position feed exhausted; watch ended")


class SessionTasks:
    """Holds at most one content poller and one position watch.

    ``teardown()`` cancels both; it runs whenever the tour is switched or
    cleared so neither outlives the tour that started it.
    """

    def __init__(self) -> None:
        self._poller: Optional[ContentPoller] = None
        self._watch: Optional[asyncio.Task] = None

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    @property
    def watching(self) -> bool:
        return self._watch is not None and not self._watch.done()

    def start_polling(self, poller: ContentPoller) -> bool:
        """Start ``poller`` unless one is already running. Returns True if started."""
        if self.polling:
            return False
        self._poller = poller
        poller.start()
        return True

    def stop_polling(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None

    def watch_positions(self, feed: AsyncIterator, handler: Callable[[object], None]) -> None:
        """Feed every fix from ``feed`` to ``handler`` until cancelled or exhausted."""
        self.cancel_watch()
        self._watch = asyncio.create_task(_consume_positions(feed, handler))

    def cancel_watch(self) -> None:
        if self._watch is not None and not self._watch.done():
            self._watch.cancel()
        self._watch = None

    def teardown(self) -> None:
        self.stop_polling()
        self.cancel_watch()
