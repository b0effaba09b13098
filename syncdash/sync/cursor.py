"""Event cursor loop: long-polls the daemon's event log.

The loop is the only producer of :class:`EventsFetched` messages. It keeps
the cursor (``since``) and guarantees:

* the first response only primes the cursor; its events are not applied,
* an empty response re-issues the same request immediately,
* a failure leaves the cursor alone and retries after the policy's delay,
* the cursor advances only after the engine acknowledged the batch, and
  never moves backwards.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from syncdash.client.errors import DaemonError
from syncdash.sync.decoder import decode_batch
from syncdash.sync.messages import EventsFailed, EventsFetched, EventsRecovered, Message
from syncdash.sync.retry import FixedDelay, RetryPolicy

if TYPE_CHECKING:
    from syncdash.client.rest import DaemonClient

logger = logging.getLogger(__name__)


def next_cursor(cursor: int, last_id: int | None) -> int:
    """Cursor after a response whose highest event ID is *last_id*."""
    if last_id is None:
        return cursor
    return max(cursor, last_id)


class EventCursorLoop:
    def __init__(
        self,
        client: DaemonClient,
        deliver: Callable[[Message], Awaitable[None]],
        *,
        timeout: int = 60,
        retry: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.deliver = deliver
        self.timeout = timeout
        self.retry = retry or FixedDelay()
        self.cursor = 0
        self.primed = False
        self._failures = 0
        self._sleep = sleep

    async def step(self) -> None:
        """Issue one long-poll request and handle its outcome."""
        try:
            raw = await self.client.get_events(self.cursor, timeout=self.timeout)
        except DaemonError as e:
            self._failures += 1
            logger.warning("Event poll since=%d failed: %s", self.cursor, e)
            await self.deliver(EventsFailed(since=self.cursor, error=e))
            await self._sleep(self.retry.delay(self._failures))
            return

        recovered = self._failures > 0
        self._failures = 0
        batch = decode_batch(raw)

        # EventsFetched clears the error itself.
        if recovered and not (self.primed and batch.events):
            logger.info("Event poll since=%d recovered", self.cursor)
            await self.deliver(EventsRecovered(since=self.cursor))

        if not self.primed:
            self.primed = True
            self.cursor = next_cursor(self.cursor, batch.last_id)
            logger.debug("Event cursor primed at %d", self.cursor)
            return

        if batch.events:
            msg = EventsFetched(since=self.cursor, events=batch.events, last_id=batch.last_id)
            await self.deliver(msg)
            await msg.applied.wait()

        self.cursor = next_cursor(self.cursor, batch.last_id)

    async def run(self) -> None:
        """Poll forever; only cancellation stops the loop."""
        while True:
            await self.step()
