"""Progress broadcaster: publish/subscribe registry for crawl progress.

A running crawl publishes :class:`~site_index.models.ProgressEvent` objects
by job id; an observer (the NDJSON stream of the web layer, the CLI) holds a
:class:`Subscription` and iterates it.

Delivery is best-effort:

* at most one subscriber per job; subscribing again replaces (and ends) the
  previous subscription;
* events published while nobody is subscribed are dropped, not buffered;
* a subscription ends after the terminal (``final``) event;
* unsubscribing never touches the crawl itself.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator, Dict

from site_index.logger import get_logger
from site_index.models import ProgressEvent

__all__ = ["Subscription", "ProgressBroadcaster"]

log = get_logger("progress")

_CLOSED = object()


class Subscription:
    """Async iterator of the progress events of one job."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def _deliver(self, event: ProgressEvent) -> None:
        self._queue.put_nowait(event)

    def _close(self) -> None:
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self

    async def __anext__(self) -> ProgressEvent:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        event: ProgressEvent = item  # type: ignore[assignment]
        if event.final:
            self._finished = True
        return event


class ProgressBroadcaster:
    """Maps job ids to their (single) live subscription."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, Subscription] = {}
        self._waiters: Dict[str, asyncio.Event] = {}

    def subscribe(self, job_id: str) -> Subscription:
        previous = self._subscribers.get(job_id)
        if previous is not None:
            log.debug("Replacing progress subscriber for job %s", job_id)
            previous._close()
        subscription = Subscription(job_id)
        self._subscribers[job_id] = subscription
        waiter = self._waiters.get(job_id)
        if waiter is not None:
            waiter.set()
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Detach *subscription*; a newer subscriber for the same job is left alone."""
        if self._subscribers.get(subscription.job_id) is subscription:
            del self._subscribers[subscription.job_id]
        subscription._close()

    def has_subscriber(self, job_id: str) -> bool:
        return job_id in self._subscribers

    def publish(self, job_id: str, event: ProgressEvent) -> bool:
        """Forward *event* to the job's subscriber; returns False when it was dropped."""
        subscription = self._subscribers.get(job_id)
        if subscription is None:
            return False
        subscription._deliver(event)
        if event.final:
            del self._subscribers[job_id]
        return True

    async def wait_for_subscriber(self, job_id: str, timeout: float) -> bool:
        """Wait up to *timeout* seconds for someone to subscribe to *job_id*."""
        if job_id in self._subscribers:
            return True
        if timeout <= 0:
            return False
        waiter = self._waiters.setdefault(job_id, asyncio.Event())
        try:
            await asyncio.wait_for(waiter.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        finally:
            self._waiters.pop(job_id, None)
        return True

