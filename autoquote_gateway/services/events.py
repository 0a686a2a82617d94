"""Snapshot event stream for quote session observers"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from autoquote_gateway.domain.models import SessionSnapshot

ProgressCallback = Callable[[SessionSnapshot], Union[None, Awaitable[None]]]

DEFAULT_QUEUE_SIZE = 100


class SnapshotSubscription:
    """
    Async iterator over session snapshots.

    Iteration ends after a terminal (completed / failed) snapshot has been
    yielded. The queue is bounded: a subscriber that stops reading makes the
    publisher wait.
    """

    def __init__(self, broadcaster: Optional["SnapshotBroadcaster"] = None, maxsize: int = DEFAULT_QUEUE_SIZE):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._broadcaster = broadcaster
        self._closed = False

    @classmethod
    def finished(cls, snapshot: SessionSnapshot) -> "SnapshotSubscription":
        """Subscription for a session that already ended: yields the final snapshot once"""
        subscription = cls(maxsize=1)
        subscription._queue.put_nowait(snapshot)
        return subscription

    async def deliver(self, snapshot: SessionSnapshot) -> None:
        if not self._closed:
            await self._queue.put(snapshot)

    def close(self) -> None:
        self._closed = True
        if self._broadcaster is not None:
            self._broadcaster.unsubscribe(self)

    def __aiter__(self) -> "SnapshotSubscription":
        return self

    async def __anext__(self) -> SessionSnapshot:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        snapshot = await self._queue.get()
        if snapshot.is_terminal:
            self.close()
        return snapshot


class SnapshotBroadcaster:
    """Fans each published snapshot out to callbacks and queue-backed subscribers"""

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE):
        self.maxsize = maxsize
        self._callbacks: List[ProgressCallback] = []
        self._subscriptions: List[SnapshotSubscription] = []

    def add_callback(self, callback: ProgressCallback) -> None:
        self._callbacks.append(callback)

    def subscribe(self) -> SnapshotSubscription:
        subscription = SnapshotSubscription(self, maxsize=self.maxsize)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: SnapshotSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, snapshot: SessionSnapshot) -> None:
        for callback in list(self._callbacks):
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # Observer failures must not break the session
                logging.exception(
                    "Progress callback failed",
                    extra={"session_id": snapshot.session_id, "step": "progress_callback"},
                )

        for subscription in list(self._subscriptions):
            await subscription.deliver(snapshot)
