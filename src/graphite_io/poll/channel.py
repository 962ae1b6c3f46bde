from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Literal, Optional, TypeVar

from ..errors import GraphiteError

T = TypeVar("T")
OverflowStrategy = Literal["block", "drop_oldest", "error"]


class ChannelClosed(GraphiteError):
    """The channel was closed while a receiver was waiting or after it was drained."""

    pass


class ChannelFull(GraphiteError):
    pass


_CLOSED = object()


class HandoffChannel(Generic[T]):
    """Bounded hand-off between the poll loop and its consumer.

    Once closed, pending and future receivers get ChannelClosed; items sent
    before close() can still be drained.
    """

    def __init__(
        self,
        capacity: int = 1,
        *,
        overflow_strategy: OverflowStrategy = "block",
        drop_callback: Optional[Callable[[T], Awaitable[None]]] = None,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        self._capacity = capacity
        # One extra slot for the close sentinel
        self._q: asyncio.Queue = asyncio.Queue(maxsize=capacity + 1)
        self._size = 0
        self._overflow = overflow_strategy
        self._drop_cb = drop_callback
        self._closed = False
        self._not_full = asyncio.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def send(self, item: T) -> None:
        """Send according to the overflow policy."""
        if self._closed:
            raise ChannelClosed("The channel is closed")

        if self._size >= self._capacity:
            if self._overflow == "error":
                raise ChannelFull("The channel is full")
            if self._overflow == "drop_oldest":
                oldest = self._q.get_nowait()
                self._size -= 1
                if self._drop_cb:
                    await self._drop_cb(oldest)
            else:
                async with self._not_full:
                    await self._not_full.wait_for(
                        lambda: self._closed or self._size < self._capacity
                    )
                if self._closed:
                    raise ChannelClosed("The channel is closed")

        self._q.put_nowait(item)
        self._size += 1

    async def receive(self, timeout: float | None = None) -> T:
        """Wait for the next item; raises ChannelClosed once closed and drained."""
        if self._closed and self._size == 0:
            raise ChannelClosed("The channel is closed")

        if timeout is None:
            item = await self._q.get()
        else:
            item = await asyncio.wait_for(self._q.get(), timeout=timeout)

        if item is _CLOSED:
            # Leave the sentinel for the other receivers
            self._q.put_nowait(_CLOSED)
            raise ChannelClosed("The channel is closed")

        self._size -= 1
        async with self._not_full:
            self._not_full.notify()
        return item

    async def close(self) -> None:
        """Idempotent; wakes up every waiting sender and receiver."""
        if self._closed:
            return
        self._closed = True
        self._q.put_nowait(_CLOSED)
        async with self._not_full:
            self._not_full.notify_all()
