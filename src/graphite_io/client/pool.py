from __future__ import annotations

import asyncio
import inspect
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Generic, List, Optional, TypeVar, Union

from loguru import logger

from ..errors import PoolMemberUnhealthy, PoolReadinessError

T = TypeVar("T")
R = TypeVar("R")

HealthCheck = Callable[[T], Union[bool, Awaitable[bool]]]


async def _close_item(item) -> None:
    close = getattr(item, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


@dataclass(eq=False)
class PoolMember(Generic[T]):
    """A pooled item and its pool-private state."""

    index: int
    item: Optional[T] = None
    in_use: bool = False
    broken: bool = False


class FixedPool(Generic[T]):
    """Fixed-size pool with health-checked, mutually exclusive checkout.

    Items are built by `factory` (an async callable returning a ready item,
    e.g. an opened GraphiteTcpClient). At most `size` items are checked out at
    once; an item failing its health check is closed and rebuilt through the
    same factory before it goes back to the idle set.

    Example:
        pool = FixedPool(4, lambda: GraphiteTcpClient(...).open(),
                         health_check=lambda c: c.is_open)
        await pool.await_readiness()
        await pool.with_pool_item(lambda client: client.send(records))
        await pool.close()
    """

    def __init__(
        self,
        size: int,
        factory: Callable[[], Awaitable[T]],
        *,
        health_check: Optional[HealthCheck] = None,
        check_on_acquire: bool = False,
        check_on_release: bool = True,
        closer: Callable[[T], Awaitable[None]] = _close_item,
    ):
        if size <= 0:
            raise ValueError("size must be > 0")
        self._size = size
        self._factory = factory
        self._health_check = health_check
        self._check_on_acquire = check_on_acquire
        self._check_on_release = check_on_release
        self._closer = closer

        self._members: List[PoolMember[T]] = [PoolMember(index=i) for i in range(size)]
        self._idle: asyncio.Queue[PoolMember[T]] = asyncio.Queue(maxsize=size)
        self._ready = False
        self._closed = False

    @property
    def size(self) -> int:
        return self._size

    @property
    def in_use(self) -> int:
        return sum(1 for m in self._members if m.in_use)

    @property
    def idle(self) -> int:
        return self._idle.qsize()

    @property
    def is_ready(self) -> bool:
        return self._ready

    def items(self) -> List[Optional[T]]:
        return [m.item for m in self._members]

    async def await_readiness(self) -> None:
        """Build all members concurrently; fail as a whole if any fails."""
        if self._ready:
            return
        # A closed pool is reopened with fresh members and a fresh idle set
        self._members = [PoolMember(index=i) for i in range(self._size)]
        self._idle = asyncio.Queue(maxsize=self._size)
        self._closed = False
        results = await asyncio.gather(
            *(self._factory() for _ in self._members), return_exceptions=True
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            for r in results:
                if not isinstance(r, BaseException):
                    await self._safe_close(r)
            logger.error(f"{len(errors)} of {self._size} pool members could not be created")
            raise PoolReadinessError(errors) from errors[0]

        for member, item in zip(self._members, results):
            member.item = item
            self._idle.put_nowait(member)
        self._ready = True
        logger.debug(f"Pool of {self._size} item(s) is ready")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[T]:
        """Borrow one item exclusively for the duration of the block."""
        if self._closed:
            raise RuntimeError("The pool is closed")
        if not self._ready:
            raise RuntimeError("The pool is not ready, call await_readiness() first")

        idle = self._idle
        member = await idle.get()
        if self._closed or member.item is None or idle is not self._idle:
            # The pool was closed while waiting: wake up the next waiter too
            idle.put_nowait(member)
            raise RuntimeError("The pool is closed")
        member.in_use = True
        try:
            if member.broken:
                await self._rebuild(member, reraise=True)
            elif self._check_on_acquire and not await self._is_healthy(member):
                await self._rebuild(member, reraise=True)
            yield member.item
        finally:
            try:
                if self._check_on_release and not member.broken and not self._closed:
                    if not await self._is_healthy(member):
                        await self._rebuild(member, reraise=False)
            finally:
                member.in_use = False
                idle.put_nowait(member)

    async def with_pool_item(self, fn: Callable[[T], Awaitable[R]]) -> R:
        async with self.acquire() as item:
            return await fn(item)

    async def close(self) -> None:
        """Close every member, surfacing the first error if any."""
        self._closed = True
        results = await asyncio.gather(
            *(self._closer(m.item) for m in self._members if m.item is not None),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, Exception)]
        for m in self._members:
            m.item = None
        self._ready = False
        if errors:
            logger.debug(f"{len(errors)} pool member(s) failed to close")
            raise errors[0]

    async def _is_healthy(self, member: PoolMember[T]) -> bool:
        if self._health_check is None:
            return True
        try:
            result = self._health_check(member.item)
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception as exc:
            logger.debug(f"Health check of pool member {member.index} failed: {exc!r}")
            return False

    async def _rebuild(self, member: PoolMember[T], *, reraise: bool) -> None:
        logger.warning(f"{PoolMemberUnhealthy.__name__}: rebuilding pool member {member.index}")
        await self._safe_close(member.item)
        member.item = None
        try:
            member.item = await self._factory()
            member.broken = False
        except Exception as exc:
            member.broken = True
            logger.error(f"Pool member {member.index} could not be rebuilt: {exc!r}")
            if reraise:
                raise

    async def _safe_close(self, item) -> None:
        if item is None:
            return
        try:
            await self._closer(item)
        except Exception as exc:
            logger.debug(f"Error while closing a pool item (ignored): {exc!r}")
