"""
Publishers sending records or events to Carbon through a pool of TCP clients.

A publisher owns its EventLoopGroup and FixedPool: start() starts the group,
builds the pool and waits until every connection is open; stop() closes the
pool and shuts the group down.

Example:
    async with GraphitePublisher("carbon", 2004, protocol=GraphiteProtocol.PICKLE) as publisher:
        await publisher.publish([GraphiteRecord(path="app.requests", value=12)])
"""

from __future__ import annotations

import time
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from loguru import logger

from .client.pool import FixedPool
from .client.tcp import EventLoopGroup, GraphiteTcpClient
from .codecs import EventsEncoder, GraphiteProtocol, resolve_encoder
from .config import GraphiteSettings
from .metrics.registry import MetricsRegistry
from .models import Event, EventLevel, GraphiteRecord

T = TypeVar("T")


class _BasePublisher(Generic[T]):
    def __init__(
        self,
        host: str,
        port: int,
        encoder: Callable[[Sequence[T]], bytes],
        *,
        protocol: GraphiteProtocol,
        publishers: int = 1,
        connect_timeout: float = 10.0,
        metrics: Optional[MetricsRegistry] = None,
    ):
        if publishers <= 0:
            raise ValueError("publishers must be > 0")
        self.host = host
        self.port = port
        self.protocol = GraphiteProtocol(protocol)
        self.publishers = publishers
        self._encoder = encoder
        self._connect_timeout = connect_timeout
        self._metrics = metrics
        self._group: Optional[EventLoopGroup] = None
        self._pool: Optional[FixedPool[GraphiteTcpClient[T]]] = None

    @property
    def is_started(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> Optional[FixedPool[GraphiteTcpClient[T]]]:
        return self._pool

    @property
    def group(self) -> Optional[EventLoopGroup]:
        return self._group

    async def _open_client(self) -> GraphiteTcpClient[T]:
        client = GraphiteTcpClient(
            self.host,
            self.port,
            self._encoder,
            self._group,
            connect_timeout=self._connect_timeout,
        )
        return await client.open()

    async def start(self) -> None:
        if self._pool is not None:
            return
        logger.debug(f"Starting {self.publishers} {self.protocol.value} publisher(s) to {self.host}:{self.port}")
        group = EventLoopGroup(name=f"graphite-{self.protocol.value}").start()
        pool = FixedPool(
            self.publishers,
            self._open_client,
            health_check=lambda client: client.is_open,
            check_on_acquire=False,
            check_on_release=True,
        )
        self._group = group
        try:
            await pool.await_readiness()
        except Exception:
            await group.shutdown()
            self._group = None
            raise
        self._pool = pool
        logger.info(f"Connected to Carbon at {self.host}:{self.port} ({self.protocol.value})")

    async def stop(self) -> None:
        pool, self._pool = self._pool, None
        group, self._group = self._group, None
        try:
            if pool is not None:
                await pool.close()
        finally:
            if group is not None:
                await group.shutdown()
        logger.debug(f"Publisher to {self.host}:{self.port} stopped")

    async def _send(self, values: Sequence[T]) -> None:
        if self._pool is None:
            raise RuntimeError("The publisher is not started")
        if not values:
            return
        started = time.perf_counter()
        try:
            await self._pool.with_pool_item(lambda client: client.send(values))
        except Exception:
            if self._metrics:
                self._metrics.publish_failures_total.labels(protocol=self.protocol.value).inc()
            raise
        if self._metrics:
            self._metrics.publish_records_total.labels(protocol=self.protocol.value).inc(len(values))
            self._metrics.publish_latency_seconds.labels(protocol=self.protocol.value).observe(
                time.perf_counter() - started
            )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()


class GraphitePublisher(_BasePublisher[GraphiteRecord]):
    """Sends GraphiteRecords with the plaintext or pickle protocol."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        protocol: GraphiteProtocol = GraphiteProtocol.PLAINTEXT,
        publishers: int = 1,
        connect_timeout: float = 10.0,
        metrics: Optional[MetricsRegistry] = None,
    ):
        super().__init__(
            host,
            port,
            resolve_encoder(protocol),
            protocol=protocol,
            publishers=publishers,
            connect_timeout=connect_timeout,
            metrics=metrics,
        )

    @classmethod
    def from_settings(cls, settings: GraphiteSettings, metrics: Optional[MetricsRegistry] = None):
        return cls(
            settings.host,
            settings.port,
            protocol=settings.protocol,
            publishers=settings.publishers,
            connect_timeout=settings.connect_timeout,
            metrics=metrics,
        )

    async def publish(self, records: Sequence[GraphiteRecord]) -> None:
        await self._send(list(records))


class GraphiteEventsPublisher(_BasePublisher[Event]):
    """Sends events as records, dropping the ones below `min_level`."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        protocol: GraphiteProtocol = GraphiteProtocol.PLAINTEXT,
        prefix: str = "",
        batch_size: int = 100,
        min_level: EventLevel = EventLevel.INFO,
        publishers: int = 1,
        connect_timeout: float = 10.0,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self.encoder = EventsEncoder(resolve_encoder(protocol), prefix=prefix, batch_size=batch_size)
        self.min_level = EventLevel(min_level)
        super().__init__(
            host,
            port,
            self.encoder,
            protocol=protocol,
            publishers=publishers,
            connect_timeout=connect_timeout,
            metrics=metrics,
        )

    @classmethod
    def from_settings(cls, settings: GraphiteSettings, metrics: Optional[MetricsRegistry] = None):
        return cls(
            settings.host,
            settings.port,
            protocol=settings.protocol,
            prefix=settings.prefix,
            batch_size=settings.batch_size,
            min_level=settings.events_min_level,
            publishers=settings.publishers,
            connect_timeout=settings.connect_timeout,
            metrics=metrics,
        )

    def accepts(self, event: Event) -> bool:
        return self.min_level is not EventLevel.OFF and event.level >= self.min_level

    async def publish(self, events: Sequence[Event]) -> List[Event]:
        """Send the accepted events and return them."""
        accepted = [e for e in events if self.accepts(e)]
        await self._send(accepted)
        return accepted
