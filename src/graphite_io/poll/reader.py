"""
Iterative reader polling the Graphite render API.

A background task runs poll cycles with a fixed delay between them: it
executes the next query of its GraphitePollStatement, moves the cursor
forward and hands the result over to the consumer through a HandoffChannel.
A failing cycle is counted and logged; the loop goes on.

Example:
    reader = GraphiteIterativeReader(
        client_factory=lambda: GraphiteRenderApiService("http://graphite:8080"),
        poll_statement=GraphitePollStatement(GraphiteQuery.of("servers.*.cpu")),
        poll_delay=10.0,
    )
    await reader.start()
    while reader.has_next():
        result = await reader.next()
        ...
    await reader.stop()
"""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta
from enum import Enum
from typing import Callable, Dict, Optional

from loguru import logger

from ..config import GraphiteSettings
from ..errors import PollCycleFailure
from ..events_logger import EventsLogger
from ..metrics.registry import MetricsRegistry
from ..models import QueryMeters, QueryResult
from ..render.query import GraphiteQuery
from ..render.service import GraphiteRenderApiService
from .channel import ChannelClosed, HandoffChannel
from .statement import GraphitePollStatement

EVENT_PREFIX = "graphite.poll"


class ReaderState(str, Enum):
    STOPPED = "stopped"
    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPING = "stopping"


class GraphiteIterativeReader:
    """Polls the render API in the background and serves results on demand."""

    def __init__(
        self,
        client_factory: Callable[[], GraphiteRenderApiService],
        poll_statement: GraphitePollStatement,
        poll_delay: float,
        *,
        results_channel_factory: Callable[[], HandoffChannel[QueryResult]] = HandoffChannel,
        events_logger: Optional[EventsLogger] = None,
        metrics: Optional[MetricsRegistry] = None,
        name: str = "graphite-poll",
        tags: Optional[Dict[str, str]] = None,
    ):
        if poll_delay < 0:
            raise ValueError("poll_delay must be >= 0")
        self.name = name
        self.tags = dict(tags or {})
        self._client_factory = client_factory
        self._statement = poll_statement
        self._poll_delay = poll_delay
        self._channel_factory = results_channel_factory
        self._events = events_logger
        self._metrics = metrics

        self._state = ReaderState.STOPPED
        self._client: Optional[GraphiteRenderApiService] = None
        self._channel: Optional[HandoffChannel[QueryResult]] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        settings: GraphiteSettings,
        query: GraphiteQuery,
        *,
        events_logger: Optional[EventsLogger] = None,
        metrics: Optional[MetricsRegistry] = None,
        name: str = "graphite-poll",
    ) -> "GraphiteIterativeReader":
        return cls(
            client_factory=lambda: GraphiteRenderApiService(
                settings.render_url, basic_auth=settings.basic_auth, timeout=settings.http_timeout
            ),
            poll_statement=GraphitePollStatement(query),
            poll_delay=settings.poll_delay,
            results_channel_factory=lambda: HandoffChannel(capacity=settings.results_capacity),
            events_logger=events_logger,
            metrics=metrics,
            name=name,
        )

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def channel(self) -> Optional[HandoffChannel[QueryResult]]:
        return self._channel

    @property
    def client(self) -> Optional[GraphiteRenderApiService]:
        return self._client

    def init(self) -> None:
        """Build a fresh results channel and query client."""
        self._channel = self._channel_factory()
        self._client = self._client_factory()

    async def start(self) -> None:
        if self._state is not ReaderState.STOPPED:
            raise RuntimeError(f"The reader {self.name} is already started")
        logger.debug(f"Starting the reader {self.name}")
        self._state = ReaderState.INITIALIZING
        self.init()
        self._state = ReaderState.RUNNING
        self._task = asyncio.create_task(self._run(), name=f"{self.name}-polling")

    async def stop(self) -> None:
        if self._state is ReaderState.STOPPED:
            return
        logger.debug(f"Stopping the reader {self.name}")
        self._state = ReaderState.STOPPING
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                logger.opt(exception=exc).debug(f"Polling job of {self.name} ended with an error")
        if self._channel is not None:
            await self._channel.close()
        self._statement.reset()
        if self._client is not None:
            await self._client.close()
        self._state = ReaderState.STOPPED
        logger.debug(f"Reader {self.name} stopped")

    def has_next(self) -> bool:
        return self._state is ReaderState.RUNNING

    async def next(self) -> QueryResult:
        """Wait for the next result; an empty one once the channel is closed."""
        channel = self._channel
        if channel is None:
            return QueryResult.empty()
        try:
            return await channel.receive()
        except ChannelClosed:
            return QueryResult.empty()

    async def _run(self) -> None:
        logger.debug(f"Polling job of {self.name} just started")
        try:
            while self._state is ReaderState.RUNNING:
                await self.poll()
                if self._state is ReaderState.RUNNING:
                    await asyncio.sleep(self._poll_delay)
        finally:
            if self._state is ReaderState.RUNNING:
                # The loop ended on its own: consumers must not wait for more results
                self._state = ReaderState.STOPPING
                if self._channel is not None:
                    await self._channel.close()
            logger.debug(f"Polling job of {self.name} completed")

    async def poll(self) -> None:
        """Run a single poll cycle; only cancellation escapes."""
        self._emit("debug", f"{EVENT_PREFIX}.polling")
        started = time.perf_counter()
        try:
            query = self._statement.next_query()
            logger.debug(f"Query: {query.build()}")
            series = await self._client.execute(query)
            elapsed = time.perf_counter() - started
            time_to_result = timedelta(seconds=elapsed)

            self._record_success(len(series), elapsed)
            self._emit("info", f"{EVENT_PREFIX}.successful-response", (time_to_result, len(series)))
            logger.debug(f"Received {len(series)} series")

            self._statement.save_tiebreaker(series)
            await self._channel.send(
                QueryResult(results=series, meters=QueryMeters(len(series), time_to_result))
            )
        except asyncio.CancelledError:
            raise
        except ChannelClosed:
            logger.debug(f"The results channel of {self.name} is closed")
        except Exception as exc:
            failure = PollCycleFailure(f"Poll cycle of {self.name} failed: {exc}")
            failure.__cause__ = exc
            time_to_failure = timedelta(seconds=time.perf_counter() - started)
            self._record_failure()
            self._emit("warn", f"{EVENT_PREFIX}.failure", (failure, time_to_failure))
            logger.opt(exception=exc).debug(str(failure))

    def _emit(self, level: str, name: str, value=None) -> None:
        # Events are fire-and-forget
        if not self._events:
            return
        try:
            getattr(self._events, level)(name, value=value, tags=self.tags)
        except Exception as exc:
            logger.debug(f"Event {name} of {self.name} could not be logged: {exc!r}")

    def _record_success(self, count: int, elapsed: float) -> None:
        if not self._metrics:
            return
        try:
            self._metrics.poll_received_records_total.labels(reader=self.name).inc(count)
            self._metrics.poll_time_to_response_seconds.labels(reader=self.name).observe(elapsed)
        except Exception as exc:
            logger.debug(f"Poll meters of {self.name} could not be recorded: {exc!r}")

    def _record_failure(self) -> None:
        if not self._metrics:
            return
        try:
            self._metrics.poll_failures_total.labels(reader=self.name).inc()
        except Exception as exc:
            logger.debug(f"Poll failure meter of {self.name} could not be recorded: {exc!r}")
