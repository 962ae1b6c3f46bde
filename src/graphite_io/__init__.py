"""
graphite-io: Carbon publishing and render API polling for Graphite.

Write path:
    async with GraphitePublisher("carbon", 2003) as publisher:
        await publisher.publish([GraphiteRecord(path="app.requests", value=12)])

Read path:
    reader = GraphiteIterativeReader(
        client_factory=lambda: GraphiteRenderApiService("http://graphite:8080"),
        poll_statement=GraphitePollStatement(GraphiteQuery.of("app.*")),
        poll_delay=10.0,
    )
    await reader.start()
    result = await reader.next()
    await reader.stop()
"""

from .client import EventLoopGroup, FixedPool, GraphiteTcpClient
from .codecs import GraphiteProtocol, encode_pickle, encode_plaintext
from .config import GraphiteSettings, get_settings
from .errors import (
    ConnectFailure,
    ConnectionRefused,
    ConnectTimeout,
    GraphiteError,
    HttpQueryFailure,
    PoolReadinessError,
    RenderApiError,
    SendFailure,
    UnresolvedHost,
)
from .models import DataPoint, DataPoints, Event, EventLevel, GraphiteRecord, QueryMeters, QueryResult
from .poll import GraphiteIterativeReader, GraphitePollStatement, HandoffChannel
from .publisher import GraphiteEventsPublisher, GraphitePublisher
from .render import GraphiteQuery, GraphiteRenderApiService, MetricsTime, MetricsTimeUnit

__version__ = "1.0.0"

__all__ = [
    # models
    "GraphiteRecord",
    "Event",
    "EventLevel",
    "DataPoint",
    "DataPoints",
    "QueryMeters",
    "QueryResult",
    # write path
    "GraphiteProtocol",
    "encode_plaintext",
    "encode_pickle",
    "EventLoopGroup",
    "GraphiteTcpClient",
    "FixedPool",
    "GraphitePublisher",
    "GraphiteEventsPublisher",
    # read path
    "GraphiteQuery",
    "MetricsTime",
    "MetricsTimeUnit",
    "GraphiteRenderApiService",
    "GraphitePollStatement",
    "HandoffChannel",
    "GraphiteIterativeReader",
    # config
    "GraphiteSettings",
    "get_settings",
    # errors
    "GraphiteError",
    "ConnectFailure",
    "UnresolvedHost",
    "ConnectionRefused",
    "ConnectTimeout",
    "SendFailure",
    "PoolReadinessError",
    "RenderApiError",
    "HttpQueryFailure",
]
