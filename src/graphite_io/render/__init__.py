"""Graphite render API: immutable queries and the HTTP client executing them."""

from .query import (
    AggregateFunction,
    GraphiteQuery,
    MetricsTime,
    MetricsTimeUnit,
    format_time_bound,
    series_by_tag,
)
from .service import GraphiteRenderApiService

__all__ = [
    "AggregateFunction",
    "GraphiteQuery",
    "MetricsTime",
    "MetricsTimeUnit",
    "format_time_bound",
    "series_by_tag",
    "GraphiteRenderApiService",
]
