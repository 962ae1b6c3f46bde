"""
Immutable render API queries.

Every builder method returns a new GraphiteQuery, so a query held by a poll
statement can be refined per cycle while the base query stays untouched.

Example:
    query = (
        GraphiteQuery.of("servers.*.cpu|servers.*.mem")
        .with_from(MetricsTime(-10, MetricsTimeUnit.MINUTES))
        .with_no_null_points(True)
    )
    query.build()
    # '/render?target=servers.%2A.cpu&target=servers.%2A.mem&format=json&from=-10min&noNullPoints=True'
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple, Union
from urllib.parse import urlencode

from ..utils import epoch_seconds

TARGET_SEPARATOR = "|"
RENDER_PATH = "/render"
FORMAT = "json"


class MetricsTimeUnit(str, Enum):
    SECONDS = "s"
    MINUTES = "min"
    HOURS = "h"
    DAYS = "d"
    WEEKS = "w"
    MONTHS = "mon"
    YEARS = "y"


class AggregateFunction(str, Enum):
    NONE = "none"
    TOTAL = "total"
    SUM = "sum"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class MetricsTime:
    """Time relative to now, e.g. MetricsTime(-10, MetricsTimeUnit.MINUTES) -> '-10min'."""

    amount: int
    unit: MetricsTimeUnit = MetricsTimeUnit.SECONDS

    def to_query_string(self) -> str:
        return f"{self.amount:+d}{MetricsTimeUnit(self.unit).value}"

    def __str__(self) -> str:
        return self.to_query_string()


TimeBound = Union[int, str, datetime, MetricsTime]


def format_time_bound(value: TimeBound) -> str:
    """Render a from/until bound as expected by the render API."""
    if isinstance(value, MetricsTime):
        return value.to_query_string()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value <= datetime.fromtimestamp(0, tz=timezone.utc):
            raise ValueError(f"The time bound must be after the epoch, got {value.isoformat()}")
        return str(epoch_seconds(value))
    if isinstance(value, bool):
        raise TypeError("A boolean is not a valid time bound")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("The time bound must not be blank")
        return value.strip()
    raise TypeError(f"Unsupported time bound type: {type(value).__name__}")


def split_targets(*targets: str) -> Tuple[str, ...]:
    result: List[str] = []
    for target in targets:
        result.extend(t.strip() for t in target.split(TARGET_SEPARATOR) if t.strip())
    return tuple(result)


@dataclass(frozen=True)
class GraphiteQuery:
    """A render API query: one or more targets plus optional bounds."""

    targets: Tuple[str, ...]
    from_: Optional[str] = None
    until: Optional[str] = None
    no_null_points: Optional[bool] = True
    aggregate: AggregateFunction = AggregateFunction.NONE

    def __post_init__(self):
        if not self.targets:
            raise ValueError("At least one target is required")

    @classmethod
    def of(cls, *targets: str) -> "GraphiteQuery":
        """Build from targets, each possibly holding several `|`-separated ones."""
        return cls(targets=split_targets(*targets))

    @classmethod
    def by_tag(cls, name: str, pattern: str) -> "GraphiteQuery":
        return cls(targets=(series_by_tag(name, pattern),))

    def with_target(self, *targets: str) -> "GraphiteQuery":
        return replace(self, targets=self.targets + split_targets(*targets))

    def with_series_by_tag(self, name: str, pattern: str) -> "GraphiteQuery":
        return replace(self, targets=self.targets + (series_by_tag(name, pattern),))

    def with_from(self, value: Optional[TimeBound]) -> "GraphiteQuery":
        return replace(self, from_=None if value is None else format_time_bound(value))

    def with_until(self, value: Optional[TimeBound]) -> "GraphiteQuery":
        return replace(self, until=None if value is None else format_time_bound(value))

    def with_no_null_points(self, enabled: Optional[bool]) -> "GraphiteQuery":
        return replace(self, no_null_points=enabled)

    def aggregated(self, function: AggregateFunction | str) -> "GraphiteQuery":
        return replace(self, aggregate=AggregateFunction(function))

    def rendered_targets(self) -> List[str]:
        if self.aggregate is AggregateFunction.NONE:
            return list(self.targets)
        return [f'aggregate({t},"{self.aggregate.value}")' for t in self.targets]

    def to_params(self) -> List[Tuple[str, str]]:
        """Query parameters in wire order; `target` is repeated."""
        params = [("target", t) for t in self.rendered_targets()]
        params.append(("format", FORMAT))
        if self.from_:
            params.append(("from", self.from_))
        if self.until:
            params.append(("until", self.until))
        if self.no_null_points is not None:
            params.append(("noNullPoints", "True" if self.no_null_points else "False"))
        return params

    def build(self) -> str:
        return f"{RENDER_PATH}?{urlencode(self.to_params())}"


def series_by_tag(name: str, pattern: str) -> str:
    return f"seriesByTag('{name}={pattern}')"
