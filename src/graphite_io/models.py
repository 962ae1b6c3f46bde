"""
Pydantic data models for the Graphite client library.

Records travel to Carbon, events are converted to records by the events
encoder, and DataPoints mirror the JSON documents of the render API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils import epoch_seconds, utc_now


class GraphiteRecord(BaseModel):
    """A single timestamped measurement with a hierarchical path and optional tags."""

    model_config = ConfigDict(frozen=True)

    path: str
    value: Union[int, float, Decimal]
    timestamp: datetime = Field(default_factory=utc_now)
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def _not_blank(cls, v):
        if not v.strip():
            raise ValueError("path must not be blank")
        return v

    @property
    def epoch_seconds(self) -> int:
        return epoch_seconds(self.timestamp)


class EventLevel(str, Enum):
    """Severity of an event, ordered from the most verbose."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    OFF = "off"

    @property
    def rank(self) -> int:
        return list(EventLevel).index(self)

    def __ge__(self, other):
        if isinstance(other, EventLevel):
            return self.rank >= other.rank
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, EventLevel):
            return self.rank < other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, EventLevel):
            return self.rank > other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, EventLevel):
            return self.rank <= other.rank
        return NotImplemented


class Event(BaseModel):
    """A structured event; values that are not numbers are exported as 0."""

    model_config = ConfigDict(frozen=True)

    name: str
    level: EventLevel = EventLevel.INFO
    value: Any = None
    timestamp: datetime = Field(default_factory=utc_now)
    tags: Dict[str, str] = Field(default_factory=dict)


class DataPoint(BaseModel):
    """One [value, timestamp] pair of a render API series."""

    value: Optional[float] = None
    timestamp: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data):
        # The render API sends each point as a two-element array.
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError(f"Expected a [value, timestamp] pair, got {data!r}")
            return {"value": data[0], "timestamp": data[1]}
        return data

    @property
    def epoch_seconds(self) -> Optional[int]:
        return None if self.timestamp is None else epoch_seconds(self.timestamp)


class DataPoints(BaseModel):
    """A series returned by the render API."""

    model_config = ConfigDict(populate_by_name=True)

    target: str
    tags: Dict[str, str] = Field(default_factory=dict)
    data_points: List[DataPoint] = Field(default_factory=list, alias="datapoints")

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_as_strings(cls, v):
        if v is None:
            return {}
        return {str(k): str(val) for k, val in v.items()}

    @property
    def latest_timestamp(self) -> Optional[int]:
        stamps = [p.epoch_seconds for p in self.data_points if p.timestamp is not None]
        return max(stamps) if stamps else None


@dataclass(frozen=True)
class QueryMeters:
    """Meters of a single poll cycle."""

    fetched_records: int
    time_to_result: timedelta


@dataclass(frozen=True)
class QueryResult:
    """Envelope published once per successful poll cycle."""

    results: List[DataPoints] = field(default_factory=list)
    meters: QueryMeters = field(default_factory=lambda: QueryMeters(0, timedelta(0)))

    def __iter__(self):
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    @classmethod
    def empty(cls) -> "QueryResult":
        return cls()
