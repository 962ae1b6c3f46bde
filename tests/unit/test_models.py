"""
Unit tests for the data models and error mapping.
"""

import errno
import socket
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from graphite_io.errors import (
    ConnectFailure,
    ConnectionRefused,
    ConnectTimeout,
    UnresolvedHost,
    map_connect_error,
)
from graphite_io.models import DataPoint, DataPoints, EventLevel, GraphiteRecord, QueryResult


def test_record_is_frozen_and_requires_a_path():
    record = GraphiteRecord(path="a", value=1)
    with pytest.raises(ValidationError):
        record.value = 2
    with pytest.raises(ValidationError):
        GraphiteRecord(path="  ", value=1)


def test_record_timestamp_defaults_to_now():
    before = datetime.now(timezone.utc)
    record = GraphiteRecord(path="a", value=1)
    assert record.timestamp >= before


def test_data_point_from_pair():
    point = DataPoint.model_validate([1.5, 1700000000])
    assert point.value == 1.5
    assert point.epoch_seconds == 1700000000

    empty = DataPoint.model_validate([None, None])
    assert empty.value is None and empty.epoch_seconds is None

    with pytest.raises(ValidationError):
        DataPoint.model_validate([1, 2, 3])


def test_data_points_aliases_and_tags():
    series = DataPoints.model_validate(
        {"target": "a", "tags": {"name": "a", "shard": 3}, "datapoints": [[1, 10], [2, 20]]}
    )
    assert series.tags == {"name": "a", "shard": "3"}
    assert series.latest_timestamp == 20
    assert DataPoints(target="b", data_points=[]).latest_timestamp is None


def test_empty_query_result():
    result = QueryResult.empty()
    assert len(result) == 0
    assert list(result) == []
    assert result.meters.fetched_records == 0


def test_event_levels_are_ordered():
    assert EventLevel.ERROR >= EventLevel.WARN
    assert EventLevel.DEBUG < EventLevel.INFO
    assert not (EventLevel.TRACE >= EventLevel.DEBUG)


@pytest.mark.parametrize(
    "error, expected",
    [
        (socket.gaierror(socket.EAI_NONAME, "unknown"), UnresolvedHost),
        (ConnectionRefusedError(errno.ECONNREFUSED, "refused"), ConnectionRefused),
        (OSError(errno.ECONNREFUSED, "refused"), ConnectionRefused),
        (TimeoutError(), ConnectTimeout),
        (OSError(errno.ENETUNREACH, "unreachable"), ConnectFailure),
    ],
)
def test_map_connect_error(error, expected):
    mapped = map_connect_error(error, "carbon", 2003)
    assert type(mapped) is expected
    assert (mapped.host, mapped.port) == ("carbon", 2003)
