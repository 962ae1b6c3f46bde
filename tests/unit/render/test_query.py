"""
Unit tests for GraphiteQuery building.
"""

from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlsplit

import pytest

from graphite_io.render import AggregateFunction, GraphiteQuery, MetricsTime, MetricsTimeUnit


def params_of(url: str):
    return parse_qsl(urlsplit(url).query)


def test_single_target_defaults():
    query = GraphiteQuery.of("servers.web.cpu")
    assert query.to_params() == [
        ("target", "servers.web.cpu"),
        ("format", "json"),
        ("noNullPoints", "True"),
    ]
    assert query.build().startswith("/render?target=servers.web.cpu&format=json")


def test_pipe_separated_targets_are_split():
    query = GraphiteQuery.of("a.b|c.d", "e")
    assert query.targets == ("a.b", "c.d", "e")
    assert [v for k, v in params_of(query.build()) if k == "target"] == ["a.b", "c.d", "e"]


def test_builders_return_new_values():
    base = GraphiteQuery.of("a")
    refined = base.with_from(1700000000).with_until("now").with_no_null_points(False)

    assert base.from_ is None and base.until is None and base.no_null_points is True
    assert refined.to_params() == [
        ("target", "a"),
        ("format", "json"),
        ("from", "1700000000"),
        ("until", "now"),
        ("noNullPoints", "False"),
    ]


def test_no_null_points_can_be_omitted():
    params = dict(GraphiteQuery.of("a").with_no_null_points(None).to_params())
    assert "noNullPoints" not in params


@pytest.mark.parametrize(
    "amount, unit, expected",
    [
        (-10, MetricsTimeUnit.MINUTES, "-10min"),
        (-1, MetricsTimeUnit.DAYS, "-1d"),
        (2, MetricsTimeUnit.HOURS, "+2h"),
        (-3, MetricsTimeUnit.MONTHS, "-3mon"),
    ],
)
def test_relative_times(amount, unit, expected):
    query = GraphiteQuery.of("a").with_from(MetricsTime(amount, unit))
    assert query.from_ == expected


def test_datetime_bounds_are_epoch_seconds():
    query = GraphiteQuery.of("a").with_until(datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert query.until == "1704067200"


def test_datetime_bounds_must_be_after_the_epoch():
    with pytest.raises(ValueError):
        GraphiteQuery.of("a").with_from(datetime(1970, 1, 1, tzinfo=timezone.utc))


def test_series_by_tag():
    query = GraphiteQuery.by_tag("name", "servers.*").with_series_by_tag("dc", "eu")
    assert query.targets == ("seriesByTag('name=servers.*')", "seriesByTag('dc=eu')")


def test_aggregation_wraps_every_target():
    query = GraphiteQuery.of("a|b").aggregated(AggregateFunction.SUM)
    assert [v for k, v in query.to_params() if k == "target"] == [
        'aggregate(a,"sum")',
        'aggregate(b,"sum")',
    ]
    assert query.aggregated("none").rendered_targets() == ["a", "b"]


def test_at_least_one_target():
    with pytest.raises(ValueError):
        GraphiteQuery.of(" | ")
