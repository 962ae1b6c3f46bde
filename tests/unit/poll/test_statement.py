"""
Unit tests for GraphitePollStatement cursor tracking.
"""

from graphite_io.models import DataPoints
from graphite_io.poll import GraphitePollStatement
from graphite_io.render import GraphiteQuery


def series(target, *points):
    return DataPoints.model_validate({"target": target, "datapoints": [list(p) for p in points]})


def test_first_query_is_the_base_query():
    query = GraphiteQuery.of("a").with_from("-1h")
    statement = GraphitePollStatement(query)
    assert statement.tie_breaker is None
    assert statement.next_query() is query


def test_tie_breaker_is_the_latest_timestamp_across_series():
    statement = GraphitePollStatement(GraphiteQuery.of("a|b"))
    statement.save_tiebreaker(
        [
            series("a", (1, 100), (2, 300)),
            series("b", (5, 200), (None, None)),
        ]
    )
    assert statement.tie_breaker == 300
    assert statement.next_query().from_ == "300"
    assert statement.next_query().targets == ("a", "b")


def test_empty_results_keep_the_cursor():
    statement = GraphitePollStatement(GraphiteQuery.of("a"))
    statement.save_tiebreaker([series("a", (1, 100))])
    statement.save_tiebreaker([])
    statement.save_tiebreaker([series("a", (None, None))])
    assert statement.tie_breaker == 100


def test_reset():
    query = GraphiteQuery.of("a")
    statement = GraphitePollStatement(query)
    statement.save_tiebreaker([series("a", (1, 100))])
    statement.reset()
    assert statement.tie_breaker is None
    assert statement.next_query() is query
