from __future__ import annotations

from typing import Iterable, Optional

from ..models import DataPoints
from ..render.query import GraphiteQuery


class GraphitePollStatement:
    """Base query plus the incremental cursor of a polling reader.

    The cursor is the latest data-point timestamp seen so far (epoch seconds).
    It is only moved forward by save_tiebreaker() and cleared by reset().
    """

    def __init__(self, query: GraphiteQuery):
        self.query = query
        self._tie_breaker: Optional[int] = None

    @property
    def tie_breaker(self) -> Optional[int]:
        return self._tie_breaker

    def save_tiebreaker(self, series: Iterable[DataPoints]) -> None:
        latest = [s.latest_timestamp for s in series]
        latest = [ts for ts in latest if ts is not None]
        if latest:
            self._tie_breaker = max(latest)

    def next_query(self) -> GraphiteQuery:
        if self._tie_breaker is None:
            return self.query
        return self.query.with_from(self._tie_breaker)

    def reset(self) -> None:
        self._tie_breaker = None
