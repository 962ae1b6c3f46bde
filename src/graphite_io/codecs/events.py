from __future__ import annotations

from numbers import Number
from typing import Callable, List, Sequence

from ..models import Event, GraphiteRecord
from ..utils import windowed

Encoder = Callable[[Sequence[GraphiteRecord]], bytes]


def event_to_record(event: Event, prefix: str = "") -> GraphiteRecord:
    # Graphite only accepts numbers: other values are kept with 0.
    value = event.value
    if isinstance(value, bool) or not isinstance(value, Number):
        value = 0
    tags = dict(event.tags)
    tags["level"] = event.level.value
    return GraphiteRecord(
        path=f"{prefix}{event.name}", value=value, timestamp=event.timestamp, tags=tags
    )


class EventsEncoder:
    """Converts events to records and encodes them in windows of `batch_size`.

    Each window becomes one frame of the wrapped protocol encoder; the frames
    are concatenated so a send stays a single write.
    """

    def __init__(self, encoder: Encoder, prefix: str = "", batch_size: int = 100):
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._encoder = encoder
        self.prefix = prefix
        self.batch_size = batch_size

    def to_records(self, events: Sequence[Event]) -> List[GraphiteRecord]:
        return [event_to_record(e, self.prefix) for e in events]

    def __call__(self, events: Sequence[Event]) -> bytes:
        records = self.to_records(events)
        return b"".join(self._encoder(window) for window in windowed(records, self.batch_size))
