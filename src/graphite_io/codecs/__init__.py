"""Wire encoders for the Carbon plaintext and pickle protocols."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, Sequence

from ..models import GraphiteRecord
from .carbon_pickle import encode_pickle, encode_pickle_payload
from .events import EventsEncoder, event_to_record
from .plaintext import encode_plaintext, format_record

Encoder = Callable[[Sequence[GraphiteRecord]], bytes]


class GraphiteProtocol(str, Enum):
    """Ingestion protocols of a Carbon listener."""

    PLAINTEXT = "plaintext"
    PICKLE = "pickle"


ENCODERS: Dict[GraphiteProtocol, Encoder] = {
    GraphiteProtocol.PLAINTEXT: encode_plaintext,
    GraphiteProtocol.PICKLE: encode_pickle,
}


def resolve_encoder(protocol: GraphiteProtocol | str) -> Encoder:
    return ENCODERS[GraphiteProtocol(protocol)]


__all__ = [
    "GraphiteProtocol",
    "ENCODERS",
    "Encoder",
    "resolve_encoder",
    "encode_plaintext",
    "format_record",
    "encode_pickle",
    "encode_pickle_payload",
    "EventsEncoder",
    "event_to_record",
]
