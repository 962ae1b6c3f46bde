"""
Encoder for the Carbon pickle protocol.

Carbon expects a 4-byte big-endian length header followed by a protocol-0/1
pickle of `[(path, (timestamp, value)), ...]`. The opcodes are written by
hand so that the output is byte-for-byte stable:

    (l                      MARK, LIST
    (S'<path>'\\n           MARK, STRING
    (L<epoch>L\\n           MARK, LONG
    S'<value>'\\n           STRING
    tta                     TUPLE (inner), TUPLE (outer), APPEND
    .                       STOP
"""

from __future__ import annotations

import struct
from typing import Sequence

from ..models import GraphiteRecord
from ..utils import format_value, sanitize

MARK = b"("
STOP = b"."
LONG_TYPE_MARKER = b"L"
STRING_TYPE_MARKER = b"S"
APPEND = b"a"
LIST_MARKER = b"l"
TUPLE = b"t"
QUOTE = b"'"
LF = b"\n"
TAG_SEPARATOR = b";"
TAG_VALUE_SEPARATOR = b"="

HEADER = struct.Struct("!I")


def _append_record(record: GraphiteRecord, out: bytearray) -> None:
    # Outer tuple: (path, (timestamp, value))
    out += MARK
    out += STRING_TYPE_MARKER
    out += QUOTE
    out += sanitize(record.path).encode("utf-8")
    for key, value in record.tags.items():
        out += TAG_SEPARATOR
        out += sanitize(key).encode("utf-8")
        out += TAG_VALUE_SEPARATOR
        out += sanitize(value).encode("utf-8")
    out += QUOTE
    out += LF

    # Inner tuple: the trailing L matches repr(long) of Python 2
    out += MARK
    out += LONG_TYPE_MARKER
    out += str(record.epoch_seconds).encode("ascii")
    out += LONG_TYPE_MARKER
    out += LF

    out += STRING_TYPE_MARKER
    out += QUOTE
    out += format_value(record.value).encode("ascii")
    out += QUOTE
    out += LF

    out += TUPLE
    out += TUPLE
    out += APPEND


def encode_pickle_payload(records: Sequence[GraphiteRecord]) -> bytes:
    payload = bytearray()
    payload += MARK
    payload += LIST_MARKER
    for record in records:
        _append_record(record, payload)
    payload += STOP
    return bytes(payload)


def encode_pickle(records: Sequence[GraphiteRecord]) -> bytes:
    """Single frame: length header + pickle payload."""
    payload = encode_pickle_payload(records)
    return HEADER.pack(len(payload)) + payload
