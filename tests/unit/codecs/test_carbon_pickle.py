"""
Unit tests for the Carbon pickle encoder.
"""

import pickle
import struct
from datetime import datetime, timezone

from graphite_io.codecs import encode_pickle, encode_pickle_payload
from graphite_io.models import GraphiteRecord

TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_header_equals_payload_length():
    records = [GraphiteRecord(path=f"m.{i}", value=i, timestamp=TS) for i in range(20)]
    frame = encode_pickle(records)
    (length,) = struct.unpack("!I", frame[:4])
    assert length == len(frame) - 4
    assert frame[4:] == encode_pickle_payload(records)


def test_exact_bytes_of_one_record():
    record = GraphiteRecord(path="foo", value=12, timestamp=TS, tags={"a": "b"})
    assert encode_pickle_payload([record]) == b"(l(S'foo;a=b'\n(L1704067200L\nS'12'\ntta."


def test_frame_unpickles_with_the_standard_library():
    records = [
        GraphiteRecord(path="Foo Bar", value=1.25, timestamp=TS, tags={"Host": "web 1"}),
        GraphiteRecord(path="baz", value=7, timestamp=TS),
    ]
    frame = encode_pickle(records)
    assert pickle.loads(frame[4:]) == [
        ("foo-bar;host=web-1", (1704067200, "1.25")),
        ("baz", (1704067200, "7")),
    ]


def test_empty_batch_is_an_empty_list():
    frame = encode_pickle([])
    assert frame == struct.pack("!I", 3) + b"(l."
    assert pickle.loads(frame[4:]) == []
