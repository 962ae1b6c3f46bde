"""
Encoder for the Carbon plaintext protocol:
https://graphite.readthedocs.io/en/latest/feeding-carbon.html#the-plaintext-protocol
"""

from __future__ import annotations

from typing import Sequence

from ..models import GraphiteRecord
from ..utils import format_value, sanitize_normalized

TAG_SEPARATOR = ";"
EQ = "="
FIELD_SEPARATOR = " "
RECORD_SEPARATOR = "\n"


def format_record(record: GraphiteRecord) -> str:
    """`<path>[;key=value]* <value> <epochSeconds>\\n`"""
    parts = [sanitize_normalized(record.path)]
    for key, value in record.tags.items():
        parts.append(f"{TAG_SEPARATOR}{sanitize_normalized(key)}{EQ}{sanitize_normalized(value)}")
    parts.append(f"{FIELD_SEPARATOR}{format_value(record.value)}")
    parts.append(f"{FIELD_SEPARATOR}{record.epoch_seconds}")
    parts.append(RECORD_SEPARATOR)
    return "".join(parts)


def encode_plaintext(records: Sequence[GraphiteRecord]) -> bytes:
    return "".join(format_record(r) for r in records).encode("utf-8")
