"""
Utility functions for the Graphite client library.

Includes name sanitisation, time conversion and batch windowing helpers.
"""

import math
import re
import unicodedata
from datetime import datetime, timezone
from itertools import islice
from typing import Iterable, Iterator, List, TypeVar, Union

T = TypeVar("T")

WHITESPACE = re.compile(r"\s+")
SUBSTITUTE_FOR_WHITESPACE = "-"


def sanitize(value: str) -> str:
    """Trim, replace whitespace runs with a hyphen and lower-case."""
    return WHITESPACE.sub(SUBSTITUTE_FOR_WHITESPACE, value.strip()).lower()


def sanitize_normalized(value: str) -> str:
    """Like sanitize(), followed by NFKD normalisation.

    Compatibility decompositions can produce upper-case letters or spaces
    (e.g. the degree-Celsius sign), so the result is sanitised once more to
    keep the function idempotent.
    """
    return sanitize(unicodedata.normalize("NFKD", sanitize(value)))


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def epoch_seconds(ts: Union[datetime, int, float]) -> int:
    """Seconds since the epoch, floored. Naive datetimes are read as UTC."""
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return math.floor(ts.timestamp())
    return math.floor(ts)


def format_value(value) -> str:
    """Canonical textual form of a numeric value."""
    return str(value)


def windowed(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Split items into consecutive lists of at most `size` elements."""
    if size <= 0:
        raise ValueError("size must be > 0")
    it = iter(items)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk
