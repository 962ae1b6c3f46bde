"""
Structured events emitted by the readers.

The reader only needs fire-and-forget `debug`/`info`/`warn` calls; anything
implementing EventsLogger can be passed in. LoguruEventsLogger writes the
events to loguru with their tags bound to the record.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class EventsLogger(Protocol):
    def debug(self, name: str, value: Any = None, tags: Optional[Dict[str, str]] = None) -> None: ...

    def info(self, name: str, value: Any = None, tags: Optional[Dict[str, str]] = None) -> None: ...

    def warn(self, name: str, value: Any = None, tags: Optional[Dict[str, str]] = None) -> None: ...


class LoguruEventsLogger:
    """EventsLogger writing to loguru."""

    def __init__(self, **default_tags: str):
        self.default_tags = default_tags

    def _log(self, level: str, name: str, value: Any, tags: Optional[Dict[str, str]]) -> None:
        merged = {**self.default_tags, **(tags or {})}
        logger.bind(event=name, tags=merged).log(level, f"{name} value={value!r} tags={merged}")

    def debug(self, name: str, value: Any = None, tags: Optional[Dict[str, str]] = None) -> None:
        self._log("DEBUG", name, value, tags)

    def info(self, name: str, value: Any = None, tags: Optional[Dict[str, str]] = None) -> None:
        self._log("INFO", name, value, tags)

    def warn(self, name: str, value: Any = None, tags: Optional[Dict[str, str]] = None) -> None:
        self._log("WARNING", name, value, tags)
