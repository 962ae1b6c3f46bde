"""Incremental polling of the render API."""

from .channel import ChannelClosed, ChannelFull, HandoffChannel
from .reader import GraphiteIterativeReader, ReaderState
from .statement import GraphitePollStatement

__all__ = [
    "ChannelClosed",
    "ChannelFull",
    "HandoffChannel",
    "GraphiteIterativeReader",
    "ReaderState",
    "GraphitePollStatement",
]
