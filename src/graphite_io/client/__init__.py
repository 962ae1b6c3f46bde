"""Async TCP client and connection pool for Carbon listeners."""

from .pool import FixedPool, PoolMember
from .tcp import ConnectionState, EventLoopGroup, GraphiteTcpClient

__all__ = [
    "ConnectionState",
    "EventLoopGroup",
    "GraphiteTcpClient",
    "FixedPool",
    "PoolMember",
]
