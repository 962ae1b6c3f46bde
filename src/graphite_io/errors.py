"""
Custom exceptions for the Graphite client library.

Connect and send errors propagate to the direct caller; render API errors are
caught by the iterative reader and only surface through meters and events.
"""

from __future__ import annotations

import asyncio
import errno
import socket


class GraphiteError(Exception):
    """Base error for the Graphite client library."""

    pass


class ConnectFailure(GraphiteError):
    """The TCP connection to the Carbon listener could not be established."""

    def __init__(self, message: str, host: str | None = None, port: int | None = None):
        super().__init__(message)
        self.host = host
        self.port = port


class UnresolvedHost(ConnectFailure):
    """The host name could not be resolved."""

    pass


class ConnectionRefused(ConnectFailure):
    """The remote peer refused the connection."""

    pass


class ConnectTimeout(ConnectFailure):
    """The connection was not established within the configured timeout."""

    pass


class SendFailure(GraphiteError):
    """A batch could not be written and flushed to the Carbon listener."""

    pass


class PoolReadinessError(GraphiteError):
    """One or more pool members failed to open."""

    def __init__(self, errors: list[BaseException]):
        super().__init__(f"{len(errors)} pool member(s) failed to open: {errors[0]}")
        self.errors = errors


class PoolMemberUnhealthy(GraphiteError):
    """A pooled item failed its health check and has to be rebuilt."""

    pass


class RenderApiError(GraphiteError):
    """Base error of the render API client."""

    pass


class HttpQueryFailure(RenderApiError):
    """The render API answered with a non-successful HTTP status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"The HTTP query failed, HTTP status: {status_code}, response: {body}")
        self.status_code = status_code
        self.body = body


class RenderTransportError(RenderApiError):
    """The render API could not be reached."""

    pass


class RenderDecodeError(RenderApiError):
    """The render API response is not the expected JSON document."""

    pass


class PollCycleFailure(GraphiteError):
    """A single poll cycle failed; the polling loop goes on."""

    pass


def map_connect_error(e: BaseException, host: str, port: int) -> ConnectFailure:
    target = f"{host}:{port}"
    if isinstance(e, socket.gaierror):
        return UnresolvedHost(f"The host {host} could not be resolved: {e}", host, port)
    if isinstance(e, ConnectionRefusedError) or getattr(e, "errno", None) == errno.ECONNREFUSED:
        return ConnectionRefused(f"The connection to {target} was refused: {e}", host, port)
    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        return ConnectTimeout(f"The connection to {target} timed out", host, port)
    return ConnectFailure(f"The connection to {target} could not be established: {e}", host, port)
