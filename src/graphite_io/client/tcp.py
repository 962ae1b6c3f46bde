"""
Async TCP client for Carbon listeners.

One GraphiteTcpClient owns exactly one connection. Clients are attached to an
EventLoopGroup that the owning publisher starts and shuts down; shutting the
group down tears down every connection still attached to it.
"""

from __future__ import annotations

import asyncio
import socket
from enum import Enum
from typing import Callable, Generic, Optional, Sequence, Set, TypeVar

from loguru import logger

from ..errors import SendFailure, map_connect_error

T = TypeVar("T")


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    FAILED = "failed"


class EventLoopGroup:
    """Handle on the event loop backing a set of TCP clients.

    Built and started once by its owner (publisher), passed by reference to
    every client, and shut down by the owner's stop().
    """

    def __init__(self, name: str = "graphite") -> None:
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._clients: Set["GraphiteTcpClient"] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError(f"Event loop group {self.name} is not started")
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._loop is not None and not self._loop.is_closed()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def start(self) -> "EventLoopGroup":
        if self._loop is not None:
            raise RuntimeError(f"Event loop group {self.name} is already started")
        self._loop = asyncio.get_running_loop()
        logger.debug(f"Event loop group {self.name} started")
        return self

    def track(self, client: "GraphiteTcpClient") -> None:
        self._clients.add(client)

    def untrack(self, client: "GraphiteTcpClient") -> None:
        self._clients.discard(client)

    async def shutdown(self) -> None:
        clients = list(self._clients)
        if clients:
            logger.debug(f"Closing {len(clients)} connection(s) of group {self.name}")
            results = await asyncio.gather(*(c.close() for c in clients), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.debug(f"Connection teardown error (ignored): {result}")
        self._clients.clear()
        self._loop = None
        logger.debug(f"Event loop group {self.name} shut down")


class GraphiteTcpClient(Generic[T]):
    """Single TCP connection to a Carbon listener.

    `encoder` turns a batch into the bytes to write (see graphite_io.codecs).
    Not safe for concurrent send() calls: borrow it from a FixedPool instead.

    Example:
        group = EventLoopGroup().start()
        client = await GraphiteTcpClient("localhost", 2003, encode_plaintext, group).open()
        await client.send([GraphiteRecord(path="foo.bar", value=1)])
        await client.close()
    """

    def __init__(
        self,
        host: str,
        port: int,
        encoder: Callable[[Sequence[T]], bytes],
        group: EventLoopGroup,
        *,
        connect_timeout: float = 10.0,
        keepalive: bool = True,
    ):
        self.host = host
        self.port = port
        self._encoder = encoder
        self._group = group
        self._connect_timeout = connect_timeout
        self._keepalive = keepalive
        self._state = ConnectionState.IDLE
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    def __repr__(self) -> str:
        return f"GraphiteTcpClient({self.host}:{self.port}, {self._state.value})"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        """Health flag: opened, not closed since and the peer did not hang up."""
        if self._state is not ConnectionState.OPEN or self._writer is None:
            return False
        if self._writer.is_closing():
            return False
        return not (self._reader is not None and self._reader.at_eof())

    async def open(self) -> "GraphiteTcpClient[T]":
        """Connect once; the outcome is never retried here."""
        if self._state is ConnectionState.OPEN:
            return self
        if not self._group.is_running:
            raise RuntimeError(f"Event loop group {self._group.name} is not started")

        self._state = ConnectionState.CONNECTING
        logger.debug(f"Trying to establish a connection to {self.host}:{self.port}")
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self._connect_timeout
            )
        except asyncio.CancelledError:
            self._state = ConnectionState.FAILED
            raise
        except Exception as exc:
            self._state = ConnectionState.FAILED
            error = map_connect_error(exc, self.host, self.port)
            logger.error(f"The connection to {self.host}:{self.port} could not be established: {exc!r}")
            raise error from exc

        if self._keepalive:
            sock = self._writer.get_extra_info("socket")
            if sock is not None:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)

        self._group.track(self)
        self._state = ConnectionState.OPEN
        logger.debug(f"Connected to {self.host}:{self.port}")
        return self

    async def send(self, values: Sequence[T]) -> None:
        """Encode the whole batch, write it and wait for the flush."""
        if not self.is_open:
            raise SendFailure(f"The connection to {self.host}:{self.port} is not open")

        payload = self._encoder(values)
        try:
            self._writer.write(payload)
            await self._writer.drain()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(f"The values could not be sent to {self.host}:{self.port}: {exc!r}")
            await self._teardown()
            raise SendFailure(f"Failed to send {len(values)} value(s) to {self.host}:{self.port}") from exc

        logger.trace(f"{len(values)} value(s) ({len(payload)} bytes) sent to {self.host}:{self.port}")

    async def close(self) -> None:
        """Idempotent teardown."""
        if self._writer is None:
            if self._state is ConnectionState.OPEN:
                self._state = ConnectionState.CLOSED
            return
        logger.debug(f"Closing the connection to {self.host}:{self.port}")
        await self._teardown()

    async def _teardown(self) -> None:
        writer, self._writer, self._reader = self._writer, None, None
        self._state = ConnectionState.CLOSED
        self._group.untrack(self)
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as exc:
            logger.debug(f"Error while closing {self.host}:{self.port} (ignored): {exc!r}")
