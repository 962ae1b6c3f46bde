"""
Pytest configuration and fixtures for graphite-io.

Provides cross-platform event loop configuration, a local TCP server standing
in for a Carbon listener, and a fake render API.
"""

import asyncio
import sys
from typing import List

import pytest
import pytest_asyncio

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


class CarbonSink:
    """Accepts connections and keeps every byte received, per connection."""

    def __init__(self):
        self.server = None
        self.host = "127.0.0.1"
        self.port = None
        self.connections: List[bytearray] = []
        self.writers: List[asyncio.StreamWriter] = []
        self._received = asyncio.Event()

    async def start(self) -> "CarbonSink":
        self.server = await asyncio.start_server(self._handle, self.host, 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        buffer = bytearray()
        self.connections.append(buffer)
        self.writers.append(writer)
        while True:
            chunk = await reader.read(65536)
            if not chunk:
                break
            buffer.extend(chunk)
            self._received.set()
        writer.close()

    @property
    def data(self) -> bytes:
        return b"".join(bytes(c) for c in self.connections)

    async def wait_for_bytes(self, count: int, timeout: float = 2.0) -> bytes:
        async def _wait():
            while len(self.data) < count:
                self._received.clear()
                await self._received.wait()

        await asyncio.wait_for(_wait(), timeout)
        return self.data

    async def drop_connections(self) -> None:
        """Close every accepted connection from the server side."""
        for writer in self.writers:
            writer.close()
        self.writers.clear()

    async def stop(self) -> None:
        await self.drop_connections()
        self.server.close()
        await self.server.wait_closed()


@pytest_asyncio.fixture
async def carbon_sink():
    sink = await CarbonSink().start()
    yield sink
    await sink.stop()


@pytest.fixture
def free_port():
    """A local port nobody listens on."""
    import socket

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
