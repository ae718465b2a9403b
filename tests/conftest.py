"""Shared fixtures."""

import asyncio

import msgpack
import pytest

from heartwood.growth import GrowthConfig


@pytest.fixture
def config():
    """Configuration of the reference growth scenario."""
    return GrowthConfig(
        initial_scale=0.5,
        target_scale=9.0,
        growth_threshold=80,
        growth_increment=0.01,
        shrink_increment=0.005,
        tick_interval_growing=0.001,
        tick_interval_shrinking=0.001,
    )


@pytest.fixture
def small_config():
    """A tree that is fully grown after a handful of ticks."""
    return GrowthConfig(
        initial_scale=0.0,
        target_scale=0.05,
        growth_threshold=80,
        growth_increment=0.01,
        shrink_increment=0.01,
        tick_interval_growing=0.001,
        tick_interval_shrinking=0.001,
    )


class FakeWebSocket:
    """In-memory stand-in for a FastAPI WebSocket. Push None to disconnect."""

    def __init__(self):
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.sent: list[dict] = []

    async def receive(self) -> dict:
        item = await self.inbound.get()
        if item is None:
            return {"type": "websocket.disconnect", "code": 1000}
        if isinstance(item, str):
            return {"type": "websocket.receive", "text": item}
        return {"type": "websocket.receive", "bytes": item}

    async def send_bytes(self, data: bytes) -> None:
        self.sent.append(msgpack.unpackb(data))

    def push(self, frame: dict) -> None:
        self.inbound.put_nowait(msgpack.packb(frame))


class FakeRemote:
    """Records the commands a session sends to the headset."""

    def __init__(self):
        self.sample_callbacks = []
        self.executed = []

    async def execute(self, *commands) -> None:
        self.executed.extend(commands)
