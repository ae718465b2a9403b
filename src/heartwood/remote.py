import asyncio
import logging
from contextlib import suppress
from typing import Awaitable, Callable

import msgpack as serializer
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from .commands import Bundle, Command, IncomingMessage, IncomingMessageValidator, MessageType, Notification, \
    SampleMessage
from .growth import Sample
from .settings import settings
from .time import utc_ts

logger = logging.getLogger(__name__)


class HeartbeatTimeoutException(Exception):
    def __init__(self, timeout):
        super().__init__(f"Last heartbeat received {timeout} seconds ago.")


class RemoteRenderer:
    """
    Connection to the headset rendering the tree. Pushes command bundles and
    delivers the heart-rate samples the headset reports to ``sample_callbacks``.
    """

    def __init__(self, ws: WebSocket, heartbeat_timeout: float | None = None):
        self.ws = ws
        self._send_lock = asyncio.Lock()
        self._receive_task: asyncio.Task | None = None
        self._send_heartbeat_task: asyncio.Task | None = None
        self._monitor_heartbeat_task: asyncio.Task | None = None
        self._heartbeat_timeout = heartbeat_timeout if heartbeat_timeout is not None else settings.heartbeat_timeout_secs
        self._closed = asyncio.Event()
        self._exception: BaseException | None = None
        self.sample_callbacks: list[Callable[[Sample], Awaitable[None]]] = []
        self._last_received_heartbeat = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def exception(self) -> BaseException | None:
        return self._exception

    async def _send(self, model: BaseModel) -> None:
        async with self._send_lock:
            data = model.model_dump()
            data_bytes = serializer.dumps(data)
            await self.ws.send_bytes(data_bytes)

    async def _receive(self) -> IncomingMessage | None:
        message = await self.ws.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
        message_bytes = message.get("bytes")
        if message_bytes is None:
            logger.warning("dropping non-binary frame")
            return None
        try:
            message_data = serializer.loads(message_bytes)
            return IncomingMessageValidator.validate_python(message_data)
        except ValueError as e:
            logger.warning("dropping malformed frame: %s", e)
            return None

    async def start(self) -> None:
        if self._send_heartbeat_task is not None:
            raise RuntimeError('This RemoteRenderer is already running.')
        self._receive_task = asyncio.create_task(self._receive_loop())
        self._send_heartbeat_task = asyncio.create_task(self._send_heartbeat_loop())
        self._monitor_heartbeat_task = asyncio.create_task(self._monitor_heartbeat_loop())

    async def _monitor_heartbeat_loop(self):
        try:
            self._last_received_heartbeat = utc_ts()
            delta = 0
            while delta < self._heartbeat_timeout:
                delta = (utc_ts() - self._last_received_heartbeat) / 1_000
                await asyncio.sleep(self._heartbeat_timeout / 2)
            logger.info("headset disconnected, silent for %.1fs", delta)
            self.stop(HeartbeatTimeoutException(delta))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stop(e)

    async def _send_heartbeat_loop(self):
        try:
            while True:
                await self._send(Notification())
                await asyncio.sleep(self._heartbeat_timeout / 2)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stop(e)

    async def _receive_loop(self) -> None:
        try:
            while True:
                incoming = await self._receive()
                self._last_received_heartbeat = utc_ts()
                if incoming is None:
                    continue

                match incoming.type:
                    case MessageType.NOTIFICATION:
                        incoming: Notification
                        if incoming.error:
                            logger.error("headset reported an error: %s", incoming.value)
                        elif incoming.value:
                            logger.info("headset: %s", incoming.value)
                    case MessageType.SAMPLE:
                        incoming: SampleMessage
                        sample = Sample(timestamp=incoming.timestamp, rate=incoming.rate)
                        for callback in list(self.sample_callbacks):
                            await callback(sample)

        except asyncio.CancelledError:
            raise
        except WebSocketDisconnect:
            self.stop()
        except Exception as e:
            logger.exception("receive loop failed")
            self.stop(e)

    def stop(self, exception: BaseException | None = None) -> None:
        current = asyncio.current_task()
        for name in ("_receive_task", "_monitor_heartbeat_task", "_send_heartbeat_task"):
            task = getattr(self, name)
            if task is not None and task is not current:
                task.cancel()

        if exception is not None and self._exception is None:
            self._exception = exception
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def __aenter__(self) -> "RemoteRenderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        tasks = [
            self._receive_task,
            self._monitor_heartbeat_task,
            self._send_heartbeat_task
        ]
        if not all(tasks):
            return
        self.stop(exception=exc)

        gather = asyncio.gather(*tasks, return_exceptions=True)
        try:
            await asyncio.wait_for(gather, timeout=self._heartbeat_timeout)
        except asyncio.TimeoutError:
            gather.cancel()
            with suppress(Exception):
                await gather

    async def execute(self, *commands: Command) -> None:
        """Sends ``commands`` to the headset as a single bundle."""
        if not commands or self.closed:
            return
        await self._send(Bundle(cmds=list(commands)))
