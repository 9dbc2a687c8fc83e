"""
WebSocket intent source.

Keeps one connection to a broadcast endpoint open, parses every inbound
message into an intent, and reconnects with exponential backoff on error
or close. While connected it pings on a fixed interval and force-closes
the connection when no pong arrives in time.
"""

import asyncio
from typing import Any, Callable, Generic, Optional, TypeVar, Union

import structlog
import websockets
from websockets.exceptions import ConnectionClosed

from ...config import settings
from ...core.filler.models import OriginContext
from .base import HandlerDelivery, IntentHandler, ReconnectBackoff, Unsubscribe


logger = structlog.stdlib.get_logger(__name__)

T = TypeVar("T")

Message = Union[str, bytes]


class WebSocketSource(Generic[T]):
    """
    Reconnecting WebSocket source.

    Usage:
        source = WebSocketSource(url, parse=parse_broadcast, name="CompactX")
        unsubscribe = source.subscribe(pipeline.dispatch)
        ...
        await unsubscribe()
    """

    def __init__(
        self,
        url: str,
        parse: Callable[[Message], Optional[T]],
        name: str = "websocket",
        base_delay: Optional[float] = None,
        max_attempts: Optional[int] = None,
        max_delay: Optional[float] = None,
        ping_interval: Optional[float] = None,
        pong_timeout: Optional[float] = None,
        connect: Callable[..., Any] = websockets.connect,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.url = url
        self.parse = parse
        self.name = name
        self.backoff = ReconnectBackoff.from_settings(base_delay, max_attempts, max_delay)
        self.ping_interval = (
            settings.ws_ping_interval_seconds if ping_interval is None else ping_interval
        )
        self.pong_timeout = (
            settings.ws_pong_timeout_seconds if pong_timeout is None else pong_timeout
        )
        self._connect = connect
        self._sleep = sleep
        self._ws: Any = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.connections = 0
        self.log = logger.bind(source=name, url=url)

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def subscribe(self, handler: IntentHandler) -> Unsubscribe:
        if self._task is not None:
            raise RuntimeError(f"WebSocket source {self.name} is already subscribed")
        self._closed = False
        deliver = HandlerDelivery(handler, self.log)
        self._task = asyncio.create_task(self._run(deliver))
        return self.close

    async def close(self) -> None:
        """Stop probing and close the connection without reconnecting."""
        self._closed = True
        ws = self._ws
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                self.log.debug("Error closing WebSocket", error=str(e))
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.log.info("WebSocket source closed")

    async def _run(self, deliver: HandlerDelivery) -> None:
        while not self._closed:
            try:
                async with self._connect(self.url, ping_interval=None) as ws:
                    await self._on_open(ws, deliver)
            except ConnectionClosed as e:
                self.log.info("WebSocket connection closed", reason=str(e))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.log.error("WebSocket error occurred", error=str(e))
            finally:
                self._ws = None

            if self._closed:
                return

            delay = self.backoff.next_delay()
            if delay is None:
                self.log.error("Max reconnection attempts reached", attempts=self.backoff.attempts)
                return

            self.log.info(
                "Attempting to reconnect",
                attempt=self.backoff.attempts,
                max_attempts=self.backoff.max_attempts,
                delay=delay,
            )
            await self._sleep(delay)

    async def _on_open(self, ws: Any, deliver: HandlerDelivery) -> None:
        self._ws = ws
        self.connections += 1
        self.backoff.reset()
        self.log.info("WebSocket connection established")

        heartbeat = asyncio.create_task(self._heartbeat(ws))
        try:
            async for message in ws:
                self._handle_message(message, deliver)
        finally:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass
        self.log.info("WebSocket connection closed")

    def _handle_message(self, message: Message, deliver: HandlerDelivery) -> None:
        try:
            intent = self.parse(message)
        except Exception as e:
            self.log.error("Error parsing message", error=str(e))
            return
        if intent is None:
            return
        deliver(intent, OriginContext(source=self.name))

    async def _heartbeat(self, ws: Any) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self.ping_interval)
            started = loop.time()
            try:
                pong_waiter = await ws.ping()
                await asyncio.wait_for(pong_waiter, timeout=self.pong_timeout)
            except asyncio.TimeoutError:
                self.log.warning("No pong received within timeout, closing connection")
                await ws.close()
                return
            except ConnectionClosed:
                return
            self.log.debug("WebSocket pong", latency_ms=int((loop.time() - started) * 1000))
