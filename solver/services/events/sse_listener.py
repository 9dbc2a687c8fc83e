"""
Server-sent event intent source.

Streams ``text/event-stream`` over httpx. Each event's data lines are
joined and parsed into an intent; events with an empty payload are
heartbeats and are dropped. Errors and end-of-stream reconnect with the
same backoff as the WebSocket source.
"""

import asyncio
from typing import Any, AsyncIterator, Callable, Generic, List, Optional, TypeVar

import httpx
import structlog

from ...core.filler.models import OriginContext
from .base import HandlerDelivery, IntentHandler, ReconnectBackoff, Unsubscribe


logger = structlog.stdlib.get_logger(__name__)

T = TypeVar("T")


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield the data payload of each event in an SSE line stream."""
    data: List[str] = []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data:
                yield "\n".join(data)
            else:
                yield ""
            data = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data.append(value)
    if data:
        yield "\n".join(data)


class ServerSentEventSource(Generic[T]):
    """Reconnecting SSE source."""

    def __init__(
        self,
        url: str,
        parse: Callable[[str], Optional[T]],
        name: str = "sse",
        base_delay: Optional[float] = None,
        max_attempts: Optional[int] = None,
        max_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.url = url
        self.parse = parse
        self.name = name
        self.backoff = ReconnectBackoff.from_settings(base_delay, max_attempts, max_delay)
        self._transport = transport
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.heartbeats = 0
        self.log = logger.bind(source=name, url=url)

    def subscribe(self, handler: IntentHandler) -> Unsubscribe:
        if self._task is not None:
            raise RuntimeError(f"SSE source {self.name} is already subscribed")
        self._closed = False
        deliver = HandlerDelivery(handler, self.log)
        self._task = asyncio.create_task(self._run(deliver))
        return self.close

    async def close(self) -> None:
        self._closed = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.log.info("SSE source closed")

    async def _run(self, deliver: HandlerDelivery) -> None:
        timeout = httpx.Timeout(10.0, read=None)
        async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
            while not self._closed:
                try:
                    await self._stream(client, deliver)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self.log.error("SSE error occurred", error=str(e))

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

    async def _stream(self, client: httpx.AsyncClient, deliver: HandlerDelivery) -> None:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        async with client.stream("GET", self.url, headers=headers) as response:
            response.raise_for_status()
            self.backoff.reset()
            self.log.info("SSE connection established")

            async for payload in iter_sse_data(response.aiter_lines()):
                if not payload.strip():
                    self.heartbeats += 1
                    continue
                self._handle_message(payload, deliver)

        self.log.info("SSE stream ended")

    def _handle_message(self, payload: str, deliver: HandlerDelivery) -> None:
        try:
            intent = self.parse(payload)
        except Exception as e:
            self.log.error("Error parsing message", error=str(e))
            return
        if intent is None:
            return
        deliver(intent, OriginContext(source=self.name))
