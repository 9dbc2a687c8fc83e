"""
Event Source Framework

Every intent source delivers parsed intents through the same callback,
``handler(intent, origin)``, and returns an ``Unsubscribe`` coroutine
function from ``subscribe()``. Tearing a source down stops new intents
from that source; intents already handed to the handler keep running.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Generic, Optional, Protocol, Set, TypeVar

import structlog

from ...config import settings
from ...core.filler.models import OriginContext


logger = structlog.stdlib.get_logger(__name__)

T = TypeVar("T")

IntentHandler = Callable[[T, OriginContext], Any]
Unsubscribe = Callable[[], Awaitable[None]]


class EventSource(Protocol[T]):
    """A source of parsed intents."""

    def subscribe(self, handler: IntentHandler) -> Unsubscribe:
        """Start delivering intents to ``handler``; the returned coroutine function stops it."""
        ...


class ReconnectBackoff:
    """
    Exponential reconnect delay.

    The first reconnect waits ``base_delay``; every attempt doubles the
    delay (up to ``max_delay``). After ``max_attempts`` reconnects the
    source gives up. A successful connection calls ``reset()``.
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_attempts: int = 5,
        max_delay: Optional[float] = None,
    ):
        self.base_delay = base_delay
        self.max_attempts = max_attempts
        self.max_delay = max_delay
        self.attempts = 0
        self.delay = base_delay

    @classmethod
    def from_settings(
        cls,
        base_delay: Optional[float] = None,
        max_attempts: Optional[int] = None,
        max_delay: Optional[float] = None,
    ) -> "ReconnectBackoff":
        """Backoff for streaming sources; explicit arguments (including 0) override settings."""
        if base_delay is None:
            base_delay = settings.ws_reconnect_base_delay_seconds
        if max_attempts is None:
            max_attempts = settings.ws_max_reconnect_attempts
        if max_delay is None:
            max_delay = settings.ws_max_reconnect_delay_seconds
        return cls(base_delay=base_delay, max_attempts=max_attempts, max_delay=max_delay)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def next_delay(self) -> Optional[float]:
        """Delay before the next reconnect, or None once attempts are exhausted."""
        if self.exhausted:
            return None
        delay = self.delay
        self.attempts += 1
        self.delay = delay * 2
        if self.max_delay is not None:
            self.delay = min(self.delay, self.max_delay)
        return delay

    def reset(self) -> None:
        self.attempts = 0
        self.delay = self.base_delay


class HandlerDelivery(Generic[T]):
    """Calls the subscriber's handler, keeping async handlers alive as tasks."""

    def __init__(self, handler: IntentHandler, log: Any = None):
        self.handler = handler
        self.log = log or logger
        self._tasks: Set[asyncio.Task] = set()

    def __call__(self, intent: T, origin: OriginContext) -> None:
        try:
            result = self.handler(intent, origin)
        except Exception as e:
            self.log.error("Intent handler raised", error=str(e))
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._done)

    def _done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.log.error("Intent handler failed", error=str(task.exception()))
