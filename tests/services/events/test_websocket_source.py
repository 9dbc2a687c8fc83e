"""
Tests for the reconnecting WebSocket source, using an in-memory socket.
"""

import asyncio
import json

import pytest

from solver.config import settings
from solver.services.events.base import ReconnectBackoff
from solver.services.events.websocket_listener import WebSocketSource


class FakeSocket:
    def __init__(self, messages=(), hold=True, answer_pings=True):
        self.messages = list(messages)
        self.hold = hold
        self.answer_pings = answer_pings
        self.closed = asyncio.Event()
        self.pings = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.hold:
            await self.closed.wait()

    async def ping(self):
        self.pings += 1
        waiter = asyncio.get_running_loop().create_future()
        if self.answer_pings:
            waiter.set_result(0.0)
        return waiter

    async def close(self):
        self.closed.set()


class _Connection:
    def __init__(self, socket):
        self.socket = socket

    async def __aenter__(self):
        if self.socket is None:
            raise OSError("connection refused")
        return self.socket

    async def __aexit__(self, *exc):
        return False


class FakeConnect:
    """Hands out the queued sockets in order; ``None`` (or an empty queue) refuses."""

    def __init__(self, *sockets):
        self.sockets = list(sockets)
        self.attempts = 0
        self.kwargs = []

    def __call__(self, url, **kwargs):
        self.attempts += 1
        self.kwargs.append(kwargs)
        return _Connection(self.sockets.pop(0) if self.sockets else None)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        await asyncio.sleep(0)


def _parse(message):
    if message == "skip":
        return None
    return json.loads(message)


def _source(connect, sleep, max_attempts=3, **kwargs):
    return WebSocketSource(
        "wss://broadcast.test/ws",
        parse=_parse,
        name="test",
        base_delay=1.0,
        max_attempts=max_attempts,
        max_delay=60.0,
        connect=connect,
        sleep=sleep,
        **kwargs,
    )


async def _until(predicate, timeout=1.0):
    async def wait():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(wait(), timeout)


def test_backoff_doubles_and_caps():
    backoff = ReconnectBackoff(base_delay=1.0, max_attempts=8, max_delay=10.0)

    delays = [backoff.next_delay() for _ in range(8)]

    assert delays == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0, 10.0, 10.0]
    assert backoff.next_delay() is None
    assert backoff.exhausted

    backoff.reset()
    assert backoff.next_delay() == 1.0


def test_explicit_zero_overrides_settings(monkeypatch):
    monkeypatch.setattr(settings, "ws_reconnect_base_delay_seconds", 5.0)
    monkeypatch.setattr(settings, "ws_ping_interval_seconds", 15.0)

    source = WebSocketSource(
        "wss://broadcast.test/ws", parse=_parse, base_delay=0, max_attempts=0, ping_interval=0
    )

    assert source.backoff.base_delay == 0
    assert source.backoff.max_attempts == 0
    assert source.ping_interval == 0
    assert ReconnectBackoff.from_settings().base_delay == 5.0


@pytest.mark.asyncio
async def test_delivers_parsed_messages_and_drops_bad_ones():
    socket = FakeSocket(['{"n": 1}', "not json", "skip", '{"n": 2}'])
    received = []
    source = _source(FakeConnect(socket), RecordingSleep())

    unsubscribe = source.subscribe(lambda intent, origin: received.append((intent, origin.source)))
    await _until(lambda: len(received) == 2)
    await unsubscribe()

    assert received == [({"n": 1}, "test"), ({"n": 2}, "test")]
    assert source.connections == 1


@pytest.mark.asyncio
async def test_reconnects_with_exponential_backoff_until_exhausted():
    connect = FakeConnect()
    sleep = RecordingSleep()
    source = _source(connect, sleep, max_attempts=3)

    source.subscribe(lambda intent, origin: None)
    await _until(lambda: connect.attempts == 4)
    await asyncio.wait_for(source._task, 1.0)

    assert sleep.delays == [1.0, 2.0, 4.0]
    assert connect.kwargs[0] == {"ping_interval": None}


@pytest.mark.asyncio
async def test_successful_connection_resets_backoff():
    connect = FakeConnect(None, FakeSocket(hold=False))
    sleep = RecordingSleep()
    source = _source(connect, sleep, max_attempts=2)

    source.subscribe(lambda intent, origin: None)
    await _until(lambda: connect.attempts == 4)
    await asyncio.wait_for(source._task, 1.0)

    # refused, opened (reset), then refused twice more
    assert sleep.delays == [1.0, 1.0, 2.0]


@pytest.mark.asyncio
async def test_unsubscribe_closes_socket_without_reconnecting():
    socket = FakeSocket()
    connect = FakeConnect(socket)
    sleep = RecordingSleep()
    source = _source(connect, sleep)

    unsubscribe = source.subscribe(lambda intent, origin: None)
    await _until(lambda: source.connected)
    await unsubscribe()

    assert socket.closed.is_set()
    assert not source.connected
    assert connect.attempts == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_missing_pong_closes_connection():
    socket = FakeSocket(answer_pings=False)
    source = _source(
        FakeConnect(socket), RecordingSleep(), max_attempts=0, ping_interval=0.01, pong_timeout=0.01
    )

    source.subscribe(lambda intent, origin: None)
    await asyncio.wait_for(socket.closed.wait(), 1.0)
    await asyncio.wait_for(source._task, 1.0)

    assert socket.pings == 1


@pytest.mark.asyncio
async def test_answered_pings_keep_connection_open():
    socket = FakeSocket()
    source = _source(FakeConnect(socket), RecordingSleep(), ping_interval=0.01, pong_timeout=0.05)

    unsubscribe = source.subscribe(lambda intent, origin: None)
    await _until(lambda: socket.pings >= 3)

    assert not socket.closed.is_set()
    await unsubscribe()


@pytest.mark.asyncio
async def test_async_handler_failures_are_contained():
    socket = FakeSocket(['{"n": 1}', '{"n": 2}'])
    seen = []

    async def handler(intent, origin):
        seen.append(intent["n"])
        if intent["n"] == 1:
            raise RuntimeError("handler bug")

    source = _source(FakeConnect(socket), RecordingSleep())
    unsubscribe = source.subscribe(handler)
    await _until(lambda: len(seen) == 2)
    await unsubscribe()

    assert seen == [1, 2]


def test_double_subscribe_is_rejected():
    async def run():
        source = _source(FakeConnect(FakeSocket()), RecordingSleep())
        unsubscribe = source.subscribe(lambda intent, origin: None)
        try:
            with pytest.raises(RuntimeError):
                source.subscribe(lambda intent, origin: None)
        finally:
            await unsubscribe()

    asyncio.run(run())
