"""
Event Source Framework

- WebSocketSource: reconnecting broadcast socket with ping/pong probing
- ServerSentEventSource: reconnecting SSE stream, empty payloads are heartbeats
- ChainLogSource: polled contract event logs with confirmation depth and dedupe

Usage:
    source = WebSocketSource(url, parse=parse_broadcast, name="CompactX")
    unsubscribe = source.subscribe(pipeline.dispatch)
"""

from .base import EventSource, HandlerDelivery, IntentHandler, ReconnectBackoff, Unsubscribe
from .chain_log_listener import ChainLogSource
from .sse_listener import ServerSentEventSource, iter_sse_data
from .websocket_listener import WebSocketSource

__all__ = [
    "EventSource",
    "HandlerDelivery",
    "IntentHandler",
    "ReconnectBackoff",
    "Unsubscribe",
    "ChainLogSource",
    "ServerSentEventSource",
    "iter_sse_data",
    "WebSocketSource",
]
