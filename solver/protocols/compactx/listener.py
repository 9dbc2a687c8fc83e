"""CompactX broadcast listener."""

import json
from typing import Optional, Union

from ...core.compact.models import BroadcastRequest
from ...services.events.websocket_listener import WebSocketSource
from .metadata import CompactXMetadata


def parse_broadcast(message: Union[str, bytes]) -> Optional[BroadcastRequest]:
    """
    Parse a broadcast message into a validated request.

    Connection updates and other non-request messages return None.

    Raises:
        ValueError: malformed JSON (json.JSONDecodeError) or an invalid request
            (pydantic.ValidationError).
    """
    if isinstance(message, bytes):
        message = message.decode("utf-8")
    payload = json.loads(message)
    if not isinstance(payload, dict) or "compact" not in payload:
        return None
    return BroadcastRequest.model_validate(payload)


def create_listener(metadata: CompactXMetadata, **kwargs) -> WebSocketSource[BroadcastRequest]:
    sources = metadata.intent_sources.web_sockets
    if not sources:
        raise ValueError(f"{metadata.protocol_name} has no WebSocket intent source configured")

    source = sources[0]
    return WebSocketSource(
        source.url,
        parse=parse_broadcast,
        name=metadata.protocol_name,
        base_delay=source.reconnect_delay,
        max_attempts=source.max_reconnect_attempts,
        **kwargs,
    )
