"""Hyperlane7683 ``Open`` event listeners: polled settler logs and an SSE stream."""

import json
from typing import List, Optional

from ...core.chain.client import ChainClient
from ...core.chain.models import EventLog
from ...services.events.chain_log_listener import ChainLogSource
from ...services.events.sse_listener import ServerSentEventSource
from .metadata import Hyperlane7683Metadata
from .models import OpenEventArgs


def parse_open_log(entry: EventLog) -> OpenEventArgs:
    return OpenEventArgs.from_open_event(entry.args["orderId"], entry.args["resolvedOrder"])


def parse_open_sse(data: str) -> Optional[OpenEventArgs]:
    """Parse one SSE payload; payloads that are not an ``Open`` event return None."""
    payload = json.loads(data)
    if not isinstance(payload, dict) or "resolvedOrder" not in payload:
        return None
    return OpenEventArgs.from_open_event(payload["orderId"], payload["resolvedOrder"])


def _order_id(args: OpenEventArgs) -> str:
    return args.order_id


def create_chain_listeners(
    chain_client: ChainClient, metadata: Hyperlane7683Metadata, **kwargs
) -> List[ChainLogSource[OpenEventArgs]]:
    return [
        ChainLogSource(
            chain_client,
            source.chain_id,
            "Hyperlane7683",
            source.address,
            "Open",
            parse=parse_open_log,
            intent_id=_order_id,
            chain_name=source.chain_name,
            poll_interval=source.poll_interval,
            confirmation_blocks=source.confirmation_blocks,
            initial_block=source.initial_block,
            processed_ids=source.processed_ids,
            **kwargs,
        )
        for source in metadata.intent_sources.blockchain_events
    ]


def create_sse_listener(
    metadata: Hyperlane7683Metadata, **kwargs
) -> Optional[ServerSentEventSource[OpenEventArgs]]:
    if not metadata.intent_sources.sse:
        return None

    source = metadata.intent_sources.sse[0]
    return ServerSentEventSource(
        source.url,
        parse=parse_open_sse,
        name=metadata.protocol_name,
        base_delay=source.reconnect_delay,
        max_attempts=source.max_reconnect_attempts,
        **kwargs,
    )
