"""
Hyperlane7683

Fills ERC-7683 orders opened on Hyperlane7683 settlers, discovered from
polled ``Open`` logs or an SSE stream.
"""

from .filler import Hyperlane7683Adapter, create as create_filler
from .listener import create_chain_listeners, create_sse_listener, parse_open_log, parse_open_sse
from .metadata import Hyperlane7683Metadata, default_metadata
from .models import IntentData, OpenEventArgs
from .rules import RULE_FACTORIES, base_rules

__all__ = [
    "Hyperlane7683Adapter",
    "create_filler",
    "create_chain_listeners",
    "create_sse_listener",
    "parse_open_log",
    "parse_open_sse",
    "Hyperlane7683Metadata",
    "default_metadata",
    "IntentData",
    "OpenEventArgs",
    "RULE_FACTORIES",
    "base_rules",
]
