"""
CompactX

Fills The Compact claims broadcast over WebSocket through a Tribunal
``fill`` on the mandate chain.
"""

from .filler import CompactXAdapter, create as create_filler, encode_fill
from .listener import create_listener, parse_broadcast
from .metadata import CompactXMetadata, default_metadata
from .rules import RULE_FACTORIES, base_rules

__all__ = [
    "CompactXAdapter",
    "create_filler",
    "encode_fill",
    "create_listener",
    "parse_broadcast",
    "CompactXMetadata",
    "default_metadata",
    "RULE_FACTORIES",
    "base_rules",
]
