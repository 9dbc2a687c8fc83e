"""
Eco

Fills Eco intents created on IntentSource contracts through the
destination EcoAdapter and withdraws the rewards once proven.
"""

from .filler import EcoAdapter, create as create_filler
from .listener import create_chain_listeners, parse_intent_created
from .metadata import EcoMetadata, default_metadata
from .models import IntentCreatedArgs, IntentData, decode_transfer
from .rules import RULE_FACTORIES, base_rules

__all__ = [
    "EcoAdapter",
    "create_filler",
    "create_chain_listeners",
    "parse_intent_created",
    "EcoMetadata",
    "default_metadata",
    "IntentCreatedArgs",
    "IntentData",
    "decode_transfer",
    "RULE_FACTORIES",
    "base_rules",
]
