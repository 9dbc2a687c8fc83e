"""
Rule pipeline / filler.

- FillPipeline: protocol-agnostic driver of the intent state machine
- ProtocolAdapter: protocol-specific resolve/prepare/fill steps
- build_rules: base + custom rule assembly
- AllowBlockLists: per-protocol sender/destination/recipient filters
"""

from .allow_block import AllowBlockListItem, AllowBlockLists, IntentRoute, is_allowed_intent
from .models import (
    BaseMetadata,
    CustomRule,
    CustomRulesConfig,
    FillOutcome,
    IntentState,
    OriginContext,
    Rule,
    RuleContext,
    RuleFactory,
)
from .pipeline import FillPipeline, ProtocolAdapter
from .rules import UnknownRuleError, build_rules

__all__ = [
    "AllowBlockListItem",
    "AllowBlockLists",
    "IntentRoute",
    "is_allowed_intent",
    "BaseMetadata",
    "CustomRule",
    "CustomRulesConfig",
    "FillOutcome",
    "IntentState",
    "OriginContext",
    "Rule",
    "RuleContext",
    "RuleFactory",
    "FillPipeline",
    "ProtocolAdapter",
    "UnknownRuleError",
    "build_rules",
]
