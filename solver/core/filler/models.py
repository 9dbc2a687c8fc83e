"""
Filler Models

Types shared by the rule pipeline and protocol adapters: intent lifecycle
states, the rule context, protocol metadata and the per-intent outcome.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ..chain.client import ChainClient
from ..result import Result
from .allow_block import AllowBlockLists


TArgs = TypeVar("TArgs")


class IntentState(str, Enum):
    """Lifecycle of one intent through the pipeline."""
    DISCOVERED = "discovered"
    ORIGIN_INFO_RESOLVED = "origin_info_resolved"
    TARGET_INFO_RESOLVED = "target_info_resolved"
    RULES_EVALUATED = "rules_evaluated"
    PREPARED = "prepared"
    FILLED = "filled"          # Terminal: fill submitted and mined
    REJECTED = "rejected"      # Terminal: structured rejection, no funds moved
    FAILED = "failed"          # Terminal: unexpected error during processing

    @property
    def is_terminal(self) -> bool:
        return self in (IntentState.FILLED, IntentState.REJECTED, IntentState.FAILED)


@dataclass(frozen=True)
class OriginContext:
    """Where an intent was observed."""
    chain_name: Optional[str] = None
    chain_id: Optional[int] = None
    block_number: Optional[int] = None
    source: Optional[str] = None


@dataclass
class RuleContext:
    """Shared, read-only context handed to every rule of one pipeline run."""
    chain_client: ChainClient
    log: Any
    metadata: Any
    origin: OriginContext = field(default_factory=OriginContext)


Rule = Callable[[TArgs, RuleContext], Awaitable[Result[str]]]
RuleFactory = Callable[..., Rule]


class CustomRule(BaseModel):
    name: str
    args: Optional[Any] = None


class CustomRulesConfig(BaseModel):
    """Caller-selected rules, optionally replacing the protocol's base rules."""

    model_config = ConfigDict(populate_by_name=True)

    rules: List[CustomRule] = Field(default_factory=list)
    keep_base_rules: bool = Field(True, alias="keepBaseRules")


class BaseMetadata(BaseModel):
    """Metadata every protocol carries."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    protocol_name: str = Field(..., alias="protocolName")
    custom_rules: Optional[CustomRulesConfig] = Field(None, alias="customRules")
    allow_block_lists: AllowBlockLists = Field(
        default_factory=AllowBlockLists, alias="allowBlockLists"
    )


@dataclass
class StateTransition:
    state: IntentState
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    note: Optional[str] = None


@dataclass
class FillOutcome:
    """What happened to one intent."""
    protocol: str
    intent_id: str
    state: IntentState = IntentState.DISCOVERED
    history: List[StateTransition] = field(default_factory=list)
    error: Optional[str] = None
    reason: Optional[str] = None
    transaction_hashes: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(StateTransition(self.state))

    @property
    def label(self) -> str:
        return f"{self.protocol}-{self.intent_id}"

    @property
    def states(self) -> List[IntentState]:
        return [t.state for t in self.history]

    def advance(self, state: IntentState, note: Optional[str] = None) -> None:
        if self.state.is_terminal:
            raise ValueError(f"Intent {self.label} already finished as {self.state.value}")
        self.state = state
        self.history.append(StateTransition(state, note=note))

    def reject(self, error: str, reason: Optional[str] = None) -> "FillOutcome":
        self.error = error
        self.reason = reason
        self.advance(IntentState.REJECTED, note=error)
        return self

    def fail(self, error: str) -> "FillOutcome":
        self.error = error
        self.advance(IntentState.FAILED, note=error)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol": self.protocol,
            "intentId": self.intent_id,
            "state": self.state.value,
            "error": self.error,
            "reason": self.reason,
            "transactionHashes": self.transaction_hashes,
            "history": [
                {"state": t.state.value, "at": t.at.isoformat(), "note": t.note}
                for t in self.history
            ],
        }
