"""
Hyperlane7683 Metadata

Origin settler contracts to poll for ``Open`` events, an optional SSE
stream of the same events, and fee settings for destination fills.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...config import settings
from ...core.chain.chains import chain_id_for
from ...core.compact.models import Address
from ...core.filler.models import BaseMetadata


DEFAULT_PRIORITY_FEE = 1_000_000  # wei


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class BlockchainEventSource(_Model):
    address: Address
    chain_name: str = Field(..., alias="chainName")
    poll_interval: Optional[float] = Field(None, alias="pollInterval")
    confirmation_blocks: Optional[int] = Field(None, alias="confirmationBlocks", ge=0)
    initial_block: Optional[int] = Field(None, alias="initialBlock", ge=0)
    processed_ids: List[str] = Field(default_factory=list, alias="processedIds")

    @field_validator("chain_name")
    @classmethod
    def _known_chain(cls, value: str) -> str:
        chain_id_for(value)
        return value

    @property
    def chain_id(self) -> int:
        return chain_id_for(self.chain_name)


class SseSource(_Model):
    url: str
    max_reconnect_attempts: Optional[int] = Field(None, alias="maxReconnectAttempts")
    reconnect_delay: Optional[float] = Field(None, alias="reconnectDelay")


class Hyperlane7683IntentSources(_Model):
    blockchain_events: List[BlockchainEventSource] = Field(
        default_factory=list, alias="blockchainEvents"
    )
    sse: List[SseSource] = Field(default_factory=list)


class Hyperlane7683Metadata(BaseMetadata):
    """Hyperlane7683 protocol metadata."""

    protocol_name: str = Field("Hyperlane7683", alias="protocolName")
    intent_sources: Hyperlane7683IntentSources = Field(
        default_factory=Hyperlane7683IntentSources, alias="intentSources"
    )
    priority_fees: Dict[int, int] = Field(default_factory=dict, alias="priorityFees")

    def priority_fee(self, chain_id: int) -> int:
        return self.priority_fees.get(int(chain_id), DEFAULT_PRIORITY_FEE)


def default_metadata() -> Hyperlane7683Metadata:
    sse = [SseSource(url=settings.hyperlane7683_sse_url)] if settings.hyperlane7683_sse_url else []
    return Hyperlane7683Metadata(
        protocol_name="Hyperlane7683",
        intent_sources=Hyperlane7683IntentSources(
            blockchain_events=[
                BlockchainEventSource(
                    address="0x376dc8E71A223Af488D885ce04A7021f32C2D1e0",
                    chain_name="optimismsepolia",
                ),
            ],
            sse=sse,
        ),
    )
