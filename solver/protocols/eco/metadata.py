"""
Eco Metadata

IntentSource contracts to poll for ``IntentCreated`` events, the
EcoAdapter that fills on each destination chain, and how long to wait for
the HyperProver before withdrawing rewards.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...config import Settings, settings
from ...core.chain.chains import chain_id_for
from ...core.compact.models import Address
from ...core.filler.models import BaseMetadata


DEFAULT_PRIORITY_FEE = 1_000_000  # wei


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ChainContract(_Model):
    address: Address
    chain_name: str = Field(..., alias="chainName")

    @field_validator("chain_name")
    @classmethod
    def _known_chain(cls, value: str) -> str:
        chain_id_for(value)
        return value

    @property
    def chain_id(self) -> int:
        return chain_id_for(self.chain_name)


class IntentSource(ChainContract):
    poll_interval: Optional[float] = Field(None, alias="pollInterval")
    confirmation_blocks: Optional[int] = Field(None, alias="confirmationBlocks", ge=0)
    initial_block: Optional[int] = Field(None, alias="initialBlock", ge=0)
    processed_ids: List[str] = Field(default_factory=list, alias="processedIds")


class EcoMetadata(BaseMetadata):
    """Eco protocol metadata."""

    protocol_name: str = Field("Eco", alias="protocolName")
    intent_sources: List[IntentSource] = Field(default_factory=list, alias="intentSources")
    adapters: List[ChainContract] = Field(default_factory=list)
    priority_fees: Dict[int, int] = Field(default_factory=dict, alias="priorityFees")
    proof_poll_interval: float = Field(10.0, gt=0, alias="proofPollInterval")
    proof_poll_attempts: int = Field(30, ge=0, alias="proofPollAttempts")

    def priority_fee(self, chain_id: int) -> int:
        return self.priority_fees.get(int(chain_id), DEFAULT_PRIORITY_FEE)

    def adapter_for(self, chain_id: int) -> Optional[ChainContract]:
        for adapter in self.adapters:
            if adapter.chain_id == int(chain_id):
                return adapter
        return None

    def source_for(self, chain_id: int) -> Optional[IntentSource]:
        for source in self.intent_sources:
            if source.chain_id == int(chain_id):
                return source
        return None


def default_metadata(config: Settings = settings) -> EcoMetadata:
    """Eco metadata from the ECO_METADATA setting (JSON object in env)."""
    return EcoMetadata.model_validate({"protocolName": "Eco", **config.eco_metadata})
