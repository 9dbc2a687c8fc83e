"""
Eco Models

Intents published by an Eco ``IntentSource`` through ``IntentCreated``.
Each target/data pair is a call the solver replays on the destination
chain; only ERC-20 ``transfer`` calls are fillable, so parsing decodes
every call and refuses intents carrying anything else.
"""

from typing import Dict, List, Optional

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ...core.chain.chains import chain_name_for
from ...core.chain.fields import Bytes32, HexData, Uint
from ...core.compact.models import Address


TRANSFER_SELECTOR = "0xa9059cbb"  # transfer(address,uint256)


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class TokenTransfer(_Model):
    token: Address
    recipient: Address
    amount: int


def decode_transfer(token: str, data: str) -> TokenTransfer:
    """
    Decode one ERC-20 ``transfer`` call made on ``token``.

    Raises:
        ValueError: the call is not a ``transfer``.
    """
    if not data.lower().startswith(TRANSFER_SELECTOR):
        raise ValueError(f"Unsupported call on {token}: {data[:10]}")
    try:
        recipient, amount = abi_decode(["address", "uint256"], bytes.fromhex(data[10:]))
    except DecodingError as e:
        raise ValueError(f"Malformed transfer call on {token}: {e}") from e
    return TokenTransfer(token=token, recipient=recipient, amount=amount)


class IntentCreatedArgs(_Model):
    """A decoded ``IntentCreated`` event."""

    intent_hash: Bytes32 = Field(..., alias="_hash")
    creator: Address = Field(..., alias="_creator")
    destination_chain_id: Uint = Field(..., alias="_destinationChain")
    targets: List[Address] = Field(..., alias="_targets")
    data: List[HexData] = Field(..., alias="_data")
    reward_tokens: List[Address] = Field(default_factory=list, alias="_rewardTokens")
    reward_amounts: List[Uint] = Field(default_factory=list, alias="_rewardAmounts")
    expiry_time: Uint = Field(..., alias="_expiryTime")
    nonce: Bytes32
    prover: Address = Field(..., alias="_prover")
    # set from the source chain once the origin is resolved
    origin_chain_id: Optional[int] = Field(None, alias="originChainId")

    @model_validator(mode="after")
    def _transfers_only(self) -> "IntentCreatedArgs":
        if len(self.targets) != len(self.data):
            raise ValueError("Targets and data must have the same length")
        for target, data in zip(self.targets, self.data):
            decode_transfer(target, data)
        return self

    @property
    def transfers(self) -> List[TokenTransfer]:
        return [decode_transfer(target, data) for target, data in zip(self.targets, self.data)]

    @property
    def destination_chain_name(self) -> Optional[str]:
        return chain_name_for(self.destination_chain_id)

    def required_amounts(self) -> Dict[str, int]:
        """Total transferred per token."""
        totals: Dict[str, int] = {}
        for transfer in self.transfers:
            totals[transfer.token] = totals.get(transfer.token, 0) + transfer.amount
        return totals

    def with_origin(self, chain_id: int) -> "IntentCreatedArgs":
        return self.model_copy(update={"origin_chain_id": int(chain_id)})


class IntentData(_Model):
    """The adapter the intent is filled through."""

    adapter: Address
    chain_id: int
