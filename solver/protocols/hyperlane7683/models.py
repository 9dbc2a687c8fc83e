"""
Hyperlane7683 Models

ERC-7683 resolved orders as emitted by the ``Open`` event. The same shape
arrives decoded from chain logs (ints, hex strings) and as JSON over SSE
(decimal or hex strings, ethers BigNumber objects); validators normalize
both to ints and lower-case hex.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...core.chain.chains import chain_name_for
from ...core.chain.fields import Bytes32, HexData, Uint
from ...core.chain.models import bytes32_to_address
from ...core.compact.models import Address


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class Output(_Model):
    """An amount of a token on a chain; tokens and recipients are bytes32."""

    token: Bytes32
    amount: Uint
    recipient: Bytes32
    chain_id: Uint = Field(..., alias="chainId")

    @property
    def token_address(self) -> str:
        return bytes32_to_address(self.token)

    @property
    def recipient_address(self) -> str:
        return bytes32_to_address(self.recipient)


class FillInstruction(_Model):
    destination_chain_id: Uint = Field(..., alias="destinationChainId")
    destination_settler: Bytes32 = Field(..., alias="destinationSettler")
    origin_data: HexData = Field(..., alias="originData")

    @property
    def settler_address(self) -> str:
        return bytes32_to_address(self.destination_settler)


class ResolvedCrossChainOrder(_Model):
    user: Address
    origin_chain_id: Uint = Field(..., alias="originChainId")
    open_deadline: Uint = Field(..., alias="openDeadline")
    fill_deadline: Uint = Field(..., alias="fillDeadline")
    order_id: Bytes32 = Field(..., alias="orderId")
    max_spent: List[Output] = Field(default_factory=list, alias="maxSpent")
    min_received: List[Output] = Field(default_factory=list, alias="minReceived")
    fill_instructions: List[FillInstruction] = Field(default_factory=list, alias="fillInstructions")


class Recipient(_Model):
    destination_chain_name: Optional[str] = Field(None, alias="destinationChainName")
    recipient_address: str = Field(..., alias="recipientAddress")


class OpenEventArgs(_Model):
    """An opened order with its sender and per-output recipients."""

    order_id: Bytes32 = Field(..., alias="orderId")
    sender_address: Address = Field(..., alias="senderAddress")
    recipients: List[Recipient]
    resolved_order: ResolvedCrossChainOrder = Field(..., alias="resolvedOrder")

    @classmethod
    def from_open_event(cls, order_id: Any, resolved_order: Dict[str, Any]) -> "OpenEventArgs":
        """Build from the raw ``Open(orderId, resolvedOrder)`` arguments."""
        order = ResolvedCrossChainOrder.model_validate(resolved_order)
        return cls(
            order_id=order_id,
            sender_address=order.user,
            recipients=[
                Recipient(
                    destination_chain_name=chain_name_for(output.chain_id),
                    recipient_address=output.recipient_address,
                )
                for output in order.max_spent
            ],
            resolved_order=order,
        )


class IntentData(_Model):
    """What the fill step needs once balances and approvals are in place."""

    fill_instructions: List[FillInstruction]
    max_spent: List[Output]
