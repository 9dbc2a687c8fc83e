"""
Chain client models and types.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass
class Block:
    """The subset of a block header the solver reads."""
    number: int
    timestamp: int
    base_fee_per_gas: Optional[int] = None     # None on pre-London chains


@dataclass
class TransactionRequest:
    """A typed transaction request; the chain client signs and sends it."""
    chain_id: int
    to: str
    data: str = "0x"                            # Encoded calldata (hex)
    value: int = 0                              # Wei to send
    from_address: Optional[str] = None
    max_fee_per_gas: Optional[int] = None       # EIP-1559
    max_priority_fee_per_gas: Optional[int] = None
    gas_limit: Optional[int] = None
    nonce: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a web3 transaction dict."""
        tx: Dict[str, Any] = {
            "chainId": self.chain_id,
            "to": self.to,
            "data": self.data,
            "value": self.value,
        }
        if self.from_address:
            tx["from"] = self.from_address
        if self.max_fee_per_gas is not None:
            tx["maxFeePerGas"] = self.max_fee_per_gas
            tx["maxPriorityFeePerGas"] = self.max_priority_fee_per_gas or 0
        if self.gas_limit is not None:
            tx["gas"] = self.gas_limit
        if self.nonce is not None:
            tx["nonce"] = self.nonce
        return tx


@dataclass
class TransactionReceipt:
    """Confirmation details of a mined transaction."""
    transaction_hash: str
    chain_id: int
    block_number: Optional[int] = None
    status: int = 1
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status == 1


@dataclass
class EventLog:
    """A decoded contract event."""
    event: str
    args: Dict[str, Any]
    block_number: int
    transaction_hash: str
    log_index: int = 0
    address: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)


def bytes32_to_address(value: Any) -> str:
    """Return the address stored in the low 20 bytes of a bytes32 value."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        text = str(value)
        raw = bytes.fromhex(text[2:] if text.startswith("0x") else text)
    return "0x" + raw[-20:].hex()


__all__: List[str] = [
    "ZERO_ADDRESS",
    "Block",
    "TransactionRequest",
    "TransactionReceipt",
    "EventLog",
    "bytes32_to_address",
]
