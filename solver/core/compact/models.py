"""
Compact Data Models

Wire models for broadcast compacts (The Compact claims with a Tribunal
mandate witness). Parsing validates shape only: addresses are lower-cased,
numeric fields accept decimal or 0x-hex strings and are kept as strings
until they are coerced for hashing or settlement math.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


UINT32_MAX = 4294967295  # 2^32 - 1
ADDRESS_MASK = (1 << 160) - 1

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")
_NUMERIC_RE = re.compile(r"^-?\d+$")


def is_hex_string(value: str) -> bool:
    return bool(_HEX_RE.match(value))


def to_int(value: Union[str, int]) -> int:
    """Coerce a decimal or 0x-hex string to an int."""
    if isinstance(value, bool):
        raise ValueError("Booleans are not numeric values")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def _numeric_or_hex(value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str) or not (_NUMERIC_RE.match(value) or is_hex_string(value)):
        raise ValueError("Must be either a numeric string or a hex string with 0x prefix")
    return value


def _address(value: Any) -> str:
    if not isinstance(value, str) or not is_hex_string(value) or len(value) != 42:
        raise ValueError("Must be a valid Ethereum address (0x prefix + 20 bytes)")
    return value.lower()


def _hash(value: Any) -> str:
    if not isinstance(value, str) or not is_hex_string(value) or len(value) != 66:
        raise ValueError("Must be a valid hash (0x prefix + 32 bytes)")
    return value


NumericOrHex = Annotated[str, BeforeValidator(_numeric_or_hex)]
Address = Annotated[str, BeforeValidator(_address)]
Hash32 = Annotated[str, BeforeValidator(_hash)]


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Mandate(_WireModel):
    """Destination-chain terms of a compact."""

    chain_id: int = Field(..., alias="chainId", ge=1, le=UINT32_MAX)
    tribunal: Address
    recipient: Address
    expires: NumericOrHex
    token: Address
    minimum_amount: NumericOrHex = Field(..., alias="minimumAmount")
    baseline_priority_fee: NumericOrHex = Field(..., alias="baselinePriorityFee")
    scaling_factor: NumericOrHex = Field(..., alias="scalingFactor")
    salt: Hash32

    @field_validator("chain_id", mode="before")
    @classmethod
    def _strict_chain_id(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Chain ID must be an integer between 1 and {UINT32_MAX}")
        return value


class CompactMessage(_WireModel):
    """Origin-chain resource lock claim."""

    arbiter: Address
    sponsor: Address
    nonce: Hash32
    expires: NumericOrHex
    id: NumericOrHex
    amount: NumericOrHex
    mandate: Mandate

    @property
    def claim_token(self) -> str:
        """Token locked by the compact: the low 160 bits of its id."""
        return f"0x{to_int(self.id) & ADDRESS_MASK:040x}"


class BroadcastContext(_WireModel):
    """Quote context broadcast alongside a compact."""

    dispensation: NumericOrHex
    dispensation_usd: str = Field(..., alias="dispensationUSD")
    spot_output_amount: NumericOrHex = Field(..., alias="spotOutputAmount")
    quote_output_amount_direct: NumericOrHex = Field(..., alias="quoteOutputAmountDirect")
    quote_output_amount_net: NumericOrHex = Field(..., alias="quoteOutputAmountNet")
    delta_amount: Optional[NumericOrHex] = Field(None, alias="deltaAmount")
    slippage_bips: Optional[int] = Field(None, alias="slippageBips", ge=0, le=10000)
    witness_type_string: str = Field(..., alias="witnessTypeString")
    witness_hash: Hash32 = Field(..., alias="witnessHash")
    claim_hash: Optional[Hash32] = Field(None, alias="claimHash")

    @property
    def dispensation_usd_amount(self) -> str:
        """``dispensationUSD`` without the leading dollar sign."""
        return self.dispensation_usd.replace("$", "").strip()


class BroadcastRequest(_WireModel):
    """A broadcast CompactX fill request."""

    chain_id: NumericOrHex = Field(..., alias="chainId")
    compact: CompactMessage
    sponsor_signature: Optional[str] = Field(None, alias="sponsorSignature")
    allocator_signature: str = Field(..., alias="allocatorSignature")
    context: BroadcastContext
    claim_hash: Optional[Hash32] = Field(None, alias="claimHash")

    @field_validator("sponsor_signature")
    @classmethod
    def _sponsor_signature(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "0x":
            return value
        if not is_hex_string(value) or len(value) != 130:
            raise ValueError("Sponsor signature must be null, 0x, or a 64-byte hex string")
        return value

    @field_validator("allocator_signature")
    @classmethod
    def _allocator_signature(cls, value: str) -> str:
        if not is_hex_string(value) or len(value) != 130:
            raise ValueError("Allocator signature must be a 64-byte hex string")
        return value

    @property
    def origin_chain_id(self) -> int:
        return to_int(self.chain_id)

    @property
    def mandate_chain_id(self) -> int:
        return self.compact.mandate.chain_id

    @property
    def has_sponsor_signature(self) -> bool:
        return bool(self.sponsor_signature) and self.sponsor_signature != "0x"

    def with_claim_hash(self, claim_hash: str) -> "BroadcastRequest":
        """Return a copy carrying ``claim_hash``.

        A request's claim hash is attached once; attaching a different value
        to a request that already carries one is an error.
        """
        if self.claim_hash is not None and self.claim_hash.lower() != claim_hash.lower():
            raise ValueError("Claim hash already attached to this request")
        return self.model_copy(update={"claim_hash": claim_hash})
